"""Tests for output formatters."""

from __future__ import annotations

import io
import json

import pytest
from rich.console import Console

from milkblend.explore.diagnosis import diagnose_infeasibility
from milkblend.export.formatters import TableFormatter, format_solution, format_sweep
from milkblend.optimizer.builder import Variant, build_dilution_model, build_variant_model
from milkblend.optimizer.models import BlendSolution, SolveStatus
from milkblend.optimizer.solver import solve_model
from milkblend.optimizer.sweep import SweepPoint, SweepResult, run_sweep


@pytest.fixture
def small_sweep():
    return run_sweep(points=4, epsilon=1e-6)


@pytest.fixture
def console_buffer():
    buffer = io.StringIO()
    return Console(file=buffer, width=140), buffer


class TestSolutionFormats:
    """Formatting a single solution."""

    def test_json(self):
        data = json.loads(format_solution(solve_model(build_dilution_model(1.0)), "json"))
        assert data["status"] == "optimal"
        assert data["values"]["oil"] == pytest.approx(4.5556, abs=1e-3)
        assert data["nutrients"]["energy_shares"]["defined"] is True

    def test_json_infeasible(self):
        data = json.loads(format_solution(solve_model(build_variant_model(Variant.EXACT)), "json"))
        assert data["success"] is False
        assert data["values"] == {}
        assert data["nutrients"] is None

    def test_markdown(self):
        text = format_solution(solve_model(build_dilution_model(1.0)), "markdown")
        assert text.startswith("# Blend: dilution")
        assert "Vegetable oil" in text
        assert "Energy:" in text

    def test_table_prints(self, console_buffer):
        console, buffer = console_buffer
        result = format_solution(
            solve_model(build_dilution_model(1.0)), "table", console=console
        )
        assert result is None
        assert "OPTIMAL" in buffer.getvalue()

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown output format"):
            format_solution(solve_model(build_dilution_model(1.0)), "xml")


class TestSweepFormats:
    """Formatting a sweep."""

    def test_json(self, small_sweep):
        data = json.loads(format_sweep(small_sweep, "json"))
        assert data["success"] is True
        assert data["variables"] == ["whole_milk", "lowfat_milk", "lactose", "oil"]
        assert [p["index"] for p in data["points"]] == [0, 1, 2, 3]
        assert data["failures"] == []

    def test_csv(self, small_sweep):
        lines = format_sweep(small_sweep, "csv").strip().splitlines()
        assert lines[0] == "r,whole_milk,lowfat_milk,lactose,oil,status"
        assert len(lines) == 5
        assert lines[1].endswith(",optimal")

    def test_markdown(self, small_sweep):
        text = format_sweep(small_sweep, "markdown")
        assert "| r | whole_milk | lowfat_milk | lactose | oil | energy | status |" in text
        assert text.count("| optimal |") == 4

    def test_table(self, small_sweep, console_buffer):
        console, buffer = console_buffer
        assert format_sweep(small_sweep, "table", console=console) is None
        output = buffer.getvalue()
        assert "Dilution sweep (4 points)" in output
        assert "Derived nutrients" in output


class TestDiagnosisTable:
    """Printing a diagnosis."""

    def test_lists_violations(self, console_buffer):
        console, buffer = console_buffer
        diagnosis = diagnose_infeasibility(build_variant_model(Variant.EXACT))
        TableFormatter(console).format_diagnosis(diagnosis)
        output = buffer.getvalue()
        assert "carbohydrate" in output
        assert "protein" in output


def _empty_and_failed_sweep() -> SweepResult:
    """An all-zero optimal point followed by an infeasible one."""
    empty = BlendSolution(
        model_name="empty",
        status=SolveStatus.OPTIMAL,
        message="ok",
        values={"whole_milk": 0.0, "lowfat_milk": 0.0, "lactose": 0.0, "oil": 0.0},
    )
    failed = BlendSolution(
        model_name="failed",
        status=SolveStatus.INFEASIBLE,
        message="The problem is infeasible",
        values={},
    )
    return SweepResult(
        points=[
            SweepPoint(index=0, r=0.0, solution=empty),
            SweepPoint(index=1, r=0.5, solution=failed),
        ]
    )


class TestEmptyAndFailedPoints:
    """Zero-energy blends and failed points in every format."""

    def test_json(self):
        data = json.loads(format_sweep(_empty_and_failed_sweep(), "json"))
        assert data["success"] is False
        assert data["failures"] == [1]

        empty, failed = data["points"]
        shares = empty["nutrients"]["energy_shares"]
        assert shares == {"defined": False, "fat": None, "carbohydrate": None, "protein": None}
        assert failed["status"] == "infeasible"
        assert failed["values"] is None
        assert failed["nutrients"] is None

    def test_csv(self):
        lines = format_sweep(_empty_and_failed_sweep(), "csv").strip().splitlines()
        assert lines[1] == "0.0,0.0,0.0,0.0,0.0,optimal"
        assert lines[2] == "0.5,,,,,infeasible"

    def test_markdown(self):
        text = format_sweep(_empty_and_failed_sweep(), "markdown")
        assert "| 0.0000 | 0.0000 | 0.0000 | 0.0000 | 0.0000 | 0.00 | optimal |" in text
        assert "| 0.5000 | - | - | - | - | - | infeasible |" in text

    def test_table(self, console_buffer):
        console, buffer = console_buffer
        format_sweep(_empty_and_failed_sweep(), "table", console=console)
        output = buffer.getvalue()
        assert "undefined" in output
        assert "Point 1 (r=0.5): infeasible - The problem is infeasible" in output

    def test_solution_markdown_undefined_shares(self):
        solution = _empty_and_failed_sweep().points[0].solution
        text = format_solution(solution, "markdown")
        assert "- Fat: 0.000 g (undefined of energy)" in text
        assert "- Energy: 0.00 kcal" in text
