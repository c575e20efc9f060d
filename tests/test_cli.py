"""Tests for CLI commands."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from milkblend.cli import app

runner = CliRunner()


@pytest.fixture
def base_args(missing_config):
    """Point the CLI at a config file that does not exist so defaults apply."""
    return ["--config", str(missing_config)]


class TestMainCommands:
    """Tests for main CLI commands."""

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "formula" in result.output.lower()

    def test_solve_json(self, base_args):
        result = runner.invoke(app, [*base_args, "solve", "-r", "1.0", "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["status"] == "optimal"
        assert data["values"]["whole_milk"] == pytest.approx(0.3676, abs=1e-3)

    def test_solve_table(self, base_args):
        result = runner.invoke(app, [*base_args, "solve", "-r", "0.5"])
        assert result.exit_code == 0, result.output
        assert "OPTIMAL" in result.output

    def test_solve_rejects_bad_r(self, base_args):
        result = runner.invoke(app, [*base_args, "solve", "-r", "2"])
        assert result.exit_code == 1

    def test_solve_bad_format(self, base_args):
        result = runner.invoke(app, [*base_args, "solve", "--output", "xml"])
        assert result.exit_code == 1


class TestSweepCommand:
    """Tests for the sweep command."""

    def test_csv(self, base_args):
        result = runner.invoke(app, [*base_args, "sweep", "-n", "5", "--output", "csv"])
        assert result.exit_code == 0, result.output
        lines = result.stdout.strip().splitlines()
        assert lines[0].startswith("r,whole_milk")
        assert len(lines) == 6

    def test_write_to_file(self, base_args, tmp_path):
        out = tmp_path / "sweep.json"
        result = runner.invoke(
            app, [*base_args, "sweep", "-n", "3", "--output", "json", "--out", str(out)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert len(data["points"]) == 3

    def test_out_needs_text_format(self, base_args, tmp_path):
        result = runner.invoke(
            app, [*base_args, "sweep", "--output", "table", "--out", str(tmp_path / "x")]
        )
        assert result.exit_code == 1

    def test_zero_epsilon(self, base_args):
        result = runner.invoke(app, [*base_args, "sweep", "--epsilon", "0"])
        assert result.exit_code == 1

    def test_with_catalog(self, base_args, catalog_yaml):
        result = runner.invoke(
            app,
            [*base_args, "sweep", "-n", "2", "--output", "csv", "--catalog", str(catalog_yaml)],
        )
        assert result.exit_code == 0, result.output


class TestVariantCommands:
    """Tests for variant and diagnose."""

    def test_exact_is_infeasible(self, base_args):
        result = runner.invoke(app, [*base_args, "variant", "exact"])
        assert result.exit_code == 1
        assert "INFEASIBLE" in result.output

    def test_slack(self, base_args):
        result = runner.invoke(app, [*base_args, "variant", "slack", "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["values"]["slack_fat"] == pytest.approx(2.0662, abs=1e-3)
        assert data["diagnosis"] is None

    def test_unknown_variant(self, base_args):
        result = runner.invoke(app, [*base_args, "variant", "magic"])
        assert result.exit_code == 1

    def test_diagnose_json(self, base_args):
        result = runner.invoke(app, [*base_args, "diagnose", "exact", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["feasible"] is False
        assert {v["constraint"] for v in data["violations"]} == {"carbohydrate", "protein"}

    def test_diagnose_feasible(self, base_args):
        result = runner.invoke(app, [*base_args, "diagnose", "supplemented"])
        assert result.exit_code == 0
        assert "all targets can be met" in result.output


class TestCatalogAndConfig:
    """Tests for ingredients and config commands."""

    def test_ingredients(self, base_args):
        result = runner.invoke(app, [*base_args, "ingredients"])
        assert result.exit_code == 0
        assert "Target" in result.output

    def test_missing_catalog(self, base_args, tmp_path):
        result = runner.invoke(
            app, [*base_args, "ingredients", "--catalog", str(tmp_path / "none.yaml")]
        )
        assert result.exit_code == 1

    def test_config_init_and_show(self, tmp_path):
        path = tmp_path / "config.yaml"
        result = runner.invoke(app, ["config", "init", "--path", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        result = runner.invoke(app, ["--config", str(path), "config", "show"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["sweep"]["points"] == 14

    def test_config_init_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("{}\n")
        result = runner.invoke(app, ["config", "init", "--path", str(path)])
        assert result.exit_code == 1


class TestFailureReporting:
    """Failed solves come with a diagnosis; bad config is a clean error."""

    def test_solve_diagnoses_infeasible_point(self, base_args, no_supplement_catalog_yaml):
        result = runner.invoke(
            app, [*base_args, "solve", "-r", "1.0", "--catalog", str(no_supplement_catalog_yaml)]
        )
        assert result.exit_code == 1
        assert "INFEASIBLE" in result.output
        assert "Infeasibility diagnosis" in result.output

    def test_sweep_table_diagnoses_each_failure(self, base_args, no_supplement_catalog_yaml):
        result = runner.invoke(
            app,
            [*base_args, "sweep", "-n", "3", "--catalog", str(no_supplement_catalog_yaml)],
        )
        assert result.exit_code == 1
        # r = 1.0 and r = 0.5 fail, r = 1e-6 is fine
        assert result.output.count("Infeasibility diagnosis") == 2
        assert "2 of 3 sweep points were not optimal" in result.output

    def test_sweep_json_attaches_diagnosis(self, base_args, no_supplement_catalog_yaml, tmp_path):
        out = tmp_path / "sweep.json"
        result = runner.invoke(
            app,
            [
                *base_args,
                "sweep",
                "-n",
                "3",
                "--output",
                "json",
                "--out",
                str(out),
                "--catalog",
                str(no_supplement_catalog_yaml),
            ],
        )
        assert result.exit_code == 1
        data = json.loads(out.read_text())
        assert data["failures"] == [0, 1]

        first, second, last = data["points"]
        for point in (first, second):
            assert point["diagnosis"]["feasible"] is False
            assert point["diagnosis"]["violations"]
        assert last["status"] == "optimal"
        assert last["diagnosis"] is None

    def test_invalid_log_level(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("defaults:\n  log_level: loud\n")
        result = runner.invoke(app, ["--config", str(path), "ingredients"])
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        assert "log_level" in result.output
