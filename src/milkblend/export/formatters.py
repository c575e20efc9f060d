"""Output formatters for blend solutions and sweeps."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from milkblend.data.ingredients import Ingredient, Unit, default_catalog
from milkblend.optimizer.models import BlendSolution
from milkblend.optimizer.nutrition import (
    EnergyShares,
    NutrientTotals,
    derive_nutrients,
    energy_shares,
)
from milkblend.optimizer.sweep import SweepPoint, SweepResult


def _unit_label(key: str, catalog: dict[str, Ingredient]) -> str:
    ingredient = catalog.get(key)
    if ingredient is None:
        return ""
    return "100 ml" if ingredient.unit is Unit.VOLUME else "g"


def _display_name(key: str, catalog: dict[str, Ingredient]) -> str:
    ingredient = catalog.get(key)
    return ingredient.name if ingredient is not None else key


def _share(value: Optional[float]) -> str:
    return "undefined" if value is None else f"{value:.1%}"


def _derive(
    solution: BlendSolution, catalog: dict[str, Ingredient]
) -> Optional[tuple[NutrientTotals, EnergyShares]]:
    if not solution.success:
        return None
    totals = derive_nutrients(solution.values, catalog)
    return totals, energy_shares(totals)


def _nutrients_dict(derived: Optional[tuple[NutrientTotals, EnergyShares]]) -> Optional[dict]:
    if derived is None:
        return None
    totals, shares = derived
    return {
        "fat": round(totals.fat, 6),
        "carbohydrate": round(totals.carbohydrate, 6),
        "protein": round(totals.protein, 6),
        "energy": round(totals.energy, 6),
        "energy_shares": {
            "defined": shares.defined,
            "fat": shares.fat,
            "carbohydrate": shares.carbohydrate,
            "protein": shares.protein,
        },
    }


class TableFormatter:
    """Format results as Rich tables for terminal display."""

    def __init__(
        self,
        console: Optional[Console] = None,
        catalog: Optional[dict[str, Ingredient]] = None,
    ):
        """Initialize the formatter.

        Args:
            console: Rich console for output. If None, creates a new one.
            catalog: Ingredient catalogue for names and units
        """
        self.console = console or Console()
        self.catalog = catalog if catalog is not None else default_catalog()

    def format_solution(self, solution: BlendSolution, title: Optional[str] = None) -> None:
        """Print a single solution with its derived nutrients."""
        status_color = "green" if solution.success else "red"
        header_lines = [
            f"[bold]BLEND RESULT[/bold] - {datetime.now().strftime('%Y-%m-%d %H:%M')}",
            f"Model: {solution.model_name}",
            f"Status: [{status_color}]{solution.status.value.upper()}[/{status_color}]",
        ]
        self.console.print(Panel("\n".join(header_lines), title=title or "Blend"))

        if not solution.success:
            self.console.print(f"[red]Error: {solution.message}[/red]")
            return

        table = Table(title="Ingredients")
        table.add_column("Variable", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Unit")
        for name, value in solution.values.items():
            table.add_row(
                _display_name(name, self.catalog),
                f"{value:.4f}",
                _unit_label(name, self.catalog),
            )
        self.console.print(table)

        derived = _derive(solution, self.catalog)
        if derived is not None:
            self.console.print(self._nutrient_table([("", derived)], title="Nutrients per 100 ml"))

        info = solution.solver_info
        if info:
            parts = []
            if "elapsed_seconds" in info:
                parts.append(f"Time: {info['elapsed_seconds']:.3f}s")
            if info.get("iterations"):
                parts.append(f"Iterations: {info['iterations']}")
            if "solver" in info:
                parts.append(f"Solver: {info['solver']}")
            if parts:
                self.console.print(f"[dim]{' | '.join(parts)}[/dim]")

    def format_sweep(self, sweep: SweepResult) -> None:
        """Print quantity and nutrient tables for a sweep."""
        table = Table(title=f"Dilution sweep ({len(sweep)} points)")
        table.add_column("#", justify="right")
        table.add_column("r", justify="right")
        for name in sweep.variables:
            table.add_column(name, justify="right")
        table.add_column("Status", justify="center")

        for point in sweep.points:
            ok = point.success
            cells = [
                f"{point.solution.values[name]:.4f}" if ok else "-"
                for name in sweep.variables
            ]
            status = "[green]OK[/green]" if ok else f"[red]{point.solution.status.value}[/red]"
            table.add_row(str(point.index), f"{point.r:.4f}", *cells, status)
        self.console.print(table)

        rows = []
        for point in sweep.points:
            derived = _derive(point.solution, sweep.catalog)
            if derived is not None:
                rows.append((f"{point.r:.4f}", derived))
        if rows:
            self.console.print(self._nutrient_table(rows, title="Derived nutrients"))

        for point in sweep.failures:
            self.console.print(
                f"[red]Point {point.index} (r={point.r:.6g}): "
                f"{point.solution.status.value} - {point.solution.message}[/red]"
            )

    def format_diagnosis(self, diagnosis: dict[str, Any]) -> None:
        """Print an infeasibility diagnosis."""
        self.console.print(
            Panel(f"Model: {diagnosis['model']}", title="Infeasibility diagnosis", style="yellow")
        )
        if diagnosis["violations"]:
            table = Table(title="Closest blend misses")
            table.add_column("Constraint", style="cyan")
            table.add_column("Sense", justify="center")
            table.add_column("Target", justify="right")
            table.add_column("Achieved", justify="right")
            table.add_column("Shift", justify="right")
            for v in diagnosis["violations"]:
                table.add_row(
                    v["constraint"],
                    v["sense"],
                    f"{v['target']:.4f}",
                    f"{v['achieved']:.4f}",
                    f"{v['shift']:+.4f}",
                )
            self.console.print(table)
        for suggestion in diagnosis["suggestions"]:
            self.console.print(f"  - {suggestion}")

    @staticmethod
    def _nutrient_table(
        rows: list[tuple[str, tuple[NutrientTotals, EnergyShares]]],
        title: str,
    ) -> Table:
        table = Table(title=title)
        show_r = any(label for label, _ in rows)
        if show_r:
            table.add_column("r", justify="right")
        for column in ("Fat (g)", "Carb (g)", "Protein (g)", "Energy (kcal)"):
            table.add_column(column, justify="right")
        for column in ("Fat %E", "Carb %E", "Protein %E"):
            table.add_column(column, justify="right", style="dim")

        for label, (totals, shares) in rows:
            cells = [
                f"{totals.fat:.3f}",
                f"{totals.carbohydrate:.3f}",
                f"{totals.protein:.3f}",
                f"{totals.energy:.2f}",
                _share(shares.fat),
                _share(shares.carbohydrate),
                _share(shares.protein),
            ]
            table.add_row(*([label] if show_r else []), *cells)
        return table


class JSONFormatter:
    """Format results as JSON for programmatic use."""

    def __init__(self, catalog: Optional[dict[str, Ingredient]] = None):
        self.catalog = catalog if catalog is not None else default_catalog()

    def format_solution(self, solution: BlendSolution) -> str:
        data = {
            "timestamp": datetime.now().isoformat(),
            "model": solution.model_name,
            "status": solution.status.value,
            "success": solution.success,
            "message": solution.message,
            "values": solution.values,
            "objective": solution.objective_value,
            "nutrients": _nutrients_dict(_derive(solution, self.catalog)),
            "solver_info": solution.solver_info,
        }
        return json.dumps(data, indent=2)

    def format_sweep(self, sweep: SweepResult) -> str:
        data = {
            "timestamp": datetime.now().isoformat(),
            "success": sweep.success,
            "variables": list(sweep.variables),
            "points": [self._point(point, sweep.catalog) for point in sweep.points],
            "failures": [point.index for point in sweep.failures],
        }
        return json.dumps(data, indent=2)

    @staticmethod
    def _point(point: SweepPoint, catalog: dict[str, Ingredient]) -> dict[str, Any]:
        return {
            "index": point.index,
            "r": point.r,
            "status": point.solution.status.value,
            "message": point.solution.message,
            "values": point.solution.values if point.success else None,
            "nutrients": _nutrients_dict(_derive(point.solution, catalog)),
        }


class MarkdownFormatter:
    """Format results as Markdown for notes and reports."""

    def __init__(self, catalog: Optional[dict[str, Ingredient]] = None):
        self.catalog = catalog if catalog is not None else default_catalog()

    def format_solution(self, solution: BlendSolution) -> str:
        lines = [
            f"# Blend: {solution.model_name}",
            "",
            f"**Status:** {solution.status.value}",
        ]
        if not solution.success:
            lines.append(f"**Error:** {solution.message}")
            return "\n".join(lines)

        lines.extend(["", "| Ingredient | Amount | Unit |", "|------------|--------|------|"])
        for name, value in solution.values.items():
            lines.append(
                f"| {_display_name(name, self.catalog)} | {value:.4f} | {_unit_label(name, self.catalog)} |"
            )

        derived = _derive(solution, self.catalog)
        if derived is not None:
            totals, shares = derived
            lines.extend(
                [
                    "",
                    "## Nutrients per 100 ml",
                    "",
                    f"- Fat: {totals.fat:.3f} g ({_share(shares.fat)} of energy)",
                    f"- Carbohydrate: {totals.carbohydrate:.3f} g ({_share(shares.carbohydrate)} of energy)",
                    f"- Protein: {totals.protein:.3f} g ({_share(shares.protein)} of energy)",
                    f"- Energy: {totals.energy:.2f} kcal",
                ]
            )
        return "\n".join(lines)

    def format_sweep(self, sweep: SweepResult) -> str:
        header = ["r", *sweep.variables, "energy", "status"]
        lines = [
            "# Dilution sweep",
            "",
            "| " + " | ".join(header) + " |",
            "|" + "|".join("---" for _ in header) + "|",
        ]
        for point in sweep.points:
            derived = _derive(point.solution, sweep.catalog)
            if derived is None:
                cells = ["-"] * (len(sweep.variables) + 1)
            else:
                cells = [f"{point.solution.values[name]:.4f}" for name in sweep.variables]
                cells.append(f"{derived[0].energy:.2f}")
            lines.append(
                "| " + " | ".join([f"{point.r:.4f}", *cells, point.solution.status.value]) + " |"
            )
        return "\n".join(lines)


OUTPUT_FORMATS = ("table", "json", "markdown", "csv")


def format_solution(
    solution: BlendSolution,
    output_format: str = "table",
    catalog: Optional[dict[str, Ingredient]] = None,
    console: Optional[Console] = None,
    title: Optional[str] = None,
) -> Optional[str]:
    """Format a single solution in the specified format.

    Returns:
        Formatted string for json/markdown, None for table (prints directly)
    """
    if output_format == "table":
        TableFormatter(console, catalog).format_solution(solution, title)
        return None
    elif output_format == "json":
        return JSONFormatter(catalog).format_solution(solution)
    elif output_format == "markdown":
        return MarkdownFormatter(catalog).format_solution(solution)
    else:
        raise ValueError(f"Unknown output format: {output_format}")


def format_sweep(
    sweep: SweepResult,
    output_format: str = "table",
    console: Optional[Console] = None,
) -> Optional[str]:
    """Format a sweep in the specified format.

    CSV contains quantities and status only; failed points have empty cells.

    Returns:
        Formatted string for json/markdown/csv, None for table (prints directly)
    """
    if output_format == "table":
        TableFormatter(console, sweep.catalog).format_sweep(sweep)
        return None
    elif output_format == "json":
        return JSONFormatter(sweep.catalog).format_sweep(sweep)
    elif output_format == "markdown":
        return MarkdownFormatter(sweep.catalog).format_sweep(sweep)
    elif output_format == "csv":
        return sweep.to_dataframe().to_csv(index=False)
    else:
        raise ValueError(f"Unknown output format: {output_format}")
