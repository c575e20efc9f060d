"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from milkblend.config.settings import Settings, default_config_path, get_settings
from milkblend.data.ingredients import (
    BASELINE_FORMULA,
    Ingredient,
    TargetProfile,
    Unit,
    default_catalog,
    load_catalog_from_yaml,
)
from milkblend.optimizer.models import BlendSolution

app = typer.Typer(
    help="Approximate infant formula from cow's milk with linear programming",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

config_app = typer.Typer(help="Show and create the configuration file")
app.add_typer(config_app, name="config")


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def configure_logging(level: str) -> None:
    """Send library logs to stderr through Rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_state(ctx: typer.Context) -> Settings:
    if ctx.obj is None:
        ctx.obj = get_settings()
    return ctx.obj


def load_catalog(
    catalog_path: Optional[Path],
    settings: Settings,
) -> tuple[dict[str, Ingredient], TargetProfile]:
    """Load the ingredient catalogue from --catalog, the config, or defaults.

    Raises typer.Exit(1) with a friendly message if the file is unusable.
    """
    path = catalog_path or settings.catalog_path
    if path is None:
        return default_catalog(), BASELINE_FORMULA
    try:
        return load_catalog_from_yaml(path)
    except FileNotFoundError:
        err_console.print(f"[red]Catalog file not found: {path}[/red]")
        raise typer.Exit(1)
    except (KeyError, ValueError) as e:
        err_console.print(f"[red]Invalid catalog {path}: {e}[/red]")
        raise typer.Exit(1)


def emit(text: Optional[str], out: Optional[Path]) -> None:
    """Write formatted output to a file or stdout."""
    if text is None:
        return
    if out:
        out.write_text(text)
        err_console.print(f"[green]Wrote {out}[/green]")
    else:
        print(text)


def show_solution(
    solution: BlendSolution,
    diagnosis: Optional[dict],
    output_format: str,
    ingredients: dict[str, Ingredient],
    title: str,
) -> None:
    """Print a solution, followed by its diagnosis when it failed."""
    from milkblend.export.formatters import TableFormatter, format_solution

    if output_format == "json":
        data = json.loads(format_solution(solution, "json", ingredients))
        data["diagnosis"] = diagnosis
        output_json(data)
        return

    emit(format_solution(solution, output_format, ingredients, console, title=title), None)
    if diagnosis is not None:
        TableFormatter(console, ingredients).format_diagnosis(diagnosis)


def check_format(output_format: str, allowed: tuple[str, ...]) -> None:
    if output_format not in allowed:
        err_console.print(
            f"[red]Unknown output format: {output_format}. "
            f"Choose from: {', '.join(allowed)}[/red]"
        )
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.yaml (default: ~/.milkblend/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show solver log messages"),
) -> None:
    """Approximate infant formula from cow's milk with linear programming."""
    try:
        settings = Settings.load(config) if config else get_settings()
    except ValueError as e:
        err_console.print(f"[red]Invalid config: {e}[/red]")
        raise typer.Exit(1)
    ctx.obj = settings
    configure_logging("DEBUG" if verbose else settings.defaults.log_level)


# ============================================================================
# Solving
# ============================================================================


@app.command()
def solve(
    ctx: typer.Context,
    r: float = typer.Option(1.0, "--r", "-r", help="Relative energy target in [0, 1]"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="YAML ingredient catalog"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: table, json, markdown"
    ),
) -> None:
    """Solve the dilution model for one relative energy level."""
    from milkblend.explore.diagnosis import diagnose_infeasibility
    from milkblend.optimizer.builder import build_dilution_model
    from milkblend.optimizer.solver import solve_model

    settings = get_state(ctx)
    output_format = output or settings.defaults.output_format
    check_format(output_format, ("table", "json", "markdown"))
    ingredients, profile = load_catalog(catalog, settings)

    try:
        model = build_dilution_model(r, ingredients, profile)
    except (KeyError, ValueError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    solution = solve_model(model, method=settings.solver.method, tolerance=settings.solver.tolerance)
    diagnosis = None
    if not solution.success:
        diagnosis = diagnose_infeasibility(model, method=settings.solver.method)

    show_solution(solution, diagnosis, output_format, ingredients, title="Dilution")
    if not solution.success:
        raise typer.Exit(1)


@app.command()
def sweep(
    ctx: typer.Context,
    points: Optional[int] = typer.Option(None, "--points", "-n", help="Number of sweep points"),
    epsilon: Optional[float] = typer.Option(
        None, "--epsilon", help="Smallest relative energy (must be > 0)"
    ),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="YAML ingredient catalog"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: table, json, markdown, csv"
    ),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to file"),
) -> None:
    """Solve the dilution model over a decreasing relative-energy sweep."""
    from milkblend.explore.diagnosis import diagnose_infeasibility
    from milkblend.export.formatters import OUTPUT_FORMATS, TableFormatter, format_sweep
    from milkblend.optimizer.builder import build_dilution_model
    from milkblend.optimizer.sweep import run_sweep

    settings = get_state(ctx)
    output_format = output or settings.defaults.output_format
    check_format(output_format, OUTPUT_FORMATS)
    if out and output_format == "table":
        err_console.print("[red]--out needs --output json, markdown or csv[/red]")
        raise typer.Exit(1)
    ingredients, profile = load_catalog(catalog, settings)

    try:
        result = run_sweep(
            points=points if points is not None else settings.sweep.points,
            epsilon=epsilon if epsilon is not None else settings.sweep.epsilon,
            catalog=ingredients,
            profile=profile,
            method=settings.solver.method,
            tolerance=settings.solver.tolerance,
        )
    except (KeyError, ValueError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    diagnoses = {
        point.index: diagnose_infeasibility(
            build_dilution_model(point.r, ingredients, profile), method=settings.solver.method
        )
        for point in result.failures
    }

    text = format_sweep(result, output_format, console)
    if output_format == "json":
        data = json.loads(text)
        for point in data["points"]:
            point["diagnosis"] = diagnoses.get(point["index"])
        text = json.dumps(data, indent=2)
    emit(text, out)

    if output_format != "json" and diagnoses:
        # keep csv and markdown on stdout parseable
        target = console if output_format == "table" else err_console
        formatter = TableFormatter(target, ingredients)
        for diagnosis in diagnoses.values():
            formatter.format_diagnosis(diagnosis)

    if not result.success:
        err_console.print(
            f"[red]{len(result.failures)} of {len(result)} sweep points were not optimal[/red]"
        )
        raise typer.Exit(1)


@app.command()
def variant(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Variant: exact, slack or supplemented"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="YAML ingredient catalog"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: table, json, markdown"
    ),
) -> None:
    """Solve one of the full-match models (fat, carbohydrate and protein exact)."""
    from milkblend.explore.diagnosis import diagnose_infeasibility
    from milkblend.optimizer.builder import Variant, build_variant_model
    from milkblend.optimizer.solver import solve_model

    settings = get_state(ctx)
    output_format = output or settings.defaults.output_format
    check_format(output_format, ("table", "json", "markdown"))

    try:
        selected = Variant(name.lower())
    except ValueError:
        err_console.print(
            f"[red]Unknown variant: {name}. Choose from: "
            f"{', '.join(v.value for v in Variant)}[/red]"
        )
        raise typer.Exit(1)

    ingredients, profile = load_catalog(catalog, settings)
    try:
        model = build_variant_model(selected, ingredients, profile)
    except KeyError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    solution = solve_model(model, method=settings.solver.method, tolerance=settings.solver.tolerance)
    diagnosis = None
    if not solution.success:
        diagnosis = diagnose_infeasibility(model, method=settings.solver.method)

    show_solution(solution, diagnosis, output_format, ingredients, title=selected.value)
    if not solution.success:
        raise typer.Exit(1)


@app.command()
def diagnose(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Variant: exact, slack or supplemented"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="YAML ingredient catalog"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show how close a full-match model can get to its targets."""
    from milkblend.explore.diagnosis import diagnose_infeasibility
    from milkblend.export.formatters import TableFormatter
    from milkblend.optimizer.builder import Variant, build_variant_model

    settings = get_state(ctx)
    try:
        selected = Variant(name.lower())
    except ValueError:
        err_console.print(f"[red]Unknown variant: {name}[/red]")
        raise typer.Exit(1)

    ingredients, profile = load_catalog(catalog, settings)
    model = build_variant_model(selected, ingredients, profile)
    diagnosis = diagnose_infeasibility(model, method=settings.solver.method)

    if json_output:
        output_json(diagnosis)
    elif diagnosis["feasible"]:
        console.print(f"[green]{model.name}: all targets can be met[/green]")
    else:
        TableFormatter(console, ingredients).format_diagnosis(diagnosis)


# ============================================================================
# Catalogue and configuration
# ============================================================================


@app.command()
def ingredients(
    ctx: typer.Context,
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="YAML ingredient catalog"),
) -> None:
    """List ingredients and the target profile."""
    settings = get_state(ctx)
    items, profile = load_catalog(catalog, settings)

    table = Table(title="Ingredients (per unit)")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Unit")
    table.add_column("Fat", justify="right")
    table.add_column("Carb", justify="right")
    table.add_column("Protein", justify="right")
    table.add_column("Energy", justify="right")
    for ingredient in items.values():
        table.add_row(
            ingredient.key,
            ingredient.name,
            "100 ml" if ingredient.unit is Unit.VOLUME else "g",
            f"{ingredient.fat:g}",
            f"{ingredient.carbohydrate:g}",
            f"{ingredient.protein:g}",
            f"{ingredient.energy:g}",
        )
    console.print(table)
    console.print(
        f"Target ({profile.name}, per 100 ml): fat {profile.fat:g} g, "
        f"carbohydrate {profile.carbohydrate:g} g, protein {profile.protein:g} g, "
        f"energy {profile.energy:g} kcal"
    )


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the active settings."""
    settings = get_state(ctx)
    output_json({
        "solver": {"method": settings.solver.method, "tolerance": settings.solver.tolerance},
        "sweep": {"points": settings.sweep.points, "epsilon": settings.sweep.epsilon},
        "defaults": {
            "output_format": settings.defaults.output_format,
            "log_level": settings.defaults.log_level,
        },
        "catalog_path": str(settings.catalog_path) if settings.catalog_path else None,
    })


@config_app.command("init")
def config_init(
    path: Optional[Path] = typer.Option(None, "--path", help="Where to write config.yaml"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a config file with default settings."""
    target = path or default_config_path()
    if target.exists() and not force:
        err_console.print(f"[yellow]{target} already exists (use --force to overwrite)[/yellow]")
        raise typer.Exit(1)
    Settings().save(target)
    console.print(f"[green]Wrote {target}[/green]")


if __name__ == "__main__":
    app()
