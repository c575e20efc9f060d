"""Export blend results in various formats."""

from milkblend.export.formatters import (
    OUTPUT_FORMATS,
    JSONFormatter,
    MarkdownFormatter,
    TableFormatter,
    format_solution,
    format_sweep,
)

__all__ = [
    "OUTPUT_FORMATS",
    "JSONFormatter",
    "MarkdownFormatter",
    "TableFormatter",
    "format_solution",
    "format_sweep",
]
