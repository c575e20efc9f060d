"""Infant formula blending with linear programming."""

__version__ = "0.1.0"
