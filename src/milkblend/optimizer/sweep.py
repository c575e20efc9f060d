"""Relative-energy sweep over the dilution model.

Each point gets its own freshly built model and an independent solve.
Failed points are kept in place so callers can inspect every status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from milkblend.data.ingredients import (
    BASELINE_FORMULA,
    Ingredient,
    TargetProfile,
    default_catalog,
)
from milkblend.optimizer.builder import DILUTION_VARIABLES, build_dilution_model
from milkblend.optimizer.models import BlendSolution
from milkblend.optimizer.nutrition import (
    EnergyShares,
    NutrientTotals,
    derive_nutrients,
    energy_match_error,
    energy_shares,
)
from milkblend.optimizer.solver import require_optimal, solve_model

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 14
DEFAULT_EPSILON = 1e-6


def energy_levels(
    points: int = DEFAULT_POINTS,
    epsilon: float = DEFAULT_EPSILON,
) -> np.ndarray:
    """Evenly spaced relative energies from 1.0 down to epsilon.

    Raises:
        ValueError: If points < 1 or epsilon is not in (0, 1)
    """
    if points < 1:
        raise ValueError(f"Sweep needs at least one point, got {points}")
    if not 0.0 < epsilon < 1.0:
        raise ValueError(f"epsilon must be in (0, 1), got {epsilon}")
    return np.linspace(1.0, epsilon, points)


@dataclass
class SweepPoint:
    """One solved point of a sweep."""

    index: int
    r: float
    solution: BlendSolution

    @property
    def success(self) -> bool:
        return self.solution.success

    def require_optimal(self) -> BlendSolution:
        return require_optimal(self.solution, index=self.index, r=self.r)


@dataclass
class SweepResult:
    """All points of a sweep, in sweep order."""

    points: list[SweepPoint]
    variables: tuple[str, ...] = DILUTION_VARIABLES
    catalog: dict[str, Ingredient] = field(default_factory=default_catalog)
    profile: TargetProfile = BASELINE_FORMULA

    def __len__(self) -> int:
        return len(self.points)

    @property
    def levels(self) -> np.ndarray:
        return np.array([p.r for p in self.points])

    @property
    def failures(self) -> list[SweepPoint]:
        return [p for p in self.points if not p.success]

    @property
    def success(self) -> bool:
        return not self.failures

    def quantities(self) -> np.ndarray:
        """Ingredient amounts as an (N, 4) array in sweep order.

        Raises:
            SolveFailedError: For the first non-optimal point
        """
        rows = [p.require_optimal().row(self.variables) for p in self.points]
        return np.array(rows, dtype=float).reshape(len(self.points), len(self.variables))

    def nutrients(self) -> list[tuple[NutrientTotals, EnergyShares]]:
        """Derived totals and energy shares for every point.

        Raises:
            SolveFailedError: For the first non-optimal point
        """
        derived = []
        for point in self.points:
            totals = derive_nutrients(point.require_optimal().values, self.catalog)
            derived.append((totals, energy_shares(totals)))
        return derived

    def to_dataframe(self) -> pd.DataFrame:
        """Quantities and status per point. Failed points have NaN amounts."""
        records = []
        for point in self.points:
            record: dict = {"r": point.r, "status": point.solution.status.value}
            for name in self.variables:
                record[name] = point.solution.values.get(name, np.nan)
            records.append(record)
        return pd.DataFrame.from_records(
            records, columns=["r", *self.variables, "status"]
        )

    def nutrient_dataframe(self) -> pd.DataFrame:
        """Derived nutrients, energy shares and energy error per point.

        ``energy_error`` is the relative gap between the derived energy and
        the stated target energy for that point.

        Raises:
            SolveFailedError: For the first non-optimal point
        """
        records = []
        for point, (totals, shares) in zip(self.points, self.nutrients()):
            records.append({
                "r": point.r,
                "fat": totals.fat,
                "carbohydrate": totals.carbohydrate,
                "protein": totals.protein,
                "energy": totals.energy,
                "energy_error": energy_match_error(totals, self.profile.energy * point.r),
                "fat_share": shares.fat,
                "carbohydrate_share": shares.carbohydrate,
                "protein_share": shares.protein,
            })
        return pd.DataFrame.from_records(records)


def run_sweep(
    points: int = DEFAULT_POINTS,
    epsilon: float = DEFAULT_EPSILON,
    catalog: Optional[dict[str, Ingredient]] = None,
    profile: TargetProfile = BASELINE_FORMULA,
    method: str = "highs",
    tolerance: float = 1e-6,
) -> SweepResult:
    """Solve the dilution model at every level of the sweep.

    The sweep always runs to completion; non-optimal points are logged and
    kept with their status.

    Args:
        points: Number of sweep points
        epsilon: Smallest relative energy, must be positive
        catalog: Ingredient catalogue, defaults to the built-in one
        profile: Baseline target profile
        method: linprog method
        tolerance: Clamp threshold for tiny negative values

    Returns:
        SweepResult in sweep order
    """
    catalog = catalog if catalog is not None else default_catalog()
    results: list[SweepPoint] = []

    for index, r in enumerate(energy_levels(points, epsilon)):
        r = float(r)
        model = build_dilution_model(r, catalog, profile)
        solution = solve_model(model, method=method, tolerance=tolerance)
        if not solution.success:
            logger.warning("Sweep point %d (r=%.6g) is %s", index, r, solution.status.value)
        results.append(SweepPoint(index=index, r=r, solution=solution))

    logger.info(
        "Sweep finished: %d points, %d failed",
        len(results),
        sum(1 for p in results if not p.success),
    )
    return SweepResult(points=results, catalog=catalog, profile=profile)
