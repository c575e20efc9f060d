"""Blend models, the LP solver and the relative-energy sweep."""

from milkblend.optimizer.builder import (
    DILUTION_VARIABLES,
    BlendModelBuilder,
    NutrientTarget,
    Variant,
    VolumeMode,
    build_dilution_model,
    build_variant_model,
)
from milkblend.optimizer.models import (
    BlendError,
    BlendModel,
    BlendSolution,
    ConstraintSense,
    InfeasibleBlendError,
    InvalidModelError,
    LinearConstraint,
    SolveFailedError,
    SolverError,
    SolveStatus,
    UnboundedBlendError,
)
from milkblend.optimizer.nutrition import (
    EnergyShares,
    NutrientTotals,
    derive_nutrients,
    energy_shares,
)
from milkblend.optimizer.solver import require_optimal, solve_model
from milkblend.optimizer.sweep import SweepPoint, SweepResult, energy_levels, run_sweep

__all__ = [
    "DILUTION_VARIABLES",
    "BlendError",
    "BlendModel",
    "BlendModelBuilder",
    "BlendSolution",
    "ConstraintSense",
    "EnergyShares",
    "InfeasibleBlendError",
    "InvalidModelError",
    "LinearConstraint",
    "NutrientTarget",
    "NutrientTotals",
    "SolveFailedError",
    "SolveStatus",
    "SolverError",
    "SweepPoint",
    "SweepResult",
    "UnboundedBlendError",
    "Variant",
    "VolumeMode",
    "build_dilution_model",
    "build_variant_model",
    "derive_nutrients",
    "energy_levels",
    "energy_shares",
    "require_optimal",
    "run_sweep",
    "solve_model",
]
