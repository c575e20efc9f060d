"""Nutrient totals and macro-energy shares derived from blend solutions.

Everything here is plain arithmetic on solved values; the solver is never
called again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from milkblend.data.ingredients import (
    ENERGY_FACTORS,
    Ingredient,
    Nutrient,
    default_catalog,
    derive_energy,
)

# Energy at or below this is treated as zero when computing shares
ZERO_ENERGY = 1e-12


@dataclass(frozen=True)
class NutrientTotals:
    """Macronutrient grams in a blend. Energy is always derived."""

    fat: float
    carbohydrate: float
    protein: float

    @property
    def energy(self) -> float:
        return derive_energy(self.fat, self.carbohydrate, self.protein)


@dataclass(frozen=True)
class EnergyShares:
    """Fraction of energy from each macronutrient.

    When the blend has no energy the shares are undefined and every field
    is None.
    """

    fat: Optional[float]
    carbohydrate: Optional[float]
    protein: Optional[float]

    @property
    def defined(self) -> bool:
        return self.fat is not None

    @classmethod
    def undefined(cls) -> "EnergyShares":
        return cls(fat=None, carbohydrate=None, protein=None)


def derive_nutrients(
    values: Mapping[str, float],
    catalog: Optional[dict[str, Ingredient]] = None,
) -> NutrientTotals:
    """Sum each ingredient's nutrients weighted by its solved amount.

    Variables that are not ingredients (slack variables) are ignored.

    Args:
        values: Variable name to solved amount
        catalog: Ingredient catalogue, defaults to the built-in one
    """
    catalog = catalog if catalog is not None else default_catalog()
    fat = carbohydrate = protein = 0.0
    for key, amount in values.items():
        ingredient = catalog.get(key)
        if ingredient is None:
            continue
        fat += ingredient.fat * amount
        carbohydrate += ingredient.carbohydrate * amount
        protein += ingredient.protein * amount
    return NutrientTotals(fat=fat, carbohydrate=carbohydrate, protein=protein)


def energy_shares(totals: NutrientTotals) -> EnergyShares:
    """Split total energy into fat, carbohydrate and protein fractions."""
    energy = totals.energy
    if energy <= ZERO_ENERGY:
        return EnergyShares.undefined()
    return EnergyShares(
        fat=ENERGY_FACTORS[Nutrient.FAT] * totals.fat / energy,
        carbohydrate=ENERGY_FACTORS[Nutrient.CARBOHYDRATE] * totals.carbohydrate / energy,
        protein=ENERGY_FACTORS[Nutrient.PROTEIN] * totals.protein / energy,
    )


def energy_match_error(totals: NutrientTotals, target_energy: float) -> float:
    """Relative difference between derived energy and the target energy."""
    if target_energy == 0:
        return abs(totals.energy)
    return abs(totals.energy - target_energy) / target_energy
