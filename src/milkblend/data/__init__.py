"""Ingredient catalogue and target profiles."""

from milkblend.data.ingredients import (
    BASELINE_FORMULA,
    ENERGY_FACTORS,
    Ingredient,
    Nutrient,
    TargetProfile,
    Unit,
    default_catalog,
    derive_energy,
    get_ingredient,
    get_nutrient,
    load_catalog_from_yaml,
)

__all__ = [
    "BASELINE_FORMULA",
    "ENERGY_FACTORS",
    "Ingredient",
    "Nutrient",
    "TargetProfile",
    "Unit",
    "default_catalog",
    "derive_energy",
    "get_ingredient",
    "get_nutrient",
    "load_catalog_from_yaml",
]
