"""Ingredient definitions and the baseline formula profile.

Liquids are measured in units of 100 ml, powders and oils in grams. All
nutrient amounts are grams per unit, energy is kcal per unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml


class Nutrient(Enum):
    """Tracked nutrients."""

    FAT = "fat"
    CARBOHYDRATE = "carbohydrate"
    PROTEIN = "protein"
    ENERGY = "energy"


class Unit(Enum):
    """How an ingredient is measured."""

    VOLUME = "volume"  # 100 ml
    MASS = "mass"  # g


# Atwater factors, kcal per gram
ENERGY_FACTORS: dict[Nutrient, float] = {
    Nutrient.FAT: 9.0,
    Nutrient.CARBOHYDRATE: 4.0,
    Nutrient.PROTEIN: 4.0,
}

NUTRIENT_ALIASES: dict[str, Nutrient] = {
    "fat": Nutrient.FAT,
    "carb": Nutrient.CARBOHYDRATE,
    "carbs": Nutrient.CARBOHYDRATE,
    "carbohydrate": Nutrient.CARBOHYDRATE,
    "protein": Nutrient.PROTEIN,
    "energy": Nutrient.ENERGY,
    "kcal": Nutrient.ENERGY,
}


def derive_energy(fat: float, carbohydrate: float, protein: float) -> float:
    """Energy in kcal from macronutrient grams."""
    return (
        ENERGY_FACTORS[Nutrient.FAT] * fat
        + ENERGY_FACTORS[Nutrient.CARBOHYDRATE] * carbohydrate
        + ENERGY_FACTORS[Nutrient.PROTEIN] * protein
    )


def get_nutrient(name: str) -> Nutrient:
    """Look up a nutrient by friendly name.

    Raises:
        KeyError: If the name is unknown
    """
    key = name.strip().lower()
    if key not in NUTRIENT_ALIASES:
        raise KeyError(
            f"Unknown nutrient: {name}. Valid names: {', '.join(sorted(NUTRIENT_ALIASES))}"
        )
    return NUTRIENT_ALIASES[key]


@dataclass(frozen=True)
class Ingredient:
    """A blendable ingredient with its per-unit nutrient content.

    If stated_energy is None the energy is derived from the macronutrients.
    Labelled products (milk) usually state a rounded figure instead.
    """

    key: str
    name: str
    unit: Unit
    fat: float = 0.0
    carbohydrate: float = 0.0
    protein: float = 0.0
    stated_energy: Optional[float] = None

    def __post_init__(self) -> None:
        for label in ("fat", "carbohydrate", "protein"):
            if getattr(self, label) < 0:
                raise ValueError(f"{self.key}: {label} must be non-negative")
        if self.stated_energy is not None and self.stated_energy < 0:
            raise ValueError(f"{self.key}: energy must be non-negative")

    @property
    def energy(self) -> float:
        if self.stated_energy is not None:
            return self.stated_energy
        return derive_energy(self.fat, self.carbohydrate, self.protein)

    @property
    def is_liquid(self) -> bool:
        return self.unit is Unit.VOLUME

    def amount(self, nutrient: Nutrient) -> float:
        """Amount of a nutrient in one unit of this ingredient."""
        if nutrient is Nutrient.ENERGY:
            return self.energy
        return getattr(self, nutrient.value)


@dataclass(frozen=True)
class TargetProfile:
    """Desired nutrient content per 100 ml of prepared formula."""

    fat: float
    carbohydrate: float
    protein: float
    stated_energy: Optional[float] = None
    name: str = "formula"

    def __post_init__(self) -> None:
        for label in ("fat", "carbohydrate", "protein"):
            if getattr(self, label) < 0:
                raise ValueError(f"Target {label} must be non-negative")
        if self.stated_energy is not None and self.stated_energy <= 0:
            raise ValueError("Target energy must be positive")

    @property
    def energy(self) -> float:
        if self.stated_energy is not None:
            return self.stated_energy
        return derive_energy(self.fat, self.carbohydrate, self.protein)

    def amount(self, nutrient: Nutrient) -> float:
        if nutrient is Nutrient.ENERGY:
            return self.energy
        return getattr(self, nutrient.value)


WHOLE_MILK = Ingredient(
    key="whole_milk",
    name="Whole milk (3.9% fat)",
    unit=Unit.VOLUME,
    fat=3.9,
    carbohydrate=4.9,
    protein=3.4,
    stated_energy=68.0,
)

LOWFAT_MILK = Ingredient(
    key="lowfat_milk",
    name="Reduced-fat milk (1.5% fat)",
    unit=Unit.VOLUME,
    fat=1.5,
    carbohydrate=4.9,
    protein=3.5,
    stated_energy=48.0,
)

WATER = Ingredient(key="water", name="Water", unit=Unit.VOLUME)

LACTOSE = Ingredient(key="lactose", name="Lactose powder", unit=Unit.MASS, carbohydrate=1.0)

OIL = Ingredient(key="oil", name="Vegetable oil", unit=Unit.MASS, fat=1.0)

# Typical first-stage formula, per 100 ml. The label rounds energy to 66 kcal.
BASELINE_FORMULA = TargetProfile(
    fat=3.5,
    carbohydrate=7.3,
    protein=1.25,
    stated_energy=66.0,
    name="baseline formula",
)


def default_catalog() -> dict[str, Ingredient]:
    """Return the built-in ingredients keyed by variable name."""
    return {
        ingredient.key: ingredient
        for ingredient in (WHOLE_MILK, LOWFAT_MILK, WATER, LACTOSE, OIL)
    }


def get_ingredient(key: str, catalog: Optional[dict[str, Ingredient]] = None) -> Ingredient:
    """Look up an ingredient by key.

    Raises:
        KeyError: If the catalogue has no such ingredient
    """
    catalog = catalog if catalog is not None else default_catalog()
    if key not in catalog:
        raise KeyError(
            f"Unknown ingredient: {key}. Available: {', '.join(sorted(catalog))}"
        )
    return catalog[key]


_ENTRY_FIELDS = ("name", "unit")


def _nutrient_fields(label: str, data: dict[str, Any]) -> dict[Nutrient, float]:
    """Read nutrient amounts from a YAML entry, accepting any nutrient alias."""
    amounts: dict[Nutrient, float] = {}
    for field_name, value in data.items():
        if field_name in _ENTRY_FIELDS:
            continue
        try:
            nutrient = get_nutrient(str(field_name))
        except KeyError as e:
            raise ValueError(f"{label}: {e.args[0]}") from None
        amounts[nutrient] = float(value)
    return amounts


def _parse_ingredient(key: str, data: dict[str, Any]) -> Ingredient:
    unit_name = str(data.get("unit", "mass")).lower()
    try:
        unit = Unit(unit_name)
    except ValueError:
        raise ValueError(f"{key}: unit must be 'volume' or 'mass', got '{unit_name}'") from None

    amounts = _nutrient_fields(key, data)
    return Ingredient(
        key=key,
        name=str(data.get("name", key.replace("_", " ").capitalize())),
        unit=unit,
        fat=amounts.get(Nutrient.FAT, 0.0),
        carbohydrate=amounts.get(Nutrient.CARBOHYDRATE, 0.0),
        protein=amounts.get(Nutrient.PROTEIN, 0.0),
        stated_energy=amounts.get(Nutrient.ENERGY),
    )


def _parse_target(data: dict[str, Any]) -> TargetProfile:
    amounts = _nutrient_fields("target", data)
    for required in (Nutrient.FAT, Nutrient.PROTEIN):
        if required not in amounts:
            raise KeyError(required.value)
    return TargetProfile(
        fat=amounts[Nutrient.FAT],
        carbohydrate=amounts.get(Nutrient.CARBOHYDRATE, 0.0),
        protein=amounts[Nutrient.PROTEIN],
        stated_energy=amounts.get(Nutrient.ENERGY),
        name=str(data.get("name", "formula")),
    )


def load_catalog_from_yaml(
    yaml_path: Path,
) -> tuple[dict[str, Ingredient], TargetProfile]:
    """Parse a YAML ingredient catalogue.

    Entries under ``ingredients`` override or extend the built-in catalogue;
    an optional ``target`` section replaces the baseline formula.

    Args:
        yaml_path: Path to the YAML file

    Returns:
        Tuple of (catalog, target profile)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If an entry is malformed
    """
    with open(yaml_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{yaml_path}: expected a mapping at top level")

    catalog = default_catalog()
    for key, entry in (data.get("ingredients") or {}).items():
        if not isinstance(entry, dict):
            raise ValueError(f"{yaml_path}: ingredient '{key}' must be a mapping")
        catalog[key] = _parse_ingredient(key, entry)

    profile = BASELINE_FORMULA
    if "target" in data:
        try:
            profile = _parse_target(data["target"])
        except KeyError as e:
            raise ValueError(f"{yaml_path}: target is missing {e}") from None

    return catalog, profile
