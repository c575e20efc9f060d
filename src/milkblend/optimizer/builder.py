"""Build blend models from ingredients and nutrient targets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from milkblend.data.ingredients import (
    BASELINE_FORMULA,
    Ingredient,
    Nutrient,
    TargetProfile,
    Unit,
    default_catalog,
    get_ingredient,
)
from milkblend.optimizer.models import BlendModel, ConstraintSense, LinearConstraint

# Decision variables of the dilution model, in table column order
DILUTION_VARIABLES: tuple[str, ...] = ("whole_milk", "lowfat_milk", "lactose", "oil")

VOLUME_CONSTRAINT = "volume"


class VolumeMode(Enum):
    """How liquid ingredients relate to the batch volume."""

    CAP = "cap"  # liquids <= volume, remainder is implicit water
    FILL = "fill"  # liquids == volume


class Variant(Enum):
    """One-shot full-match models."""

    EXACT = "exact"  # milk and water only, exact nutrient match
    SLACK = "slack"  # milk and water, slack per nutrient
    SUPPLEMENTED = "supplemented"  # milk, water, lactose and oil, exact match


@dataclass(frozen=True)
class NutrientTarget:
    """A target for one nutrient in the finished blend."""

    nutrient: Nutrient
    value: float
    sense: ConstraintSense = ConstraintSense.EQ


def slack_variable(nutrient: Nutrient) -> str:
    return f"slack_{nutrient.value}"


class BlendModelBuilder:
    """Builds a BlendModel for a set of ingredients and nutrient targets.

    Every call to build() returns a new, independent model.
    """

    def __init__(
        self,
        ingredients: Sequence[Ingredient],
        targets: Sequence[NutrientTarget],
        volume: float = 1.0,
        volume_mode: VolumeMode = VolumeMode.CAP,
        slack: bool = False,
        tie_break: Optional[dict[str, float]] = None,
        name: str = "blend",
    ):
        """Initialize the builder.

        Args:
            ingredients: Ingredients to blend, in variable order
            targets: One target per tracked nutrient
            volume: Batch volume in 100 ml units
            volume_mode: Cap or fill the volume with liquid ingredients
            slack: Add a non-negative slack to each equality target and
                minimise their sum instead of the supplement amounts
            tie_break: Secondary objective among optimal blends
            name: Model name used in logs and results
        """
        if volume <= 0:
            raise ValueError("volume must be positive")
        self.ingredients = list(ingredients)
        self.targets = list(targets)
        self.volume = volume
        self.volume_mode = volume_mode
        self.slack = slack
        self.tie_break = dict(tie_break or {})
        self.name = name

    def build(self) -> BlendModel:
        """Build the model.

        Returns:
            BlendModel with ingredient variables first, then slack variables
        """
        variables = [ingredient.key for ingredient in self.ingredients]
        variables.extend(self._slack_variables())

        constraints: list[LinearConstraint] = []
        volume_constraint = self._build_volume_constraint()
        if volume_constraint is not None:
            constraints.append(volume_constraint)
        constraints.extend(self._build_nutrient_constraints())

        return BlendModel(
            name=self.name,
            variables=tuple(variables),
            constraints=tuple(constraints),
            objective=self._build_objective(),
            tie_break=dict(self.tie_break),
        )

    def _slack_targets(self) -> list[NutrientTarget]:
        if not self.slack:
            return []
        return [t for t in self.targets if t.sense is ConstraintSense.EQ]

    def _slack_variables(self) -> list[str]:
        return [slack_variable(t.nutrient) for t in self._slack_targets()]

    def _build_volume_constraint(self) -> Optional[LinearConstraint]:
        liquids = {i.key: 1.0 for i in self.ingredients if i.unit is Unit.VOLUME}
        if not liquids:
            return None
        sense = ConstraintSense.LE if self.volume_mode is VolumeMode.CAP else ConstraintSense.EQ
        return LinearConstraint(
            name=VOLUME_CONSTRAINT,
            coefficients=liquids,
            sense=sense,
            rhs=self.volume,
        )

    def _build_nutrient_constraints(self) -> list[LinearConstraint]:
        slack_nutrients = {t.nutrient for t in self._slack_targets()}
        constraints = []
        for target in self.targets:
            coefficients = {
                i.key: i.amount(target.nutrient)
                for i in self.ingredients
                if i.amount(target.nutrient) != 0
            }
            if target.nutrient in slack_nutrients:
                coefficients[slack_variable(target.nutrient)] = 1.0
            constraints.append(
                LinearConstraint(
                    name=target.nutrient.value,
                    coefficients=coefficients,
                    sense=target.sense,
                    rhs=target.value,
                )
            )
        return constraints

    def _build_objective(self) -> dict[str, float]:
        if self.slack:
            return {name: 1.0 for name in self._slack_variables()}
        # Supplements are everything measured by mass
        return {i.key: 1.0 for i in self.ingredients if i.unit is Unit.MASS}


def dilution_targets(r: float, profile: TargetProfile = BASELINE_FORMULA) -> list[NutrientTarget]:
    """Energy matched to r times the profile, protein capped at the profile."""
    return [
        NutrientTarget(Nutrient.ENERGY, profile.amount(Nutrient.ENERGY) * r, ConstraintSense.EQ),
        NutrientTarget(Nutrient.PROTEIN, profile.amount(Nutrient.PROTEIN), ConstraintSense.LE),
    ]


def build_dilution_model(
    r: float,
    catalog: Optional[dict[str, Ingredient]] = None,
    profile: TargetProfile = BASELINE_FORMULA,
) -> BlendModel:
    """Build the dilution model for relative energy r.

    Variables are whole milk, reduced-fat milk, lactose and oil. Milk is
    capped at 100 ml, energy must equal r times the profile energy, and
    protein may not exceed the profile protein. Lactose plus oil is
    minimised; among equally good blends the one with the least reduced-fat
    milk is chosen, so the sweep traces a single path.

    Args:
        r: Relative energy target in [0, 1]
        catalog: Ingredient catalogue, defaults to the built-in one
        profile: Baseline target profile

    Returns:
        A freshly built BlendModel
    """
    if not 0.0 <= r <= 1.0:
        raise ValueError(f"Relative energy must be in [0, 1], got {r}")
    catalog = catalog if catalog is not None else default_catalog()
    ingredients = [get_ingredient(key, catalog) for key in DILUTION_VARIABLES]

    builder = BlendModelBuilder(
        ingredients,
        dilution_targets(r, profile),
        volume_mode=VolumeMode.CAP,
        tie_break={"lowfat_milk": 1.0},
        name=f"dilution(r={r:.6g})",
    )
    return builder.build()


def full_match_targets(profile: TargetProfile = BASELINE_FORMULA) -> list[NutrientTarget]:
    return [
        NutrientTarget(nutrient, profile.amount(nutrient))
        for nutrient in (Nutrient.FAT, Nutrient.CARBOHYDRATE, Nutrient.PROTEIN)
    ]


VARIANT_INGREDIENTS: dict[Variant, tuple[str, ...]] = {
    Variant.EXACT: ("whole_milk", "water"),
    Variant.SLACK: ("whole_milk", "water"),
    Variant.SUPPLEMENTED: ("whole_milk", "water", "lactose", "oil"),
}


def build_variant_model(
    variant: Variant,
    catalog: Optional[dict[str, Ingredient]] = None,
    profile: TargetProfile = BASELINE_FORMULA,
) -> BlendModel:
    """Build one of the full-match models.

    Milk and water fill exactly 100 ml and fat, carbohydrate and protein are
    equalities. The slack variant absorbs any shortfall in per-nutrient
    slack variables.
    """
    catalog = catalog if catalog is not None else default_catalog()
    ingredients = [get_ingredient(key, catalog) for key in VARIANT_INGREDIENTS[variant]]

    builder = BlendModelBuilder(
        ingredients,
        full_match_targets(profile),
        volume_mode=VolumeMode.FILL,
        slack=variant is Variant.SLACK,
        name=variant.value,
    )
    return builder.build()
