"""Tests for nutrient derivation."""

from __future__ import annotations

import pytest

from milkblend.optimizer.nutrition import (
    EnergyShares,
    NutrientTotals,
    derive_nutrients,
    energy_match_error,
    energy_shares,
)

MILK_CARB_TO_PROTEIN = 4.9 / 3.4


class TestDeriveNutrients:
    """Tests for derive_nutrients."""

    def test_weighted_sum(self, catalog):
        totals = derive_nutrients({"whole_milk": 0.5, "oil": 1.0}, catalog)
        assert totals.fat == pytest.approx(0.5 * 3.9 + 1.0)
        assert totals.carbohydrate == pytest.approx(0.5 * 4.9)
        assert totals.protein == pytest.approx(0.5 * 3.4)

    def test_energy_is_atwater(self):
        totals = NutrientTotals(fat=1.0, carbohydrate=2.0, protein=3.0)
        assert totals.energy == pytest.approx(9 + 8 + 12)

    def test_slack_variables_ignored(self, catalog):
        totals = derive_nutrients({"whole_milk": 1.0, "slack_fat": 5.0}, catalog)
        assert totals.fat == pytest.approx(3.9)

    def test_dilution_formulas(self, dilution_sweep):
        """fat = 3.9 wm + oil, carb = 4.9 wm, protein = 3.4 wm at every point."""
        for point, (totals, _) in zip(dilution_sweep.points, dilution_sweep.nutrients()):
            values = point.solution.values
            wm = values["whole_milk"]
            assert totals.fat == pytest.approx(3.9 * wm + values["oil"], abs=1e-9)
            assert totals.carbohydrate == pytest.approx(4.9 * wm, abs=1e-9)
            assert totals.protein == pytest.approx(3.4 * wm, abs=1e-9)

    def test_energy_round_trip(self, dilution_sweep, profile):
        """Re-deriving energy reproduces the energy target within label rounding."""
        for point, (totals, _) in zip(dilution_sweep.points, dilution_sweep.nutrients()):
            target = profile.energy * point.r
            assert totals.energy == pytest.approx(target, rel=1e-2)
            assert energy_match_error(totals, target) < 1e-2


class TestEnergyShares:
    """Tests for macro-energy shares."""

    def test_shares_sum_to_one(self):
        shares = energy_shares(NutrientTotals(fat=3.5, carbohydrate=7.3, protein=1.25))
        assert shares.defined
        assert shares.fat + shares.carbohydrate + shares.protein == pytest.approx(1.0)
        assert shares.fat == pytest.approx(31.5 / 65.7)

    def test_zero_energy_is_undefined(self):
        shares = energy_shares(NutrientTotals(fat=0.0, carbohydrate=0.0, protein=0.0))
        assert not shares.defined
        assert shares == EnergyShares.undefined()
        assert shares.carbohydrate is None

    def test_carb_to_protein_ratio_constant(self, dilution_sweep):
        """Carbs and protein both come only from whole milk."""
        for totals, shares in dilution_sweep.nutrients():
            if totals.energy == 0:
                continue
            assert shares.carbohydrate / shares.protein == pytest.approx(
                MILK_CARB_TO_PROTEIN, rel=1e-6
            )
            assert shares.carbohydrate / shares.protein == pytest.approx(1.4412, abs=1e-4)

    def test_fat_share_falls_as_oil_drains(self, dilution_sweep):
        fat_shares = [s.fat for _, s in dilution_sweep.nutrients() if s.defined]
        assert fat_shares[0] > fat_shares[-1]
        assert fat_shares[-1] == pytest.approx(9 * 3.9 / 68.3, rel=1e-3)


class TestEnergyMatchError:
    """Tests for energy_match_error."""

    def test_relative(self):
        totals = NutrientTotals(fat=0.0, carbohydrate=25.0, protein=0.0)
        assert energy_match_error(totals, 110.0) == pytest.approx(10 / 110)

    def test_zero_target(self):
        totals = NutrientTotals(fat=0.0, carbohydrate=0.0, protein=0.0)
        assert energy_match_error(totals, 0.0) == 0.0
