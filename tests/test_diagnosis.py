"""Tests for infeasibility diagnosis."""

from __future__ import annotations

import pytest

from milkblend.explore.diagnosis import diagnose_infeasibility, relax_model
from milkblend.optimizer.builder import Variant, build_variant_model
from milkblend.optimizer.models import ConstraintSense
from milkblend.optimizer.solver import solve_model


class TestRelaxModel:
    """Tests for the deviation re-formulation."""

    def test_deviation_variables(self):
        relaxed = relax_model(build_variant_model(Variant.EXACT))
        assert relaxed.variables == (
            "whole_milk",
            "water",
            "under_volume",
            "over_volume",
            "under_fat",
            "over_fat",
            "under_carbohydrate",
            "over_carbohydrate",
            "under_protein",
            "over_protein",
        )
        fat = relaxed.constraint("fat")
        assert fat.sense is ConstraintSense.EQ
        assert fat.coefficients["under_fat"] == 1.0
        assert fat.coefficients["over_fat"] == -1.0

    def test_relaxed_model_is_feasible(self):
        assert solve_model(relax_model(build_variant_model(Variant.EXACT))).success


class TestDiagnoseInfeasibility:
    """Tests for diagnose_infeasibility."""

    def test_exact_match(self):
        """Milk and water alone can hit fat, but then carbs fall short and protein overshoots."""
        diagnosis = diagnose_infeasibility(build_variant_model(Variant.EXACT))

        assert not diagnosis["feasible"]
        assert diagnosis["closest_blend"]["whole_milk"] == pytest.approx(3.5 / 3.9, abs=1e-6)

        violations = {v["constraint"]: v for v in diagnosis["violations"]}
        assert set(violations) == {"carbohydrate", "protein"}
        assert violations["carbohydrate"]["shift"] == pytest.approx(4.9 * 3.5 / 3.9 - 7.3, abs=1e-6)
        assert violations["protein"]["shift"] > 0
        assert len(diagnosis["suggestions"]) == 2

    def test_feasible_model(self):
        diagnosis = diagnose_infeasibility(build_variant_model(Variant.SUPPLEMENTED))

        assert diagnosis["feasible"]
        assert diagnosis["violations"] == []
        assert diagnosis["total_deviation"] == pytest.approx(0.0, abs=1e-7)
