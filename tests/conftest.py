"""Pytest fixtures for milkblend tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from milkblend.data.ingredients import BASELINE_FORMULA, default_catalog
from milkblend.optimizer.sweep import run_sweep


@pytest.fixture
def catalog():
    """Built-in ingredient catalogue."""
    return default_catalog()


@pytest.fixture
def profile():
    """Baseline formula profile (66 kcal per 100 ml)."""
    return BASELINE_FORMULA


@pytest.fixture(scope="session")
def dilution_sweep():
    """The 14-point sweep from r = 1.0 down to 1e-6."""
    return run_sweep(points=14, epsilon=1e-6)


@pytest.fixture
def catalog_yaml(tmp_path) -> Path:
    """A catalogue file that adds goat milk and overrides the target."""
    path = tmp_path / "catalog.yaml"
    path.write_text(
        """
ingredients:
  goat_milk:
    name: Goat milk
    unit: volume
    fat: 4.1
    carbohydrate: 4.5
    protein: 3.6
  oil:
    name: Sunflower oil
    unit: mass
    fat: 1.0
target:
  name: stage 2
  fat: 3.3
  carbohydrate: 8.0
  protein: 1.5
  energy: 68
"""
    )
    return path


@pytest.fixture
def missing_config(tmp_path) -> Path:
    """Path to a config file that does not exist (so defaults apply)."""
    return tmp_path / "no-config.yaml"


@pytest.fixture
def no_supplement_catalog_yaml(tmp_path) -> Path:
    """A catalogue where oil and lactose carry no nutrients.

    Milk alone cannot reach full formula energy under the protein ceiling,
    so the dilution model is infeasible for r above about 0.38.
    """
    path = tmp_path / "no-supplements.yaml"
    path.write_text(
        """
ingredients:
  oil:
    fat: 0
  lactose:
    carbohydrate: 0
"""
    )
    return path
