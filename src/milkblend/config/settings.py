"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".milkblend"


def default_config_path() -> Path:
    return _default_config_dir() / "config.yaml"


@dataclass
class SolverConfig:
    """LP solver configuration."""

    method: str = "highs"  # any scipy.optimize.linprog method
    tolerance: float = 1e-6  # solved values within this below zero are reported as 0


@dataclass
class SweepConfig:
    """Relative-energy sweep configuration."""

    points: int = 14
    epsilon: float = 1e-6


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    output_format: str = "table"  # "table", "json", "markdown", "csv"
    log_level: str = "WARNING"


@dataclass
class Settings:
    """Main application settings."""

    solver: SolverConfig = field(default_factory=SolverConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    catalog_path: Optional[Path] = None  # YAML ingredient catalogue

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.milkblend/config.yaml

        Returns:
            Settings instance

        Raises:
            ValueError: If log_level is not a standard logging level
        """
        if config_path is None:
            config_path = default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse solver config
        if "solver" in data:
            solver_data = data["solver"]
            if "method" in solver_data:
                settings.solver.method = str(solver_data["method"])
            if "tolerance" in solver_data:
                settings.solver.tolerance = float(solver_data["tolerance"])

        # Parse sweep config
        if "sweep" in data:
            sweep_data = data["sweep"]
            if "points" in sweep_data:
                settings.sweep.points = int(sweep_data["points"])
            if "epsilon" in sweep_data:
                settings.sweep.epsilon = float(sweep_data["epsilon"])

        # Parse defaults
        if "defaults" in data:
            def_data = data["defaults"]
            if "output_format" in def_data:
                settings.defaults.output_format = def_data["output_format"]
            if "log_level" in def_data:
                level = str(def_data["log_level"]).upper()
                if level not in LOG_LEVELS:
                    raise ValueError(
                        f"{config_path}: log_level must be one of {', '.join(LOG_LEVELS)}, got '{level}'"
                    )
                settings.defaults.log_level = level

        if data.get("catalog_path"):
            settings.catalog_path = Path(data["catalog_path"]).expanduser()

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.milkblend/config.yaml
        """
        if config_path is None:
            config_path = default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "solver": {
                "method": self.solver.method,
                "tolerance": self.solver.tolerance,
            },
            "sweep": {
                "points": self.sweep.points,
                "epsilon": self.sweep.epsilon,
            },
            "defaults": {
                "output_format": self.defaults.output_format,
                "log_level": self.defaults.log_level,
            },
            "catalog_path": str(self.catalog_path) if self.catalog_path else None,
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
