"""
Configuration for the circuit simulator.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class SimulatorConfig:
    """Configuration for a simulation run."""

    # Decimal places kept when rounding probabilities (measure_all, probabilities)
    probability_precision: int = 5

    # Decimal places printed by state_as_string
    display_precision: int = 8

    # Seed for the measurement tie-break generator (None = OS entropy)
    seed: Optional[int] = None

    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "SimulatorConfig":
        """Build a config from QU_ENGINE_* environment variables."""
        cfg = cls()
        seed = os.environ.get("QU_ENGINE_SEED")
        if seed is not None:
            cfg.seed = int(seed)
        precision = os.environ.get("QU_ENGINE_PRECISION")
        if precision is not None:
            cfg.probability_precision = int(precision)
        level = os.environ.get("QU_ENGINE_LOG_LEVEL")
        if level is not None:
            cfg.log_level = logging.getLevelName(level.upper())
            if not isinstance(cfg.log_level, int):
                raise ValueError(f"unknown log level {level!r}")
        return cfg


# Default configuration instance
DEFAULT_CONFIG = SimulatorConfig()
