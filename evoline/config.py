"""
Evoline Configuration System

Pydantic v2-based configuration with YAML/JSON support and environment overrides.

Features:
- Type-safe configuration models
- Per-genome-kind evolution settings (slice size, repeat count)
- Genetic probabilities, storage and logging sections
- YAML/JSON file loading
- Environment variable overrides

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Evolution Settings
# =============================================================================


class EvolutionSettings(BaseModel):
    """
    Read-only evolution settings of one genome kind.

    The simulation driver splits each population into slices of
    ``slice_size`` individuals and runs every slice ``repeat_count`` times.
    """

    model_config = ConfigDict(frozen=True)

    slice_size: int = Field(
        default=0,
        ge=0,
        description="Individuals per simulation slice (0 = whole population)",
    )

    repeat_count: int = Field(
        default=1,
        ge=1,
        description="Simulation runs per slice",
    )

    @property
    def is_sliced(self) -> bool:
        return self.slice_size > 0


# =============================================================================
# Genetic Probabilities
# =============================================================================


class GeneticProbabilitiesConfig(BaseModel):
    """Fixed mutation and crossover probabilities."""

    mutation_rate: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Probability that one gene of one child mutates",
    )

    crossover_probability: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Probability that a combine call applies crossover",
    )


# =============================================================================
# Storage & Logging
# =============================================================================


class StorageConfig(BaseModel):
    """Configuration for evolution-line files."""

    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory holding evolution-line files",
    )

    lazy_loading: bool = Field(
        default=True,
        description="Page historical populations in on demand",
    )

    autosave_interval: int = Field(
        default=0,
        ge=0,
        description="Save every N generations (0 = never autosave)",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Expand user home and resolve absolute paths."""
        path = Path(v).expanduser()
        return path.resolve() if path.is_absolute() else path


class LoggingConfig(BaseModel):
    """Configuration for loguru sinks."""

    level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional rotating log file",
    )

    serialize: bool = Field(
        default=False,
        description="Write file logs as JSON records",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


# =============================================================================
# Main Configuration
# =============================================================================


class EvolineConfig(BaseModel):
    """Main Evoline configuration."""

    population_size: int = Field(
        default=40,
        ge=2,
        description="Genomes per generation (must be even)",
    )

    seed: int | None = Field(
        default=None,
        description="Seed for the shared generator (None = system entropy)",
    )

    probabilities: GeneticProbabilitiesConfig = Field(
        default_factory=GeneticProbabilitiesConfig,
        description="Mutation and crossover probabilities",
    )

    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Storage configuration",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    @field_validator("population_size")
    @classmethod
    def validate_population_size(cls, v: int) -> int:
        """Each reproduction step yields two children."""
        if v % 2 != 0:
            raise ValueError(f"population_size ({v}) must be even")
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> EvolineConfig:
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML file

        Returns:
            EvolineConfig instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loaded configuration from {path}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str | Path) -> EvolineConfig:
        """
        Load configuration from JSON file.

        Args:
            path: Path to JSON file

        Returns:
            EvolineConfig instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        logger.info(f"Loaded configuration from {path}")
        return cls(**data)

    @classmethod
    def from_env(cls, prefix: str = "EVOLINE_") -> EvolineConfig:
        """
        Load configuration from environment variables.

        Environment variables should be in the format:
        EVOLINE_POPULATION_SIZE=100
        EVOLINE_PROBABILITIES__MUTATION_RATE=0.01

        Args:
            prefix: Environment variable prefix

        Returns:
            EvolineConfig instance
        """
        config_dict: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue

            parts = key[len(prefix):].lower().split("__")

            current = config_dict
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            final_key = parts[-1]
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif value.isdigit():
                current[final_key] = int(value)
            else:
                # Pydantic coerces numeric strings such as "-3" or "0.5"
                current[final_key] = value

        logger.info(f"Loaded configuration from environment variables (prefix={prefix})")
        return cls(**config_dict)

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to YAML file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

        logger.info(f"Saved configuration to {path}")

    def to_json(self, path: str | Path) -> None:
        """
        Save configuration to JSON file.

        Args:
            path: Path to JSON file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

        logger.info(f"Saved configuration to {path}")

    def create_directories(self) -> None:
        """Create the configured data directory."""
        self.storage.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created storage directories", data_dir=str(self.storage.data_dir))


# =============================================================================
# Configuration Factory
# =============================================================================


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "EVOLINE_",
) -> EvolineConfig:
    """
    Load configuration with automatic format detection.

    Priority:
    1. Explicit config file (YAML or JSON)
    2. Environment variables (falling back to defaults)

    Args:
        config_path: Path to config file (YAML or JSON)
        env_prefix: Environment variable prefix

    Returns:
        EvolineConfig instance
    """
    if config_path:
        path = Path(config_path)
        if path.suffix in (".yaml", ".yml"):
            return EvolineConfig.from_yaml(path)
        elif path.suffix == ".json":
            return EvolineConfig.from_json(path)
        else:
            raise ValueError(f"Unknown config format: {path.suffix}")

    return EvolineConfig.from_env(env_prefix)


__all__ = [
    "EvolutionSettings",
    "GeneticProbabilitiesConfig",
    "StorageConfig",
    "LoggingConfig",
    "EvolineConfig",
    "load_config",
]
