"""
Evolution Line Factory

Creates and opens evolution lines from an :class:`EvolineConfig`:
- ``storage.lazy_loading`` picks LazyEvolutionLine or FileBackedEvolutionLine
- relative file names are placed under ``storage.data_dir``
- ``population_size`` sizes the initial population of new lines
- ``seed`` (when set) reseeds the shared generator

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
from pathlib import Path

from loguru import logger

from .lazy_line import LazyEvolutionLine
from .line_file import FileBackedEvolutionLine
from ..config import EvolineConfig
from ..genome import randomness
from ..genome.registry import GenomeKind, SchemaRegistry


def line_class(config: EvolineConfig) -> type[FileBackedEvolutionLine]:
    """Return the line implementation selected by ``config.storage``."""
    return LazyEvolutionLine if config.storage.lazy_loading else FileBackedEvolutionLine


def resolve_line_path(config: EvolineConfig, filename: str | Path) -> Path:
    path = Path(filename)
    return path if path.is_absolute() else config.storage.data_dir / path


def apply_seed(config: EvolineConfig) -> None:
    """Reseed the shared generator if the configuration fixes a seed."""
    if config.seed is not None:
        randomness.seed(config.seed)


def create_line(
    config: EvolineConfig,
    kind: GenomeKind,
    filename: str | Path,
    rng: random.Random | None = None,
) -> FileBackedEvolutionLine:
    """
    Start a new evolution line as configured.

    Args:
        config: Evoline configuration
        kind: Genome kind the line evolves
        filename: Line file, relative to ``storage.data_dir`` unless absolute
        rng: Generator for the initial population (shared generator if None)

    Returns:
        New, unsaved line with ``config.population_size`` random genomes
    """
    apply_seed(config)
    config.create_directories()
    cls = line_class(config)
    path = resolve_line_path(config, filename)

    logger.debug("Creating line from configuration", line_class=cls.__name__, path=str(path))
    return cls.create(path, kind, config.population_size, rng)


def open_line(
    config: EvolineConfig,
    filename: str | Path,
    registry: SchemaRegistry,
) -> FileBackedEvolutionLine:
    """Open a saved line with the configured implementation."""
    apply_seed(config)
    cls = line_class(config)
    path = resolve_line_path(config, filename)

    logger.debug("Opening line from configuration", line_class=cls.__name__, path=str(path))
    return cls.open(path, registry)


__all__ = [
    "line_class",
    "resolve_line_path",
    "apply_seed",
    "create_line",
    "open_line",
]
