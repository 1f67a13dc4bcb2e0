"""
Evolution History - Generation Records & Evolution Lines

This module keeps the complete evolutionary history of one genome kind:
- GenerationRecord: seed, population size, per-individual statistics and the
  generation's offset in the chromosome storage area
- EvolutionLine: ordered generation records with their populations, plus the
  current (not yet scored) population
- Fitness progression and summary statistics over recorded generations

File persistence lives in ``evoline.storage``; this in-memory line is the
base those stores extend.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import numpy as np
from loguru import logger

from .binary import INT32_MAX, INT32_MIN
from .population import Population
from .randomness import standard_deviation
from .registry import GenomeKind
from .schema import ChromosomeSchema
from ..config import EvolutionSettings
from ..exceptions import PreconditionError


# =============================================================================
# Generation Record
# =============================================================================


@dataclass(frozen=True, eq=False)
class GenerationRecord:
    """
    Metadata of one scored generation.

    ``statistics[s, i, r]`` is the value of statistic ``s`` measured for
    individual ``i`` in simulation repeat ``r``. The array is read-only.
    """

    seed: int
    population_size: int
    statistics: np.ndarray
    first_chromosome_index: int

    def __post_init__(self) -> None:
        statistics = np.array(self.statistics, dtype=np.float64)
        if statistics.ndim != 3 or statistics.shape[1] != self.population_size:
            raise PreconditionError(
                f"Statistics shape {statistics.shape} does not match "
                f"(statistics, {self.population_size}, repeats)"
            )
        statistics.setflags(write=False)
        object.__setattr__(self, "statistics", statistics)

    @property
    def statistic_count(self) -> int:
        return self.statistics.shape[0]

    @property
    def repeat_count(self) -> int:
        return self.statistics.shape[2]

    def statistics_for_individuals(self) -> np.ndarray:
        """Statistics averaged over repeats, shaped ``(statistics, individuals)``."""
        return self.statistics.mean(axis=2)

    def fitness_values(self) -> list[float]:
        """First statistic averaged over repeats, one value per individual."""
        return self.statistics_for_individuals()[0].tolist()

    def statistic_summary(self, statistic: int = 0) -> dict[str, float]:
        """Mean, standard deviation, min and max of one statistic across individuals."""
        values = self.statistics_for_individuals()[statistic]
        mean = float(values.mean())
        return {
            "mean": mean,
            "std": standard_deviation(values, mean),
            "min": float(values.min()),
            "max": float(values.max()),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenerationRecord):
            return NotImplemented
        return (
            self.seed == other.seed
            and self.population_size == other.population_size
            and self.first_chromosome_index == other.first_chromosome_index
            and np.array_equal(self.statistics, other.statistics)
        )

    __hash__ = None


# =============================================================================
# Evolution Line
# =============================================================================


class EvolutionLine:
    """
    In-memory evolutionary history of one genome kind.

    Responsibilities:
    - Hold every generation record with its population
    - Hold the current population awaiting evaluation
    - Retire the current population on ``add_generation``
    - Analyse fitness progression
    """

    def __init__(
        self,
        kind: GenomeKind | None = None,
        current_population: Population | None = None,
    ):
        """
        Initialize an evolution line.

        Args:
            kind: Genome kind (schema, statistic names, settings)
            current_population: First, not yet evaluated population
        """
        self.kind = kind
        self.current_population = current_population
        self._generations: list[GenerationRecord] = []
        self._populations: list[Population | None] = []
        self._next_chromosome_index = 0

    @classmethod
    def create(
        cls,
        kind: GenomeKind,
        initial_population_size: int,
        rng: random.Random | None = None,
    ) -> EvolutionLine:
        """Start a new line with a random initial population."""
        line = cls(kind, Population.random(initial_population_size, kind.schema, rng))
        logger.info(
            "Created evolution line",
            kind=kind.identifier,
            population_size=initial_population_size,
        )
        return line

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def identifier(self) -> str:
        return self.kind.identifier

    @property
    def schema(self) -> ChromosomeSchema:
        return self.kind.schema

    @property
    def statistic_names(self) -> tuple[str, ...]:
        return self.kind.statistic_names

    @property
    def settings(self) -> EvolutionSettings:
        return self.kind.settings

    @property
    def generations(self) -> tuple[GenerationRecord, ...]:
        return tuple(self._generations)

    @property
    def count(self) -> int:
        return len(self._generations)

    @property
    def next_chromosome_index(self) -> int:
        """Number of genomes stored across all recorded generations."""
        return self._next_chromosome_index

    def __len__(self) -> int:
        return len(self._generations)

    def __getitem__(self, index: int) -> GenerationRecord:
        return self._generations[index]

    def __iter__(self) -> Iterator[GenerationRecord]:
        return iter(self._generations)

    # -------------------------------------------------------------------------
    # Generations
    # -------------------------------------------------------------------------

    def get_population(self, generation_index: int) -> Population:
        return self._populations[generation_index]

    def add_generation(
        self,
        seed: int,
        statistics: np.ndarray | Sequence[Sequence[Sequence[float]]],
        next_population: Population,
    ) -> GenerationRecord:
        """
        Record the scored current population and install its successor.

        Args:
            seed: Random seed the generation was simulated with (int32)
            statistics: ``[statistic][individual][repeat]`` values for the
                current population
            next_population: Population evolved from the current one

        Returns:
            The new generation record

        Raises:
            PreconditionError: Seed out of int32 range, statistics of the
                wrong shape, or a population of another genome kind
        """
        if not INT32_MIN <= seed <= INT32_MAX:
            raise PreconditionError(f"Seed {seed} does not fit in int32")
        if next_population.schema.kind != self.schema.kind:
            raise PreconditionError(
                f"Cannot add a {next_population.schema.kind} population to a "
                f"{self.schema.kind} line"
            )

        current = self.current_population
        expected = (len(self.statistic_names), current.size, self.settings.repeat_count)
        statistics = np.asarray(statistics, dtype=np.float64)
        if statistics.shape != expected:
            logger.error(
                "Statistics shape mismatch",
                kind=self.identifier,
                expected=expected,
                actual=statistics.shape,
            )
            raise PreconditionError(f"Expected statistics of shape {expected}, got {statistics.shape}")

        record = GenerationRecord(seed, current.size, statistics, self._next_chromosome_index)
        self._generations.append(record)
        self._populations.append(current)
        self._next_chromosome_index += current.size

        if next_population.schema is not self.schema:
            # Genomes are keyed by field name; rebind to the line's field order
            next_population = Population(next_population.genomes, self.schema)
        self.current_population = next_population

        logger.info(
            "Generation added",
            kind=self.identifier,
            generation=self.count - 1,
            size=record.population_size,
            seed=seed,
        )
        return record

    def slice_for_individual(self, individual_index: int) -> int:
        """Simulation slice an individual belongs to (0 when unsliced)."""
        if not self.settings.is_sliced:
            return 0
        return individual_index // self.settings.slice_size

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def fitness_progression(self) -> list[tuple[int, float]]:
        """
        Get fitness progression over generations.

        Returns:
            List of (generation, best_fitness) tuples
        """
        return [
            (index, max(record.fitness_values(), default=0.0))
            for index, record in enumerate(self._generations)
        ]

    def compute_summary(self) -> dict[str, Any]:
        """
        Compute summary statistics of the evolution line.

        Returns:
            Summary dictionary
        """
        summary: dict[str, Any] = {
            "kind": self.identifier,
            "total_generations": self.count,
            "total_genomes": self._next_chromosome_index,
            "current_population_size": (
                self.current_population.size if self.current_population is not None else 0
            ),
        }
        if not self._generations:
            return summary

        progression = self.fitness_progression()
        initial_fitness = progression[0][1]
        final_fitness = progression[-1][1]
        summary.update(
            {
                "avg_population_size": self._next_chromosome_index / self.count,
                "initial_best_fitness": initial_fitness,
                "final_best_fitness": final_fitness,
                "best_fitness": max(best for _, best in progression),
                "fitness_improvement": final_fitness - initial_fitness,
            }
        )
        return summary

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.identifier!r}, generations={self.count})"


__all__ = ["GenerationRecord", "EvolutionLine"]
