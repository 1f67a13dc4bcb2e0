"""
Population of Genomes

A Population is the ordered, fixed-size set of genomes of one generation:
- created at random, decoded from a byte stream, or evolved from a parent
  population
- immutable; evolution always produces a new Population
- reproduction uses fitness-proportional (roulette-wheel) parent selection
  and the schema's combine operation, two children per pair of parents

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import math
import random
from typing import Iterable, Iterator, Sequence

from loguru import logger

from . import randomness
from .binary import BinaryReader, BinaryWriter
from .genome import Genome
from .operators import GeneticProbabilityProvider
from .schema import ChromosomeSchema
from ..exceptions import PreconditionError


class Population:
    """Immutable ordered collection of genomes of one schema."""

    __slots__ = ("_genomes", "schema")

    def __init__(self, genomes: Iterable[Genome], schema: ChromosomeSchema):
        self._genomes: tuple[Genome, ...] = tuple(genomes)
        self.schema = schema

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def random(
        cls,
        size: int,
        schema: ChromosomeSchema,
        rng: random.Random | None = None,
    ) -> Population:
        """Create ``size`` random genomes."""
        if size < 0:
            raise PreconditionError(f"Population size must be >= 0, got {size}")
        rng = randomness.resolve(rng)
        return cls((schema.generate_random(rng) for _ in range(size)), schema)

    @classmethod
    def from_binary(cls, size: int, reader: BinaryReader, schema: ChromosomeSchema) -> Population:
        """Decode ``size`` consecutive genomes laid out by ``schema``."""
        return cls((schema.from_binary(reader) for _ in range(size)), schema)

    def to_binary(self, writer: BinaryWriter) -> None:
        """Encode every genome, in order."""
        for genome in self._genomes:
            self.schema.to_binary(genome, writer)

    # -------------------------------------------------------------------------
    # Reproduction
    # -------------------------------------------------------------------------

    def evolve(
        self,
        target_size: int,
        fitness_values: Sequence[float],
        probability_provider: GeneticProbabilityProvider,
        rng: random.Random | None = None,
    ) -> Population:
        """
        Evolve a new population with fitness-proportional selection.

        Fitness values are normalised to selection weights summing to 1 and
        passed to ``evolve_with_selection_weights``.

        Args:
            target_size: Size of the new population (positive, even)
            fitness_values: One non-negative fitness per genome, positive sum
            probability_provider: Crossover and mutation decisions
            rng: Generator for parent selection and genetic operators

        Returns:
            The new population

        Raises:
            PreconditionError: Any precondition above is violated
        """
        if len(fitness_values) != self.size:
            raise PreconditionError(
                f"Expected {self.size} fitness values, got {len(fitness_values)}"
            )
        for index, value in enumerate(fitness_values):
            if math.isnan(value) or value < 0:
                logger.error("Invalid fitness value", index=index, value=value)
                raise PreconditionError(f"Fitness value {value} at index {index} is invalid")

        total = math.fsum(fitness_values)
        if not total > 0:
            logger.error("Fitness values sum to zero", size=self.size)
            raise PreconditionError("Fitness values must have a positive sum")

        weights = [value / total for value in fitness_values]
        return self.evolve_with_selection_weights(target_size, weights, probability_provider, rng)

    def evolve_with_selection_weights(
        self,
        target_size: int,
        selection_weights: Sequence[float],
        probability_provider: GeneticProbabilityProvider,
        rng: random.Random | None = None,
    ) -> Population:
        """
        Evolve a new population from selection weights that sum to 1.

        For each pair of output slots two parents are drawn independently
        (self-pairing allowed) and combined into two children.
        """
        if target_size <= 0 or target_size % 2 != 0:
            raise PreconditionError(f"Target size must be positive and even, got {target_size}")
        if len(selection_weights) != self.size:
            raise PreconditionError(
                f"Expected {self.size} selection weights, got {len(selection_weights)}"
            )

        rng = randomness.resolve(rng)
        children: list[Genome] = []
        for _ in range(target_size // 2):
            parent1 = randomness.choose_index_from_weighted(selection_weights, rng)
            parent2 = randomness.choose_index_from_weighted(selection_weights, rng)
            children.extend(
                self.schema.reproduce(
                    self._genomes[parent1],
                    self._genomes[parent2],
                    probability_provider,
                    rng,
                )
            )

        logger.debug("Population evolved", parents=self.size, children=target_size)
        return Population(children, self.schema)

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._genomes)

    @property
    def genomes(self) -> tuple[Genome, ...]:
        return self._genomes

    def __len__(self) -> int:
        return len(self._genomes)

    def __iter__(self) -> Iterator[Genome]:
        return iter(self._genomes)

    def __getitem__(self, index: int) -> Genome:
        return self._genomes[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Population):
            return NotImplemented
        return self._genomes == other._genomes

    __hash__ = None

    def __repr__(self) -> str:
        return f"Population(kind={self.schema.kind!r}, size={self.size})"


__all__ = ["Population"]
