"""
Genetic Probability Providers

Mutation and crossover decisions are delegated to a probability provider so
the schema's combine operation stays free of policy:
- should_mutate(): asked once per gene per child
- should_crossover(): asked once per combine call

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from loguru import logger

from . import randomness
from ..exceptions import PreconditionError

if TYPE_CHECKING:
    from ..config import GeneticProbabilitiesConfig


@runtime_checkable
class GeneticProbabilityProvider(Protocol):
    """Source of mutation and crossover decisions."""

    def should_mutate(self) -> bool: ...

    def should_crossover(self) -> bool: ...


class FixedGeneticProbabilities:
    """
    Constant mutation rate and crossover probability.

    Each decision is one ``rng.random() < rate`` draw, so a rate of 0 never
    fires and a rate of 1 always does.
    """

    def __init__(
        self,
        mutation_rate: float,
        crossover_probability: float,
        rng: random.Random | None = None,
    ):
        for name, value in (
            ("mutation_rate", mutation_rate),
            ("crossover_probability", crossover_probability),
        ):
            if not 0.0 <= value <= 1.0:
                raise PreconditionError(f"{name} must be in [0, 1], got {value}")

        self.mutation_rate = mutation_rate
        self.crossover_probability = crossover_probability
        self.rng = randomness.resolve(rng)

        logger.debug(
            "Genetic probabilities set",
            mutation_rate=mutation_rate,
            crossover_probability=crossover_probability,
        )

    @classmethod
    def from_config(
        cls,
        config: GeneticProbabilitiesConfig,
        rng: random.Random | None = None,
    ) -> FixedGeneticProbabilities:
        return cls(config.mutation_rate, config.crossover_probability, rng)

    def should_mutate(self) -> bool:
        return self.rng.random() < self.mutation_rate

    def should_crossover(self) -> bool:
        return self.rng.random() < self.crossover_probability

    def __repr__(self) -> str:
        return (
            f"FixedGeneticProbabilities(mutation_rate={self.mutation_rate}, "
            f"crossover_probability={self.crossover_probability})"
        )


__all__ = [
    "GeneticProbabilityProvider",
    "FixedGeneticProbabilities",
]
