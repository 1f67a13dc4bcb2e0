"""
Simulation Evolver

Drives an evolution line one generation at a time:
1. pick a seed for the generation
2. split the current population into slices
3. run the external simulation once per (slice, repeat), each run with its
   own derived seed
4. assemble the ``[statistic][individual][repeat]`` statistics array
5. evolve the next population from the mean of statistic 0 and record the
   generation on the line

Simulation runs may be dispatched through a ``concurrent.futures`` executor;
because every run's seed is derived deterministically, the order in which
runs complete does not affect the result.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
import threading
import time
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Callable, Protocol, Sequence

import numpy as np
from loguru import logger

from . import randomness
from .genome import Genome
from .history import EvolutionLine, GenerationRecord
from .operators import FixedGeneticProbabilities, GeneticProbabilityProvider
from ..exceptions import PreconditionError
from ..monitoring.logging_config import log_evolution_complete, log_evolution_start

if TYPE_CHECKING:
    from ..config import EvolineConfig


class StatisticsProvider(Protocol):
    """External simulation: scores one slice of genomes in one run."""

    def measure(self, genomes: Sequence[Genome], seed: int) -> Sequence[Sequence[float]]:
        """
        Run one simulation.

        Args:
            genomes: The individuals taking part in this run
            seed: Seed for this run's randomness

        Returns:
            ``[statistic][individual]`` values for ``genomes``
        """
        ...


class SimulationEvolver:
    """Evaluates a line's current population and evolves the next one."""

    def __init__(
        self,
        statistics_provider: StatisticsProvider,
        probability_provider: GeneticProbabilityProvider,
        rng: random.Random | None = None,
        executor: Executor | None = None,
        autosave_interval: int = 0,
    ):
        """
        Initialize the evolver.

        Args:
            statistics_provider: Simulation producing per-individual statistics
            probability_provider: Crossover and mutation decisions
            rng: Generator for seeds and reproduction (shared generator if None)
            executor: Optional pool the simulation runs are submitted to
            autosave_interval: Save a file-backed line every N generations
                during ``run`` (0 = never)
        """
        if autosave_interval < 0:
            raise PreconditionError(f"autosave_interval must be >= 0, got {autosave_interval}")

        self.statistics_provider = statistics_provider
        self.probability_provider = probability_provider
        self.rng = randomness.resolve(rng)
        self.executor = executor
        self.autosave_interval = autosave_interval

    @classmethod
    def from_config(
        cls,
        config: EvolineConfig,
        statistics_provider: StatisticsProvider,
        rng: random.Random | None = None,
        executor: Executor | None = None,
    ) -> SimulationEvolver:
        """Build an evolver with fixed probabilities and autosave from ``config``."""
        return cls(
            statistics_provider,
            FixedGeneticProbabilities.from_config(config.probabilities, rng),
            rng,
            executor,
            autosave_interval=config.storage.autosave_interval,
        )

    def evolve_generation(
        self,
        line: EvolutionLine,
        population_size: int | None = None,
        seed: int | None = None,
    ) -> GenerationRecord:
        """
        Score the current population and add one generation to ``line``.

        Args:
            line: Evolution line to advance
            population_size: Size of the next population (current size if None)
            seed: Generation seed (drawn from ``rng`` if None)

        Returns:
            The recorded generation

        Raises:
            PreconditionError: Population not divisible into slices, or a
                simulation returned statistics of the wrong shape
        """
        population = line.current_population
        settings = line.settings
        statistic_count = len(line.statistic_names)
        if population_size is None:
            population_size = population.size
        if seed is None:
            seed = randomness.new_seed(self.rng)

        if settings.is_sliced:
            if population.size % settings.slice_size != 0:
                raise PreconditionError(
                    f"Population of {population.size} cannot be split into "
                    f"slices of {settings.slice_size}"
                )
            slice_size = settings.slice_size
        else:
            slice_size = population.size
        slice_count = population.size // slice_size if slice_size else 1

        runs = [
            (slice_index, repeat)
            for slice_index in range(slice_count)
            for repeat in range(settings.repeat_count)
        ]

        def run(task: tuple[int, int]) -> np.ndarray:
            slice_index, repeat = task
            genomes = population.genomes[slice_index * slice_size:(slice_index + 1) * slice_size]
            run_seed = randomness.derive_simulation_seed(
                seed, slice_index, repeat, settings.repeat_count, settings.is_sliced
            )
            measured = np.asarray(
                self.statistics_provider.measure(genomes, run_seed), dtype=np.float64
            )
            if measured.shape != (statistic_count, len(genomes)):
                raise PreconditionError(
                    f"Simulation returned statistics of shape {measured.shape}, "
                    f"expected {(statistic_count, len(genomes))}"
                )
            return measured

        if self.executor is not None:
            results = list(self.executor.map(run, runs))
        else:
            results = [run(task) for task in runs]

        statistics = np.zeros((statistic_count, population.size, settings.repeat_count))
        for (slice_index, repeat), measured in zip(runs, results):
            start = slice_index * slice_size
            statistics[:, start:start + measured.shape[1], repeat] = measured

        fitness_values = statistics[0].mean(axis=1).tolist()
        next_population = population.evolve(
            population_size, fitness_values, self.probability_provider, self.rng
        )
        return line.add_generation(seed, statistics, next_population)

    def run(
        self,
        line: EvolutionLine,
        generations: int,
        population_size: int | None = None,
        cancel_event: threading.Event | None = None,
        on_generation: Callable[[int, GenerationRecord], None] | None = None,
    ) -> int:
        """
        Evolve up to ``generations`` generations.

        Cancellation is checked between whole generations only.

        Args:
            line: Evolution line to advance
            generations: Number of generations to add
            population_size: Size of each new population (current size if None)
            cancel_event: Set to stop before the next generation starts
            on_generation: Called with (generation index, record) after each one

        Returns:
            Number of generations actually added
        """
        if self.autosave_interval and not hasattr(line, "save"):
            raise PreconditionError("Autosave requires a file-backed evolution line")

        log_evolution_start(line.identifier, generations, line.current_population.size)
        start = time.perf_counter()
        best_overall = 0.0

        completed = 0
        for _ in range(generations):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Evolution cancelled", kind=line.identifier, completed=completed)
                break

            record = self.evolve_generation(line, population_size)
            completed += 1

            best = max(record.fitness_values(), default=0.0)
            best_overall = max(best_overall, best)
            logger.info(
                "Generation evolved",
                kind=line.identifier,
                generation=line.count - 1,
                best_fitness=f"{best:.4f}",
            )
            if on_generation is not None:
                on_generation(line.count - 1, record)
            if self.autosave_interval and completed % self.autosave_interval == 0:
                line.save()
                logger.debug("Autosaved evolution line", kind=line.identifier, generations=line.count)

        log_evolution_complete(line.identifier, best_overall, completed, time.perf_counter() - start)
        return completed


__all__ = ["StatisticsProvider", "SimulationEvolver"]
