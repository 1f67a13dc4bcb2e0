"""
Shared helpers for Evoline tests.

Author: Evoline Team
License: MIT
"""

import numpy as np


def make_statistics(kind, population_size, offset=0.0):
    """Build a ``[statistic][individual][repeat]`` list for ``kind``."""
    return [
        [
            [offset + s * 100 + i * 10 + r + 1.0 for r in range(kind.settings.repeat_count)]
            for i in range(population_size)
        ]
        for s in range(len(kind.statistic_names))
    ]


def advance(line, provider, generations, rng, sizes=None):
    """Add generations with synthetic statistics, seeds 1000, 1001, ..."""
    for generation in range(generations):
        size = line.current_population.size
        next_size = sizes[generation] if sizes else size
        statistics = make_statistics(line.kind, size, offset=generation)
        fitness = np.asarray(statistics)[0].mean(axis=1).tolist()
        next_population = line.current_population.evolve(next_size, fitness, provider, rng)
        line.add_generation(1000 + generation, statistics, next_population)
