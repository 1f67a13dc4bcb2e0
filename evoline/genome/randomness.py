"""
Random Utilities

Seeded draws shared by the gene codecs, crossover and selection:
- a process-wide default generator (reseedable for reproducible runs)
- coin tosses and ranged draws
- roulette-wheel index selection over normalised weights
- seed derivation for sliced/repeated simulation runs

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
from typing import Sequence

import numpy as np
from loguru import logger

from ..exceptions import PreconditionError


_shared_generator = random.Random()


def shared_generator() -> random.Random:
    """Return the process-wide generator used when no rng is supplied."""
    return _shared_generator


def seed(value: int | None) -> None:
    """Reseed the shared generator (``None`` reseeds from system entropy)."""
    _shared_generator.seed(value)
    logger.debug("Shared generator reseeded", seed=value)


def resolve(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else _shared_generator


def coin_toss(rng: random.Random | None = None) -> bool:
    """Return True or False with equal probability."""
    return resolve(rng).randrange(2) == 1


def double_in_range(minimum: float, maximum: float, rng: random.Random | None = None) -> float:
    """Uniform draw in ``[minimum, maximum)``."""
    return minimum + resolve(rng).random() * (maximum - minimum)


def choose_index_from_weighted(
    weights: Sequence[float],
    rng: random.Random | None = None,
) -> int:
    """
    Roulette-wheel selection over weights that sum to 1.

    A single uniform draw in [0, 1) is walked against the cumulative weights;
    the first index whose cumulative weight reaches the draw is chosen. If
    rounding leaves the draw beyond the last cumulative weight, the last
    index is returned.

    Args:
        weights: Selection weights, fractions of 1
        rng: Generator to draw from (shared generator if None)

    Returns:
        Chosen index in ``[0, len(weights) - 1]``
    """
    if len(weights) == 0:
        raise PreconditionError("Cannot choose from an empty weight list")

    choice = resolve(rng).random()
    cumulative = 0.0
    for index, weight in enumerate(weights):
        cumulative += weight
        if cumulative >= choice:
            return index

    return len(weights) - 1


def new_seed(rng: random.Random | None = None) -> int:
    """Draw a fresh non-negative int32 seed."""
    return resolve(rng).randrange(2**31)


def derive_simulation_seed(
    base_seed: int,
    slice_index: int,
    repeat_index: int,
    repeat_count: int,
    sliced: bool,
) -> int:
    """
    Offset a generation's seed for one (slice, repeat) simulation run.

    Unsliced runs only offset by the repeat index; sliced runs offset by
    ``slice_index * repeat_count + repeat_index`` so no two runs share a seed.
    """
    if not sliced:
        return base_seed + repeat_index
    return base_seed + slice_index * repeat_count + repeat_index


def standard_deviation(values: Sequence[float], mean: float | None = None) -> float:
    """Population standard deviation of ``values`` (about ``mean`` if given)."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        raise PreconditionError("Standard deviation of an empty sequence is undefined")
    centre = data.mean() if mean is None else mean
    return float(np.sqrt(np.mean((data - centre) ** 2)))


__all__ = [
    "shared_generator",
    "seed",
    "resolve",
    "coin_toss",
    "double_in_range",
    "choose_index_from_weighted",
    "new_seed",
    "derive_simulation_seed",
    "standard_deviation",
]
