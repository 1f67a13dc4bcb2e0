"""
Pytest configuration and shared fixtures for Evoline tests.

This module provides reusable test fixtures for:
- Temporary directories
- Seeded random generators
- Sample schemas (flat and nested) and genome kinds
- Probability providers
- A scripted statistics provider standing in for a simulation

Author: Evoline Team
License: MIT
"""

import random
import tempfile
from enum import Enum
from pathlib import Path

import pytest

from evoline.config import EvolutionSettings
from evoline.genome.operators import FixedGeneticProbabilities
from evoline.genome.registry import GenomeKind, SchemaRegistry
from evoline.genome.schema import SchemaBuilder

from helpers import make_statistics


class Temperament(Enum):
    CALM = 0
    ALERT = 1
    AGGRESSIVE = 2


# ============================================================================
# Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def line_path(temp_dir):
    """Path for an evolution-line file."""
    return temp_dir / "lions.evo"


# ============================================================================
# Randomness Fixtures
# ============================================================================

@pytest.fixture
def rng():
    """Seeded generator for reproducible draws."""
    return random.Random(1234)


@pytest.fixture
def never_mutate():
    """Provider that never mutates and never crosses over."""
    return FixedGeneticProbabilities(0.0, 0.0, random.Random(7))


@pytest.fixture
def always_mutate():
    """Provider that mutates every gene and never crosses over."""
    return FixedGeneticProbabilities(1.0, 0.0, random.Random(7))


@pytest.fixture
def default_probabilities():
    """Provider with typical rates."""
    return FixedGeneticProbabilities(0.1, 0.7, random.Random(7))


# ============================================================================
# Schema Fixtures
# ============================================================================

@pytest.fixture
def temperament():
    """Enum used by enumerated genes."""
    return Temperament


@pytest.fixture
def flat_schema():
    """Schema with one gene of every domain type."""
    return (
        SchemaBuilder("Prey")
        .real("speed", 0.0, 10.0)
        .integer("stamina", 1, 5)
        .enum("temperament", Temperament)
        .build()
    )


@pytest.fixture
def pounce_schema():
    return (
        SchemaBuilder("Pounce")
        .real("angle", -1.0, 1.0)
        .enum("temperament", Temperament)
        .build()
    )


@pytest.fixture
def nested_schema(pounce_schema):
    """Two levels of nesting: Lion -> Stalking -> Pounce, plus Lion -> Chase."""
    stalking = (
        SchemaBuilder("Stalking")
        .real("distance", 0.0, 50.0)
        .integer("crouch", 0, 3)
        .subschema("pounce", pounce_schema)
        .build()
    )
    chase = SchemaBuilder("Chase").real("burst", 0.0, 1.0).build()
    return (
        SchemaBuilder("Lion")
        .real("aggression")
        .integer("patience", 0, 9)
        .subschema("stalking", stalking)
        .subschema("chase", chase)
        .build()
    )


@pytest.fixture
def lion_kind(nested_schema):
    """Genome kind with two statistics, slices of 2 and 2 repeats."""
    return GenomeKind(
        "Lion",
        nested_schema,
        ("fitness", "catches"),
        EvolutionSettings(slice_size=2, repeat_count=2),
    )


@pytest.fixture
def registry(lion_kind):
    return SchemaRegistry([lion_kind])


# ============================================================================
# Simulation Fixtures
# ============================================================================

class ScriptedStatistics:
    """
    Deterministic stand-in for a simulation.

    Statistic 0 of individual ``i`` in a run is ``seed + i``; every further
    statistic is 1.0. Each call is recorded as ``(slice length, seed)``.
    """

    def __init__(self, statistic_count: int = 2):
        self.statistic_count = statistic_count
        self.calls = []

    def measure(self, genomes, seed):
        self.calls.append((len(genomes), seed))
        first = [float(seed + i) for i in range(len(genomes))]
        rest = [[1.0] * len(genomes) for _ in range(self.statistic_count - 1)]
        return [first] + rest


@pytest.fixture
def scripted_statistics():
    return ScriptedStatistics()


@pytest.fixture
def statistics_factory():
    """Factory for statistics arrays matching a genome kind."""
    return make_statistics


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to handle markers."""
    skip_slow = pytest.mark.skip(reason="slow test (use --runslow to run)")

    for item in items:
        if "slow" in item.keywords and not config.getoption("--runslow", default=False):
            item.add_marker(skip_slow)


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--runslow", action="store_true", default=False, help="run slow tests"
    )
