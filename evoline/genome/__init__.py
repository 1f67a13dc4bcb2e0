"""
Evoline Genome System

Structured genomes and their evolution:
- Gene domains (bounded real, bounded integer, enumerated) with fixed-width codecs
- Chromosome schemas composed of genes and nested subschemas
- Uniform crossover and always-changing mutation
- Fitness-proportional reproduction of populations
- In-memory evolution lines and the simulation-driven evolver

Author: Evoline Team
Version: 0.1.0
"""

# Binary primitives
from .binary import BinaryReader, BinaryWriter

# Gene domains
from .genes import (
    GeneDomain,
    BoundedReal,
    BoundedInt,
    EnumDomain,
    GeneSpec,
    SubSchemaSpec,
)

# Schemas and instances
from .genome import Genome
from .schema import ChromosomeSchema, SchemaBuilder

# Genetic operators
from .operators import GeneticProbabilityProvider, FixedGeneticProbabilities

# Registry
from .registry import GenomeKind, SchemaRegistry

# Populations and history
from .population import Population
from .history import GenerationRecord, EvolutionLine

# Evolution driver
from .evolver import StatisticsProvider, SimulationEvolver

__all__ = [
    "BinaryReader",
    "BinaryWriter",
    "GeneDomain",
    "BoundedReal",
    "BoundedInt",
    "EnumDomain",
    "GeneSpec",
    "SubSchemaSpec",
    "Genome",
    "ChromosomeSchema",
    "SchemaBuilder",
    "GeneticProbabilityProvider",
    "FixedGeneticProbabilities",
    "GenomeKind",
    "SchemaRegistry",
    "Population",
    "GenerationRecord",
    "EvolutionLine",
    "StatisticsProvider",
    "SimulationEvolver",
]

__version__ = "0.1.0"
