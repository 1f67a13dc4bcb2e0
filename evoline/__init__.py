"""
Evoline - Genetic Algorithm Engine with Evolution-Line Persistence

Evolves populations of structured genomes against fitness signals produced by
external simulations, and persists every generation to a single binary file.

Components:
- genome: schemas, gene codecs, populations, evolution lines, evolver
- storage: file-backed and lazily-loaded evolution lines
- config: pydantic configuration models
- monitoring: loguru logging helpers

Author: Evoline Team
Version: 0.1.0
"""

from .config import (
    EvolineConfig,
    EvolutionSettings,
    GeneticProbabilitiesConfig,
    LoggingConfig,
    StorageConfig,
    load_config,
)
from .exceptions import (
    CorruptFileError,
    DecodeError,
    EvolineError,
    FileBusyError,
    PreconditionError,
    SchemaError,
    SchemaMismatchError,
)
from .genome import (
    BoundedInt,
    BoundedReal,
    ChromosomeSchema,
    EnumDomain,
    EvolutionLine,
    FixedGeneticProbabilities,
    GenerationRecord,
    Genome,
    GenomeKind,
    Population,
    SchemaBuilder,
    SchemaRegistry,
    SimulationEvolver,
)
from .storage import FileBackedEvolutionLine, LazyEvolutionLine, create_line, open_line

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "EvolineConfig",
    "EvolutionSettings",
    "GeneticProbabilitiesConfig",
    "LoggingConfig",
    "StorageConfig",
    "load_config",
    # Errors
    "EvolineError",
    "SchemaError",
    "DecodeError",
    "SchemaMismatchError",
    "CorruptFileError",
    "FileBusyError",
    "PreconditionError",
    # Genome
    "BoundedReal",
    "BoundedInt",
    "EnumDomain",
    "ChromosomeSchema",
    "SchemaBuilder",
    "Genome",
    "GenomeKind",
    "SchemaRegistry",
    "FixedGeneticProbabilities",
    "Population",
    "GenerationRecord",
    "EvolutionLine",
    "SimulationEvolver",
    # Storage
    "FileBackedEvolutionLine",
    "LazyEvolutionLine",
    "create_line",
    "open_line",
]
