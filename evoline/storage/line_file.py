"""
File-Backed Evolution Line

Persists a complete evolution line to one binary file:

    int32   version (0)
    string  genome kind identifier
    ...     schema type descriptor
    int32   generation count
    ...     generation records (seed, size, float64 statistics, first index)
    ...     every historical population, schema-encoded, in order
    int32   current population size
    ...     current population

The file is opened for exactly one read or write at a time and closed again
when that access ends, including on errors.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

import numpy as np
from loguru import logger

from ..exceptions import CorruptFileError, FileBusyError
from ..genome.binary import FLOAT64_SIZE, BinaryReader, BinaryWriter
from ..genome.history import EvolutionLine, GenerationRecord
from ..genome.population import Population
from ..genome.registry import GenomeKind, SchemaRegistry


FILE_FORMAT_VERSION = 0

_STATISTICS_DTYPE = np.dtype("<f8")


class FileBackedEvolutionLine(EvolutionLine):
    """Evolution line saved to and opened from a single binary file."""

    def __init__(
        self,
        path: str | Path,
        kind: GenomeKind | None = None,
        current_population: Population | None = None,
    ):
        super().__init__(kind, current_population)
        self.path = Path(path)
        self._access_lock = threading.Lock()

    @classmethod
    def create(
        cls,
        path: str | Path,
        kind: GenomeKind,
        initial_population_size: int,
        rng: random.Random | None = None,
    ) -> FileBackedEvolutionLine:
        """Start a new line at ``path`` (nothing is written until ``save``)."""
        line = cls(path, kind, Population.random(initial_population_size, kind.schema, rng))
        logger.info(
            "Created evolution line",
            kind=kind.identifier,
            path=str(line.path),
            population_size=initial_population_size,
        )
        return line

    @classmethod
    def open(cls, path: str | Path, registry: SchemaRegistry) -> FileBackedEvolutionLine:
        """
        Open a saved line.

        Args:
            path: File written by ``save``
            registry: Genome kinds the stored identifier is resolved against

        Returns:
            The opened line, bound to the schema adapted to the stored field order

        Raises:
            SchemaMismatchError: Unknown kind or differing field names
            CorruptFileError: Bad version tag, counts or chromosome offsets
            DecodeError: Truncated file or out-of-domain values
        """
        line = cls(path)
        line._load(registry)
        logger.info(
            "Opened evolution line",
            kind=line.identifier,
            path=str(line.path),
            generations=line.count,
        )
        return line

    # -------------------------------------------------------------------------
    # File access
    # -------------------------------------------------------------------------

    @contextmanager
    def _file_access(self, mode: str) -> Iterator[BinaryIO]:
        """Hold the line's file open for one read or write."""
        if not self._access_lock.acquire(blocking=False):
            logger.error("File already in use", path=str(self.path))
            raise FileBusyError(f"{self.path} is already in use")
        try:
            with open(self.path, mode) as stream:
                yield stream
        finally:
            self._access_lock.release()

    @property
    def in_use(self) -> bool:
        return self._access_lock.locked()

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    def save(self) -> None:
        """Write the whole line, overwriting the file."""
        with self._file_access("wb") as stream:
            writer = BinaryWriter(stream)
            self._write_header(writer)
            self._write_populations(writer)
            writer.write_int32(self.current_population.size)
            self.current_population.to_binary(writer)

        logger.info(
            "Saved evolution line",
            kind=self.identifier,
            path=str(self.path),
            generations=self.count,
        )

    def save_as(self, path: str | Path) -> None:
        """Switch the line to ``path`` and save it there."""
        self.path = Path(path)
        self.save()

    def _write_header(self, writer: BinaryWriter) -> None:
        writer.write_int32(FILE_FORMAT_VERSION)
        writer.write_string(self.identifier)
        self.schema.write_type_descriptor(writer)
        writer.write_int32(self.count)
        for record in self._generations:
            self._write_record(record, writer)

    def _write_record(self, record: GenerationRecord, writer: BinaryWriter) -> None:
        writer.write_int32(record.seed)
        writer.write_int32(record.population_size)
        writer.write_bytes(record.statistics.astype(_STATISTICS_DTYPE).tobytes(order="C"))
        writer.write_int32(record.first_chromosome_index)

    def _write_populations(self, writer: BinaryWriter) -> None:
        for index in range(self.count):
            self.get_population(index).to_binary(writer)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _load(self, registry: SchemaRegistry) -> None:
        with self._file_access("rb") as stream:
            reader = BinaryReader(stream)
            self._read_header(reader, registry)
            self._populations = [
                Population.from_binary(record.population_size, reader, self.schema)
                for record in self._generations
            ]
            self.current_population = self._read_current_population(reader)

    def _read_header(self, reader: BinaryReader, registry: SchemaRegistry) -> None:
        version = reader.read_int32()
        if version != FILE_FORMAT_VERSION:
            raise CorruptFileError(f"{self.path}: unsupported format version {version}")

        kind = registry.get(reader.read_string())
        self.kind = kind.with_schema(kind.schema.adapt_to_descriptor(reader))

        generation_count = _read_count(reader, "generation", self.path)
        self._generations = []
        self._next_chromosome_index = 0
        for index in range(generation_count):
            record = self._read_record(reader)
            if record.first_chromosome_index != self._next_chromosome_index:
                logger.error(
                    "Chromosome index mismatch",
                    path=str(self.path),
                    generation=index,
                    expected=self._next_chromosome_index,
                    stored=record.first_chromosome_index,
                )
                raise CorruptFileError(
                    f"{self.path}: generation {index} starts at chromosome "
                    f"{record.first_chromosome_index}, expected {self._next_chromosome_index}"
                )
            self._generations.append(record)
            self._next_chromosome_index += record.population_size

    def _read_record(self, reader: BinaryReader) -> GenerationRecord:
        seed = reader.read_int32()
        population_size = _read_count(reader, "population", self.path)
        shape = (len(self.statistic_names), population_size, self.settings.repeat_count)
        data = reader.read_bytes(int(np.prod(shape)) * FLOAT64_SIZE)
        statistics = np.frombuffer(data, dtype=_STATISTICS_DTYPE).reshape(shape)
        first_chromosome_index = reader.read_int32()
        return GenerationRecord(seed, population_size, statistics, first_chromosome_index)

    def _read_current_population(self, reader: BinaryReader) -> Population:
        size = _read_count(reader, "current population", self.path)
        return Population.from_binary(size, reader, self.schema)


def _read_count(reader: BinaryReader, what: str, path: Path) -> int:
    count = reader.read_int32()
    if count < 0:
        raise CorruptFileError(f"{path}: negative {what} size ({count})")
    return count


__all__ = ["FileBackedEvolutionLine", "FILE_FORMAT_VERSION"]
