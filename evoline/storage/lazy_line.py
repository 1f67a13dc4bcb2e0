"""
Lazily-Loaded Evolution Line

Long evolution runs produce files far larger than memory. This line only
reads the header, generation records and current population on open;
historical populations are paged in one generation at a time on first
access, by seeking to

    chromosome_base_address + schema.binary_size * record.first_chromosome_index

Saving is incremental: the raw bytes of every chromosome already in the file
are copied verbatim and only generations added since the last save are
encoded. After a save all historical populations are released again.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from .line_file import FileBackedEvolutionLine
from ..genome.binary import BinaryReader, BinaryWriter
from ..genome.population import Population
from ..genome.registry import GenomeKind, SchemaRegistry


class LazyEvolutionLine(FileBackedEvolutionLine):
    """File-backed evolution line that pages populations in on demand."""

    def __init__(
        self,
        path: str | Path,
        kind: GenomeKind | None = None,
        current_population: Population | None = None,
    ):
        super().__init__(path, kind, current_population)
        self._chromosome_base_address = 0
        self._saved_generation_count = 0
        self._saved_chromosome_count = 0
        self._saved_chromosome_data: bytes | None = None

    @classmethod
    def reopen(cls, line: FileBackedEvolutionLine) -> LazyEvolutionLine:
        """Open the file of an existing line lazily."""
        return cls.open(line.path, SchemaRegistry([line.kind]))

    # -------------------------------------------------------------------------
    # Paging
    # -------------------------------------------------------------------------

    def is_loaded(self, generation_index: int) -> bool:
        return self._populations[generation_index] is not None

    @property
    def loaded_generations(self) -> list[int]:
        return [index for index, population in enumerate(self._populations) if population is not None]

    def get_population(self, generation_index: int) -> Population:
        population = self._populations[generation_index]
        if population is None:
            population = self._load_population(generation_index)
            self._populations[generation_index] = population
        return population

    def _load_population(self, generation_index: int) -> Population:
        record = self._generations[generation_index]
        address = (
            self._chromosome_base_address
            + self.schema.binary_size * record.first_chromosome_index
        )
        with self._file_access("rb") as stream:
            reader = BinaryReader(stream)
            reader.seek(address)
            population = Population.from_binary(record.population_size, reader, self.schema)

        logger.debug(
            "Paged in population",
            kind=self.identifier,
            generation=generation_index,
            size=record.population_size,
            address=address,
        )
        return population

    def _load(self, registry: SchemaRegistry) -> None:
        with self._file_access("rb") as stream:
            reader = BinaryReader(stream)
            self._read_header(reader, registry)
            self._chromosome_base_address = reader.tell()
            self._populations = [None] * self.count
            self._mark_saved()

            # Skip the chromosome area without reading it
            reader.seek(
                self._chromosome_base_address
                + self._saved_chromosome_count * self.schema.binary_size
            )
            self.current_population = self._read_current_population(reader)
        self._saved_chromosome_data = None

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    def save(self) -> None:
        """Write cached chromosome bytes, encode only newly added generations."""
        self._load_population_data()
        super().save()

        # The chromosome area may have moved; cached bytes and pages are stale
        self._saved_chromosome_data = None
        self._populations = [None] * self.count
        self._mark_saved()

    def save_as(self, path: str | Path) -> None:
        """Copy the saved chromosome bytes from the current file before switching."""
        self._load_population_data()
        super().save_as(path)

    def _write_populations(self, writer: BinaryWriter) -> None:
        self._chromosome_base_address = writer.tell()
        writer.write_bytes(self._saved_chromosome_data)
        for index in range(self._saved_generation_count, self.count):
            self.get_population(index).to_binary(writer)

        logger.debug(
            "Wrote chromosome area",
            reused_generations=self._saved_generation_count,
            encoded_generations=self.count - self._saved_generation_count,
        )

    def _load_population_data(self) -> None:
        if self._saved_chromosome_data is not None:
            return
        if self._saved_chromosome_count == 0:
            self._saved_chromosome_data = b""
            return

        length = self._saved_chromosome_count * self.schema.binary_size
        with self._file_access("rb") as stream:
            reader = BinaryReader(stream)
            reader.seek(self._chromosome_base_address)
            self._saved_chromosome_data = reader.read_bytes(length)

        logger.debug("Cached saved chromosome data", path=str(self.path), bytes=length)

    def _mark_saved(self) -> None:
        self._saved_generation_count = self.count
        if self._generations:
            last = self._generations[-1]
            self._saved_chromosome_count = last.first_chromosome_index + last.population_size
        else:
            self._saved_chromosome_count = 0


__all__ = ["LazyEvolutionLine"]
