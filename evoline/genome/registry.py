"""
Genome Kind Registry

A GenomeKind bundles everything an evolution line needs to know about one
kind of genome: its identifier (stored in files), its schema, the names of
the statistics its simulation produces and its evolution settings. The
SchemaRegistry is an owned, injectable lookup from identifier to kind, used
when a stored line is opened.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from loguru import logger

from .schema import ChromosomeSchema
from ..config import EvolutionSettings
from ..exceptions import SchemaError, SchemaMismatchError


@dataclass(frozen=True)
class GenomeKind:
    """Schema, statistic names and evolution settings of one genome kind."""

    identifier: str
    schema: ChromosomeSchema
    statistic_names: tuple[str, ...] = ("fitness",)
    settings: EvolutionSettings = field(default_factory=EvolutionSettings)

    def __post_init__(self) -> None:
        if not self.identifier:
            raise SchemaError("Genome kind identifier must not be empty")
        object.__setattr__(self, "statistic_names", tuple(self.statistic_names))
        if not self.statistic_names:
            raise SchemaError(f"{self.identifier}: at least one statistic is required")

    @property
    def statistic_count(self) -> int:
        return len(self.statistic_names)

    def with_schema(self, schema: ChromosomeSchema) -> GenomeKind:
        """Same kind bound to another (e.g. adapted) schema."""
        return GenomeKind(self.identifier, schema, self.statistic_names, self.settings)


class SchemaRegistry:
    """Lookup of registered genome kinds by identifier."""

    def __init__(self, kinds: list[GenomeKind] | None = None):
        self._kinds: dict[str, GenomeKind] = {}
        for kind in kinds or []:
            self.register(kind)

    def register(self, kind: GenomeKind) -> GenomeKind:
        if kind.identifier in self._kinds:
            raise SchemaError(f"Genome kind {kind.identifier!r} is already registered")
        self._kinds[kind.identifier] = kind
        logger.info(
            "Registered genome kind",
            kind=kind.identifier,
            binary_size=kind.schema.binary_size,
            statistics=list(kind.statistic_names),
        )
        return kind

    def get(self, identifier: str) -> GenomeKind:
        try:
            return self._kinds[identifier]
        except KeyError:
            logger.error("Unknown genome kind", kind=identifier)
            raise SchemaMismatchError(f"Genome kind {identifier!r} is not registered") from None

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._kinds

    def __iter__(self) -> Iterator[GenomeKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


__all__ = ["GenomeKind", "SchemaRegistry"]
