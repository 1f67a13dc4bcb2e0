"""
Chromosome Schemas

A ChromosomeSchema is the self-describing structure of one genome kind: an
ordered list of genes followed by an ordered list of nested subschemas. It
knows how to:
- generate random genomes
- combine two parents into two children (uniform crossover + mutation)
- encode/decode genomes in a fixed-size binary layout
- write a type descriptor of its field names, and adapt itself to a
  descriptor written by an older field ordering

Schemas are declared explicitly (see SchemaBuilder) once per genome kind and
shared by every genome of that kind.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import random
from collections import Counter
from typing import TYPE_CHECKING, Iterable, Sequence

from loguru import logger

from . import randomness
from .binary import BinaryReader, BinaryWriter
from .genes import BoundedInt, BoundedReal, EnumDomain, GeneDomain, GeneSpec, SubSchemaSpec
from .genome import Genome
from ..exceptions import DecodeError, PreconditionError, SchemaError, SchemaMismatchError

if TYPE_CHECKING:
    from enum import Enum

    from .operators import GeneticProbabilityProvider


# =============================================================================
# Chromosome Schema
# =============================================================================


class ChromosomeSchema:
    """
    Structural definition of a genome kind.

    Field names are unique across genes and subschemas. The binary size is
    fixed; it is computed once from the field sizes and cross-checked against
    the length of an actually encoded random genome.
    """

    def __init__(
        self,
        kind: str,
        genes: Sequence[GeneSpec],
        subschemas: Sequence[SubSchemaSpec] = (),
    ):
        """
        Initialize a schema.

        Args:
            kind: Genome kind identifier (stored in every evolution-line file)
            genes: Scalar fields, in declaration order
            subschemas: Nested genome fields, in declaration order

        Raises:
            SchemaError: Empty kind, duplicate field names, or a size mismatch
        """
        if not kind:
            raise SchemaError("Schema kind must not be empty")

        self.kind = kind
        self.genes: tuple[GeneSpec, ...] = tuple(genes)
        self.subschemas: tuple[SubSchemaSpec, ...] = tuple(subschemas)

        duplicates = [
            name for name, count in Counter(self.field_names).items() if count > 1
        ]
        if duplicates:
            raise SchemaError(f"Duplicate field names in {kind}: {duplicates}")

        self.binary_size = self._computed_size()

        measured = self._measure_size()
        if measured != self.binary_size:
            raise SchemaError(
                f"{kind}: encoded size {measured} differs from declared size {self.binary_size}"
            )

        logger.debug(
            "Schema constructed",
            kind=kind,
            genes=len(self.genes),
            subschemas=len(self.subschemas),
            binary_size=self.binary_size,
        )

    @classmethod
    def _adapted(
        cls,
        kind: str,
        genes: Sequence[GeneSpec],
        subschemas: Sequence[SubSchemaSpec],
        expected_size: int,
    ) -> ChromosomeSchema:
        """Build a reordered copy without re-measuring; sizes must agree."""
        schema = cls.__new__(cls)
        schema.kind = kind
        schema.genes = tuple(genes)
        schema.subschemas = tuple(subschemas)
        schema.binary_size = schema._computed_size()
        if schema.binary_size != expected_size:
            raise SchemaError(
                f"{kind}: adapted size {schema.binary_size} differs from "
                f"original size {expected_size}"
            )
        return schema

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def gene_names(self) -> tuple[str, ...]:
        return tuple(gene.name for gene in self.genes)

    @property
    def subschema_names(self) -> tuple[str, ...]:
        return tuple(sub.name for sub in self.subschemas)

    @property
    def field_names(self) -> tuple[str, ...]:
        return self.gene_names + self.subschema_names

    def gene(self, name: str) -> GeneSpec:
        for gene in self.genes:
            if gene.name == name:
                return gene
        raise KeyError(name)

    def subschema(self, name: str) -> SubSchemaSpec:
        for sub in self.subschemas:
            if sub.name == name:
                return sub
        raise KeyError(name)

    def describe(self) -> dict:
        """Nested field-name layout, in storage order."""
        return {
            "kind": self.kind,
            "genes": list(self.gene_names),
            "subschemas": {sub.name: sub.schema.describe() for sub in self.subschemas},
        }

    def __repr__(self) -> str:
        return (
            f"ChromosomeSchema(kind={self.kind!r}, genes={list(self.gene_names)}, "
            f"subschemas={list(self.subschema_names)}, binary_size={self.binary_size})"
        )

    def _computed_size(self) -> int:
        return sum(gene.binary_size for gene in self.genes) + sum(
            sub.binary_size for sub in self.subschemas
        )

    def _measure_size(self) -> int:
        # Private generator so measuring never consumes shared draws
        return len(self.encode(self.generate_random(random.Random(0))))

    # -------------------------------------------------------------------------
    # Genetic operations
    # -------------------------------------------------------------------------

    def generate_random(self, rng: random.Random | None = None) -> Genome:
        """Create a genome with a random allele for every gene, recursively."""
        rng = randomness.resolve(rng)
        genes = {gene.name: gene.domain.random(rng) for gene in self.genes}
        children = {sub.name: sub.schema.generate_random(rng) for sub in self.subschemas}
        return Genome(self.kind, genes, children)

    def combine(
        self,
        parent1: Genome,
        parent2: Genome,
        crossover: bool,
        probability_provider: GeneticProbabilityProvider,
        rng: random.Random | None = None,
    ) -> tuple[Genome, Genome]:
        """
        Combine two parents into two children.

        For each gene in order: when ``crossover`` is set, an independent coin
        toss decides whether the parents' alleles swap between the children
        (uniform crossover). Each child's allele then mutates independently
        when ``probability_provider.should_mutate()`` says so. Subschemas
        recurse with the same crossover flag.

        Args:
            parent1: First parent
            parent2: Second parent
            crossover: Whether crossover applies to this whole genome tree
            probability_provider: Source of mutation decisions
            rng: Generator for coin tosses and mutations

        Returns:
            (child1, child2)
        """
        rng = randomness.resolve(rng)
        genes1: dict = {}
        genes2: dict = {}

        for gene in self.genes:
            value1 = parent1.genes[gene.name]
            value2 = parent2.genes[gene.name]

            if crossover and randomness.coin_toss(rng):
                value1, value2 = value2, value1

            if probability_provider.should_mutate():
                value1 = gene.domain.mutate(value1, rng)
            if probability_provider.should_mutate():
                value2 = gene.domain.mutate(value2, rng)

            genes1[gene.name] = value1
            genes2[gene.name] = value2

        children1: dict = {}
        children2: dict = {}
        for sub in self.subschemas:
            children1[sub.name], children2[sub.name] = sub.schema.combine(
                parent1.children[sub.name],
                parent2.children[sub.name],
                crossover,
                probability_provider,
                rng,
            )

        return Genome(self.kind, genes1, children1), Genome(self.kind, genes2, children2)

    def reproduce(
        self,
        parent1: Genome,
        parent2: Genome,
        probability_provider: GeneticProbabilityProvider,
        rng: random.Random | None = None,
    ) -> tuple[Genome, Genome]:
        """Combine two parents, letting the provider decide on crossover once."""
        crossover = probability_provider.should_crossover()
        return self.combine(parent1, parent2, crossover, probability_provider, rng)

    # -------------------------------------------------------------------------
    # Binary codec
    # -------------------------------------------------------------------------

    def to_binary(self, genome: Genome, writer: BinaryWriter) -> None:
        """Write a genome depth-first: genes, then subschemas, in schema order."""
        if genome.kind != self.kind:
            raise PreconditionError(
                f"Cannot encode a {genome.kind} genome with the {self.kind} schema"
            )
        for gene in self.genes:
            try:
                value = genome.genes[gene.name]
            except KeyError:
                raise PreconditionError(
                    f"{self.kind} genome is missing gene {gene.name!r}"
                ) from None
            gene.domain.encode(value, writer)

        for sub in self.subschemas:
            try:
                child = genome.children[sub.name]
            except KeyError:
                raise PreconditionError(
                    f"{self.kind} genome is missing subgenome {sub.name!r}"
                ) from None
            sub.schema.to_binary(child, writer)

    def from_binary(self, reader: BinaryReader) -> Genome:
        """Read one genome laid out in this schema's field order."""
        genes = {gene.name: gene.domain.decode(reader) for gene in self.genes}
        children = {sub.name: sub.schema.from_binary(reader) for sub in self.subschemas}
        return Genome(self.kind, genes, children)

    def encode(self, genome: Genome) -> bytes:
        writer = BinaryWriter()
        self.to_binary(genome, writer)
        return writer.getvalue()

    def decode(self, data: bytes) -> Genome:
        return self.from_binary(BinaryReader(data))

    # -------------------------------------------------------------------------
    # Type descriptor
    # -------------------------------------------------------------------------

    def write_type_descriptor(self, writer: BinaryWriter) -> None:
        """Write gene names, then each subschema name with its nested descriptor."""
        writer.write_int32(len(self.genes))
        for gene in self.genes:
            writer.write_string(gene.name)

        writer.write_int32(len(self.subschemas))
        for sub in self.subschemas:
            writer.write_string(sub.name)
            sub.schema.write_type_descriptor(writer)

    def adapt_to_descriptor(self, reader: BinaryReader) -> ChromosomeSchema:
        """
        Reorder this schema to match a stored type descriptor.

        The stored names must be exactly this schema's names, in any order.
        Subschemas adapt recursively.

        Args:
            reader: Reader positioned at a type descriptor

        Returns:
            A schema with the stored field order and the live gene domains

        Raises:
            SchemaMismatchError: Stored and live field names differ
        """
        gene_count = _read_count(reader, "gene")
        stored_genes = [reader.read_string() for _ in range(gene_count)]
        _check_names(self.kind, "gene", stored_genes, self.gene_names)
        adapted_genes = [self.gene(name) for name in stored_genes]

        sub_count = _read_count(reader, "subschema")
        adapted_subs: list[SubSchemaSpec] = []
        for _ in range(sub_count):
            name = reader.read_string()
            try:
                live = self.subschema(name)
            except KeyError:
                logger.error("Unknown stored subschema", kind=self.kind, name=name)
                raise SchemaMismatchError(
                    f"{self.kind}: stored subschema {name!r} is not in the current schema"
                ) from None
            adapted_subs.append(SubSchemaSpec(name, live.schema.adapt_to_descriptor(reader)))
        _check_names(
            self.kind, "subschema", [sub.name for sub in adapted_subs], self.subschema_names
        )

        return ChromosomeSchema._adapted(self.kind, adapted_genes, adapted_subs, self.binary_size)


def _read_count(reader: BinaryReader, what: str) -> int:
    count = reader.read_int32()
    if count < 0:
        raise DecodeError(f"Negative {what} count ({count}) in type descriptor")
    return count


def _check_names(kind: str, what: str, stored: Iterable[str], live: Iterable[str]) -> None:
    stored_counts = Counter(stored)
    live_counts = Counter(live)
    if stored_counts == live_counts:
        return

    missing = sorted((live_counts - stored_counts).elements())
    unexpected = sorted((stored_counts - live_counts).elements())
    logger.error(
        "Stored field names do not match schema",
        kind=kind,
        field=what,
        missing=missing,
        unexpected=unexpected,
    )
    raise SchemaMismatchError(
        f"{kind}: stored {what} names do not match the current schema "
        f"(missing: {missing}, unexpected: {unexpected})"
    )


# =============================================================================
# Declarative construction
# =============================================================================


class SchemaBuilder:
    """
    Fluent, declarative schema construction.

    Example:
        >>> schema = (
        ...     SchemaBuilder("Lion")
        ...     .real("speed", 0.0, 1.0)
        ...     .integer("patience", 0, 9)
        ...     .build()
        ... )
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._genes: list[GeneSpec] = []
        self._subschemas: list[SubSchemaSpec] = []

    def gene(self, name: str, domain: GeneDomain) -> SchemaBuilder:
        self._genes.append(GeneSpec(name, domain))
        return self

    def real(self, name: str, minimum: float = 0.0, maximum: float = 1.0) -> SchemaBuilder:
        return self.gene(name, BoundedReal(minimum, maximum))

    def integer(self, name: str, minimum: int, maximum: int) -> SchemaBuilder:
        return self.gene(name, BoundedInt(minimum, maximum))

    def enum(self, name: str, enum_type: type[Enum]) -> SchemaBuilder:
        return self.gene(name, EnumDomain(enum_type))

    def subschema(self, name: str, schema: ChromosomeSchema) -> SchemaBuilder:
        self._subschemas.append(SubSchemaSpec(name, schema))
        return self

    def build(self) -> ChromosomeSchema:
        return ChromosomeSchema(self.kind, self._genes, self._subschemas)


__all__ = [
    "ChromosomeSchema",
    "SchemaBuilder",
]
