"""
Gene Domains and Field Specifications

A gene is one scalar field of a genome. Its value domain decides how a
random allele is drawn, how the allele mutates, and how it is written to and
read from the fixed-width binary layout.

Supported domains:
- BoundedReal: float in [minimum, maximum], mutation is a fresh full-range draw
- BoundedInt: int in [minimum, maximum], mutation always changes the value
- EnumDomain: member of an Enum, mutation always changes the member

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from .binary import INT32_MAX, INT32_MIN, INT32_SIZE, FLOAT64_SIZE, BinaryReader, BinaryWriter
from ..exceptions import DecodeError, PreconditionError, SchemaError

if TYPE_CHECKING:
    from .schema import ChromosomeSchema


T = TypeVar("T")


# =============================================================================
# Gene Domains
# =============================================================================


class GeneDomain(ABC, Generic[T]):
    """Value domain of a single gene: draw, mutate, encode, decode."""

    binary_size: ClassVar[int]

    @abstractmethod
    def random(self, rng: random.Random) -> T:
        """Uniform draw over the domain."""

    @abstractmethod
    def mutate(self, value: T, rng: random.Random) -> T:
        """Return the mutated allele for ``value``."""

    @abstractmethod
    def is_valid(self, value: Any) -> bool:
        """Whether ``value`` belongs to the domain."""

    @abstractmethod
    def _write(self, value: T, writer: BinaryWriter) -> None: ...

    @abstractmethod
    def _read(self, reader: BinaryReader) -> Any: ...

    def encode(self, value: T, writer: BinaryWriter) -> None:
        """Write ``value`` in this domain's fixed-width layout."""
        if not self.is_valid(value):
            raise PreconditionError(f"Cannot encode {value!r}: outside {self!r}")
        self._write(value, writer)

    def decode(self, reader: BinaryReader) -> T:
        """Read a value, failing with DecodeError if it is outside the domain."""
        value = self._read(reader)
        if not self.is_valid(value):
            raise DecodeError(f"Decoded value {value!r} is outside {self!r}")
        return value


@dataclass(frozen=True)
class BoundedReal(GeneDomain[float]):
    """Real-valued gene in ``[minimum, maximum]``."""

    minimum: float = 0.0
    maximum: float = 1.0

    binary_size: ClassVar[int] = FLOAT64_SIZE

    def __post_init__(self) -> None:
        if not (math.isfinite(self.minimum) and math.isfinite(self.maximum)):
            raise SchemaError("BoundedReal bounds must be finite")
        if self.minimum >= self.maximum:
            raise SchemaError(
                f"BoundedReal minimum ({self.minimum}) must be < maximum ({self.maximum})"
            )
        if not math.isfinite(self.maximum - self.minimum):
            raise SchemaError(
                f"BoundedReal range [{self.minimum}, {self.maximum}] is too wide to sample"
            )

    def random(self, rng: random.Random) -> float:
        return rng.random() * (self.maximum - self.minimum) + self.minimum

    def mutate(self, value: float, rng: random.Random) -> float:
        # Full-range replacement, not a perturbation
        return self.random(rng)

    def is_valid(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return not math.isnan(value) and self.minimum <= value <= self.maximum

    def _write(self, value: float, writer: BinaryWriter) -> None:
        writer.write_double(float(value))

    def _read(self, reader: BinaryReader) -> float:
        return reader.read_double()


@dataclass(frozen=True)
class BoundedInt(GeneDomain[int]):
    """Integer gene in ``[minimum, maximum]`` (both inclusive)."""

    minimum: int = 0
    maximum: int = 1

    binary_size: ClassVar[int] = INT32_SIZE

    def __post_init__(self) -> None:
        if not (INT32_MIN <= self.minimum and self.maximum <= INT32_MAX):
            raise SchemaError("BoundedInt bounds must fit in int32")
        if self.minimum >= self.maximum:
            raise SchemaError(
                f"BoundedInt needs at least two values "
                f"(minimum={self.minimum}, maximum={self.maximum})"
            )

    @property
    def cardinality(self) -> int:
        return self.maximum - self.minimum + 1

    def random(self, rng: random.Random) -> int:
        return rng.randint(self.minimum, self.maximum)

    def mutate(self, value: int, rng: random.Random) -> int:
        # Draw from the N-1 other values by skipping past the current one
        allele = rng.randrange(self.minimum, self.maximum)
        if allele >= value:
            allele += 1
        return allele

    def is_valid(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return self.minimum <= value <= self.maximum

    def _write(self, value: int, writer: BinaryWriter) -> None:
        writer.write_int32(value)

    def _read(self, reader: BinaryReader) -> int:
        return reader.read_int32()


@dataclass(frozen=True)
class EnumDomain(GeneDomain[Enum]):
    """Gene holding a member of an Enum; stored as the member's int32 index."""

    enum_type: type[Enum]
    members: tuple[Enum, ...] = field(init=False, repr=False, compare=False)

    binary_size: ClassVar[int] = INT32_SIZE

    def __post_init__(self) -> None:
        if not (isinstance(self.enum_type, type) and issubclass(self.enum_type, Enum)):
            raise SchemaError(f"{self.enum_type!r} is not an Enum type")
        members = tuple(self.enum_type)
        if len(members) < 2:
            raise SchemaError(f"{self.enum_type.__name__} needs at least two members")
        object.__setattr__(self, "members", members)

    def random(self, rng: random.Random) -> Enum:
        return self.members[rng.randrange(len(self.members))]

    def mutate(self, value: Enum, rng: random.Random) -> Enum:
        new_index = rng.randrange(len(self.members) - 1)
        if new_index >= self.members.index(value):
            new_index += 1
        return self.members[new_index]

    def is_valid(self, value: Any) -> bool:
        return isinstance(value, self.enum_type)

    def _write(self, value: Enum, writer: BinaryWriter) -> None:
        writer.write_int32(self.members.index(value))

    def _read(self, reader: BinaryReader) -> Any:
        index = reader.read_int32()
        if not 0 <= index < len(self.members):
            raise DecodeError(
                f"Enum index {index} is outside {self.enum_type.__name__} "
                f"(0..{len(self.members) - 1})"
            )
        return self.members[index]


# =============================================================================
# Field Specifications
# =============================================================================


@dataclass(frozen=True)
class GeneSpec:
    """A named scalar field governed by a gene domain."""

    name: str
    domain: GeneDomain

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("Gene name must not be empty")
        if not isinstance(self.domain, GeneDomain):
            raise SchemaError(f"Gene {self.name!r} has no gene domain")

    @property
    def binary_size(self) -> int:
        return self.domain.binary_size


@dataclass(frozen=True)
class SubSchemaSpec:
    """A named field holding a nested genome of another schema."""

    name: str
    schema: ChromosomeSchema

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("Subschema name must not be empty")

    @property
    def binary_size(self) -> int:
        return self.schema.binary_size


__all__ = [
    "GeneDomain",
    "BoundedReal",
    "BoundedInt",
    "EnumDomain",
    "GeneSpec",
    "SubSchemaSpec",
]
