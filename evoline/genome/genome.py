"""
Genome Instances

A genome is one individual's concrete data: one allele per gene of its
schema and one child genome per subschema. Child genomes are owned by their
parent, so genome instances always form a tree. Equality is by value.

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping


class Genome:
    """Concrete alleles and child genomes for one genome kind."""

    __slots__ = ("kind", "genes", "children")

    def __init__(
        self,
        kind: str,
        genes: Mapping[str, Any] | None = None,
        children: Mapping[str, Genome] | None = None,
    ):
        self.kind = kind
        self.genes: dict[str, Any] = dict(genes or {})
        self.children: dict[str, Genome] = dict(children or {})

    def __getitem__(self, name: str) -> Any:
        """Look up a gene value or a child genome by field name."""
        if name in self.genes:
            return self.genes[name]
        if name in self.children:
            return self.children[name]
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return name in self.genes or name in self.children

    def __iter__(self) -> Iterator[str]:
        yield from self.genes
        yield from self.children

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.genes == other.genes
            and self.children == other.children
        )

    __hash__ = None

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.genes.items())
        nested = ", ".join(f"{k}={v!r}" for k, v in self.children.items())
        body = ", ".join(part for part in (fields, nested) if part)
        return f"{self.kind}({body})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary (enum alleles as member names)."""
        data: dict[str, Any] = {
            name: getattr(value, "name", value) for name, value in self.genes.items()
        }
        for name, child in self.children.items():
            data[name] = child.to_dict()
        return data


__all__ = ["Genome"]
