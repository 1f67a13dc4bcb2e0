"""
Evoline exception hierarchy.

Every failure raised by the genome codec and the evolution-line store is a
subclass of :class:`EvolineError`, so drivers can catch the whole family at
once or react to a specific kind.

Author: Evoline Team
Python: 3.11+
"""


class EvolineError(Exception):
    """Base for all Evoline exceptions."""

    pass


class SchemaError(EvolineError, ValueError):
    """A chromosome schema or gene domain was defined incorrectly."""

    pass


class DecodeError(EvolineError):
    """A stored value failed its domain's validity check, or the stream ended early."""

    pass


class SchemaMismatchError(EvolineError):
    """Stored field names (or genome kind) do not match the live schema."""

    pass


class CorruptFileError(EvolineError):
    """An evolution-line file is structurally inconsistent."""

    pass


class FileBusyError(EvolineError):
    """The evolution-line file is already held by another read or write."""

    pass


class PreconditionError(EvolineError, ValueError):
    """A caller passed arguments that violate an operation's contract."""

    pass


__all__ = [
    "EvolineError",
    "SchemaError",
    "DecodeError",
    "SchemaMismatchError",
    "CorruptFileError",
    "FileBusyError",
    "PreconditionError",
]
