"""
Evoline Storage

Evolution lines persisted to a single binary file, fully loaded or paged in
on demand.

Author: Evoline Team
Python: 3.11+
"""

from .line_file import FILE_FORMAT_VERSION, FileBackedEvolutionLine
from .lazy_line import LazyEvolutionLine
from .factory import create_line, open_line, line_class

__all__ = [
    "FILE_FORMAT_VERSION",
    "FileBackedEvolutionLine",
    "LazyEvolutionLine",
    "create_line",
    "open_line",
    "line_class",
]
