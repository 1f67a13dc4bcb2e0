"""
Binary Primitives

Little-endian readers and writers used by the gene codecs, the schema type
descriptor and the evolution-line file format.

Layout:
- int32: 4 bytes, little-endian, two's complement
- float64: 8 bytes, little-endian IEEE-754
- string: 7-bit variable-length byte count followed by UTF-8 bytes

Author: Evoline Team
Python: 3.11+
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO

from ..exceptions import DecodeError, PreconditionError


_INT32 = struct.Struct("<i")
_FLOAT64 = struct.Struct("<d")

INT32_SIZE = _INT32.size
FLOAT64_SIZE = _FLOAT64.size

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Reads at least this large are checked against the stream length first
_LARGE_READ = 1 << 16


class BinaryWriter:
    """Writes primitive values to a binary stream."""

    def __init__(self, stream: BinaryIO | None = None):
        self.stream = stream if stream is not None else io.BytesIO()

    def tell(self) -> int:
        return self.stream.tell()

    def write_int32(self, value: int) -> None:
        if not INT32_MIN <= value <= INT32_MAX:
            raise PreconditionError(f"Value {value} does not fit in int32")
        self.stream.write(_INT32.pack(value))

    def write_double(self, value: float) -> None:
        self.stream.write(_FLOAT64.pack(value))

    def write_string(self, value: str) -> None:
        data = value.encode("utf-8")
        length = len(data)
        # 7-bit varint length prefix
        while length >= 0x80:
            self.stream.write(bytes([(length & 0x7F) | 0x80]))
            length >>= 7
        self.stream.write(bytes([length]))
        self.stream.write(data)

    def write_bytes(self, data: bytes) -> None:
        self.stream.write(data)

    def getvalue(self) -> bytes:
        """Return everything written so far (in-memory streams only)."""
        return self.stream.getvalue()


class BinaryReader:
    """Reads primitive values from a binary stream."""

    def __init__(self, stream: BinaryIO | bytes):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        self.stream = stream

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, position: int) -> None:
        self.stream.seek(position)

    def remaining(self) -> int | None:
        """Bytes left before the end of the stream (None if not seekable)."""
        if not self.stream.seekable():
            return None
        position = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(position)
        return end - position

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise PreconditionError(f"Cannot read a negative byte count ({count})")
        if count >= _LARGE_READ:
            remaining = self.remaining()
            if remaining is not None and count > remaining:
                raise DecodeError(
                    f"Unexpected end of stream: wanted {count} bytes, {remaining} left"
                )
        data = self.stream.read(count)
        if len(data) != count:
            raise DecodeError(
                f"Unexpected end of stream: wanted {count} bytes, got {len(data)}"
            )
        return data

    def read_int32(self) -> int:
        return _INT32.unpack(self.read_bytes(INT32_SIZE))[0]

    def read_double(self) -> float:
        return _FLOAT64.unpack(self.read_bytes(FLOAT64_SIZE))[0]

    def read_string(self) -> str:
        length = 0
        shift = 0
        while True:
            byte = self.read_bytes(1)[0]
            length |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
            shift += 7
            if shift > 28:
                raise DecodeError("String length prefix is malformed")
        try:
            return self.read_bytes(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"String is not valid UTF-8: {e}") from e


__all__ = [
    "BinaryWriter",
    "BinaryReader",
    "INT32_SIZE",
    "FLOAT64_SIZE",
    "INT32_MIN",
    "INT32_MAX",
]
