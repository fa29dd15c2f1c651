"""
Fixed width integer and double I/O in either byte order.

Shapefiles mix big-endian integers (file code, lengths, record numbers,
index entries) with little-endian integers and doubles (everything else),
so every field is read through an explicit byte order.
"""

from __future__ import annotations

from struct import Struct, error

from .exceptions import ShapefileException, TruncatedReadError
from .types import ReadableBinStream, WriteableBinStream

_I32_BE = Struct(">i")
_I32_LE = Struct("<i")
_I16_LE = Struct("<h")
_F64_BE = Struct(">d")
_F64_LE = Struct("<d")

unpack_2_int32_be = Struct(">2i").unpack


class EndianReader:
    """Reads fixed width fields from a binary stream. A short read is
    never returned silently, it raises TruncatedReadError."""

    def __init__(self, stream: ReadableBinStream):
        self.stream = stream

    def read_exact(self, size: int) -> bytes:
        data = self.stream.read(size)
        if len(data) != size:
            raise TruncatedReadError(size, len(data))
        return data

    def skip(self, size: int) -> None:
        if size > 0:
            self.read_exact(size)

    def tell(self) -> int:
        return self.stream.tell()  # type: ignore[attr-defined]

    def read_i32_be(self) -> int:
        return _I32_BE.unpack(self.read_exact(4))[0]

    def read_i32_le(self) -> int:
        return _I32_LE.unpack(self.read_exact(4))[0]

    def read_i16_le(self) -> int:
        return _I16_LE.unpack(self.read_exact(2))[0]

    def read_f64_be(self) -> float:
        return _F64_BE.unpack(self.read_exact(8))[0]

    def read_f64_le(self) -> float:
        return _F64_LE.unpack(self.read_exact(8))[0]

    def read_2_i32_be(self) -> tuple[int, int]:
        return unpack_2_int32_be(self.read_exact(8))

    def read_i32s_le(self, n: int) -> tuple[int, ...]:
        if n <= 0:
            return ()
        return Struct(f"<{n}i").unpack(self.read_exact(4 * n))

    def read_f64s_le(self, n: int) -> tuple[float, ...]:
        if n <= 0:
            return ()
        return Struct(f"<{n}d").unpack(self.read_exact(8 * n))


class EndianWriter:
    """Writes fixed width fields to a binary stream and counts the bytes
    written, so callers can check a record against its computed length."""

    def __init__(self, stream: WriteableBinStream):
        self.stream = stream
        self.bytes_written = 0

    def _write(self, s: Struct, *values: float) -> int:
        try:
            n = self.stream.write(s.pack(*values))
        except error:
            raise ShapefileException(
                f"Failed to pack {values!r} as {s.format!r}. Numbers required."
            )
        self.bytes_written += n
        return n

    def write_bytes(self, b: bytes) -> int:
        n = self.stream.write(b)
        self.bytes_written += n
        return n

    def write_i32_be(self, value: int) -> int:
        return self._write(_I32_BE, value)

    def write_i32_le(self, value: int) -> int:
        return self._write(_I32_LE, value)

    def write_i16_le(self, value: int) -> int:
        return self._write(_I16_LE, value)

    def write_f64_be(self, value: float) -> int:
        return self._write(_F64_BE, value)

    def write_f64_le(self, value: float) -> int:
        return self._write(_F64_LE, value)

    def write_i32s_le(self, values: list[int]) -> int:
        if not values:
            return 0
        return self._write(Struct(f"<{len(values)}i"), *values)

    def write_f64s_le(self, values: list[float]) -> int:
        if not values:
            return 0
        return self._write(Struct(f"<{len(values)}d"), *values)
