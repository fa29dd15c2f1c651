from __future__ import annotations


class ShapefileException(Exception):
    """An exception to handle shapefile specific problems."""


class ShapefileIOError(ShapefileException, OSError):
    """A constituent file could not be opened, read or written."""


class TruncatedReadError(ShapefileException, EOFError):
    """Fewer bytes were available than a fixed width field needs."""

    def __init__(self, wanted: int, bytes_read: int):
        super().__init__(f"Expected {wanted} bytes, got {bytes_read}.")
        self.wanted = wanted
        self.bytes_read = bytes_read


class HeaderError(ShapefileException):
    """The 100 byte .shp/.shx header is short or unreadable."""


class UnsupportedShapeTypeError(ShapefileException):
    pass


class IndexUnavailableError(ShapefileException):
    """The .shx index could not be opened or is truncated. Never fatal to a read."""


class RecordError(ShapefileException):
    """A geometry record could not be decoded.

    The shapes decoded before the damaged record are kept in .shapes
    so callers can use the partial result."""

    def __init__(self, message: str, shapes: list | None = None):
        super().__init__(message)
        self.shapes = shapes if shapes is not None else []


class TruncatedRecordError(RecordError):
    """A geometry record ended after its shape type was read."""


class CorruptRecordError(RecordError):
    """A geometry record's own fields disagree, e.g. part positions
    beyond its point count."""
