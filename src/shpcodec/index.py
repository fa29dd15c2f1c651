from __future__ import annotations

import logging
from typing import NamedTuple

from .constants import HEADER_LENGTH, HEADER_WORDS, INDEX_RECORD_WORDS
from .endian import EndianReader, EndianWriter
from .exceptions import (
    HeaderError,
    IndexUnavailableError,
    ShapefileException,
    TruncatedReadError,
)
from .header import ShapefileHeader, read_header
from .types import ReadSeekableBinStream, WriteableBinStream

logger = logging.getLogger(__name__)


class IndexRecord(NamedTuple):
    offset: int  # 16-bit words from the start of the .shp file
    content_length: int  # 16-bit words

    @property
    def byte_offset(self) -> int:
        return 2 * self.offset


def shape_count_from_header(header: ShapefileHeader) -> int:
    """Number of index entries implied by the .shx file length."""
    return max(0, (header.fileLength - HEADER_WORDS) // INDEX_RECORD_WORDS)


def read_index(
    shx: ReadSeekableBinStream, shape_count: int | None = None
) -> list[IndexRecord]:
    """Reads the offset/length pairs of a .shx file.

    The index carries no record count of its own, so shape_count should
    be the number of shapes already read from the .shp file. If it is
    None the count is derived from the header file length instead.
    Any short read raises IndexUnavailableError."""
    try:
        shx.seek(0)
        header = read_header(shx)
        if shape_count is None:
            shape_count = shape_count_from_header(header)
        shx.seek(HEADER_LENGTH)
        r = EndianReader(shx)
        records = []
        for i in range(shape_count):
            try:
                offset, content_length = r.read_2_i32_be()
            except TruncatedReadError:
                raise IndexUnavailableError(
                    f"Index file ends at record {i + 1}, expected {shape_count} records."
                )
            records.append(IndexRecord(offset, content_length))
    except HeaderError as e:
        raise IndexUnavailableError(f"Unable to read index header: {e}") from e
    logger.debug("Read %d index records.", len(records))
    return records


def write_index_record(shx: WriteableBinStream, offset: int, content_length: int) -> int:
    """Writes one .shx entry. offset and content_length are in 16-bit words."""
    w = EndianWriter(shx)
    try:
        w.write_i32_be(offset)
    except ShapefileException:
        raise ShapefileException(
            "The .shp file has reached its file size limit > 4294967294 bytes (4.29 GB). To fix this, break up your file into multiple smaller ones."
        )
    w.write_i32_be(content_length)
    return w.bytes_written
