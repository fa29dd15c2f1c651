from __future__ import annotations

import io
import logging

from .constants import (
    FILE_CODE,
    HEADER_LENGTH,
    HEADER_WORDS,
    NULL,
    SHAPETYPE_LOOKUP,
    VERSION,
    ZM_SHAPETYPES,
)
from .endian import EndianReader, EndianWriter
from .exceptions import HeaderError
from .types import BBox, MBox, ReadableBinStream, WriteSeekableBinStream, ZBox

logger = logging.getLogger(__name__)


class ShapefileHeader:
    """The fixed 100 byte header shared by .shp and .shx files.
    fileLength is in 16-bit words, as stored on disk."""

    def __init__(
        self,
        shapeType: int = NULL,
        fileLength: int = HEADER_WORDS,
        bbox: BBox = (0.0, 0.0, 0.0, 0.0),
        zbox: ZBox = (0.0, 0.0),
        mbox: MBox = (0.0, 0.0),
        version: int = VERSION,
        fileCode: int = FILE_CODE,
    ):
        self.fileCode = fileCode
        self.fileLength = fileLength
        self.version = version
        self.shapeType = shapeType
        self.bbox = bbox
        self.zbox = zbox
        self.mbox = mbox

    @property
    def shapeTypeName(self) -> str:
        return SHAPETYPE_LOOKUP.get(self.shapeType, f"UNKNOWN({self.shapeType})")

    @property
    def hasZM(self) -> bool:
        return self.shapeType in ZM_SHAPETYPES

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShapefileHeader):
            return NotImplemented
        return (
            self.fileCode,
            self.fileLength,
            self.version,
            self.shapeType,
            tuple(self.bbox),
            tuple(self.zbox),
            tuple(self.mbox),
        ) == (
            other.fileCode,
            other.fileLength,
            other.version,
            other.shapeType,
            tuple(other.bbox),
            tuple(other.zbox),
            tuple(other.mbox),
        )

    def __repr__(self) -> str:
        return (
            f"ShapefileHeader(shapeType={self.shapeTypeName}, "
            f"fileLength={self.fileLength}, bbox={self.bbox})"
        )


def read_header(f: ReadableBinStream) -> ShapefileHeader:
    """Reads the header from the current position (normally 0) of a .shp
    or .shx file. Z and M ranges are only taken from the header for shape
    types that carry them; legacy files can hold garbage there otherwise."""
    data = f.read(HEADER_LENGTH)
    if len(data) < HEADER_LENGTH:
        raise HeaderError(
            f"Shapefile header is {len(data)} bytes, expected {HEADER_LENGTH}. (likely corrupt?)"
        )
    r = EndianReader(io.BytesIO(data))
    fileCode = r.read_i32_be()
    if fileCode != FILE_CODE:
        logger.warning(
            "Unexpected file code %d in shapefile header (expected %d).",
            fileCode,
            FILE_CODE,
        )
    # Unused bytes
    r.skip(20)
    # File length (16-bit words)
    fileLength = r.read_i32_be()
    version = r.read_i32_le()
    shapeType = r.read_i32_le()
    bbox: BBox = r.read_f64s_le(4)  # type: ignore[assignment]
    zbox: ZBox = (0.0, 0.0)
    mbox: MBox = (0.0, 0.0)
    if shapeType in ZM_SHAPETYPES:
        zbox = r.read_f64s_le(2)  # type: ignore[assignment]
        mbox = r.read_f64s_le(2)  # type: ignore[assignment]
    # The rest is padding up to byte 100
    header = ShapefileHeader(
        shapeType=shapeType,
        fileLength=fileLength,
        bbox=bbox,
        zbox=zbox,
        mbox=mbox,
        version=version,
        fileCode=fileCode,
    )
    logger.debug("Read %r", header)
    return header


def write_header(f: WriteSeekableBinStream, header: ShapefileHeader) -> int:
    """Writes the header at the start of f, leaving f positioned at byte 100."""
    f.seek(0)
    w = EndianWriter(f)
    # File code, Unused bytes
    w.write_i32_be(header.fileCode)
    w.write_bytes(b"\x00" * 20)
    # File length (Bytes / 2 = 16-bit words)
    w.write_i32_be(header.fileLength)
    # Version, Shape type
    w.write_i32_le(header.version)
    w.write_i32_le(header.shapeType)
    # The shapefile's bounding box (lower left, upper right)
    w.write_f64s_le(list(header.bbox))
    if header.hasZM:
        w.write_f64s_le([header.zbox[0], header.zbox[1]])
        w.write_f64s_le([header.mbox[0], header.mbox[1]])
    else:
        # Reserved for types without elevation or measure
        w.write_f64s_le([0.0, 0.0, 0.0, 0.0])
    return w.bytes_written
