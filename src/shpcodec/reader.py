from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from os import PathLike
from types import TracebackType
from typing import IO, Any, Callable

from . import constants
from .constants import (
    FILE_CODE,
    HEADER_LENGTH,
    MULTIPOINT,
    NULL,
    POINT,
    POINTZ,
    POLYGON,
    POLYLINE,
    POLYLINEZ,
    SHAPETYPE_LOOKUP,
)
from .endian import EndianReader
from .exceptions import (
    CorruptRecordError,
    HeaderError,
    IndexUnavailableError,
    RecordError,
    ShapefileException,
    ShapefileIOError,
    TruncatedReadError,
    TruncatedRecordError,
)
from .header import ShapefileHeader, read_header
from .helpers import _Array, constituent_path, fsdecode_if_pathlike, split_shapefile_path
from .index import IndexRecord, read_index, shape_count_from_header
from .shapes import Shape, ShapeKind, Shapes, part_sizes
from .types import BBox, BinaryFileT, LinesT, MBox, PointsT, ZBox

logger = logging.getLogger(__name__)


def is_shapefile(path: str | PathLike[Any]) -> bool:
    """True if path ends in .shp (any case) and the file starts with
    the big-endian file code 9994. Never raises."""
    path = fsdecode_if_pathlike(path)
    if not isinstance(path, str) or not path.upper().endswith(".SHP"):
        return False
    try:
        with open(path, "rb") as f:
            return EndianReader(f).read_i32_be() == FILE_CODE
    except (OSError, ShapefileException):
        return False


def read(path: str | PathLike[Any], **kwargs: Any) -> Shapes:
    """Reads every shape from a shapefile, given with or without the .shp
    extension. A missing or damaged .shx only produces a warning."""
    with Reader(path, **kwargs) as r:
        return r.shapes()


class Reader:
    """Reads the geometry (.shp) and index (.shx) files of a shapefile.

    The .shp file is required and failing to open it raises
    ShapefileIOError. The .shx index is optional: if it cannot be opened
    or is truncated a warning is logged, the problem is kept in
    index_error, and shapes are still read from the .shp file alone.
    The index only speeds up random access with shape(i).

    Only the header is read upon loading. Records are read when shapes()
    or iterShapes() is called, sequentially until the end of the file.
    """

    CONSTITUENT_FILE_EXTS = ["shp", "shx"]
    assert all(ext.islower() for ext in CONSTITUENT_FILE_EXTS)

    def __init__(
        self,
        shapefile_path: str | PathLike[Any] = "",
        /,
        *,
        shp: BinaryFileT | None = None,
        shx: BinaryFileT | None = None,
        discard_defective_points: bool | None = None,
    ):
        self.shp: IO[bytes] | None = None
        self.shx: IO[bytes] | None = None
        self._files_to_close: list[IO[bytes]] = []
        self.shapeName = "Not specified"
        self.header: ShapefileHeader | None = None
        self.numShapes: int | None = None
        self.index_error: IndexUnavailableError | None = None
        self._index: list[IndexRecord] | None = None
        self._offsets: list[int] = []
        self._content_lengths: list[int] = []
        # Reused for the position array of every multi-part record
        self._positions: _Array[int] = _Array[int]("i")
        if discard_defective_points is None:
            discard_defective_points = constants.DISCARD_DEFECTIVE_POINTS
        self.discard_defective_points = discard_defective_points
        self._decoders: dict[int, Callable[[EndianReader, int, int], Shape]] = {
            NULL: self._read_null,
            POINT: self._read_point,
            POINTZ: self._read_point,
            MULTIPOINT: self._read_multipoint,
            POLYLINE: self._read_parts,
            POLYGON: self._read_parts,
            POLYLINEZ: self._read_parts,
        }

        try:
            if shapefile_path:
                self.load(shapefile_path)
            elif shp is not None:
                self.shp = self._wrap_or_open(shp, "shp")
                if shx is not None:
                    try:
                        self.shx = self._wrap_or_open(shx, "shx")
                    except ShapefileIOError as e:
                        self._index_unavailable(e)
                self._read_shp_header()
            else:
                raise ShapefileException(
                    "Shapefile Reader requires a shapefile path or a shp file-like object."
                )
        except BaseException:
            self.close()
            raise

    def __str__(self) -> str:
        """
        Use some general info on the shapefile as __str__
        """
        info = ["shapefile Reader"]
        if self.shp:
            info.append(f"    {len(self)} shapes (type '{self.shapeTypeName}')")
        return "\n".join(info)

    def __enter__(self) -> Reader:
        """
        Enter phase of context manager.
        """
        return self

    def __exit__(
        self,
        exc_type: BaseException | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        """
        Exit phase of context manager, close opened files.
        """
        self.close()
        return None

    def __len__(self) -> int:
        """Returns the number of shapes in the shapefile."""
        if self.numShapes is None and self.shx is not None:
            # The index header gives the count without touching the .shp
            try:
                self.shx.seek(0)
                self.numShapes = shape_count_from_header(read_header(self.shx))
            except HeaderError as e:
                self._index_unavailable(e)
        if self.numShapes is None:
            # Index file not available, read all shapes to get total count
            self.shapes()
        return self.numShapes or 0

    def __iter__(self) -> Iterator[Shape]:
        """Iterates through the shapes in the shapefile."""
        yield from self.iterShapes()

    @property
    def shapeType(self) -> int:
        return self.header.shapeType if self.header else NULL

    @property
    def shapeTypeName(self) -> str:
        return SHAPETYPE_LOOKUP.get(self.shapeType, f"UNKNOWN({self.shapeType})")

    @property
    def bbox(self) -> BBox | None:
        return self.header.bbox if self.header else None

    @property
    def zbox(self) -> ZBox | None:
        return self.header.zbox if self.header else None

    @property
    def mbox(self) -> MBox | None:
        return self.header.mbox if self.header else None

    @property
    def offsets(self) -> list[int]:
        """Byte offset of each record in the .shp file."""
        if not self._offsets and self._load_index():
            assert self._index is not None
            self._offsets = [rec.byte_offset for rec in self._index]
        return self._offsets

    @property
    def content_lengths(self) -> list[int]:
        """Content length of each record in 16-bit words, from the index
        when available, else as found in the record headers."""
        if self._load_index():
            assert self._index is not None
            return [rec.content_length for rec in self._index]
        return self._content_lengths

    def load(self, shapefile: str | PathLike[Any]) -> None:
        """Opens a shapefile given its path, with or without the .shp extension.
        Normally this method would be called by the constructor."""
        shapeName = split_shapefile_path(shapefile)
        self.shapeName = shapeName
        self.load_shp(shapeName)
        try:
            self.load_shx(shapeName)
        except ShapefileIOError as e:
            self._index_unavailable(e)
        self._read_shp_header()

    def _open_constituent_file(self, shapefile_name: str, ext: str) -> IO[bytes]:
        """Opens a .shp or .shx file, trying the upper case extension too,
        and registers it to be closed with the Reader."""
        assert ext in self.CONSTITUENT_FILE_EXTS
        path = constituent_path(shapefile_name, ext)
        try:
            f = open(path, "rb")
        except OSError as e:
            raise ShapefileIOError(f"Unable to open {path}: {e}") from e
        self._files_to_close.append(f)
        return f

    def _wrap_or_open(self, file_: BinaryFileT, ext: str) -> IO[bytes]:
        if isinstance(file_, (str, PathLike)):
            return self._open_constituent_file(split_shapefile_path(file_), ext)

        if hasattr(file_, "read"):
            # Copy if required
            try:
                file_.seek(0)
                return file_
            except (AttributeError, io.UnsupportedOperation):
                return io.BytesIO(file_.read())

        raise ShapefileException(
            f"Could not load shapefile constituent file from: {file_}"
        )

    def load_shp(self, shapefile_name: str) -> None:
        self.shp = self._open_constituent_file(shapefile_name, "shp")

    def load_shx(self, shapefile_name: str) -> None:
        self.shx = self._open_constituent_file(shapefile_name, "shx")

    def __del__(self) -> None:
        self.close()

    def close(self) -> None:
        # Close any files that the reader opened (but not those given by user)
        for attribute in self._files_to_close:
            if hasattr(attribute, "close"):
                try:
                    attribute.close()
                except OSError:
                    pass
        self._files_to_close = []

    def _index_unavailable(self, e: Exception) -> None:
        if not isinstance(e, IndexUnavailableError):
            e = IndexUnavailableError(str(e))
        self.index_error = e
        self.shx = None
        self._index = None
        logger.warning(
            "Unable to read index file for %s.  Only shapes will be available. (%s)",
            self.shapeName,
            e,
        )

    def _read_shp_header(self) -> None:
        """Reads the header information from the .shp file."""
        assert self.shp is not None
        self.shp.seek(0)
        self.header = read_header(self.shp)
        if self.header.shapeType not in self._decoders:
            logger.warning(
                "Shape type %d in the header of %s is not supported. "
                "Records of unsupported types will be read as null shapes.",
                self.header.shapeType,
                self.shapeName,
            )

    def _load_index(self, shape_count: int | None = None) -> bool:
        """Reads the .shx offsets once. Returns False, after logging a
        warning, if the index is missing or unreadable."""
        if self._index is not None:
            return True
        if self.shx is None:
            return False
        try:
            self._index = read_index(self.shx, shape_count)
        except IndexUnavailableError as e:
            self._index_unavailable(e)
            return False
        return True

    def _check_index(self) -> None:
        """Compares record header content lengths with the index entries."""
        assert self._index is not None
        if not constants.VERBOSE:
            return
        for i, (rec, length) in enumerate(zip(self._index, self._content_lengths)):
            if rec.content_length != length:
                logger.warning(
                    "Record %d content length %d does not match index entry %d.",
                    i + 1,
                    length,
                    rec.content_length,
                )

    def shape(self, i: int = 0) -> Shape:
        """Returns the shape at 0-based position i, seeking directly to it
        when the .shx offsets are available."""
        shp = self.__getFileObj()
        if i < 0:
            i = range(len(self))[i]
        if self._load_index():
            assert self._index is not None
            if i >= len(self._index):
                raise IndexError(
                    f"Shape index: {i} out of range.  Max index: {len(self._index) - 1}"
                )
            shp.seek(self._index[i].byte_offset)
            record = self.__shape(EndianReader(shp), i)
            if record is None:
                raise ShapefileException(
                    f"Shape index {i} points past the end of the .shp file."
                )
            return record[0]

        # Shx index not available. Records are self describing, so walk them.
        for n, s in enumerate(self.iterShapes()):
            if n == i:
                return s
        raise IndexError(
            f"Shape index {i} is out of bounds; the .shp file only contains {self.numShapes} shapes"
        )

    def shapes(self) -> Shapes:
        """Returns all shapes in the shapefile.

        If a record is cut short after its shape type, TruncatedRecordError
        is raised, and if its fields are inconsistent, CorruptRecordError.
        Either way the shapes read before it are in the shapes attribute."""
        shapes = Shapes()
        try:
            shapes.extend(self.iterShapes())
        except RecordError as e:
            e.shapes = shapes
            raise
        return shapes

    def iterShapes(self) -> Iterator[Shape]:
        """Returns a generator of shapes in a shapefile. Useful
        for handling large shapefiles."""
        shp = self.__getFileObj()
        shp.seek(HEADER_LENGTH)
        r = EndianReader(shp)
        offsets: list[int] = []
        content_lengths: list[int] = []
        while True:
            pos = r.tell()
            record = self.__shape(r, len(offsets))
            if record is None:
                break
            shape, contentLength = record
            offsets.append(pos)
            content_lengths.append(contentLength)
            yield shape
        # Entire shp file consumed
        self.numShapes = len(offsets)
        self._offsets = offsets
        self._content_lengths = content_lengths
        logger.info("Read %d shapes from %s.", self.numShapes, self.shapeName)
        if self._load_index(self.numShapes):
            self._check_index()

    def __getFileObj(self) -> IO[bytes]:
        if not self.shp:
            raise ShapefileException(
                "Shapefile Reader requires a shapefile or file-like object. (no shp file found)"
            )
        return self.shp

    def __shape(self, r: EndianReader, position: int) -> tuple[Shape, int] | None:
        """Reads the record at 0-based file position. Returns the shape and
        the content length from its record header, or None at a clean end
        of file. The shape's index comes from the record number."""
        try:
            recNum, contentLength = r.read_2_i32_be()
            shapeType = r.read_i32_le()
        except TruncatedReadError as e:
            if e.bytes_read:
                logger.warning(
                    "Ignoring %d trailing bytes at the end of %s.",
                    e.bytes_read,
                    self.shapeName,
                )
            return None
        # Record numbers on disk are 1-based
        index = recNum - 1
        if index != position:
            logger.warning(
                "Record number %d found at position %d, expected %d.",
                recNum,
                position,
                position + 1,
            )
        logger.debug(
            "Record %d: shape type %d, content length %d", recNum, shapeType, contentLength
        )

        decoder = self._decoders.get(shapeType)
        try:
            if decoder is None:
                shape = self._read_unsupported(r, index, shapeType, contentLength)
            else:
                shape = decoder(r, index, shapeType)
        except TruncatedReadError as e:
            raise TruncatedRecordError(
                f"Record {recNum} ({SHAPETYPE_LOOKUP.get(shapeType, shapeType)}) "
                f"in {self.shapeName} is truncated: {e}"
            ) from e
        except ShapefileException as e:
            raise CorruptRecordError(
                f"Record {recNum} ({SHAPETYPE_LOOKUP.get(shapeType, shapeType)}) "
                f"in {self.shapeName} is invalid: {e}"
            ) from e
        return shape, contentLength

    def _read_unsupported(
        self, r: EndianReader, index: int, shapeType: int, contentLength: int
    ) -> Shape:
        logger.warning(
            "Record %d has unsupported shape type %d, reading it as a null shape.",
            index + 1,
            shapeType,
        )
        # Content length counts the shape type but not the record header
        r.skip(2 * contentLength - 4)
        return Shape(ShapeKind.UNKNOWN, index=index)

    def _read_null(self, r: EndianReader, index: int, shapeType: int) -> Shape:
        # No geometry data
        return Shape(ShapeKind.UNKNOWN, index=index)

    def _read_point(self, r: EndianReader, index: int, shapeType: int) -> Shape:
        x, y = r.read_f64s_le(2)
        if shapeType == POINTZ:
            z, m = r.read_f64s_le(2)
            s = Shape(
                ShapeKind.POINT_ZM,
                points=[(x, y, z, m)],
                index=index,
                bbox=(x, y, x, y),
                zbox=(z, z),
                mbox=(m, m),
            )
        else:
            s = Shape(ShapeKind.POINT, points=[(x, y)], index=index, bbox=(x, y, x, y))
        if self.discard_defective_points and x < constants.DEFECTIVE_POINT_X_THRESHOLD:
            if constants.VERBOSE:
                logger.warning(
                    "Point %d has x=%g, treating it as an unknown shape.", index + 1, x
                )
            s.kind = ShapeKind.UNKNOWN
        return s

    @staticmethod
    def _read_xy(r: EndianReader, npoints: int) -> PointsT:
        flat = r.read_f64s_le(2 * npoints)
        return list(zip(*(iter(flat),) * 2))

    def _read_multipoint(self, r: EndianReader, index: int, shapeType: int) -> Shape:
        bbox: BBox = r.read_f64s_le(4)  # type: ignore[assignment]
        nPoints = r.read_i32_le()
        points = self._read_xy(r, nPoints)
        return Shape(ShapeKind.POLYPOINT, points=points, index=index, bbox=bbox)

    def _read_parts(self, r: EndianReader, index: int, shapeType: int) -> Shape:
        """Polylines, polygons and polylines with z and m share one layout:
        bbox, part count, point count, position array, then the points of
        each part in turn."""
        bbox: BBox = r.read_f64s_le(4)  # type: ignore[assignment]
        nParts = r.read_i32_le()
        nPoints = r.read_i32_le()
        positions = self._positions
        del positions[:]
        positions.extend(r.read_i32s_le(nParts))
        sizes = part_sizes(positions, nPoints)

        lines: LinesT = [self._read_xy(r, npts) for npts in sizes]

        if shapeType == POLYGON:
            # Rings are passed through as stored, no orientation fixes
            return Shape(ShapeKind.POLYGON_LIST, lines=lines, index=index, bbox=bbox)
        if shapeType == POLYLINE:
            return Shape(ShapeKind.POLYLINE_LIST, lines=lines, index=index, bbox=bbox)

        # z then m values follow all of the x,y values, in the same order
        zbox: ZBox = r.read_f64s_le(2)  # type: ignore[assignment]
        zs = [r.read_f64s_le(npts) for npts in sizes]
        mbox: MBox = r.read_f64s_le(2)  # type: ignore[assignment]
        ms = [r.read_f64s_le(npts) for npts in sizes]
        zm_lines: LinesT = [
            [(x, y, z, m) for (x, y), z, m in zip(line, line_zs, line_ms)]
            for line, line_zs, line_ms in zip(lines, zs, ms)
        ]
        return Shape(
            ShapeKind.POLYLINE_ZM,
            lines=zm_lines,
            index=index,
            bbox=bbox,
            zbox=zbox,
            mbox=mbox,
        )
