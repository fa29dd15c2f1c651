from __future__ import annotations

import io
import logging
import os
from collections.abc import Iterable
from os import PathLike
from types import TracebackType
from typing import Any, NoReturn, overload

from .constants import HEADER_LENGTH, HEADER_WORDS, INDEX_RECORD_WORDS, NULL, SHAPETYPE_LOOKUP
from .endian import EndianWriter
from .exceptions import ShapefileException, ShapefileIOError, UnsupportedShapeTypeError
from .header import ShapefileHeader, write_header
from .helpers import fsdecode_if_pathlike, split_shapefile_path
from .index import write_index_record
from .projection import Projection, need_to_project, project_shape
from .shapes import (
    SHAPETYPE_FROM_KIND,
    SINGLE_POINT_KINDS,
    ZM_KINDS,
    Shape,
    ShapeKind,
)
from .types import BBox, MBox, WriteSeekableBinStream, ZBox

logger = logging.getLogger(__name__)


def content_length(s: Shape) -> int:
    """Length of the record written for s, in 16-bit words, counting the
    8 byte record header. The .shp file length and the .shx offsets are
    running sums of these."""
    kind = s.kind
    if kind == ShapeKind.POINT:
        return 14
    if kind == ShapeKind.POINT_ZM:
        return 22
    if kind == ShapeKind.POLYPOINT:
        return 24 + 8 * len(s.points)
    if kind in (ShapeKind.POLYLINE, ShapeKind.POLYGON):
        return 28 + 8 * len(s.points)
    if kind in (ShapeKind.POLYLINE_LIST, ShapeKind.POLYGON_LIST):
        return 26 + 2 * s.nparts + sum(8 * len(line) for line in s.lines)
    if kind == ShapeKind.POLYLINE_ZM:
        return 26 + 2 * s.nparts + 16 * s.total_points + 16
    return 0


def _passes_filter(s: Shape, visible_only: bool, selected_only: bool) -> bool:
    if visible_only and not s.is_visible:
        return False
    if selected_only and not s.is_selected:
        return False
    return True


def record_mask(
    shapes: Iterable[Shape], visible_only: bool = False, selected_only: bool = False
) -> list[bool]:
    """Which shapes an attribute table written alongside should keep.

    Only the visibility and selection filters apply here, so the mask
    also holds True for null shapes and shapes of another kind, which
    get no geometry record."""
    return [_passes_filter(s, visible_only, selected_only) for s in shapes]


def dominant_kind(shapes: Iterable[Shape]) -> str | None:
    """The kind of the first shape that is not UNKNOWN, or None."""
    for s in shapes:
        if s.kind != ShapeKind.UNKNOWN:
            return s.kind
    return None


def _shapetype_for_kind(kind: str) -> int:
    try:
        return SHAPETYPE_FROM_KIND[kind]
    except KeyError:
        raise UnsupportedShapeTypeError(
            f"Shapes of kind {kind} cannot be written to a shapefile."
        ) from None


def _remove_existing(base: str) -> None:
    for ext in ("shp", "shx", "SHP", "SHX"):
        path = f"{base}.{ext}"
        if os.path.exists(path):
            logger.debug("Removing existing %s", path)
            try:
                os.remove(path)
            except OSError as e:
                raise ShapefileIOError(f"Unable to remove {path}: {e}") from e


def write(
    path: str | PathLike[Any],
    shapes: Iterable[Shape],
    visible_only: bool = False,
    selected_only: bool = False,
    from_projection: Projection | None = None,
    to_projection: Projection | None = None,
) -> list[bool]:
    """Writes shapes to path.shp and path.shx, replacing any existing files.

    Returns record_mask(shapes, visible_only, selected_only) so that an
    attribute table can be written in lock-step with the geometry."""
    shapes = list(shapes)
    kind = dominant_kind(shapes)
    if kind is not None:
        # Fail before touching any existing files
        _shapetype_for_kind(kind)
    base = split_shapefile_path(path)
    _remove_existing(base)
    with Writer(
        base,
        kind,
        visible_only=visible_only,
        selected_only=selected_only,
        from_projection=from_projection,
        to_projection=to_projection,
    ) as w:
        w.shapes(shapes)
    return record_mask(shapes, visible_only, selected_only)


class Writer:
    """Writes the geometry (.shp) and index (.shx) files of a shapefile.

    All records share the kind given as kind, or else the kind of the
    first shape that is not UNKNOWN. Shapes of another kind, UNKNOWN
    shapes, and shapes rejected by visible_only or selected_only are
    skipped and get neither a geometry record nor an index entry.

    The headers are written as placeholders and filled in by close(),
    once the file length and bounding boxes are known.
    """

    def __init__(
        self,
        target: str | PathLike[Any] | None = None,
        kind: str | None = None,
        *,
        shp: WriteSeekableBinStream | None = None,
        shx: WriteSeekableBinStream | None = None,
        visible_only: bool = False,
        selected_only: bool = False,
        from_projection: Projection | None = None,
        to_projection: Projection | None = None,
    ):
        self.target = target
        self.kind = kind
        self.shapeType: int | None = None
        if kind is not None and kind != ShapeKind.UNKNOWN:
            self.shapeType = _shapetype_for_kind(kind)
        self.visible_only = visible_only
        self.selected_only = selected_only
        self.from_projection = from_projection
        self.to_projection = to_projection
        self._project = need_to_project(from_projection, to_projection)
        self.shp: WriteSeekableBinStream | None = None
        self.shx: WriteSeekableBinStream | None = None
        self._files_to_close: list[WriteSeekableBinStream] = []
        if target:
            target = fsdecode_if_pathlike(target)
            if not isinstance(target, str):
                raise TypeError(
                    f"The target filepath {target!r} must be of type str or path-like, not {type(target)}."
                )
            base = split_shapefile_path(target)
            self.shp = self.__getFileObj(base + ".shp")
            self.shx = self.__getFileObj(base + ".shx")
        elif shp:
            self.shp = self.__getFileObj(shp)
            if shx:
                self.shx = self.__getFileObj(shx)
        else:
            raise TypeError(
                "Either the target filepath, or shp must be set to create a shapefile."
            )
        # Initiate with empty headers, to be finalized upon closing
        self.shp.write(b"9" * HEADER_LENGTH)
        if self.shx:
            self.shx.write(b"9" * HEADER_LENGTH)
        self.shpNum = 0
        self.skipped = 0
        # Running .shp length in 16-bit words
        self._shpLength = HEADER_WORDS
        self._bbox: BBox | None = None
        self._zbox: ZBox | None = None
        self._mbox: MBox | None = None
        self._closed = False

    def __len__(self) -> int:
        """Returns the number of geometry records written so far."""
        return self.shpNum

    def __enter__(self) -> Writer:
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
        Exit phase of context manager, finish writing and close the files.
        """
        self.close()
        return None

    def __del__(self) -> None:
        # __init__ may have failed before any file was set up
        if hasattr(self, "_closed"):
            self.close()

    def close(self) -> None:
        """
        Write final shp and shx headers, close opened files.
        """
        if self._closed:
            return
        self._closed = True
        try:
            # Fill in the blank headers
            if self.shp and not getattr(self.shp, "closed", False):
                write_header(self.shp, self._header(self._shpLength))
            if self.shx and not getattr(self.shx, "closed", False):
                write_header(
                    self.shx, self._header(HEADER_WORDS + INDEX_RECORD_WORDS * self.shpNum)
                )
            logger.info(
                "Wrote %d shapes (%d skipped) to %s.",
                self.shpNum,
                self.skipped,
                self.target or "shp stream",
            )

            # Flush files
            for attribute in (self.shp, self.shx):
                if attribute is None:
                    continue
                if hasattr(attribute, "flush") and not getattr(attribute, "closed", False):
                    attribute.flush()
        finally:
            # Close any files that the writer opened (but not those given by user)
            for attribute in self._files_to_close:
                try:
                    attribute.close()  # type: ignore[attr-defined]
                except OSError:
                    pass
            self._files_to_close = []

    @overload
    def __getFileObj(self, f: str) -> WriteSeekableBinStream: ...
    @overload
    def __getFileObj(self, f: None) -> NoReturn: ...
    @overload
    def __getFileObj(self, f: WriteSeekableBinStream) -> WriteSeekableBinStream: ...
    def __getFileObj(
        self, f: str | None | WriteSeekableBinStream
    ) -> WriteSeekableBinStream:
        """Safety handler to verify file-like objects"""
        if not f:
            raise ShapefileException("No file-like object available.")
        if isinstance(f, str):
            pth = os.path.split(f)[0]
            if pth and not os.path.exists(pth):
                os.makedirs(pth)
            try:
                fp = open(f, "wb+")
            except OSError as e:
                raise ShapefileIOError(f"Unable to open {f} for writing: {e}") from e
            self._files_to_close.append(fp)
            return fp

        if hasattr(f, "write"):
            return f
        raise ShapefileException(f"Unsupported file-like object: {f}")

    def _header(self, fileLength: int) -> ShapefileHeader:
        return ShapefileHeader(
            shapeType=self.shapeType if self.shapeType is not None else NULL,
            fileLength=fileLength,
            # An empty shapefile's bbox is unspecified, zeros are written
            bbox=self._bbox or (0.0, 0.0, 0.0, 0.0),
            zbox=self._zbox or (0.0, 0.0),
            mbox=self._mbox or (0.0, 0.0),
        )

    def _update_file_bbox(self, s: Shape) -> None:
        if s.kind in SINGLE_POINT_KINDS:
            x, y = s.points[0][:2]
            shape_bbox = (x, y, x, y)
        elif s.limits_found:
            shape_bbox = s.bbox
        else:
            # No points, nothing to add
            return None

        if self._bbox:
            # compare with existing
            self._bbox = (
                min(shape_bbox[0], self._bbox[0]),
                min(shape_bbox[1], self._bbox[1]),
                max(shape_bbox[2], self._bbox[2]),
                max(shape_bbox[3], self._bbox[3]),
            )
        else:
            # first time bbox is being set
            self._bbox = shape_bbox
        return None

    def _update_file_zbox(self, s: Shape) -> None:
        if self._zbox:
            # compare with existing
            self._zbox = (min(s.zbox[0], self._zbox[0]), max(s.zbox[1], self._zbox[1]))
        else:
            # first time zbox is being set
            self._zbox = s.zbox

    def _update_file_mbox(self, s: Shape) -> None:
        mbox = s.mbox
        if self._mbox:
            # compare with existing
            self._mbox = (min(mbox[0], self._mbox[0]), max(mbox[1], self._mbox[1]))
        else:
            # first time mbox is being set
            self._mbox = mbox

    @property
    def shapeTypeName(self) -> str:
        return SHAPETYPE_LOOKUP[self.shapeType or NULL]

    def bbox(self) -> BBox | None:
        """Returns the current bounding box for the shapefile which is
        the lower-left and upper-right corners. It does not contain the
        elevation or measure extremes."""
        return self._bbox

    def zbox(self) -> ZBox | None:
        """Returns the current z extremes for the shapefile."""
        return self._zbox

    def mbox(self) -> MBox | None:
        """Returns the current m extremes for the shapefile."""
        return self._mbox

    def _keep(self, s: Shape) -> bool:
        if s.kind == ShapeKind.UNKNOWN:
            logger.debug("Skipping null shape %d.", s.index)
            return False
        if self.kind is None:
            self.shapeType = _shapetype_for_kind(s.kind)
            self.kind = s.kind
        elif s.kind != self.kind:
            logger.warning(
                "Skipping shape %d of kind %s in a shapefile of kind %s.",
                s.index,
                s.kind,
                self.kind,
            )
            return False
        return _passes_filter(s, self.visible_only, self.selected_only)

    def shape(self, s: Shape) -> bool:
        """Writes s as the next record, unless it is filtered out.
        Returns True if a record was written."""
        if not isinstance(s, Shape):
            raise TypeError(f"Can only write Shape objects, not: {s}")
        if not self._keep(s):
            self.skipped += 1
            return False
        if self._project:
            assert self.from_projection is not None and self.to_projection is not None
            s = project_shape(self.from_projection, self.to_projection, s)
        # Write to file
        offset, length = self.__shpRecord(s)
        if self.shx:
            write_index_record(self.shx, offset // 2, length)
        return True

    def shapes(self, shapes: Iterable[Shape]) -> int:
        """Writes each of shapes in turn. Returns the number of records written."""
        return sum(1 for s in shapes if self.shape(s))

    def __shpRecord(self, s: Shape) -> tuple[int, int]:
        f: WriteSeekableBinStream = self.__getFileObj(self.shp)
        offset = f.tell()
        length = content_length(s)
        # Single conversion point to the on-disk 1-based record number
        recNum = self.shpNum + 1

        # Create an in-memory binary buffer to avoid
        # unnecessary seeks to files on disk
        b_io = io.BytesIO()
        w = EndianWriter(b_io)
        try:
            # Record number, Content length
            w.write_i32_be(recNum)
            w.write_i32_be(length)
            w.write_i32_le(self.shapeType)  # type: ignore[arg-type]
            self._write_body(w, s)
        except (ShapefileException, IndexError, ValueError) as e:
            raise ShapefileException(
                f"Failed to write record {recNum} ({s.kind}): {e}"
            ) from e

        if w.bytes_written != 2 * length:
            raise ShapefileException(
                f"Record {recNum} ({s.kind}) is {w.bytes_written} bytes, "
                f"expected {2 * length}."
            )

        # Update bbox, mbox and zbox of the whole shapefile
        self._update_file_bbox(s)
        if s.kind in ZM_KINDS:
            self._update_file_zbox(s)
            self._update_file_mbox(s)

        # Flush to file.
        f.write(b_io.getvalue())
        self.shpNum = recNum
        self._shpLength += length
        logger.debug("Wrote record %d: %s, %d words", recNum, s.kind, length)
        return offset, length

    @staticmethod
    def _write_xy(w: EndianWriter, points: Iterable[Any]) -> None:
        w.write_f64s_le([c for p in points for c in p[:2]])

    def _write_body(self, w: EndianWriter, s: Shape) -> None:
        kind = s.kind
        if kind == ShapeKind.POINT:
            self._write_xy(w, s.points[:1])
            return
        if kind == ShapeKind.POINT_ZM:
            x, y, z, m = s.points[0]  # type: ignore[misc]
            w.write_f64s_le([x, y, z, m])
            return

        w.write_f64s_le(list(s.bbox))
        if kind == ShapeKind.POLYPOINT:
            w.write_i32_le(len(s.points))
            self._write_xy(w, s.points)
            return

        # Polylines and polygons, with one part or many.
        # The position array is rebuilt from the part sizes.
        w.write_i32_le(s.nparts)
        w.write_i32_le(s.total_points)
        w.write_i32s_le(s.positions)
        self._write_xy(w, s.iter_points())
        if kind != ShapeKind.POLYLINE_ZM:
            return

        # z then m for every point, each preceded by its range
        w.write_f64s_le(list(s.zbox))
        w.write_f64s_le([p[2] for p in s.iter_points()])  # type: ignore[misc]
        w.write_f64s_le(list(s.mbox))
        w.write_f64s_le([p[3] for p in s.iter_points()])  # type: ignore[misc]
