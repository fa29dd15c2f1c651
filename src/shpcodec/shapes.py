from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Final

from .constants import (
    MULTIPOINT,
    NULL,
    POINT,
    POINTZ,
    POLYGON,
    POLYLINE,
    POLYLINEZ,
)
from .exceptions import ShapefileException
from .types import BBox, LinesT, MBox, PointsT, PointT, ZBox


class ShapeKind:
    """A bare bones 'enum', as the enum library noticeably slows performance."""

    UNKNOWN: Final = "UNKNOWN"
    POINT: Final = "POINT"
    POINT_ZM: Final = "POINT_ZM"
    POLYLINE: Final = "POLYLINE"
    POLYLINE_LIST: Final = "POLYLINE_LIST"
    POLYLINE_ZM: Final = "POLYLINE_ZM"
    POLYGON: Final = "POLYGON"
    POLYGON_LIST: Final = "POLYGON_LIST"
    POLYPOINT: Final = "POLYPOINT"
    __members__: set[str] = {
        "UNKNOWN",
        "POINT",
        "POINT_ZM",
        "POLYLINE",
        "POLYLINE_LIST",
        "POLYLINE_ZM",
        "POLYGON",
        "POLYGON_LIST",
        "POLYPOINT",
    }


# Kinds holding a list of sub-parts (lines or rings) rather than flat points
LIST_KINDS = frozenset(
    [ShapeKind.POLYLINE_LIST, ShapeKind.POLYGON_LIST, ShapeKind.POLYLINE_ZM]
)

# Kinds whose points are (x, y, z, m)
ZM_KINDS = frozenset([ShapeKind.POINT_ZM, ShapeKind.POLYLINE_ZM])

SINGLE_POINT_KINDS = frozenset([ShapeKind.POINT, ShapeKind.POINT_ZM])

SHAPETYPE_FROM_KIND: dict[str, int] = {
    ShapeKind.POINT: POINT,
    ShapeKind.POINT_ZM: POINTZ,
    ShapeKind.POLYPOINT: MULTIPOINT,
    ShapeKind.POLYLINE: POLYLINE,
    ShapeKind.POLYLINE_LIST: POLYLINE,
    ShapeKind.POLYGON: POLYGON,
    ShapeKind.POLYGON_LIST: POLYGON,
    ShapeKind.POLYLINE_ZM: POLYLINEZ,
}


def part_sizes(positions: Sequence[int], total_points: int) -> list[int]:
    """Number of points in each sub-part, from the position array.
    The last part runs to total_points, every other part to the start
    of the next one."""
    nparts = len(positions)
    sizes = []
    for i in range(nparts):
        if i == nparts - 1:
            npts = total_points - positions[i]
        else:
            npts = positions[i + 1] - positions[i]
        if npts < 0:
            raise ShapefileException(
                f"Invalid part positions {list(positions)} for {total_points} points."
            )
        sizes.append(npts)
    return sizes


def positions_from_sizes(sizes: Iterable[int]) -> list[int]:
    """Index of the first point of each sub-part in the flattened point list."""
    positions = []
    pos = 0
    for npts in sizes:
        positions.append(pos)
        pos += npts
    return positions


def bbox_from_points(points: Iterable[PointT]) -> BBox | None:
    xs: list[float] = []
    ys: list[float] = []

    for point in points:
        xs.append(point[0])
        ys.append(point[1])

    if not xs:
        return None
    return min(xs), min(ys), max(xs), max(ys)


def _range_of(values: list[float]) -> tuple[float, float]:
    if not values:
        return 0.0, 0.0
    return min(values), max(values)


class Shape:
    def __init__(
        self,
        kind: str = ShapeKind.UNKNOWN,
        points: PointsT | None = None,
        lines: LinesT | None = None,
        index: int | None = None,
        *,
        bbox: BBox | None = None,
        zbox: ZBox | None = None,
        mbox: MBox | None = None,
        is_visible: bool = True,
        is_selected: bool = False,
    ):
        """Stores the geometry of one feature as a tagged variant.

        kind selects how the rest is interpreted. Simple kinds (POINT,
        POINT_ZM, POLYLINE, POLYGON, POLYPOINT) keep a flat list of
        points. List kinds (POLYLINE_LIST, POLYGON_LIST, POLYLINE_ZM) keep
        lines, a list of sub-parts each holding its own list of points.
        Points are (x, y) tuples, or (x, y, z, m) for the ZM kinds.

        index is the record number less one when read from a shapefile, and
        the key used to join the shape to its attribute table row.
        """
        self.kind = kind
        self.index: int = -1 if index is None else index
        self.points: PointsT = list(points) if points else []
        self.lines: LinesT = [list(line) for line in lines] if lines else []
        self.is_visible = is_visible
        self.is_selected = is_selected

        self.limits_found = False
        self.bbox: BBox = (0.0, 0.0, 0.0, 0.0)
        if bbox is not None:
            self.bbox = tuple(bbox)  # type: ignore[assignment]
            self.limits_found = True
        else:
            self.update_limits()

        self.zbox: ZBox = (0.0, 0.0)
        self.mbox: MBox = (0.0, 0.0)
        if kind in ZM_KINDS:
            self.zbox = zbox if zbox is not None else self._zbox_from_points()
            self.mbox = mbox if mbox is not None else self._mbox_from_points()

    def update_limits(self) -> None:
        """Recomputes bbox from the points. Leaves limits_found False
        for shapes without any points."""
        bbox = bbox_from_points(self.iter_points())
        if bbox is not None:
            self.bbox = bbox
            self.limits_found = True
        if self.kind in ZM_KINDS:
            self.zbox = self._zbox_from_points()
            self.mbox = self._mbox_from_points()

    def _zbox_from_points(self) -> ZBox:
        return _range_of([p[2] for p in self.iter_points() if len(p) > 2])  # type: ignore[misc]

    def _mbox_from_points(self) -> MBox:
        return _range_of([p[3] for p in self.iter_points() if len(p) > 3])  # type: ignore[misc]

    @property
    def is_list(self) -> bool:
        return self.kind in LIST_KINDS

    def iter_points(self) -> Iterable[PointT]:
        """All points in part order, for simple and list kinds alike."""
        if self.kind in LIST_KINDS:
            for line in self.lines:
                yield from line
        else:
            yield from self.points

    @property
    def total_points(self) -> int:
        if self.kind in LIST_KINDS:
            return sum(len(line) for line in self.lines)
        return len(self.points)

    @property
    def nparts(self) -> int:
        if self.kind in LIST_KINDS:
            return len(self.lines)
        return 1 if self.kind in (ShapeKind.POLYLINE, ShapeKind.POLYGON) else 0

    @property
    def positions(self) -> list[int]:
        """The on-disk position array for this shape's sub-parts."""
        if self.kind in LIST_KINDS:
            return positions_from_sizes(len(line) for line in self.lines)
        if self.kind in (ShapeKind.POLYLINE, ShapeKind.POLYGON):
            return [0]
        return []

    def npoints_in_part(self, part: int) -> int:
        if self.kind in LIST_KINDS:
            return len(self.lines[part])
        if part != 0:
            raise IndexError(f"{self.kind} shapes have a single part, not {part + 1}.")
        return len(self.points)

    @property
    def x(self) -> float:
        return self.points[0][0]

    @property
    def y(self) -> float:
        return self.points[0][1]

    @property
    def z(self) -> float:
        return self.points[0][2]  # type: ignore[misc]

    @property
    def m(self) -> float:
        return self.points[0][3]  # type: ignore[misc]

    @property
    def shapeType(self) -> int:
        """ESRI shape type code for this kind, NULL if it has none."""
        return SHAPETYPE_FROM_KIND.get(self.kind, NULL)

    def copy(self) -> Shape:
        s = Shape(
            self.kind,
            points=self.points,
            lines=self.lines,
            index=self.index,
            bbox=self.bbox if self.limits_found else None,
            zbox=self.zbox,
            mbox=self.mbox,
            is_visible=self.is_visible,
            is_selected=self.is_selected,
        )
        return s

    def __repr__(self) -> str:
        return f"Shape #{self.index}: {self.kind}"


class Shapes(list[Shape]):
    """A class to hold a list of Shape objects. Subclasses list to ensure compatibility with
    former work and to reuse all the optimizations of the builtin list."""

    def __repr__(self) -> str:
        return f"Shapes: {list(self)}"


def null_shape(index: int | None = None) -> Shape:
    return Shape(ShapeKind.UNKNOWN, index=index)


def point(x: float, y: float, index: int | None = None, **kwargs: Any) -> Shape:
    return Shape(ShapeKind.POINT, points=[(x, y)], index=index, **kwargs)


def point_zm(
    x: float,
    y: float,
    z: float = 0.0,
    m: float = 0.0,
    index: int | None = None,
    **kwargs: Any,
) -> Shape:
    return Shape(ShapeKind.POINT_ZM, points=[(x, y, z, m)], index=index, **kwargs)


def polypoint(points: PointsT, index: int | None = None, **kwargs: Any) -> Shape:
    return Shape(ShapeKind.POLYPOINT, points=points, index=index, **kwargs)


def polyline(points: PointsT, index: int | None = None, **kwargs: Any) -> Shape:
    return Shape(ShapeKind.POLYLINE, points=points, index=index, **kwargs)


def polyline_list(lines: LinesT, index: int | None = None, **kwargs: Any) -> Shape:
    return Shape(ShapeKind.POLYLINE_LIST, lines=lines, index=index, **kwargs)


def polyline_zm(lines: LinesT, index: int | None = None, **kwargs: Any) -> Shape:
    """Lines of (x, y, z, m) points."""
    return Shape(ShapeKind.POLYLINE_ZM, lines=lines, index=index, **kwargs)


def polygon(points: PointsT, index: int | None = None, **kwargs: Any) -> Shape:
    return Shape(ShapeKind.POLYGON, points=points, index=index, **kwargs)


def polygon_list(rings: LinesT, index: int | None = None, **kwargs: Any) -> Shape:
    """Rings are kept in the given order and winding."""
    return Shape(ShapeKind.POLYGON_LIST, lines=rings, index=index, **kwargs)
