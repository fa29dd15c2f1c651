from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pyproj import CRS, Transformer

from .shapes import Shape, ZM_KINDS
from .types import PointsT, PointT

logger = logging.getLogger(__name__)


class Projection:
    """A coordinate reference system that shapes can be projected between.

    Accepts anything pyproj.CRS.from_user_input does, e.g. "EPSG:4326",
    a PROJ string, or the WKT from a .prj file."""

    def __init__(self, crs: Any):
        self.crs = crs if isinstance(crs, CRS) else CRS.from_user_input(crs)

    @classmethod
    def from_prj(cls, prj_path: str) -> Projection:
        with open(prj_path, encoding="utf-8") as f:
            return cls(CRS.from_wkt(f.read()))

    @property
    def name(self) -> str:
        return self.crs.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Projection):
            return NotImplemented
        return self.crs == other.crs

    def __hash__(self) -> int:
        return hash(self.crs.to_wkt())

    def __repr__(self) -> str:
        return f"Projection({self.crs.to_string()!r})"


def need_to_project(
    from_projection: Projection | None, to_projection: Projection | None
) -> bool:
    """False if either projection is missing or they are the same."""
    if from_projection is None or to_projection is None:
        return False
    return from_projection != to_projection


@lru_cache(maxsize=16)
def _transformer(from_projection: Projection, to_projection: Projection) -> Transformer:
    return Transformer.from_crs(from_projection.crs, to_projection.crs, always_xy=True)


def _project_points(transformer: Transformer, points: PointsT) -> PointsT:
    if not points:
        return []
    xs, ys = transformer.transform([p[0] for p in points], [p[1] for p in points])
    projected: PointsT = []
    for p, x, y in zip(points, xs, ys):
        # z and m are carried through unchanged
        q: PointT = (float(x), float(y), *p[2:])  # type: ignore[assignment]
        projected.append(q)
    return projected


def project_shape(
    from_projection: Projection, to_projection: Projection, shape: Shape
) -> Shape:
    """Returns a copy of shape with its coordinates projected and its
    limits recomputed. The given shape is not modified."""
    transformer = _transformer(from_projection, to_projection)
    projected = shape.copy()
    projected.points = _project_points(transformer, shape.points)
    projected.lines = [_project_points(transformer, line) for line in shape.lines]
    projected.update_limits()
    if shape.kind in ZM_KINDS:
        projected.zbox, projected.mbox = shape.zbox, shape.mbox
    return projected
