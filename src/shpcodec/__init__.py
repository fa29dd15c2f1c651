"""
shpcodec
Reads and writes the geometry (.shp) and index (.shx) files of ESRI Shapefiles.
Compatible with Python versions >=3.9
"""

from __future__ import annotations

import logging

from .__version__ import __version__
from .constants import (
    MULTIPOINT,
    NULL,
    POINT,
    POINTZ,
    POLYGON,
    POLYLINE,
    POLYLINEZ,
    SHAPETYPE_LOOKUP,
)
from .exceptions import (
    CorruptRecordError,
    HeaderError,
    IndexUnavailableError,
    RecordError,
    ShapefileException,
    ShapefileIOError,
    TruncatedReadError,
    TruncatedRecordError,
    UnsupportedShapeTypeError,
)
from .header import ShapefileHeader, read_header, write_header
from .index import IndexRecord, read_index, write_index_record
from .projection import Projection, need_to_project, project_shape
from .reader import Reader, is_shapefile, read
from .shapes import (
    Shape,
    ShapeKind,
    Shapes,
    null_shape,
    point,
    point_zm,
    polygon,
    polygon_list,
    polyline,
    polyline_list,
    polyline_zm,
    polypoint,
)
from .types import BBox, LinesT, MBox, Point2D, PointsT, PointT, PointZM, ZBox
from .writer import Writer, content_length, dominant_kind, record_mask, write

__all__ = [
    "__version__",
    "NULL",
    "POINT",
    "POLYLINE",
    "POLYGON",
    "MULTIPOINT",
    "POINTZ",
    "POLYLINEZ",
    "SHAPETYPE_LOOKUP",
    "Reader",
    "Writer",
    "read",
    "write",
    "is_shapefile",
    "record_mask",
    "content_length",
    "dominant_kind",
    "ShapefileHeader",
    "read_header",
    "write_header",
    "IndexRecord",
    "read_index",
    "write_index_record",
    "Projection",
    "need_to_project",
    "project_shape",
    "Shape",
    "ShapeKind",
    "Shapes",
    "null_shape",
    "point",
    "point_zm",
    "polypoint",
    "polyline",
    "polyline_list",
    "polyline_zm",
    "polygon",
    "polygon_list",
    "Point2D",
    "PointZM",
    "PointT",
    "PointsT",
    "LinesT",
    "BBox",
    "MBox",
    "ZBox",
    "ShapefileException",
    "ShapefileIOError",
    "TruncatedReadError",
    "HeaderError",
    "UnsupportedShapeTypeError",
    "IndexUnavailableError",
    "RecordError",
    "TruncatedRecordError",
    "CorruptRecordError",
]

logger = logging.getLogger(__name__)
