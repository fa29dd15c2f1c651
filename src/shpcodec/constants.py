from __future__ import annotations

import os

# Module settings
VERBOSE = True

# Points read with x below this are treated as corrupt and forced to UNKNOWN.
# This guards against one upstream data source, it is not part of the format.
DEFECTIVE_POINT_X_THRESHOLD = -1.0e50
DISCARD_DEFECTIVE_POINTS = (
    os.getenv("SHPCODEC_KEEP_DEFECTIVE_POINTS", "").lower() != "yes"
)

# File header
FILE_CODE = 9994
VERSION = 1000
HEADER_LENGTH = 100  # bytes
HEADER_WORDS = HEADER_LENGTH // 2
INDEX_RECORD_WORDS = 4

# Constants for ESRI shape types
NULL = 0
POINT = 1
POLYLINE = 3
POLYGON = 5
MULTIPOINT = 8
POINTZ = 11
POLYLINEZ = 13

SHAPETYPE_LOOKUP = {
    NULL: "NULL",
    POINT: "POINT",
    POLYLINE: "POLYLINE",
    POLYGON: "POLYGON",
    MULTIPOINT: "MULTIPOINT",
    POINTZ: "POINTZ",
    POLYLINEZ: "POLYLINEZ",
}

# Shape types whose file header carries z and m ranges
ZM_SHAPETYPES = frozenset([POINTZ, POLYLINEZ])
