"""
This module tests the byte order, header, index and shape model
building blocks of shpcodec.
"""

# std lib imports
import io
import logging
import struct

# third party imports
import pytest

# our imports
import shpcodec
from shpcodec.endian import EndianReader, EndianWriter
from shpcodec.exceptions import (
    HeaderError,
    IndexUnavailableError,
    ShapefileException,
    TruncatedReadError,
)
from shpcodec.header import ShapefileHeader, read_header, write_header
from shpcodec.index import read_index, shape_count_from_header, write_index_record
from shpcodec.shapes import ShapeKind, part_sizes, positions_from_sizes


def test_endian_mixed_fields():
    """
    Assert that big and little endian fields
    are read from the same stream in order.
    """
    data = (
        struct.pack(">i", 9994)
        + struct.pack("<i", 1000)
        + struct.pack("<h", -2)
        + struct.pack("<d", 1.5)
        + struct.pack(">d", -2.25)
    )
    r = EndianReader(io.BytesIO(data))
    assert r.read_i32_be() == 9994
    assert r.read_i32_le() == 1000
    assert r.read_i16_le() == -2
    assert r.read_f64_le() == 1.5
    assert r.read_f64_be() == -2.25


def test_endian_writer_matches_struct():
    """
    Assert that the writer produces the same bytes
    as struct and counts them.
    """
    buf = io.BytesIO()
    w = EndianWriter(buf)
    w.write_i32_be(50)
    w.write_i32_le(3)
    w.write_f64s_le([1.0, 2.0])
    w.write_i32s_le([0, 3, 5])
    w.write_i16_le(-7)
    w.write_f64_be(0.25)
    w.write_f64_le(0.5)
    assert buf.getvalue() == (
        struct.pack(">i", 50)
        + struct.pack("<i2d3ih", 3, 1.0, 2.0, 0, 3, 5, -7)
        + struct.pack(">d", 0.25)
        + struct.pack("<d", 0.5)
    )
    assert w.bytes_written == 4 + 4 + 16 + 12 + 2 + 8 + 8


def test_endian_bulk_reads_of_nothing():
    """
    Assert that reading zero values consumes no bytes.
    """
    r = EndianReader(io.BytesIO(b""))
    assert r.read_i32s_le(0) == ()
    assert r.read_f64s_le(0) == ()


def test_endian_short_read():
    """
    Assert that a short read raises TruncatedReadError
    with the number of bytes that were available.
    """
    r = EndianReader(io.BytesIO(b"\x00\x01"))
    with pytest.raises(TruncatedReadError) as excinfo:
        r.read_i32_be()
    assert excinfo.value.wanted == 4
    assert excinfo.value.bytes_read == 2
    assert isinstance(excinfo.value, EOFError)


def test_endian_writer_needs_numbers():
    """
    Assert that packing a non number
    raises a ShapefileException.
    """
    w = EndianWriter(io.BytesIO())
    with pytest.raises(ShapefileException):
        w.write_f64_le("one")


def test_header_layout():
    """
    Assert that the header fields land at their
    fixed byte offsets with the right byte order.
    """
    buf = io.BytesIO()
    header = ShapefileHeader(
        shapeType=shpcodec.POLYLINE, fileLength=78, bbox=(1.0, 2.0, 3.0, 4.0)
    )
    assert write_header(buf, header) == 100
    data = buf.getvalue()
    assert len(data) == 100
    assert data[0:4] == struct.pack(">i", 9994)
    assert data[4:24] == b"\x00" * 20
    assert data[24:28] == struct.pack(">i", 78)
    assert data[28:32] == struct.pack("<i", 1000)
    assert data[32:36] == struct.pack("<i", 3)
    assert data[36:68] == struct.pack("<4d", 1.0, 2.0, 3.0, 4.0)
    # No z or m for polylines
    assert data[68:100] == b"\x00" * 32


def test_header_zm_ranges():
    """
    Assert that z and m ranges are written and read
    for the shape types that carry them.
    """
    buf = io.BytesIO()
    header = ShapefileHeader(
        shapeType=shpcodec.POINTZ,
        fileLength=72,
        bbox=(0.0, 0.0, 1.0, 1.0),
        zbox=(-5.0, 10.0),
        mbox=(0.5, 2.5),
    )
    write_header(buf, header)
    assert buf.getvalue()[68:100] == struct.pack("<4d", -5.0, 10.0, 0.5, 2.5)
    buf.seek(0)
    assert read_header(buf) == header


def test_header_ignores_zm_for_2d_types():
    """
    Assert that garbage in the z and m slots of a 2D
    shapefile header is not read.
    """
    data = bytearray(100)
    data[0:4] = struct.pack(">i", 9994)
    data[24:28] = struct.pack(">i", 50)
    data[28:36] = struct.pack("<2i", 1000, shpcodec.POINT)
    data[68:100] = struct.pack("<4d", 9.0, 9.0, 9.0, 9.0)
    header = read_header(io.BytesIO(bytes(data)))
    assert header.zbox == (0.0, 0.0)
    assert header.mbox == (0.0, 0.0)


def test_header_too_short():
    """
    Assert that a header of less than
    100 bytes raises a HeaderError.
    """
    with pytest.raises(HeaderError):
        read_header(io.BytesIO(b"\x00" * 60))


def test_header_bad_file_code(caplog):
    """
    Assert that an unexpected file code is logged,
    but the header is still read.
    """
    buf = io.BytesIO()
    write_header(buf, ShapefileHeader(shapeType=shpcodec.POINT, fileCode=1234))
    buf.seek(0)
    header = read_header(buf)
    assert header.fileCode == 1234
    assert "Unexpected file code 1234" in caplog.text


def _shx_bytes(entries):
    buf = io.BytesIO()
    header = ShapefileHeader(
        shapeType=shpcodec.POINT, fileLength=50 + 4 * len(entries)
    )
    write_header(buf, header)
    for offset, length in entries:
        write_index_record(buf, offset, length)
    return buf


def test_index_read():
    """
    Assert that index entries are read back
    as offset and content length pairs.
    """
    shx = _shx_bytes([(50, 14), (64, 14), (78, 14)])
    records = read_index(shx, 3)
    assert [rec.offset for rec in records] == [50, 64, 78]
    assert [rec.content_length for rec in records] == [14, 14, 14]
    assert records[0].byte_offset == 100


def test_index_count_from_header():
    """
    Assert that without a shape count the number of
    entries is derived from the index file length.
    """
    shx = _shx_bytes([(50, 14), (64, 14)])
    assert len(read_index(shx)) == 2
    shx.seek(0)
    assert shape_count_from_header(read_header(shx)) == 2


def test_index_truncated():
    """
    Assert that an index with fewer entries than
    shapes raises IndexUnavailableError.
    """
    shx = _shx_bytes([(50, 14)])
    with pytest.raises(IndexUnavailableError):
        read_index(shx, 2)


def test_index_missing_header():
    """
    Assert that an index file without a full header
    raises IndexUnavailableError.
    """
    with pytest.raises(IndexUnavailableError):
        read_index(io.BytesIO(b"\x00" * 10))


def test_index_offset_too_large():
    """
    Assert that an offset that does not fit
    in the index raises a ShapefileException.
    """
    with pytest.raises(ShapefileException, match="4.29 GB"):
        write_index_record(io.BytesIO(), 2**31, 14)


@pytest.mark.parametrize(
    "positions,total,expected",
    [
        ([0], 4, [4]),
        ([0, 3, 5], 9, [3, 2, 4]),
        ([0, 0], 2, [0, 2]),
        ([], 0, []),
    ],
)
def test_part_sizes(positions, total, expected):
    """
    Assert that every part runs to the start of the next one
    and the last part runs to the total number of points.
    """
    assert part_sizes(positions, total) == expected
    if positions:
        assert positions_from_sizes(expected) == positions


def test_part_sizes_invalid():
    """
    Assert that positions past the point count raise.
    """
    with pytest.raises(ShapefileException):
        part_sizes([0, 5], 3)


def test_shape_bbox_from_points():
    """
    Assert that shapes compute their bounding box
    when none is given.
    """
    s = shpcodec.polyline_list([[(1, 5), (2, 2)], [(-1, 3), (0, 7)]])
    assert s.bbox == (-1, 2, 2, 7)
    assert s.limits_found
    assert s.nparts == 2
    assert s.total_points == 4
    assert s.positions == [0, 2]
    assert s.npoints_in_part(1) == 2


def test_shape_without_points():
    """
    Assert that a shape without points has
    no limits and an empty part structure.
    """
    s = shpcodec.null_shape(index=4)
    assert s.kind == ShapeKind.UNKNOWN
    assert s.index == 4
    assert not s.limits_found
    assert s.total_points == 0
    assert s.positions == []
    assert repr(s) == "Shape #4: UNKNOWN"


def test_shape_zm_ranges():
    """
    Assert that z and m ranges are taken from
    the points of ZM shapes.
    """
    s = shpcodec.polyline_zm([[(0, 0, 1, 10), (1, 1, -2, 20)], [(2, 2, 5, 15)]])
    assert s.zbox == (-2, 5)
    assert s.mbox == (10, 20)
    p = shpcodec.point_zm(1, 2, 3, 4)
    assert (p.x, p.y, p.z, p.m) == (1, 2, 3, 4)
    assert p.zbox == (3, 3)
    assert p.shapeType == shpcodec.POINTZ


def test_shape_copy_is_independent():
    """
    Assert that changing a copy's points
    leaves the original alone.
    """
    s = shpcodec.polygon_list([[(0, 0), (1, 0), (1, 1), (0, 0)]], index=2)
    c = s.copy()
    c.lines[0].append((5, 5))
    c.update_limits()
    assert len(s.lines[0]) == 4
    assert s.bbox == (0, 0, 1, 1)
    assert c.bbox == (0, 0, 5, 5)
    assert c.index == 2


def test_shape_kind_members():
    """
    Assert that every kind constant is listed as a member
    and that all writable kinds have a shape type.
    """
    kinds = {
        getattr(ShapeKind, name) for name in dir(ShapeKind) if name.isupper()
    }
    assert kinds == ShapeKind.__members__
    for kind in kinds - {ShapeKind.UNKNOWN}:
        assert shpcodec.Shape(kind).shapeType != shpcodec.NULL


def test_debug_logging(caplog):
    """
    Assert that header reads are logged at debug level.
    """
    caplog.set_level(logging.DEBUG, logger="shpcodec")
    buf = io.BytesIO()
    write_header(buf, ShapefileHeader(shapeType=shpcodec.POLYGON))
    buf.seek(0)
    read_header(buf)
    assert "ShapefileHeader(shapeType=POLYGON" in caplog.text
