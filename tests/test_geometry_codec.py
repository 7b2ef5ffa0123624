"""
Test the geometry vertex and index attribute grammar.
"""

from poml_codec.attribute_codec import Vector3
from poml_codec.geometry_codec import (
    GeodeticPosition, RelativePositions, GeodeticPositions,
    parse_geometry_positions, build_geometry_positions,
    parse_geometry_indices, build_geometry_indices,
)


def test_empty_positions():
    assert parse_geometry_positions("") is None
    assert parse_geometry_positions(None) is None


def test_relative_positions_without_key():
    result = parse_geometry_positions("1.5,-2,3 4,5,6")
    assert isinstance(result, RelativePositions)
    assert result.type == "relative"
    assert result.positions == (Vector3(1.5, -2, 3), Vector3(4, 5, 6))


def test_relative_positions_with_key():
    result = parse_geometry_positions("relative: 1.5,-2,3 4,5,6")
    assert result == RelativePositions((Vector3(1.5, -2, 3), Vector3(4, 5, 6)))


def test_geodetic_positions():
    result = parse_geometry_positions("geodetic: 1.5,-2,3 4,5,6")
    assert isinstance(result, GeodeticPositions)
    assert result.positions == (
        GeodeticPosition(longitude=1.5, latitude=-2, ellipsoidal_height=3),
        GeodeticPosition(longitude=4, latitude=5, ellipsoidal_height=6),
    )


def test_key_is_case_insensitive_and_spaces_are_ignored():
    result = parse_geometry_positions("  relative   :   1.5 ,  -2, 3   4,5,6")
    assert result == RelativePositions((Vector3(1.5, -2, 3), Vector3(4, 5, 6)))
    assert isinstance(parse_geometry_positions("GEODETIC: 1,2,3"), GeodeticPositions)


def test_unrecognised_key():
    assert parse_geometry_positions("spherical: 1,2,3") is None


def test_incomplete_positions_are_rejected():
    assert parse_geometry_positions("1,2,3 4,5") is None
    assert parse_geometry_positions("relative: 1,2,a") is None
    assert parse_geometry_positions("geodetic: 1,2,3 x,5,6") is None
    assert parse_geometry_positions("relative:") is None


def test_build_positions():
    relative = RelativePositions((Vector3(1, 2, 3), Vector3(4.5, 5, 6)))
    assert build_geometry_positions(relative) == "relative: 1,2,3 4.5,5,6"

    geodetic = GeodeticPositions((GeodeticPosition(135.0341387, 34.630549, 18.65),))
    assert build_geometry_positions(geodetic) == "geodetic: 135.0341387,34.630549,18.65"

    assert build_geometry_positions("whatever: 1 2") == "whatever: 1 2"
    assert build_geometry_positions(None) is None


def test_built_positions_parse_back():
    geodetic = GeodeticPositions((GeodeticPosition(1.5, -2, 3), GeodeticPosition(4, 5, 6)))
    assert parse_geometry_positions(build_geometry_positions(geodetic)) == geodetic


def test_indices():
    assert parse_geometry_indices(None) is None
    assert parse_geometry_indices("0 1 2") == (0, 1, 2)
    assert parse_geometry_indices("0 1 2 x 3") == (0, 1, 2)
    assert parse_geometry_indices("abc") == "abc"
    assert build_geometry_indices((0, 1, 2)) == "0 1 2"
    assert build_geometry_indices("abc") == "abc"
    assert build_geometry_indices(None) is None
