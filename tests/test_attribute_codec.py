"""
Test the attribute string parsers and builders.
"""

import pytest

from poml_codec.attribute_codec import (
    Vector3, Quaternion,
    parse_number, parse_number_array, parse_integer_array, parse_vector3,
    parse_quaternion, parse_scalar_or_vector3, parse_boolean_or_number,
    parse_string_array, format_number, build_number_array, build_vector3,
    build_quaternion, build_scalar_or_vector3, build_boolean,
    build_boolean_or_number, build_string_array,
)


def test_parse_number():
    assert parse_number("abc") is None
    assert parse_number("") is None
    assert parse_number(None) is None
    assert parse_number("3.14") == 3.14
    assert parse_number(" -2 ") == -2.0
    assert parse_number("1e3") == 1000.0
    assert parse_number(".5") == 0.5
    assert parse_number("1 2") is None
    assert parse_number("nan") is None


def test_parse_number_array():
    assert parse_number_array("") is None
    assert parse_number_array("-1,2.5,3") == [-1, 2.5, 3]
    assert parse_number_array("-1 2.5 3") == [-1, 2.5, 3]
    assert parse_number_array(",,,-1  , , 2.5 , ,, 3,,,") == [-1, 2.5, 3]


def test_parse_number_array_stops_at_first_invalid_token():
    assert parse_number_array("-1 2.5 a 3") == [-1, 2.5]
    assert parse_number_array("a 1 2") == []
    assert parse_number_array("1 2 3garbage") == [1, 2]


def test_parse_integer_array():
    assert parse_integer_array("") is None
    assert parse_integer_array("0 1 2") == [0, 1, 2]
    assert parse_integer_array("0 1 1.5 2") == [0, 1]


def test_parse_vector3():
    assert parse_vector3("") is None
    assert parse_vector3("1,2,3,4") is None
    assert parse_vector3("1,2") is None
    assert parse_vector3("1,2,3") == Vector3(1, 2, 3)
    assert parse_vector3(" 1 2 3 ") == Vector3(1, 2, 3)
    assert parse_vector3(" 1, 2 3  ") == Vector3(1, 2, 3)


def test_parse_quaternion():
    assert parse_quaternion("") is None
    assert parse_quaternion("1,2,3") is None
    assert parse_quaternion("1,2,3,4,5") is None
    assert parse_quaternion("1,2,3,4") == Quaternion(1, 2, 3, 4)
    assert parse_quaternion(" 1 2 3 4 ") == Quaternion(1, 2, 3, 4)


def test_parse_scalar_or_vector3():
    assert parse_scalar_or_vector3("1") == 1.0
    assert parse_scalar_or_vector3("4 5 6") == Vector3(4, 5, 6)
    assert parse_scalar_or_vector3("4 5") is None
    assert parse_scalar_or_vector3(None) is None


def test_parse_boolean_or_number():
    assert parse_boolean_or_number("true") is True
    assert parse_boolean_or_number("TRUE") is True
    assert parse_boolean_or_number("1.1") == 1.1
    assert parse_boolean_or_number("false") is None
    assert parse_boolean_or_number("") is None


def test_parse_string_array():
    assert parse_string_array("arg 0.1") == ["arg", "0.1"]
    assert parse_string_array("  a b  ") == ["a", "b"]
    assert parse_string_array("") == []
    assert parse_string_array(None) == []


@pytest.mark.parametrize("value, text", [
    (1.0, "1"),
    (1, "1"),
    (-2.5, "-2.5"),
    (0.1, "0.1"),
])
def test_format_number(value, text):
    assert format_number(value) == text


def test_build_vectors():
    assert build_vector3(Vector3(1, 2, 3)) == "1 2 3"
    assert build_vector3(None) is None
    assert build_quaternion(Quaternion(0.1, -0.2, -0.3, 0.4)) == "0.1 -0.2 -0.3 0.4"
    assert build_scalar_or_vector3(2.0) == "2"
    assert build_scalar_or_vector3(Vector3(4, 5, 6)) == "4 5 6"
    assert build_number_array([1, 2.5], ",") == "1,2.5"
    assert build_number_array([1, 2.5]) == "1 2.5"


def test_build_boolean():
    assert build_boolean(True) == "true"
    assert build_boolean(False) is None
    assert build_boolean(False, ignore_false=False) == "false"
    assert build_boolean_or_number(True) == "true"
    assert build_boolean_or_number(1.1) == "1.1"
    assert build_boolean_or_number(False, ignore_false=False) == "false"


def test_build_string_array():
    assert build_string_array(["a", "b"]) == "a b"
    assert build_string_array([]) is None
