"""
attribute_codec.py

Conversion between POML wire-format attribute strings and typed values.
Every parser is total: malformed input yields None (or a truncated list for
number arrays) instead of raising.
"""

import re
import logging
from typing import List, NamedTuple, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# --- Value Types ---

class Vector3(NamedTuple):
    x: float
    y: float
    z: float


class Quaternion(NamedTuple):
    x: float
    y: float
    z: float
    w: float


Scale = Union[float, Vector3]
ScaleByDistance = Union[bool, float]

# --- Grammar ---

_SPLIT_ARRAY_RE = re.compile(r"[,\s]+")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")


def _tokens(text: str) -> List[str]:
    return [t for t in _SPLIT_ARRAY_RE.split(text) if t]


# --- Parsers ---

def parse_number(text: Optional[str]) -> Optional[float]:
    """Parses a single numeric literal. Empty or invalid text yields None."""
    if not text:
        return None
    text = text.strip()
    if not _NUMBER_RE.fullmatch(text):
        return None
    return float(text)


def parse_number_array(text: Optional[str]) -> Optional[List[float]]:
    """
    Splits text on runs of commas/whitespace and parses the tokens left to right.

    Parsing stops at the first token that is not a number; everything parsed
    before it is returned. Empty text yields None.
    """
    if not text:
        return None
    numbers: List[float] = []
    for token in _tokens(text):
        if not _NUMBER_RE.fullmatch(token):
            break
        numbers.append(float(token))
    return numbers


def parse_integer_array(text: Optional[str]) -> Optional[List[int]]:
    """Same truncation rule as parse_number_array, for integer lists."""
    if not text:
        return None
    integers: List[int] = []
    for token in _tokens(text):
        if not _INTEGER_RE.fullmatch(token):
            break
        integers.append(int(token))
    return integers


def parse_vector3(text: Optional[str]) -> Optional[Vector3]:
    """Exactly three numbers, otherwise None."""
    numbers = parse_number_array(text)
    if numbers is None or len(numbers) != 3:
        return None
    return Vector3(*numbers)


def parse_quaternion(text: Optional[str]) -> Optional[Quaternion]:
    """Exactly four numbers, otherwise None."""
    numbers = parse_number_array(text)
    if numbers is None or len(numbers) != 4:
        return None
    return Quaternion(*numbers)


def parse_scalar_or_vector3(text: Optional[str]) -> Optional[Scale]:
    vector = parse_vector3(text)
    if vector is not None:
        return vector
    return parse_number(text)


def parse_boolean_or_number(text: Optional[str]) -> Optional[ScaleByDistance]:
    if not text:
        return None
    if text.strip().lower() == "true":
        return True
    return parse_number(text)


def parse_string_array(text: Optional[str]) -> List[str]:
    """Splits a trimmed, single-space separated token list (script args)."""
    if not text:
        return []
    text = text.strip()
    if not text:
        return []
    return text.split(" ")


# --- Builders ---

def format_number(value: float) -> str:
    """Formats a number the way it is written on the wire (1.0 -> '1')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_number(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return format_number(value)


def build_number_array(values: Optional[Sequence[float]], separator: str = " ") -> Optional[str]:
    if values is None:
        return None
    return separator.join(format_number(v) for v in values)


def build_vector3(vector: Optional[Vector3]) -> Optional[str]:
    if vector is None:
        return None
    return f"{format_number(vector.x)} {format_number(vector.y)} {format_number(vector.z)}"


def build_quaternion(rotation: Optional[Quaternion]) -> Optional[str]:
    if rotation is None:
        return None
    return build_number_array((rotation.x, rotation.y, rotation.z, rotation.w))


def build_scalar_or_vector3(value: Optional[Scale]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Vector3):
        return build_vector3(value)
    if isinstance(value, (tuple, list)):
        # Plain 3-tuples are accepted for convenience
        return build_vector3(Vector3(*value))
    return format_number(value)


def build_boolean(value: Optional[bool], ignore_false: bool = True) -> Optional[str]:
    """True -> 'true'. False is omitted unless ignore_false is switched off."""
    if value is None:
        return None
    if value:
        return "true"
    return None if ignore_false else "false"


def build_boolean_or_number(value: Optional[ScaleByDistance], ignore_false: bool = True) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return build_boolean(value, ignore_false)
    return format_number(value)


def build_string_array(values: Optional[Sequence[str]]) -> Optional[str]:
    """Joins tokens with single spaces; an empty list omits the attribute."""
    if not values:
        return None
    return " ".join(values)
