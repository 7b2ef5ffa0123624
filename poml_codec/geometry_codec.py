"""
geometry_codec.py

Parses and builds the vertex and index attributes of <line> and <polygon>
geometry primitives.

Vertex grammar: an optional, case-insensitive key followed by a colon
("relative:" or "geodetic:"), then a space separated list of comma separated
triples. Without a key the positions are relative.
Relative triples are (x, y, z); geodetic triples are
(longitude, latitude, ellipsoidal height), in that order.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

from .attribute_codec import (
    Vector3, format_number, parse_number_array, parse_integer_array, build_number_array
)

logger = logging.getLogger(__name__)

RELATIVE_KEY = "relative"
GEODETIC_KEY = "geodetic"


class GeodeticPosition(NamedTuple):
    longitude: float
    latitude: float
    ellipsoidal_height: float


@dataclass(frozen=True)
class RelativePositions:
    """Vertices given relative to the owning element, as (x, y, z)."""
    positions: Tuple[Vector3, ...] = ()

    @property
    def type(self) -> str:
        return RELATIVE_KEY


@dataclass(frozen=True)
class GeodeticPositions:
    """Vertices given as (longitude, latitude, ellipsoidal height)."""
    positions: Tuple[GeodeticPosition, ...] = ()

    @property
    def type(self) -> str:
        return GEODETIC_KEY


# Typed positions, or the raw attribute text when it could not be understood
GeometryPositions = Union[RelativePositions, GeodeticPositions, str]
GeometryIndices = Union[Tuple[int, ...], str]

_KEY_VALUE_RE = re.compile(r"^\s*(\w+?)\s*:")
_SPLIT_RE = re.compile(r"[,\s]+")


def _split_key_value(text: str) -> Tuple[str, str]:
    match = _KEY_VALUE_RE.match(text)
    if match is None:
        return "", text
    return match.group(1).lower(), text[match.end():]


def _triples(numbers: List[float]) -> List[Tuple[float, float, float]]:
    count = len(numbers) // 3
    return [tuple(numbers[i * 3:i * 3 + 3]) for i in range(count)]


def parse_geometry_positions(text: Optional[str]) -> Optional[Union[RelativePositions, GeodeticPositions]]:
    """
    Parses a vertex list attribute.

    Returns None for empty text, for an unrecognised key, and for a body
    that does not parse completely into triples (a non-numeric token or a
    trailing partial triple). Callers keep the raw text in that case.
    """
    if not text:
        return None

    key, value = _split_key_value(text)
    if key not in ("", RELATIVE_KEY, GEODETIC_KEY):
        logger.debug(f"Unrecognised geometry positions key '{key}'.")
        return None

    numbers = parse_number_array(value)
    if not numbers:
        return None
    token_count = len([t for t in _SPLIT_RE.split(value) if t])
    if len(numbers) != token_count or len(numbers) % 3:
        logger.debug(f"Geometry positions {text!r} are not a complete list of triples.")
        return None

    if key == GEODETIC_KEY:
        return GeodeticPositions(tuple(GeodeticPosition(*t) for t in _triples(numbers)))
    return RelativePositions(tuple(Vector3(*t) for t in _triples(numbers)))


def build_geometry_positions(positions: Optional[GeometryPositions]) -> Optional[str]:
    """
    Renders typed positions as 'key: a,b,c a,b,c ...'.
    A raw string is returned unchanged.
    """
    if positions is None:
        return None
    if isinstance(positions, str):
        return positions

    if isinstance(positions, GeodeticPositions):
        body = " ".join(
            f"{format_number(p.longitude)},{format_number(p.latitude)},{format_number(p.ellipsoidal_height)}"
            for p in positions.positions
        )
        return f"{GEODETIC_KEY}: {body}"
    if isinstance(positions, RelativePositions):
        body = " ".join(
            f"{format_number(p.x)},{format_number(p.y)},{format_number(p.z)}"
            for p in positions.positions
        )
        return f"{RELATIVE_KEY}: {body}"
    raise TypeError(f"Unsupported geometry positions type: {type(positions)}")


def parse_geometry_indices(text: Optional[str]) -> Optional[GeometryIndices]:
    """
    Parses a polygon index list, stopping at the first invalid token.
    Text that yields no index at all is kept raw.
    """
    if text is None:
        return None
    indices = parse_integer_array(text)
    if not indices:
        return text
    return tuple(indices)


def build_geometry_indices(indices: Optional[Union[GeometryIndices, Sequence[int]]]) -> Optional[str]:
    if indices is None:
        return None
    if isinstance(indices, str):
        return indices
    return build_number_array(indices, " ")
