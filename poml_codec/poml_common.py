"""
poml_common.py

Common types, constants and exceptions shared by the POML codec modules.
"""

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# CONSTANTS

# Custom attributes carry this prefix on the wire; it is stripped on read.
CUSTOM_ATTRIBUTE_PREFIX = "_"

ROTATION_MODES = ("vertical-billboard", "billboard")
DISPLAY_VALUES = ("visible", "none", "occlusion")
AR_DISPLAY_VALUES = ("visible", "none", "occlusion", "same-as-display")
BACKFACE_MODES = ("none", "solid", "visible", "flipped")


# TYPES

class AttributeMap(Mapping):
    """
    Immutable, insertion-ordered string map.

    Used for custom attributes and for the original attributes of a tag.
    The order of the keys is the order in which they were found on the
    source tag, and it is kept when the map is written back.
    """
    __slots__ = ("_items", "_index")

    def __init__(self, items: Union[None, Mapping, Iterable[Tuple[str, str]]] = None):
        if items is None:
            pairs: Tuple[Tuple[str, str], ...] = ()
        elif isinstance(items, Mapping):
            pairs = tuple((str(k), str(v)) for k, v in items.items())
        else:
            pairs = tuple((str(k), str(v)) for k, v in items)
        index: Dict[str, str] = {}
        for key, value in pairs:
            index[key] = value
        object.__setattr__(self, "_index", index)
        object.__setattr__(self, "_items", tuple(index.items()))

    def __setattr__(self, name, value):
        raise AttributeError("AttributeMap is immutable")

    def __getitem__(self, key: str) -> str:
        return self._index[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other):
        if isinstance(other, AttributeMap):
            return self._index == other._index
        if isinstance(other, Mapping):
            return self._index == dict(other)
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._items))

    def __repr__(self):
        return f"AttributeMap({dict(self._items)!r})"

    def to_dict(self) -> Dict[str, str]:
        """Returns a new, mutable dict with the same ordered items."""
        return dict(self._items)


EMPTY_ATTRIBUTES = AttributeMap()


def custom_attributes_from(attributes: Mapping) -> AttributeMap:
    """Collects the prefixed custom attributes of a tag, keyed without the prefix."""
    return AttributeMap(
        (key[len(CUSTOM_ATTRIBUTE_PREFIX):], value)
        for key, value in attributes.items()
        if key.startswith(CUSTOM_ATTRIBUTE_PREFIX)
    )


def is_custom_attribute_key(key: str) -> bool:
    return key.startswith(CUSTOM_ATTRIBUTE_PREFIX)


def pick_choice(value: Optional[str], choices: Tuple[str, ...]) -> Optional[str]:
    """Returns value if it is one of the allowed choices, otherwise None."""
    if value in choices:
        return value
    return None


# Custom Exceptions
class PomlError(Exception):
    """Base exception for POML codec errors."""
    pass

class PomlParsingError(PomlError):
    """Error parsing a POML document."""
    pass

class PomlBuildError(PomlError):
    """Error building a POML document from the object model."""
    pass
