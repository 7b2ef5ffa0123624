"""
POML Codec

This package converts POML (Point/Place Object Markup Language) text to a
typed scene-graph object model and back.

Main entry point:
- PomlParser: parse(text) -> Document, build(document, options) -> text.
"""

from typing import Optional

from .poml_common import AttributeMap, PomlError, PomlParsingError, PomlBuildError
from .attribute_codec import Vector3, Quaternion
from .geometry_codec import GeodeticPosition, RelativePositions, GeodeticPositions
from .poml_entities import (
    Document, Meta, Scene, ElementAttributes,
    EmptyElement, TextElement, ModelElement, ImageElement, VideoElement,
    GeometryElement, Cesium3dTilesElement, ScreenSpaceElement, UnknownElement,
    SpaceReference, GeoReference, ScriptElement, LineGeometry, PolygonGeometry,
    iter_elements, strip_original_attrs,
)
from .poml_parser import PomlParser, BuildOptions, read_poml_file, save_poml_file

# Current package version
__version__ = "0.1.0"


def parse(poml: str) -> Document:
    """Shortcut for PomlParser().parse(poml)."""
    return PomlParser().parse(poml)


def build(document: Document, options: Optional[BuildOptions] = None) -> str:
    """Shortcut for PomlParser().build(document, options)."""
    return PomlParser().build(document, options)
