"""
poml_entities.py

Defines the POML object model: the document, its scene, the element variants,
coordinate references, script elements and geometry primitives.

All entities are frozen value objects. Lists given to constructors are stored
as tuples and plain dicts are stored as ordered AttributeMaps, so a parsed or
hand built tree is never mutated after construction. The attributes shared by
every element variant live in an ElementAttributes value held by each element.
"""

import logging
import xml.etree.ElementTree as ET
from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Iterator, Optional, Tuple, Union

from .poml_common import AttributeMap, EMPTY_ATTRIBUTES
from .attribute_codec import Vector3, Quaternion, Scale, ScaleByDistance
from .geometry_codec import GeometryPositions, GeometryIndices

logger = logging.getLogger(__name__)


def _freeze(obj: Any, name: str, value: Any) -> None:
    # Frozen dataclasses need object.__setattr__ in __post_init__
    object.__setattr__(obj, name, value)


def _as_attribute_map(value) -> AttributeMap:
    if isinstance(value, AttributeMap):
        return value
    if value is None:
        return EMPTY_ATTRIBUTES
    return AttributeMap(value)


# --- Common Attributes ---

@dataclass(frozen=True)
class ElementAttributes:
    """Attributes shared by every known element variant."""
    rotation_mode: Optional[str] = None         # vertical-billboard | billboard
    position: Optional[Vector3] = None
    scale: Optional[Scale] = None
    rotation: Optional[Quaternion] = None
    scale_by_distance: Optional[ScaleByDistance] = None
    min_scale: Optional[Scale] = None
    max_scale: Optional[Scale] = None
    display: Optional[str] = None               # visible | none | occlusion
    ar_display: Optional[str] = None            # visible | none | occlusion | same-as-display
    id: Optional[str] = None
    web_link: Optional[str] = None
    ws_recv_url: Optional[str] = None
    custom_attributes: AttributeMap = EMPTY_ATTRIBUTES
    # Every attribute present on the source tag, keyed by its bare name
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "custom_attributes", _as_attribute_map(self.custom_attributes))
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


# --- Coordinate References and Scripts ---

@dataclass(frozen=True)
class SpaceReference:
    """Anchors the parent element to an external space (e.g. an AR map)."""
    type: ClassVar[str] = "space-reference"

    id: Optional[str] = None
    space_type: Optional[str] = None
    space_id: Optional[str] = None
    position: Optional[Vector3] = None
    rotation: Optional[Quaternion] = None
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


@dataclass(frozen=True)
class GeoReference:
    """Anchors the parent element to a geodetic location."""
    type: ClassVar[str] = "geo-reference"

    id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    ellipsoidal_height: Optional[float] = None
    enu_rotation: Optional[Quaternion] = None
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


CoordinateReference = Union[SpaceReference, GeoReference]


@dataclass(frozen=True)
class ScriptElement:
    type: ClassVar[str] = "script"

    id: Optional[str] = None
    src: Optional[str] = None
    filename: Optional[str] = None
    args: Tuple[str, ...] = ()
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "args", tuple(self.args))
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


# --- Geometry Primitives ---

@dataclass(frozen=True)
class LineGeometry:
    type: ClassVar[str] = "line"

    vertices: Optional[GeometryPositions] = None
    color: Optional[str] = None
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


@dataclass(frozen=True)
class PolygonGeometry:
    type: ClassVar[str] = "polygon"

    vertices: Optional[GeometryPositions] = None
    indices: Optional[GeometryIndices] = None
    color: Optional[str] = None
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        if self.indices is not None and not isinstance(self.indices, str):
            _freeze(self, "indices", tuple(self.indices))
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


PomlGeometry = Union[LineGeometry, PolygonGeometry]


# --- Unknown Nodes ---

@dataclass(frozen=True, eq=False)
class UnknownElement:
    """
    Verbatim snapshot of a node the codec does not understand.

    `original` is a detached ElementTree node (element, comment or processing
    instruction) or a str for character data found between known elements.
    It is written back unchanged.
    """
    type: ClassVar[str] = "?"

    original: Union[ET.Element, str]

    def __post_init__(self):
        if not isinstance(self.original, str):
            snapshot = deepcopy(self.original)
            snapshot.tail = None
            _freeze(self, "original", snapshot)

    @property
    def tag(self) -> Optional[str]:
        """Tag name of an element snapshot; None for text, comments and PIs."""
        if isinstance(self.original, str):
            return None
        return self.original.tag if isinstance(self.original.tag, str) else None

    @property
    def is_text(self) -> bool:
        return isinstance(self.original, str)

    @property
    def is_comment(self) -> bool:
        return not self.is_text and self.original.tag is ET.Comment

    def to_xml(self) -> str:
        if isinstance(self.original, str):
            return self.original
        return ET.tostring(self.original, encoding="unicode")

    def __eq__(self, other):
        if not isinstance(other, UnknownElement):
            return NotImplemented
        return self.is_text == other.is_text and self.to_xml() == other.to_xml()

    def __hash__(self):
        return hash(self.to_xml())

    def __repr__(self):
        return f"UnknownElement({self.to_xml()!r})"


# --- Element Variants ---

@dataclass(frozen=True)
class PomlElementBase:
    """Structure shared by the scene and every known element variant."""
    attributes: ElementAttributes = field(default_factory=ElementAttributes)
    children: Tuple["MaybePomlElement", ...] = ()
    coordinate_references: Tuple[CoordinateReference, ...] = ()
    script_elements: Tuple[ScriptElement, ...] = ()

    def __post_init__(self):
        _freeze(self, "children", tuple(self.children))
        _freeze(self, "coordinate_references", tuple(self.coordinate_references))
        _freeze(self, "script_elements", tuple(self.script_elements))


@dataclass(frozen=True)
class EmptyElement(PomlElementBase):
    type: ClassVar[str] = "element"


@dataclass(frozen=True)
class TextElement(PomlElementBase):
    type: ClassVar[str] = "text"

    text: Optional[str] = None
    font_size: Optional[str] = None
    font_color: Optional[str] = None
    background_color: Optional[str] = None


@dataclass(frozen=True)
class ModelElement(PomlElementBase):
    type: ClassVar[str] = "model"

    src: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class Cesium3dTilesElement(PomlElementBase):
    type: ClassVar[str] = "cesium3dtiles"

    src: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class ImageElement(PomlElementBase):
    type: ClassVar[str] = "image"

    src: Optional[str] = None
    filename: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    backface_mode: Optional[str] = None         # none | solid | visible | flipped
    backface_color: Optional[str] = None


@dataclass(frozen=True)
class VideoElement(PomlElementBase):
    type: ClassVar[str] = "video"

    src: Optional[str] = None
    filename: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    backface_mode: Optional[str] = None
    backface_color: Optional[str] = None


@dataclass(frozen=True)
class GeometryElement(PomlElementBase):
    type: ClassVar[str] = "geometry"

    geometries: Tuple[PomlGeometry, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        _freeze(self, "geometries", tuple(self.geometries))


@dataclass(frozen=True)
class ScreenSpaceElement(PomlElementBase):
    type: ClassVar[str] = "screen-space"


PomlElement = Union[
    EmptyElement, TextElement, ModelElement, ImageElement, VideoElement,
    GeometryElement, Cesium3dTilesElement, ScreenSpaceElement,
]
MaybePomlElement = Union[PomlElement, UnknownElement]


# --- Document ---

@dataclass(frozen=True)
class Scene:
    """The single top-level container of a POML document."""
    children: Tuple[MaybePomlElement, ...] = ()
    coordinate_references: Tuple[CoordinateReference, ...] = ()
    script_elements: Tuple[ScriptElement, ...] = ()
    ws_recv_url: Optional[str] = None
    custom_attributes: AttributeMap = EMPTY_ATTRIBUTES
    original_attrs: AttributeMap = EMPTY_ATTRIBUTES

    def __post_init__(self):
        _freeze(self, "children", tuple(self.children))
        _freeze(self, "coordinate_references", tuple(self.coordinate_references))
        _freeze(self, "script_elements", tuple(self.script_elements))
        _freeze(self, "custom_attributes", _as_attribute_map(self.custom_attributes))
        _freeze(self, "original_attrs", _as_attribute_map(self.original_attrs))


@dataclass(frozen=True)
class Meta:
    title: Optional[str] = None


@dataclass(frozen=True)
class Document:
    scene: Scene = field(default_factory=Scene)
    meta: Optional[Meta] = None


# --- Traversal Helpers ---

def iter_elements(container: Union[Document, Scene, PomlElementBase]) -> Iterator[PomlElementBase]:
    """Yields every known descendant element, depth first, in document order."""
    if isinstance(container, Document):
        container = container.scene
    for child in container.children:
        if isinstance(child, UnknownElement):
            continue
        yield child
        yield from iter_elements(child)


def strip_original_attrs(value):
    """
    Returns a copy of a model value with every original-attribute map emptied.
    Unknown nodes are returned as they are.
    """
    if isinstance(value, Document):
        return replace(value, scene=strip_original_attrs(value.scene))
    if isinstance(value, Scene):
        return replace(
            value,
            children=tuple(strip_original_attrs(c) for c in value.children),
            coordinate_references=tuple(strip_original_attrs(c) for c in value.coordinate_references),
            script_elements=tuple(strip_original_attrs(s) for s in value.script_elements),
            original_attrs=EMPTY_ATTRIBUTES,
        )
    if isinstance(value, PomlElementBase):
        changes = dict(
            attributes=replace(value.attributes, original_attrs=EMPTY_ATTRIBUTES),
            children=tuple(strip_original_attrs(c) for c in value.children),
            coordinate_references=tuple(strip_original_attrs(c) for c in value.coordinate_references),
            script_elements=tuple(strip_original_attrs(s) for s in value.script_elements),
        )
        if isinstance(value, GeometryElement):
            changes["geometries"] = tuple(strip_original_attrs(g) for g in value.geometries)
        return replace(value, **changes)
    if isinstance(value, (SpaceReference, GeoReference, ScriptElement, LineGeometry, PolygonGeometry)):
        return replace(value, original_attrs=EMPTY_ATTRIBUTES)
    return value
