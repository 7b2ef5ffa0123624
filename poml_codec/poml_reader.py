"""
poml_reader.py

Reads POML markup into the typed object model (see poml_entities).

The text is tokenized with ElementTree (comments and processing instructions
kept, attribute order preserved). The <poml> element is located anywhere in
the tree, then every node below <scene> is classified by tag name into an
element, a coordinate reference or a script element. Tags that are not part
of the vocabulary are kept as UnknownElement snapshots and never interpreted.
"""

import logging
import re
import xml.etree.ElementTree as ET
from html.entities import name2codepoint
from typing import Dict, Iterator, List, Optional, Tuple, Type, Union

from .poml_common import (
    AttributeMap, PomlParsingError, custom_attributes_from, pick_choice,
    ROTATION_MODES, DISPLAY_VALUES, AR_DISPLAY_VALUES, BACKFACE_MODES,
)
from .attribute_codec import (
    parse_number, parse_vector3, parse_quaternion, parse_scalar_or_vector3,
    parse_boolean_or_number, parse_string_array,
)
from .geometry_codec import parse_geometry_positions, parse_geometry_indices
from .poml_entities import (
    Document, Meta, Scene, ElementAttributes, PomlElementBase,
    EmptyElement, TextElement, ModelElement, ImageElement, VideoElement,
    GeometryElement, Cesium3dTilesElement, ScreenSpaceElement, UnknownElement,
    SpaceReference, GeoReference, ScriptElement, LineGeometry, PolygonGeometry,
    CoordinateReference, MaybePomlElement, PomlGeometry,
)

logger = logging.getLogger(__name__)

# Mapping from POML element tag names to element classes
ELEMENT_TAG_TO_CLASS: Dict[str, Type[PomlElementBase]] = {
    "element": EmptyElement,
    "text": TextElement,
    "model": ModelElement,
    "image": ImageElement,
    "video": VideoElement,
    "geometry": GeometryElement,
    "cesium3dtiles": Cesium3dTilesElement,
    "screen-space": ScreenSpaceElement,
}

# Coordinate references, including the deprecated *-placement names
COORDINATE_REFERENCE_TAG_TO_CLASS = {
    "space-reference": SpaceReference,
    "space-placement": SpaceReference,
    "geo-reference": GeoReference,
    "geo-placement": GeoReference,
}

SCRIPT_TAG = "script"

# Geometry primitives, only recognised directly below <geometry>
GEOMETRY_TAG_TO_CLASS = {
    "line": LineGeometry,
    "polygon": PolygonGeometry,
}

POML_TAG = "poml"
SCENE_TAG = "scene"
META_TAG = "meta"
TITLE_TAG = "title"

# A raw child node: an ElementTree node or the character data between nodes
RawNode = Union[ET.Element, str]
ClassifiedNode = Union[MaybePomlElement, CoordinateReference, ScriptElement]


# --- Tokenizer ---

# Named references XML itself defines; everything else in html.entities is rewritten
XML_PREDEFINED_ENTITIES = frozenset(("amp", "lt", "gt", "quot", "apos"))

# Comments and CDATA sections are matched first so references inside them are left alone
_ENTITY_REFERENCE_RE = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>|&([A-Za-z][A-Za-z0-9]*);", re.DOTALL)


def _replace_html_entity(match: "re.Match") -> str:
    name = match.group(1)
    if name is None or name in XML_PREDEFINED_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        return match.group(0)
    return f"&#{codepoint};"


def resolve_html_entities(text: str) -> str:
    """
    Rewrites HTML named character references (&nbsp;, &copy;...) as numeric
    references, so POML embedded in an HTML page can be tokenized as XML.
    Unknown names are left for the tokenizer to report.
    """
    return _ENTITY_REFERENCE_RE.sub(_replace_html_entity, text)


def local_name(tag) -> Optional[str]:
    """Tag name without its '{namespace}' part; None for comments and PIs."""
    if not isinstance(tag, str):
        return None
    return tag.rsplit("}", 1)[-1]


def parse_xml(text: str) -> ET.Element:
    """
    Tokenizes markup into an ElementTree, keeping comments and processing
    instructions as nodes. Whitespace-only character data is dropped and the
    remaining character data is trimmed.
    """
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    try:
        root = ET.fromstring(resolve_html_entities(text), parser=parser)
    except ET.ParseError as e:
        logger.error(f"Error parsing POML markup: {e}", exc_info=True)
        raise PomlParsingError(f"Malformed POML markup: {e}") from e

    _normalize_whitespace(root)
    return root


def _normalize_whitespace(root: ET.Element) -> None:
    for node in root.iter():
        # Comment and PI content is kept literally
        if isinstance(node.tag, str) and node.text is not None:
            node.text = node.text.strip() or None
        if node.tail is not None:
            node.tail = node.tail.strip() or None


def find_poml_root(root: ET.Element) -> Optional[ET.Element]:
    """
    Returns the first <poml> element in document order, if any. Namespaces
    are ignored, so <poml> inside an XHTML page is found as well.
    """
    for node in root.iter():
        if local_name(node.tag) == POML_TAG:
            return node
    return None


def _iter_child_nodes(node: ET.Element) -> Iterator[RawNode]:
    """Yields child elements and the non-empty character data between them, in order."""
    if node.text:
        yield node.text
    for child in node:
        yield child
        if child.tail:
            yield child.tail


def _find_child(node: ET.Element, tag: str) -> Optional[ET.Element]:
    for child in node:
        if local_name(child.tag) == tag:
            return child
    return None


# --- Attribute Helpers ---

def _original_attrs(attrib: Dict[str, str]) -> AttributeMap:
    return AttributeMap(attrib)


def _read_common_attributes(attrib: Dict[str, str]) -> ElementAttributes:
    """Parses the attributes shared by every element variant."""
    return ElementAttributes(
        rotation_mode=pick_choice(attrib.get("rotation-mode"), ROTATION_MODES),
        position=parse_vector3(attrib.get("position")),
        scale=parse_scalar_or_vector3(attrib.get("scale")),
        rotation=parse_quaternion(attrib.get("rotation")),
        scale_by_distance=parse_boolean_or_number(attrib.get("scale-by-distance")),
        min_scale=parse_scalar_or_vector3(attrib.get("min-scale")),
        max_scale=parse_scalar_or_vector3(attrib.get("max-scale")),
        display=pick_choice(attrib.get("display"), DISPLAY_VALUES),
        ar_display=pick_choice(attrib.get("ar-display"), AR_DISPLAY_VALUES),
        id=attrib.get("id"),
        web_link=attrib.get("web-link"),
        ws_recv_url=attrib.get("ws-recv-url"),
        custom_attributes=custom_attributes_from(attrib),
        original_attrs=_original_attrs(attrib),
    )


class PomlReader:
    """
    Converts an ElementTree holding a <poml> element into a Document.

    max_depth optionally bounds the nesting depth of known elements; None
    means unbounded.
    """
    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth

    # --- Document Level ---

    def read_document(self, root: ET.Element) -> Document:
        poml_elem = find_poml_root(root)
        if poml_elem is None:
            logger.warning("No <poml> element found. Returning an empty document.")
            return Document()
        return self.read_poml(poml_elem)

    def read_poml(self, poml_elem: ET.Element) -> Document:
        meta = None
        meta_elem = _find_child(poml_elem, META_TAG)
        if meta_elem is not None:
            title_elem = _find_child(meta_elem, TITLE_TAG)
            # <title></title> still yields a Meta, with no title
            title = title_elem.text if title_elem is not None and title_elem.text else None
            meta = Meta(title=title)

        scene_elem = _find_child(poml_elem, SCENE_TAG)
        scene = self.read_scene(scene_elem) if scene_elem is not None else Scene()
        return Document(scene=scene, meta=meta)

    def read_scene(self, scene_elem: ET.Element) -> Scene:
        attrib = scene_elem.attrib
        children, coordinate_references, script_elements = self._read_children(
            list(_iter_child_nodes(scene_elem)), depth=1
        )
        scene = Scene(
            children=children,
            coordinate_references=coordinate_references,
            script_elements=script_elements,
            ws_recv_url=attrib.get("ws-recv-url"),
            custom_attributes=custom_attributes_from(attrib),
            original_attrs=_original_attrs(attrib),
        )
        logger.debug(f"Read scene: {len(children)} children, "
                     f"{len(coordinate_references)} coordinate references, "
                     f"{len(script_elements)} scripts")
        return scene

    # --- Classification ---

    def _read_children(self, nodes: List[RawNode], depth: int
                       ) -> Tuple[List[MaybePomlElement], List[CoordinateReference], List[ScriptElement]]:
        """Classifies each node, then splits the results into three disjoint groups."""
        children: List[MaybePomlElement] = []
        coordinate_references: List[CoordinateReference] = []
        script_elements: List[ScriptElement] = []

        for node in nodes:
            item = self._read_node(node, depth)
            if isinstance(item, (SpaceReference, GeoReference)):
                coordinate_references.append(item)
            elif isinstance(item, ScriptElement):
                script_elements.append(item)
            else:
                children.append(item)
        return children, coordinate_references, script_elements

    def _read_node(self, node: RawNode, depth: int) -> ClassifiedNode:
        if isinstance(node, str):
            logger.debug(f"Keeping character data as unknown node: {node[:40]!r}")
            return UnknownElement(node)

        tag = local_name(node.tag)
        if tag is None:
            # Comment or processing instruction
            return UnknownElement(node)
        if tag in ELEMENT_TAG_TO_CLASS:
            return self._read_element(node, depth)
        if tag in COORDINATE_REFERENCE_TAG_TO_CLASS:
            return _read_coordinate_reference(node)
        if tag == SCRIPT_TAG:
            return _read_script(node)

        logger.debug(f"Unsupported tag '{tag}' kept as unknown node.")
        return UnknownElement(node)

    def _read_element(self, elem: ET.Element, depth: int) -> PomlElementBase:
        """Parses a known element tag (<element>, <model>, <geometry>...) and its children."""
        if self.max_depth is not None and depth > self.max_depth:
            raise PomlParsingError(
                f"Element <{elem.tag}> exceeds the maximum nesting depth of {self.max_depth}."
            )

        element_class = ELEMENT_TAG_TO_CLASS[local_name(elem.tag)]
        attrib = elem.attrib
        child_nodes = list(_iter_child_nodes(elem))

        # --- Parse Variant-Specific Attributes ---
        element_kwargs = {}
        if element_class is TextElement:
            element_kwargs["text"] = attrib.get("text")
            element_kwargs["font_size"] = attrib.get("font-size")
            element_kwargs["font_color"] = attrib.get("font-color")
            element_kwargs["background_color"] = attrib.get("background-color")
        elif element_class in (ModelElement, Cesium3dTilesElement):
            element_kwargs["src"] = attrib.get("src")
            element_kwargs["filename"] = attrib.get("filename")
        elif element_class in (ImageElement, VideoElement):
            element_kwargs["src"] = attrib.get("src")
            element_kwargs["filename"] = attrib.get("filename")
            element_kwargs["width"] = parse_number(attrib.get("width"))
            element_kwargs["height"] = parse_number(attrib.get("height"))
            element_kwargs["backface_mode"] = pick_choice(attrib.get("backface-mode"), BACKFACE_MODES)
            element_kwargs["backface_color"] = attrib.get("backface-color")
        elif element_class is GeometryElement:
            geometries: List[PomlGeometry] = []
            other_nodes: List[RawNode] = []
            for node in child_nodes:
                if isinstance(node, ET.Element) and local_name(node.tag) in GEOMETRY_TAG_TO_CLASS:
                    geometries.append(_read_geometry(node))
                else:
                    other_nodes.append(node)
            child_nodes = other_nodes
            element_kwargs["geometries"] = geometries

        children, coordinate_references, script_elements = self._read_children(child_nodes, depth + 1)

        return element_class(
            attributes=_read_common_attributes(attrib),
            children=children,
            coordinate_references=coordinate_references,
            script_elements=script_elements,
            **element_kwargs,
        )


# --- Leaf Nodes ---

def _read_coordinate_reference(elem: ET.Element) -> CoordinateReference:
    """Parses <space-reference>/<geo-reference> (or their deprecated names)."""
    attrib = elem.attrib
    tag = local_name(elem.tag)
    reference_class = COORDINATE_REFERENCE_TAG_TO_CLASS[tag]
    if tag.endswith("-placement"):
        logger.debug(f"Deprecated tag <{tag}> read as {reference_class.type}.")

    if reference_class is SpaceReference:
        return SpaceReference(
            id=attrib.get("id"),
            space_type=attrib.get("space-type"),
            space_id=attrib.get("space-id"),
            position=parse_vector3(attrib.get("position")),
            rotation=parse_quaternion(attrib.get("rotation")),
            original_attrs=_original_attrs(attrib),
        )
    return GeoReference(
        id=attrib.get("id"),
        latitude=parse_number(attrib.get("latitude")),
        longitude=parse_number(attrib.get("longitude")),
        ellipsoidal_height=parse_number(attrib.get("ellipsoidal-height")),
        enu_rotation=parse_quaternion(attrib.get("enu-rotation")),
        original_attrs=_original_attrs(attrib),
    )


def _read_script(elem: ET.Element) -> ScriptElement:
    attrib = elem.attrib
    return ScriptElement(
        id=attrib.get("id"),
        src=attrib.get("src"),
        filename=attrib.get("filename"),
        args=parse_string_array(attrib.get("args")),
        original_attrs=_original_attrs(attrib),
    )


def _read_vertices(elem: ET.Element):
    text = elem.get("vertices")
    if text is None:
        return None
    vertices = parse_geometry_positions(text)
    if vertices is None:
        logger.debug(f"Could not parse vertices {text!r} of <{elem.tag}>; keeping raw text.")
        return text
    return vertices


def _read_geometry(elem: ET.Element) -> PomlGeometry:
    """Parses a <line> or <polygon> primitive below <geometry>."""
    attrib = elem.attrib
    geometry_class = GEOMETRY_TAG_TO_CLASS[local_name(elem.tag)]
    if geometry_class is PolygonGeometry:
        return PolygonGeometry(
            vertices=_read_vertices(elem),
            indices=parse_geometry_indices(attrib.get("indices")),
            color=attrib.get("color"),
            original_attrs=_original_attrs(attrib),
        )
    return LineGeometry(
        vertices=_read_vertices(elem),
        color=attrib.get("color"),
        original_attrs=_original_attrs(attrib),
    )
