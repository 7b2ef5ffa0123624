"""
poml_writer.py

Builds the ElementTree for a POML Document and serialises it.

For every node the original attributes are written first, in their original
order, then the attributes derived from the typed fields are set on top.
A key that already exists keeps its position, new keys are appended.
Child nodes are written as: coordinate references, children, script
elements and, for <geometry>, the geometry primitives last.
"""

import logging
import xml.etree.ElementTree as ET
from copy import deepcopy
from typing import Dict, Iterable, List, Optional, Tuple

from .poml_common import (
    AttributeMap, PomlBuildError, CUSTOM_ATTRIBUTE_PREFIX, is_custom_attribute_key,
)
from .attribute_codec import (
    build_number, build_vector3, build_quaternion, build_scalar_or_vector3,
    build_boolean_or_number, build_string_array,
)
from .geometry_codec import build_geometry_positions, build_geometry_indices
from .poml_entities import (
    Document, Meta, Scene, ElementAttributes, PomlElementBase,
    EmptyElement, TextElement, ModelElement, ImageElement, VideoElement,
    GeometryElement, Cesium3dTilesElement, ScreenSpaceElement, UnknownElement,
    SpaceReference, GeoReference, ScriptElement, LineGeometry, PolygonGeometry,
    CoordinateReference, PomlGeometry,
)

logger = logging.getLogger(__name__)

AttributeItems = Iterable[Tuple[str, Optional[str]]]


def serialize_xml(root: ET.Element, indent: Optional[str] = "  ") -> str:
    """Serialises a tree to text. indent=None writes it without pretty-printing."""
    if indent is not None:
        ET.indent(root, space=indent, level=0)
    return ET.tostring(root, encoding="unicode", short_empty_elements=False).strip()


def _append_text(parent: ET.Element, text: str) -> None:
    """Writes character data at the current end of parent's content."""
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


class PomlWriter:
    """Converts the object model back into an ElementTree."""

    def __init__(self, ignore_custom_attributes: bool = False):
        self.ignore_custom_attributes = ignore_custom_attributes

    # --- Attribute Assembly ---

    def _merge_attributes(self, original_attrs: AttributeMap, *overlays: AttributeItems) -> Dict[str, str]:
        attrs: Dict[str, str] = {}
        for key, value in original_attrs.items():
            if self.ignore_custom_attributes and is_custom_attribute_key(key):
                continue
            attrs[key] = value
        for overlay in overlays:
            for key, value in overlay:
                if value is not None:
                    attrs[key] = value
        return attrs

    def _custom_attribute_items(self, custom_attributes: AttributeMap) -> List[Tuple[str, str]]:
        if self.ignore_custom_attributes:
            return []
        return [(f"{CUSTOM_ATTRIBUTE_PREFIX}{key}", value) for key, value in custom_attributes.items()]

    def _common_attribute_items(self, attributes: ElementAttributes) -> List[Tuple[str, Optional[str]]]:
        items = [
            ("rotation-mode", attributes.rotation_mode),
            ("position", build_vector3(attributes.position)),
            ("scale", build_scalar_or_vector3(attributes.scale)),
            ("rotation", build_quaternion(attributes.rotation)),
            ("scale-by-distance", build_boolean_or_number(attributes.scale_by_distance)),
            ("min-scale", build_scalar_or_vector3(attributes.min_scale)),
            ("max-scale", build_scalar_or_vector3(attributes.max_scale)),
            ("display", attributes.display),
            ("ar-display", attributes.ar_display),
            ("id", attributes.id),
            ("web-link", attributes.web_link),
            ("ws-recv-url", attributes.ws_recv_url),
        ]
        items.extend(self._custom_attribute_items(attributes.custom_attributes))
        return items

    # --- Document Level ---

    def build_document(self, document: Document) -> ET.Element:
        """Creates the <poml> element with its optional <meta> and its <scene>."""
        poml_elem = ET.Element("poml")
        if document.meta is not None:
            poml_elem.append(self.build_meta(document.meta))
        poml_elem.append(self.build_scene(document.scene))
        return poml_elem

    def build_meta(self, meta: Meta) -> ET.Element:
        meta_elem = ET.Element("meta")
        if meta.title is not None:
            ET.SubElement(meta_elem, "title").text = meta.title
        return meta_elem

    def build_scene(self, scene: Scene) -> ET.Element:
        attrs = self._merge_attributes(
            scene.original_attrs,
            [("ws-recv-url", scene.ws_recv_url)],
            self._custom_attribute_items(scene.custom_attributes),
        )
        scene_elem = ET.Element("scene", attrs)
        self._append_contents(scene_elem, scene.coordinate_references, scene.children, scene.script_elements)
        return scene_elem

    def _append_contents(self, parent: ET.Element, coordinate_references, children, script_elements) -> None:
        for reference in coordinate_references:
            parent.append(self.build_coordinate_reference(reference))
        for child in children:
            if isinstance(child, UnknownElement) and child.is_text:
                _append_text(parent, child.original)
            else:
                parent.append(self.build_element(child))
        for script in script_elements:
            parent.append(self.build_script(script))

    # --- Elements ---

    def build_element(self, element) -> ET.Element:
        """Creates the XML element for any element variant, including unknown nodes."""
        if isinstance(element, UnknownElement):
            if element.is_text:
                raise PomlBuildError("Character data cannot be built as a standalone element.")
            logger.debug(f"Writing unknown node unchanged: {element.to_xml()[:60]!r}")
            return deepcopy(element.original)
        if not isinstance(element, PomlElementBase):
            raise PomlBuildError(f"Unsupported child type: {type(element).__name__}")

        # --- Variant-Specific Attributes ---
        if isinstance(element, TextElement):
            specific = [
                ("text", element.text),
                ("font-size", element.font_size),
                ("font-color", element.font_color),
                ("background-color", element.background_color),
            ]
        elif isinstance(element, (ModelElement, Cesium3dTilesElement)):
            specific = [
                ("src", element.src),
                ("filename", element.filename),
            ]
        elif isinstance(element, (ImageElement, VideoElement)):
            specific = [
                ("src", element.src),
                ("filename", element.filename),
                ("width", build_number(element.width)),
                ("height", build_number(element.height)),
                ("backface-mode", element.backface_mode),
                ("backface-color", element.backface_color),
            ]
        elif isinstance(element, (EmptyElement, GeometryElement, ScreenSpaceElement)):
            specific = []
        else:
            raise PomlBuildError(f"Unsupported element type: {type(element).__name__}")

        attrs = self._merge_attributes(
            element.attributes.original_attrs,
            self._common_attribute_items(element.attributes),
            specific,
        )
        elem = ET.Element(element.type, attrs)
        self._append_contents(elem, element.coordinate_references, element.children, element.script_elements)

        if isinstance(element, GeometryElement):
            for geometry in element.geometries:
                elem.append(self.build_geometry(geometry))
        return elem

    # --- Leaf Nodes ---

    def build_coordinate_reference(self, reference: CoordinateReference) -> ET.Element:
        """Creates <space-reference> or <geo-reference>; deprecated names are not written."""
        if isinstance(reference, SpaceReference):
            attrs = self._merge_attributes(reference.original_attrs, [
                ("id", reference.id),
                ("space-id", reference.space_id),
                ("space-type", reference.space_type),
                ("position", build_vector3(reference.position)),
                ("rotation", build_quaternion(reference.rotation)),
            ])
        elif isinstance(reference, GeoReference):
            attrs = self._merge_attributes(reference.original_attrs, [
                ("id", reference.id),
                ("latitude", build_number(reference.latitude)),
                ("longitude", build_number(reference.longitude)),
                ("ellipsoidal-height", build_number(reference.ellipsoidal_height)),
                ("enu-rotation", build_quaternion(reference.enu_rotation)),
            ])
        else:
            raise PomlBuildError(f"Unsupported coordinate reference type: {type(reference).__name__}")
        return ET.Element(reference.type, attrs)

    def build_script(self, script: ScriptElement) -> ET.Element:
        if not isinstance(script, ScriptElement):
            raise PomlBuildError(f"Unsupported script element type: {type(script).__name__}")
        attrs = self._merge_attributes(script.original_attrs, [
            ("id", script.id),
            ("src", script.src),
            ("filename", script.filename),
            ("args", build_string_array(script.args)),
        ])
        return ET.Element(script.type, attrs)

    def build_geometry(self, geometry: PomlGeometry) -> ET.Element:
        if isinstance(geometry, LineGeometry):
            attrs = self._merge_attributes(geometry.original_attrs, [
                ("vertices", build_geometry_positions(geometry.vertices)),
                ("color", geometry.color),
            ])
        elif isinstance(geometry, PolygonGeometry):
            attrs = self._merge_attributes(geometry.original_attrs, [
                ("vertices", build_geometry_positions(geometry.vertices)),
                ("indices", build_geometry_indices(geometry.indices)),
                ("color", geometry.color),
            ])
        else:
            raise PomlBuildError(f"Unsupported geometry type: {type(geometry).__name__}")
        return ET.Element(geometry.type, attrs)


def build_xml_tree(document: Document, ignore_custom_attributes: bool = False) -> ET.ElementTree:
    """Constructs the XML ElementTree for a POML document."""
    writer = PomlWriter(ignore_custom_attributes=ignore_custom_attributes)
    return ET.ElementTree(writer.build_document(document))
