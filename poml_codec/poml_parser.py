"""
poml_parser.py

Entry points of the codec: PomlParser.parse turns POML text into a Document,
PomlParser.build turns a Document back into POML text. Also provides helpers
to read and save .poml files.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from .poml_entities import Document
from .poml_reader import PomlReader, parse_xml
from .poml_writer import PomlWriter, serialize_xml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOptions:
    """
    Options for PomlParser.build.

    ignore_custom_attributes: do not write custom (underscore prefixed)
        attributes on any node.
    indent: indentation used for pretty-printing; None writes the markup
        without added whitespace.
    """
    ignore_custom_attributes: bool = False
    indent: Optional[str] = "  "


class PomlParser:
    """Parses and builds POML documents."""

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth

    def parse(self, poml: str) -> Document:
        """
        Parses POML text. The <poml> element may be nested inside another
        document (e.g. HTML). Without a <poml> element an empty Document is
        returned.

        Raises:
            PomlParsingError: the text is not well-formed markup.
        """
        root = parse_xml(poml)
        return PomlReader(max_depth=self.max_depth).read_document(root)

    def build(self, document: Document, options: Optional[BuildOptions] = None) -> str:
        """Builds POML text for a Document."""
        options = options or BuildOptions()
        writer = PomlWriter(ignore_custom_attributes=options.ignore_custom_attributes)
        root = writer.build_document(document)
        return serialize_xml(root, indent=options.indent)


def read_poml_file(file_path: str, encoding: str = "utf-8", max_depth: Optional[int] = None) -> Document:
    """
    Reads a POML file and returns the parsed Document.

    Raises:
        FileNotFoundError: file_path does not exist.
        PomlParsingError: the file is not well-formed markup.
    """
    if not os.path.exists(file_path):
        logger.error(f"POML file not found: {file_path}")
        raise FileNotFoundError(file_path)

    logger.info(f"Reading POML file: {file_path}")
    with open(file_path, "r", encoding=encoding) as f:
        text = f.read()
    document = PomlParser(max_depth=max_depth).parse(text)
    logger.info(f"Read POML file {file_path}: {len(document.scene.children)} top-level children")
    return document


def save_poml_file(document: Document, file_path: str, options: Optional[BuildOptions] = None,
                   encoding: str = "utf-8") -> None:
    """Builds the text for a Document and writes it to file_path."""
    output_dir = os.path.dirname(file_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    text = PomlParser().build(document, options)
    with open(file_path, "w", encoding=encoding) as f:
        f.write(text)
        f.write("\n")
    logger.info(f"POML file successfully saved to: {file_path}")
