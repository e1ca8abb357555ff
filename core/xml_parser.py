"""
XML Parser Module
Parses XML content into the Node tree used by the comparison engine.
"""

from bs4 import BeautifulSoup, CData, NavigableString, Tag
from typing import List, Optional, Union
from pathlib import Path
import logging

from .errors import DocumentLoadError
from .xml_node import Node
from utils.file_utils import read_file_content

logger = logging.getLogger(__name__)


def qualified_name(tag: Tag) -> str:
    """Element name including its namespace prefix, if any."""
    if tag.prefix:
        return f"{tag.prefix}:{tag.name}"
    return tag.name


class XMLParser:
    """Parser for XML documents."""

    def __init__(self, keep_namespace_declarations: bool = False):
        self.keep_namespace_declarations = keep_namespace_declarations

    def parse_file(self, file_path: Union[str, Path]) -> Node:
        """Parse an XML file and return its root node."""
        try:
            logger.info(f"Starting to parse file: {file_path}")
            content = read_file_content(Path(file_path))
            logger.debug(f"Successfully read file, content length: {len(content)}")
            return self.parse(content)
        except OSError as e:
            logger.error(f"Error reading file {file_path}: {str(e)}", exc_info=True)
            raise DocumentLoadError(f"Cannot read {file_path}: {e}") from e

    def parse(self, xml_content: Union[str, bytes]) -> Node:
        """Parse XML content into a Node tree."""
        soup = BeautifulSoup(xml_content, 'xml')
        root_tag = next((c for c in soup.contents if isinstance(c, Tag)), None)
        if root_tag is None:
            raise DocumentLoadError('Document has no root element')
        logger.debug(f"Using root element: {qualified_name(root_tag)}")

        root = self._make_node(root_tag)
        stack = [(root_tag, root)]
        while stack:
            tag, node = stack.pop()
            for child_tag in tag.find_all(True, recursive=False):
                child = node.append(self._make_node(child_tag))
                stack.append((child_tag, child))
        logger.info("XML parsing complete")
        return root

    def _make_node(self, tag: Tag) -> Node:
        return Node(name=qualified_name(tag),
                    attributes=self._parse_attributes(tag),
                    text=self._direct_text(tag))

    def _parse_attributes(self, tag: Tag) -> dict:
        attrs = {}
        for key, value in tag.attrs.items():
            if not self.keep_namespace_declarations and (key == 'xmlns' or key.startswith('xmlns:')):
                continue
            # Multi-valued attributes come back as lists
            attrs[key] = ' '.join(value) if isinstance(value, list) else value
        return attrs

    def _direct_text(self, tag: Tag) -> Optional[str]:
        """Character data directly under the element, ignoring whitespace-only runs."""
        parts: List[str] = []
        for child in tag.children:
            if type(child) in (NavigableString, CData) and child.strip():
                parts.append(str(child))
        return ''.join(parts) if parts else None
