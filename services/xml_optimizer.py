"""
Optimization passes over generated offer XML.

Both passes are optional and composable, and neither changes the semantic
content of the tree:
- remove_empty_elements drops elements left without children, attributes
  or non-blank text (bottom-up, so a parent emptied by the pass goes too).
  The root is always kept.
- minify_xml removes layout whitespace between elements.

Offer XML carries no namespaces; namespaced input is refused with ValueError
rather than re-rendered with expanded tag names.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from domain.xml_element import XmlElement

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class XmlStats:
    original_size: int
    minified_size: int
    element_count: int

    @property
    def compression_ratio(self) -> float:
        if self.original_size == 0:
            return 0.0
        return round(1 - self.minified_size / self.original_size, 4)


def parse_xml(text: str) -> XmlElement:
    """
    Parse XML text into an element tree.

    Raises:
        xml.etree.ElementTree.ParseError: If the text is not well-formed
        ValueError: If the document uses XML namespaces
    """

    return XmlElement.from_etree(ET.fromstring(text))


def is_well_formed(text: str) -> bool:
    try:
        ET.fromstring(text)
    except ET.ParseError:
        return False
    return True


def _prune(element: XmlElement) -> Optional[XmlElement]:
    children = [pruned for pruned in (_prune(child) for child in element.children) if pruned is not None]
    result = XmlElement(
        name=element.name,
        text=element.text,
        attributes=dict(element.attributes),
        children=children,
    )
    return None if result.is_empty else result


def remove_empty_elements(root: XmlElement) -> XmlElement:
    """Copy of the tree without empty elements."""

    pruned = _prune(root)
    if pruned is None:
        return XmlElement(name=root.name, attributes=dict(root.attributes))
    return pruned


def minify_xml(text: str) -> str:
    return parse_xml(text).render(pretty=False)


def optimize_xml(text: str, minify: bool = False) -> str:
    """
    Strip empty elements and re-render, minified or indented.

    Raises:
        xml.etree.ElementTree.ParseError: If the text is not well-formed
        ValueError: If the document uses XML namespaces
    """

    tree = parse_xml(text)
    optimized = remove_empty_elements(tree)
    removed = tree.count() - optimized.count()
    if removed:
        logger.info(
            f"Removed {removed} empty element(s) from {tree.name}",
            extra={"removed_elements": removed, "root_element": tree.name},
        )
    return optimized.render(pretty=not minify)


def collect_stats(text: str) -> XmlStats:
    tree = parse_xml(text)
    return XmlStats(
        original_size=len(text.encode("utf-8")),
        minified_size=len(tree.render(pretty=False).encode("utf-8")),
        element_count=tree.count(),
    )


__all__ = [
    "XmlStats",
    "parse_xml",
    "is_well_formed",
    "remove_empty_elements",
    "minify_xml",
    "optimize_xml",
    "collect_stats",
]
