"""
Domain: Ordered element tree for generated documents.

An element is {name, attributes, text, children}. Children keep the order
they were appended in; the generator decides that order, never the input.
Rendering is deterministic: the same tree always renders to the same text.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .formatting import escape_xml

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "


@dataclass(slots=True)
class XmlElement:
    name: str
    text: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["XmlElement"] = field(default_factory=list)

    def add(self, name: str, text: Optional[str] = None) -> "XmlElement":
        """Append a new child and return it."""

        child = XmlElement(name=name, text=text)
        self.children.append(child)
        return child

    def append(self, child: "XmlElement") -> "XmlElement":
        self.children.append(child)
        return child

    def find(self, name: str) -> Optional["XmlElement"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def find_all(self, name: str) -> List["XmlElement"]:
        return [child for child in self.children if child.name == name]

    def iter(self) -> Iterator["XmlElement"]:
        yield self
        for child in self.children:
            yield from child.iter()

    def count(self) -> int:
        return sum(1 for _ in self.iter())

    @property
    def is_empty(self) -> bool:
        return (
            not self.children
            and not self.attributes
            and (self.text is None or self.text.strip() == "")
        )

    def render(self, pretty: bool = True, declaration: bool = True, level: int = 0) -> str:
        lines: List[str] = []
        if declaration:
            lines.append(XML_DECLARATION)
        self._render(lines, level, pretty)
        return ("\n" if pretty else "").join(lines)

    def _render(self, lines: List[str], level: int, pretty: bool) -> None:
        pad = INDENT * level if pretty else ""
        attrs = "".join(
            f' {key}="{escape_xml(value, quote=True)}"' for key, value in self.attributes.items()
        )

        if not self.children:
            if self.text is None or self.text == "":
                lines.append(f"{pad}<{self.name}{attrs}/>")
            else:
                lines.append(f"{pad}<{self.name}{attrs}>{escape_xml(self.text)}</{self.name}>")
            return

        opening = f"{pad}<{self.name}{attrs}>"
        if self.text is not None and self.text.strip():
            opening += escape_xml(self.text)

        if not pretty:
            parts: List[str] = []
            for child in self.children:
                child._render(parts, 0, pretty)
            lines.append(opening + "".join(parts) + f"</{self.name}>")
            return

        lines.append(opening)
        for child in self.children:
            child._render(lines, level + 1, pretty)
        lines.append(f"{pad}</{self.name}>")

    @classmethod
    def from_etree(cls, element: ET.Element) -> "XmlElement":
        """
        Convert a parsed ElementTree element.

        Whitespace-only text on elements with children is layout, not
        content, and is dropped. Leaf text is kept as-is.

        Raises:
            ValueError: If a tag or attribute carries a namespace; prefixes are
                not kept by the parser, so they could not be rendered back
        """

        for name in (element.tag, *element.attrib):
            if name.startswith("{"):
                raise ValueError(f"Namespaced XML is not supported: {name}")
        children = [cls.from_etree(child) for child in element]
        text = element.text
        if children and text is not None and not text.strip():
            text = None
        return cls(
            name=element.tag,
            text=text,
            attributes=dict(element.attrib),
            children=children,
        )


__all__ = ["XML_DECLARATION", "INDENT", "XmlElement"]
