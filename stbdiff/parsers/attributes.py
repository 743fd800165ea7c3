"""
Attribute sources for element records.

Element records reach the comparison engine either as DOM-like XML elements
(minidom `getAttribute`, ElementTree `.get`) or as plain data (dicts or
simple objects). Both are wrapped behind AttributeSource so the key
extractors only deal with one interface.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional


class AttributeSource(ABC):
    """Read-only named-attribute view over one element record."""

    def __init__(self, element: Any):
        self.element = element

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the attribute value as a string, or None if absent."""

    @abstractmethod
    def node_order(self, tag: str) -> Optional[list[str]]:
        """Return the node ids listed under the `tag` sub-structure, or None."""

    @property
    def element_id(self) -> Optional[str]:
        return self.get("id")

    def get_float(self, name: str) -> Optional[float]:
        """Return the attribute parsed as float, or None if absent or not numeric."""
        value = self.get(name)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.element_id!r})"


def _local_name(tag: Any) -> str:
    """Strip an ElementTree '{namespace}' prefix or a 'prefix:' qualifier."""
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    return tag.rsplit(":", 1)[-1]


class DomAttributeSource(AttributeSource):
    """
    Adapter for XML elements.

    Supports W3C DOM style elements (getAttribute / hasAttribute /
    getElementsByTagName) and xml.etree.ElementTree elements (get / iter).
    """

    def __init__(self, element: Any):
        super().__init__(element)
        self._is_dom = hasattr(element, "getAttribute")

    def get(self, name: str) -> Optional[str]:
        if self._is_dom:
            # DOM returns "" for missing attributes
            has_attribute = getattr(self.element, "hasAttribute", None)
            if has_attribute is not None and not has_attribute(name):
                return None
            value = self.element.getAttribute(name)
            return value if value not in (None, "") else None
        return self.element.get(name)

    def node_order(self, tag: str) -> Optional[list[str]]:
        text = self._find_text(tag)
        if text is None:
            return None
        ids = text.split()
        return ids or None

    def _find_text(self, tag: str) -> Optional[str]:
        if self._is_dom:
            for node in self.element.getElementsByTagName("*"):
                if _local_name(node.tagName) == tag:
                    return "".join(
                        child.data for child in node.childNodes
                        if child.nodeType == child.TEXT_NODE
                    )
            return None

        for node in self.element.iter():
            if node is not self.element and _local_name(node.tag) == tag:
                return node.text or ""
        return None


class PlainAttributeSource(AttributeSource):
    """Adapter for mappings and plain objects with direct fields."""

    def _raw(self, name: str) -> Any:
        if isinstance(self.element, Mapping):
            return self.element.get(name)
        return getattr(self.element, name, None)

    def get(self, name: str) -> Optional[str]:
        value = self._raw(name)
        if value is None:
            return None
        return str(value)

    def node_order(self, tag: str) -> Optional[list[str]]:
        value = self._raw(tag)
        if value is None:
            return None
        if isinstance(value, str):
            ids = value.split()
        else:
            ids = [str(node_id) for node_id in value]
        return ids or None


def as_attribute_source(element: Any) -> AttributeSource:
    """
    Wrap an element record in the matching AttributeSource adapter.

    Args:
        element: DOM element, ElementTree element, mapping or plain object

    Returns:
        AttributeSource for the element (returned unchanged if already one)
    """
    if element is None:
        raise TypeError("Cannot read attributes from None")
    if isinstance(element, AttributeSource):
        return element
    if hasattr(element, "getAttribute") or (hasattr(element, "iter") and hasattr(element, "tag")):
        return DomAttributeSource(element)
    return PlainAttributeSource(element)
