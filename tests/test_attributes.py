"""Tests for element attribute sources."""

import xml.etree.ElementTree as ET
from types import SimpleNamespace
from xml.dom import minidom

import pytest

from stbdiff.parsers.attributes import (
    DomAttributeSource,
    PlainAttributeSource,
    as_attribute_source,
)


SLAB_XML = (
    '<StbSlab id="20" id_floor="F1" id_section="S1" level_top="">'
    '<StbNodeIdOrder>1 2 3 4</StbNodeIdOrder>'
    '</StbSlab>'
)

NAMESPACED_XML = (
    '<stb:StbSlab xmlns:stb="https://www.building-smart.or.jp/dl" id="21">'
    '<stb:StbNodeIdOrder>\n  5 6\n  7\n</stb:StbNodeIdOrder>'
    '</stb:StbSlab>'
)


class TestDomAttributeSource:
    """Tests for XML element adapters."""

    @pytest.fixture
    def minidom_slab(self):
        return minidom.parseString(SLAB_XML).documentElement

    def test_minidom_attributes(self, minidom_slab):
        """Test reading attributes from a minidom element."""
        source = as_attribute_source(minidom_slab)
        assert isinstance(source, DomAttributeSource)
        assert source.get("id") == "20"
        assert source.element_id == "20"
        assert source.get("id_floor") == "F1"
        assert source.get("missing") is None
        # Empty attribute values count as absent
        assert source.get("level_top") is None

    def test_minidom_node_order(self, minidom_slab):
        """Test reading the node order sub-element."""
        source = as_attribute_source(minidom_slab)
        assert source.node_order("StbNodeIdOrder") == ["1", "2", "3", "4"]
        assert source.node_order("StbOther") is None

    def test_elementtree_attributes(self):
        """Test reading an ElementTree element."""
        source = as_attribute_source(ET.fromstring(SLAB_XML))
        assert isinstance(source, DomAttributeSource)
        assert source.get("id_section") == "S1"
        assert source.get("missing") is None
        assert source.node_order("StbNodeIdOrder") == ["1", "2", "3", "4"]

    def test_namespaced_node_order(self):
        """Test that namespace prefixes are ignored when finding the tag."""
        source = as_attribute_source(ET.fromstring(NAMESPACED_XML))
        assert source.get("id") == "21"
        assert source.node_order("StbNodeIdOrder") == ["5", "6", "7"]

        dom_source = as_attribute_source(minidom.parseString(NAMESPACED_XML).documentElement)
        assert dom_source.node_order("StbNodeIdOrder") == ["5", "6", "7"]


class TestPlainAttributeSource:
    """Tests for mapping and object adapters."""

    def test_mapping_values_are_strings(self):
        """Test that values are converted with str."""
        source = as_attribute_source({"id": 10, "level_top": -1500.5, "name": None})
        assert isinstance(source, PlainAttributeSource)
        assert source.get("id") == "10"
        assert source.get("name") is None
        assert source.get_float("level_top") == -1500.5

    def test_node_order_list_and_string(self):
        """Test both node order encodings."""
        assert as_attribute_source({"StbNodeIdOrder": [1, 2, 3]}).node_order("StbNodeIdOrder") == ["1", "2", "3"]
        assert as_attribute_source({"StbNodeIdOrder": "1 2  3"}).node_order("StbNodeIdOrder") == ["1", "2", "3"]
        assert as_attribute_source({"StbNodeIdOrder": []}).node_order("StbNodeIdOrder") is None
        assert as_attribute_source({}).node_order("StbNodeIdOrder") is None

    def test_plain_object(self):
        """Test reading direct fields of an object."""
        source = as_attribute_source(SimpleNamespace(id="5", guid="abc"))
        assert source.get("guid") == "abc"
        assert source.get("missing") is None

    def test_get_float_non_numeric(self):
        """Test that non-numeric values give None."""
        assert as_attribute_source({"level_top": "top"}).get_float("level_top") is None
        assert as_attribute_source({}).get_float("level_top") is None


class TestAsAttributeSource:
    """Tests for adapter selection."""

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            as_attribute_source(None)

    def test_source_returned_unchanged(self):
        source = PlainAttributeSource({"id": "1"})
        assert as_attribute_source(source) is source
