"""
JSON model snapshot parser.

A snapshot is what an upstream XML reader hands to the comparison engine:
the node coordinate map plus the element records of each type.

    {
        "nodes": {"1": [0, 0, 0], "2": {"x": 0, "y": 0, "z": 3000}},
        "elements": {
            "Column": [{"id": "10", "id_node_bottom": "1", "id_node_top": "2"}],
            "Slab": [{"id": "20", "StbNodeIdOrder": "1 2 3 4", "id_floor": "F1"}]
        }
    }

Element type names may carry the "Stb" prefix ("StbColumn"); it is removed.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stbdiff.geometry.keys import Coordinate, coordinate_axes

logger = logging.getLogger(__name__)

TYPE_PREFIX = "Stb"
NODE_TYPE = "Node"


@dataclass
class ModelSnapshot:
    """Node map and element records of one model."""

    nodes: dict = field(default_factory=dict)  # node id -> Coordinate
    elements: dict = field(default_factory=dict)  # type name -> list of records
    source: str = ""
    errors: list = field(default_factory=list)

    @property
    def element_types(self) -> list[str]:
        types = list(self.elements)
        if self.nodes and NODE_TYPE not in types:
            types.insert(0, NODE_TYPE)
        return types

    def elements_of(self, element_type: str) -> list:
        """
        Element records of a type. Without explicit node records, nodes are
        compared as one {"id": node_id} record per entry of the node map.
        """
        if element_type == NODE_TYPE and NODE_TYPE not in self.elements:
            return [{"id": node_id} for node_id in self.nodes]
        return self.elements.get(element_type, [])

    def element_map(self) -> dict:
        """Type name -> element records, as taken by compare_models."""
        return {name: self.elements_of(name) for name in self.element_types}

    def summary(self) -> dict:
        return {
            "source": self.source,
            "nodes": len(self.nodes),
            "elements": {name: len(records) for name, records in self.elements.items()},
            "errors": len(self.errors),
        }


class SnapshotParser:
    """
    Parser for JSON model snapshots.

    Structural problems (wrong top-level shape, elements that are not
    objects) raise ValueError. Individual nodes with unusable coordinates are
    skipped and listed in ModelSnapshot.errors; elements referencing them are
    then reported as unresolvable by the key extractors.
    """

    def parse(self, file_path: str | Path) -> ModelSnapshot:
        """
        Parse a snapshot file.

        Args:
            file_path: Path to the JSON file

        Returns:
            ModelSnapshot

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the content is not a valid snapshot
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {file_path}")

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

        snapshot = self.parse_dict(data, source=str(file_path))
        logger.info(
            "Loaded %s: %d nodes, %d element types",
            file_path.name, len(snapshot.nodes), len(snapshot.elements)
        )
        return snapshot

    def parse_dict(self, data: Any, source: str = "<memory>") -> ModelSnapshot:
        """Build a snapshot from already decoded JSON data."""
        if not isinstance(data, dict):
            raise ValueError(f"{source}: snapshot must be a JSON object")

        raw_nodes = data.get("nodes", {})
        raw_elements = data.get("elements", {})
        if not isinstance(raw_nodes, dict):
            raise ValueError(f"{source}: 'nodes' must be an object of id -> coordinates")
        if not isinstance(raw_elements, dict):
            raise ValueError(f"{source}: 'elements' must be an object of type -> list")

        snapshot = ModelSnapshot(source=source)

        for node_id, value in raw_nodes.items():
            coords = self._parse_node(value)
            if coords is None:
                snapshot.errors.append(f"Node {node_id}: invalid coordinates {value!r}")
                continue
            snapshot.nodes[str(node_id)] = coords

        for type_name, records in raw_elements.items():
            if not isinstance(records, list):
                raise ValueError(f"{source}: elements of {type_name} must be a list")
            for index, record in enumerate(records):
                if not isinstance(record, dict):
                    raise ValueError(f"{source}: {type_name}[{index}] must be an object")
            snapshot.elements[normalize_type_name(type_name)] = records

        for error in snapshot.errors:
            logger.warning("%s: %s", source, error)

        return snapshot

    def _parse_node(self, value: Any):
        if isinstance(value, (list, tuple)):
            if len(value) != 3:
                return None
            value = dict(zip(("x", "y", "z"), value))
        if not isinstance(value, dict):
            return None
        axes = coordinate_axes(value)
        if axes is None:
            return None
        return Coordinate(*(float(axis) for axis in axes))


def normalize_type_name(type_name: str) -> str:
    """'StbColumn' -> 'Column'; names without the prefix are kept."""
    if type_name.startswith(TYPE_PREFIX) and len(type_name) > len(TYPE_PREFIX):
        return type_name[len(TYPE_PREFIX):]
    return type_name


def load_snapshot(file_path: str | Path) -> ModelSnapshot:
    """Shorthand for SnapshotParser().parse(file_path)."""
    return SnapshotParser().parse(file_path)
