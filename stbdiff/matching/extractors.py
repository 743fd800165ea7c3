"""
Identity extraction for structural elements.

A key extractor reads one element record plus its model's node map and
returns the element's identity key together with the data the result
consumers need (ids, names, coordinates). One extractor exists per element
shape:

- PointExtractor: nodes and other single-node elements
- LineExtractor: columns, girders, beams, braces, piles, footings
- PolygonExtractor: slabs and walls

Elements whose geometry cannot be resolved (dangling node reference,
invalid coordinate, too few polygon vertices) produce an empty
ExtractionResult and a warning; the matchers leave them out of every bucket.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from stbdiff.errors import UnknownElementTypeError
from stbdiff.geometry.keys import (
    COORDINATE_PRECISION,
    Coordinate,
    coordinate_axes,
    guid_key,
    key_of,
    line_key_of,
    polygon_key_of,
    spatial_key,
)
from stbdiff.parsers.attributes import AttributeSource, as_attribute_source
from stbdiff.settings.config import DEFAULT_PILE_LENGTH
from stbdiff.settings.enums import ComparisonKeyType, ImportanceLevel

logger = logging.getLogger(__name__)


class ShapeKind(Enum):
    """Geometric shape of an element."""
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"


@dataclass(frozen=True)
class TwoNodeLine:
    """Line element stored with explicit start and end nodes."""

    start_id: str
    end_id: str


@dataclass(frozen=True)
class SyntheticLine:
    """
    Line element stored as a single node plus a top level (piles).

    The bottom point is not in the model; it is placed `length` below the
    top so the element can be keyed like any other line.
    """

    node_id: str
    level_top: float
    offset_x: float = 0.0
    offset_y: float = 0.0
    length: float = DEFAULT_PILE_LENGTH

    @property
    def bottom_id(self) -> str:
        return f"{self.node_id}_bottom"


@dataclass(frozen=True)
class FootingLine:
    """
    Line element stored as a single node plus a bottom level (footings).

    The line runs from `level_bottom` up to the reference node's z.
    """

    node_id: str
    level_bottom: float
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def bottom_id(self) -> str:
        return f"{self.node_id}_bottom"


LineIdentity = Union[TwoNodeLine, SyntheticLine, FootingLine]


@dataclass
class ElementData:
    """What the result consumers get for each classified element."""

    id: Optional[str]
    shape: ShapeKind

    # Resolved geometry, in node order (line: start, end)
    coordinates: tuple = ()
    node_ids: tuple = ()

    name: Optional[str] = None
    guid: Optional[str] = None

    # Selected source attributes (section id, floor id, structure kind...)
    attributes: dict = field(default_factory=dict)

    line_identity: Optional[LineIdentity] = None

    # Set by the importance classifier
    importance: Optional[ImportanceLevel] = None

    # Source record, used for importance lookups
    source: Optional[AttributeSource] = field(default=None, repr=False, compare=False)

    @property
    def coords(self) -> Optional[Coordinate]:
        """Point location (point elements only)."""
        if self.shape is ShapeKind.POINT and self.coordinates:
            return self.coordinates[0]
        return None

    @property
    def start_coords(self) -> Optional[Coordinate]:
        if self.shape is ShapeKind.LINE and len(self.coordinates) == 2:
            return self.coordinates[0]
        return None

    @property
    def end_coords(self) -> Optional[Coordinate]:
        if self.shape is ShapeKind.LINE and len(self.coordinates) == 2:
            return self.coordinates[1]
        return None

    @property
    def vertex_coords(self) -> tuple:
        if self.shape is ShapeKind.POLYGON:
            return self.coordinates
        return ()

    @property
    def is_synthetic(self) -> bool:
        return isinstance(self.line_identity, (SyntheticLine, FootingLine))

    @property
    def label(self) -> str:
        """Short description for logs and reports."""
        if self.name:
            return f"{self.id} ({self.name})"
        return str(self.id)


@dataclass
class ExtractionResult:
    """Identity key and data of one element; both None when unresolvable."""

    key: Optional[str] = None
    data: Optional[ElementData] = None

    @property
    def resolved(self) -> bool:
        return self.key is not None and self.data is not None


NodeMap = Mapping[str, Any]


def _resolve_node(node_map: NodeMap, node_id: Optional[str]) -> Optional[Coordinate]:
    """Look up a node and return it as a Coordinate, or None if absent or invalid."""
    if node_id is None:
        return None
    axes = coordinate_axes(node_map.get(node_id))
    if axes is None:
        return None
    return Coordinate(*axes)


def _finite_float(source: AttributeSource, attr: str, default: Optional[float] = None) -> Optional[float]:
    """Numeric attribute value; `default` if absent or unparsable, None if NaN or infinite."""
    value = source.get_float(attr)
    if value is None:
        return default
    if not math.isfinite(value):
        return None
    return value


class KeyExtractor(ABC):
    """
    Base class of the per-shape key extractors.

    Instances are callables: `extractor(element, node_map)` returns an
    ExtractionResult. The key type decides whether identity comes from the
    element's coordinates or from its guid attribute.
    """

    shape: ShapeKind

    # Attributes copied into ElementData.attributes when present
    DATA_ATTRIBUTES = ("id_section", "kind_structure")

    def __init__(
        self,
        key_type: Union[ComparisonKeyType, str] = ComparisonKeyType.SPATIAL,
        precision: int = COORDINATE_PRECISION,
        guid_attr: str = "guid"
    ):
        """
        Initialize the extractor.

        Args:
            key_type: Identity strategy (spatial or external/GUID)
            precision: Decimals kept when encoding coordinates
            guid_attr: Attribute holding the element's external identifier
        """
        self.key_type = ComparisonKeyType.parse(key_type)
        self.precision = precision
        self.guid_attr = guid_attr

    def __call__(self, element: Any, node_map: NodeMap) -> ExtractionResult:
        source = as_attribute_source(element)
        data = self.extract_data(source, node_map)
        if data is None:
            return ExtractionResult()

        key = self.identity_key(source, data)
        if key is None:
            logger.warning(
                "Could not encode coordinates for element: ElementID=%s, Nodes=%s",
                source.element_id, list(data.node_ids)
            )
            return ExtractionResult()
        return ExtractionResult(key, data)

    def identity_key(self, source: AttributeSource, data: ElementData) -> Optional[str]:
        """
        Build the identity key for resolved element data.

        In EXTERNAL mode a non-empty guid wins and the geometry is not used;
        without a guid the spatial key is used instead. Returns None when the
        geometry cannot be encoded.
        """
        if self.key_type is ComparisonKeyType.EXTERNAL:
            guid = (source.get(self.guid_attr) or "").strip()
            if guid:
                return guid_key(guid)
            logger.warning(
                "GUID not found for element %s, falling back to spatial key", data.id
            )
        encoding = self.spatial_encoding(data)
        if encoding is None:
            return None
        return spatial_key(encoding)

    @abstractmethod
    def extract_data(self, source: AttributeSource, node_map: NodeMap) -> Optional[ElementData]:
        """Resolve the element's geometry, or return None (after logging why)."""

    @abstractmethod
    def spatial_encoding(self, data: ElementData) -> Optional[str]:
        """Coordinate encoding of resolved geometry, or None if it cannot be encoded."""

    def _element_data(self, source: AttributeSource, **kwargs) -> ElementData:
        attributes = {}
        for attr in self.DATA_ATTRIBUTES:
            value = source.get(attr)
            if value:
                attributes[attr] = value
        attributes.update(kwargs.pop("attributes", {}))

        guid = source.get(self.guid_attr)
        return ElementData(
            id=source.element_id,
            shape=self.shape,
            name=source.get("name") or None,
            guid=guid.strip() if guid and guid.strip() else None,
            attributes=attributes,
            source=source,
            **kwargs
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key_type={self.key_type.value}, precision={self.precision})"


class PointExtractor(KeyExtractor):
    """Extractor for single-node elements."""

    shape = ShapeKind.POINT

    def __init__(self, node_attr: str = "id", **kwargs):
        super().__init__(**kwargs)
        self.node_attr = node_attr

    def extract_data(self, source, node_map):
        node_id = source.get(self.node_attr)
        coords = _resolve_node(node_map, node_id)
        if coords is None:
            logger.warning(
                "Missing node coords for point element: Node=%s, ElementID=%s",
                node_id, source.element_id
            )
            return None
        return self._element_data(source, coordinates=(coords,), node_ids=(node_id,))

    def spatial_encoding(self, data):
        return key_of(data.coords, self.precision)


class LineExtractor(KeyExtractor):
    """
    Extractor for two-node elements.

    Some elements are stored with a single `id_node` instead of a start/end
    pair. When both conventional attributes are absent, the line is
    synthesized from that node:

    - with `level_top` (piles): a line of `default_length` below the top
      level (see SyntheticLine)
    - with only `level_bottom` (footings): a line from the bottom level up to
      the node (see FootingLine)
    """

    shape = ShapeKind.LINE

    def __init__(
        self,
        start_attr: str = "id_node_start",
        end_attr: str = "id_node_end",
        single_node_attr: str = "id_node",
        level_top_attr: str = "level_top",
        level_bottom_attr: str = "level_bottom",
        default_length: float = DEFAULT_PILE_LENGTH,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.start_attr = start_attr
        self.end_attr = end_attr
        self.single_node_attr = single_node_attr
        self.level_top_attr = level_top_attr
        self.level_bottom_attr = level_bottom_attr
        self.default_length = default_length

    def extract_data(self, source, node_map):
        start_id = source.get(self.start_attr)
        end_id = source.get(self.end_attr)

        if start_id is None and end_id is None:
            identity = self._single_node_identity(source, node_map)
            if identity is not None:
                return self._synthetic_data(source, node_map, identity)

        start = _resolve_node(node_map, start_id)
        end = _resolve_node(node_map, end_id)
        if start is None or end is None:
            logger.warning(
                "Missing node coords for line element: Start=%s, End=%s, ElementID=%s",
                start_id, end_id, source.element_id
            )
            return None

        return self._element_data(
            source,
            coordinates=(start, end),
            node_ids=(start_id, end_id),
            line_identity=TwoNodeLine(start_id, end_id),
            attributes={self.start_attr: start_id, self.end_attr: end_id},
        )

    def _single_node_identity(self, source, node_map):
        node_id = source.get(self.single_node_attr)
        if node_id is None or _resolve_node(node_map, node_id) is None:
            return None

        offset_x = _finite_float(source, "offset_X", 0.0)
        offset_y = _finite_float(source, "offset_Y", 0.0)
        if offset_x is None or offset_y is None:
            return None

        if source.get(self.level_top_attr) is not None:
            level_top = _finite_float(source, self.level_top_attr)
            if level_top is None:
                return None
            return SyntheticLine(
                node_id=node_id,
                level_top=level_top,
                offset_x=offset_x,
                offset_y=offset_y,
                length=self.default_length,
            )

        if source.get(self.level_bottom_attr) is not None:
            level_bottom = _finite_float(source, self.level_bottom_attr)
            if level_bottom is None:
                return None
            return FootingLine(
                node_id=node_id,
                level_bottom=level_bottom,
                offset_x=offset_x,
                offset_y=offset_y,
            )

        return None

    def _synthetic_data(self, source, node_map, identity) -> ElementData:
        node = _resolve_node(node_map, identity.node_id)
        x = node.x + identity.offset_x
        y = node.y + identity.offset_y

        if isinstance(identity, FootingLine):
            bottom = Coordinate(x, y, identity.level_bottom)
            top = Coordinate(x, y, node.z)
            logger.info(
                "Element %s has no %s/%s; synthesized a line from level_bottom=%s up to node %s",
                source.element_id, self.start_attr, self.end_attr,
                identity.level_bottom, identity.node_id
            )
        else:
            top = Coordinate(x, y, identity.level_top)
            bottom = top.offset(dz=-identity.length)
            logger.info(
                "Element %s has no %s/%s; synthesized a %.0f mm line below node %s (level_top=%s)",
                source.element_id, self.start_attr, self.end_attr,
                identity.length, identity.node_id, identity.level_top
            )

        return self._element_data(
            source,
            coordinates=(bottom, top),
            node_ids=(identity.bottom_id, identity.node_id),
            line_identity=identity,
            attributes={self.start_attr: identity.bottom_id, self.end_attr: identity.node_id},
        )

    def spatial_encoding(self, data):
        return line_key_of(data.start_coords, data.end_coords, self.precision)


class PolygonExtractor(KeyExtractor):
    """
    Extractor for slabs and walls.

    Vertex ids come from the node order sub-structure. The floor and section
    ids are part of the key so identical outlines on different floors or with
    different sections stay distinct.
    """

    shape = ShapeKind.POLYGON

    def __init__(
        self,
        node_order_tag: str = "StbNodeIdOrder",
        floor_attr: str = "id_floor",
        section_attr: str = "id_section",
        **kwargs
    ):
        super().__init__(**kwargs)
        self.node_order_tag = node_order_tag
        self.floor_attr = floor_attr
        self.section_attr = section_attr

    def extract_data(self, source, node_map):
        node_ids = source.node_order(self.node_order_tag)
        if not node_ids:
            logger.warning(
                "Missing or empty node order tag '%s' for poly element: ElementID=%s",
                self.node_order_tag, source.element_id
            )
            return None

        vertices = [_resolve_node(node_map, node_id) for node_id in node_ids]
        found = [vertex for vertex in vertices if vertex is not None]
        if len(found) != len(node_ids) or len(found) < 3:
            missing = [node_id for node_id, vertex in zip(node_ids, vertices) if vertex is None]
            logger.warning(
                "Missing node coords or insufficient vertices for poly element: "
                "ElementID=%s, IDs=%s, Found=%d, Missing=%s",
                source.element_id, node_ids, len(found), missing
            )
            return None

        return self._element_data(
            source,
            coordinates=tuple(found),
            node_ids=tuple(node_ids),
            attributes={
                self.floor_attr: source.get(self.floor_attr) or "",
                self.section_attr: source.get(self.section_attr) or "",
            },
        )

    def spatial_encoding(self, data):
        return polygon_key_of(
            data.vertex_coords,
            floor_id=data.attributes.get(self.floor_attr, ""),
            section_id=data.attributes.get(self.section_attr, ""),
            precision=self.precision,
        )


# =============================================================================
# ELEMENT TYPES
# =============================================================================

@dataclass(frozen=True)
class ElementTypeSpec:
    """How elements of one type are keyed."""

    shape: ShapeKind
    options: dict = field(default_factory=dict)


_BOTTOM_TOP = {"start_attr": "id_node_bottom", "end_attr": "id_node_top"}
_START_END = {"start_attr": "id_node_start", "end_attr": "id_node_end"}

ELEMENT_TYPES: dict[str, ElementTypeSpec] = {
    "Node": ElementTypeSpec(ShapeKind.POINT, {"node_attr": "id"}),
    "Column": ElementTypeSpec(ShapeKind.LINE, _BOTTOM_TOP),
    "Post": ElementTypeSpec(ShapeKind.LINE, _BOTTOM_TOP),
    "Girder": ElementTypeSpec(ShapeKind.LINE, _START_END),
    "Beam": ElementTypeSpec(ShapeKind.LINE, _START_END),
    "Brace": ElementTypeSpec(ShapeKind.LINE, _START_END),
    "Pile": ElementTypeSpec(ShapeKind.LINE, _BOTTOM_TOP),
    "Footing": ElementTypeSpec(ShapeKind.LINE, _BOTTOM_TOP),
    "Slab": ElementTypeSpec(ShapeKind.POLYGON, {"node_order_tag": "StbNodeIdOrder"}),
    "Wall": ElementTypeSpec(ShapeKind.POLYGON, {"node_order_tag": "StbNodeIdOrder"}),
}

_EXTRACTOR_CLASSES = {
    ShapeKind.POINT: PointExtractor,
    ShapeKind.LINE: LineExtractor,
    ShapeKind.POLYGON: PolygonExtractor,
}


def build_extractor(
    element_type: str,
    key_type: Union[ComparisonKeyType, str] = ComparisonKeyType.SPATIAL,
    precision: int = COORDINATE_PRECISION,
    default_pile_length: float = DEFAULT_PILE_LENGTH
) -> KeyExtractor:
    """
    Create the key extractor for an element type.

    Args:
        element_type: Type name without the "Stb" prefix (e.g. "Column")
        key_type: Identity strategy
        precision: Decimals kept when encoding coordinates
        default_pile_length: Length of lines synthesized from single-node piles

    Raises:
        UnknownElementTypeError: If the type is not in ELEMENT_TYPES
    """
    spec = ELEMENT_TYPES.get(element_type)
    if spec is None:
        raise UnknownElementTypeError(
            f"Unknown element type: {element_type!r}. "
            f"Available types: {list(ELEMENT_TYPES)}"
        )

    options = dict(spec.options)
    if spec.shape is ShapeKind.LINE:
        options["default_length"] = default_pile_length

    return _EXTRACTOR_CLASSES[spec.shape](key_type=key_type, precision=precision, **options)
