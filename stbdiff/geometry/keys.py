"""
Coordinate key codec.

Turns points, segments and polygons into canonical strings so that elements
authored independently in two models can be joined on a dictionary key.
Coordinates are rounded to a fixed number of decimals before encoding, which
absorbs floating point jitter between exporters.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Real
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# Working precision of the model files (millimetres, 3 decimals)
COORDINATE_PRECISION = 3

SPATIAL_PREFIX = "spatial:"
GUID_PREFIX = "guid:"


@dataclass(frozen=True)
class Coordinate:
    """A point in model space, in millimetres."""

    x: float
    y: float
    z: float

    @classmethod
    def from_mapping(cls, values: Mapping) -> "Coordinate":
        return cls(float(values["x"]), float(values["y"]), float(values["z"]))

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> "Coordinate":
        return Coordinate(self.x + dx, self.y + dy, self.z + dz)


def coordinate_axes(coords) -> Optional[tuple[float, float, float]]:
    """
    Read (x, y, z) from a Coordinate, an object with x/y/z attributes or a
    mapping with x/y/z keys.

    Returns None when the point is missing or any axis is not a finite real
    number.
    """
    if coords is None:
        return None

    if isinstance(coords, Mapping):
        values = tuple(coords.get(axis) for axis in ("x", "y", "z"))
    else:
        values = tuple(getattr(coords, axis, None) for axis in ("x", "y", "z"))

    for value in values:
        if isinstance(value, bool) or not isinstance(value, Real):
            return None
        if not math.isfinite(value):
            return None

    return values


def _format_axis(value: float, precision: int) -> str:
    text = f"{value:.{precision}f}"
    # -0.0004 rounds to "-0.000"; it must collide with "0.000"
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return text


def key_of(coords, precision: int = COORDINATE_PRECISION) -> Optional[str]:
    """
    Encode a point as "x,y,z" with every axis rounded to `precision` decimals.

    Args:
        coords: Point to encode
        precision: Number of decimal digits kept per axis

    Returns:
        Key string, or None if the point is invalid
    """
    axes = coordinate_axes(coords)
    if axes is None:
        logger.debug("Invalid coordinates for key generation: %r", coords)
        return None
    return ",".join(_format_axis(value, precision) for value in axes)


def line_key_of(start, end, precision: int = COORDINATE_PRECISION) -> Optional[str]:
    """
    Encode a segment independently of its direction.

    The two point keys are sorted before joining, so A->B and B->A produce
    the same key.
    """
    start_key = key_of(start, precision)
    end_key = key_of(end, precision)
    if start_key is None or end_key is None:
        return None
    return "|".join(sorted((start_key, end_key)))


def polygon_key_of(
    vertices: Iterable,
    floor_id: str = "",
    section_id: str = "",
    precision: int = COORDINATE_PRECISION
) -> Optional[str]:
    """
    Encode a polygon independently of vertex order and winding.

    The floor and section tags are appended so that two geometrically equal
    polygons belonging to different floors or sections keep distinct keys.

    Args:
        vertices: Polygon corner points
        floor_id: Owning floor id tag
        section_id: Section id tag
        precision: Number of decimal digits kept per axis

    Returns:
        Key string, or None if there are no vertices or any vertex is invalid
    """
    vertex_keys = [key_of(vertex, precision) for vertex in vertices]
    if not vertex_keys or any(key is None for key in vertex_keys):
        return None
    return ";".join(sorted(vertex_keys)) + f"|F:{floor_id or ''}|S:{section_id or ''}"


def spatial_key(encoding: str) -> str:
    return SPATIAL_PREFIX + encoding


def guid_key(identifier: str) -> str:
    return GUID_PREFIX + identifier
