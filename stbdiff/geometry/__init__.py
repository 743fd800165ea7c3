"""
Geometry helpers: coordinates and canonical coordinate keys.
"""

from stbdiff.geometry.keys import (
    COORDINATE_PRECISION,
    GUID_PREFIX,
    SPATIAL_PREFIX,
    Coordinate,
    coordinate_axes,
    guid_key,
    key_of,
    line_key_of,
    polygon_key_of,
    spatial_key,
)

__all__ = [
    "COORDINATE_PRECISION",
    "GUID_PREFIX",
    "SPATIAL_PREFIX",
    "Coordinate",
    "coordinate_axes",
    "guid_key",
    "key_of",
    "line_key_of",
    "polygon_key_of",
    "spatial_key",
]
