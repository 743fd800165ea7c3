"""
Field-level comparison of element geometry under a tolerance.

Each comparison lands in one of three classes:
1. EXACT: coordinates equal at the working precision
2. WITHIN_TOLERANCE: every axis difference within its tolerance
3. MISMATCH: anything else (including shape or vertex count disagreement)
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence

from stbdiff.geometry.keys import Coordinate, coordinate_axes, key_of
from stbdiff.matching.extractors import ElementData, ShapeKind
from stbdiff.settings.tolerance import AxisTolerance, ToleranceConfig

AXES = ("x", "y", "z")

# Polygons on different floors or with different sections never pair
POLYGON_GROUP_ATTRIBUTES = ("id_floor", "id_section")


class MatchType(Enum):
    """Outcome of a tolerance comparison, best first."""
    EXACT = "exact"
    WITHIN_TOLERANCE = "within_tolerance"
    MISMATCH = "mismatch"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {MatchType.EXACT: 0, MatchType.WITHIN_TOLERANCE: 1, MatchType.MISMATCH: 2}


@dataclass
class FieldComparison:
    """
    Result of comparing two coordinates or two element geometries.

    differences holds the largest absolute difference per axis over all the
    compared points; per_point keeps the individual point differences in
    comparison order.
    """

    match: bool
    match_type: MatchType
    differences: dict = field(default_factory=dict)
    per_point: tuple = ()

    @property
    def deviation(self) -> float:
        """Sum of the per-axis maxima, used to rank equally classified results."""
        return sum(self.differences.values())


def _mismatch() -> FieldComparison:
    return FieldComparison(False, MatchType.MISMATCH)


def compare_coordinates(
    coords_a,
    coords_b,
    tolerance: AxisTolerance,
    precision: Optional[int] = None
) -> FieldComparison:
    """
    Compare two coordinates axis by axis.

    Args:
        coords_a: Point of model A
        coords_b: Point of model B
        tolerance: Allowed absolute difference per axis
        precision: Decimals at which equality counts as EXACT
            (None compares raw values)

    Returns:
        FieldComparison; MISMATCH if either point is invalid
    """
    axes_a = coordinate_axes(coords_a)
    axes_b = coordinate_axes(coords_b)
    if axes_a is None or axes_b is None:
        return _mismatch()

    differences = {axis: abs(a - b) for axis, a, b in zip(AXES, axes_a, axes_b)}

    if precision is None:
        exact = axes_a == axes_b
    else:
        exact = key_of(_as_point(axes_a), precision) == key_of(_as_point(axes_b), precision)

    if exact:
        match_type = MatchType.EXACT
    elif all(differences[axis] <= getattr(tolerance, axis) for axis in AXES):
        match_type = MatchType.WITHIN_TOLERANCE
    else:
        match_type = MatchType.MISMATCH

    return FieldComparison(
        match=match_type is not MatchType.MISMATCH,
        match_type=match_type,
        differences=differences,
        per_point=(differences,),
    )


def _as_point(axes: tuple) -> dict:
    return dict(zip(AXES, axes))


def _combine(comparisons: Sequence[FieldComparison]) -> FieldComparison:
    """Combine point comparisons: the worst class wins, differences are maxima."""
    match_type = max((comparison.match_type for comparison in comparisons), key=lambda t: t.rank)
    differences = {
        axis: max(comparison.differences.get(axis, 0.0) for comparison in comparisons)
        for axis in AXES
    }
    return FieldComparison(
        match=match_type is not MatchType.MISMATCH,
        match_type=match_type,
        differences=differences,
        per_point=tuple(comparison.differences for comparison in comparisons),
    )


def _best(candidates: Sequence[FieldComparison]) -> FieldComparison:
    return min(candidates, key=lambda comparison: (comparison.match_type.rank, comparison.deviation))


def _compare_sequences(points_a, points_b, tolerance, precision) -> FieldComparison:
    return _combine([
        compare_coordinates(a, b, tolerance, precision) for a, b in zip(points_a, points_b)
    ])


def compare_element_data(
    data_a: ElementData,
    data_b: ElementData,
    config: ToleranceConfig,
    precision: Optional[int] = None
) -> FieldComparison:
    """
    Compare the geometry of two resolved elements.

    Lines are undirected, so both orientations are tried. Polygons are
    compared under every cyclic rotation and both windings, and only when
    they sit on the same floor with the same section. The best
    classification found is returned.

    Lines synthesized from a single node also compare their offset_X /
    offset_Y against config.offset; the worse of the geometry and offset
    classes wins.

    Args:
        data_a: Element data of model A
        data_b: Element data of model B
        config: Tolerance settings (base_point is the per-axis tolerance)
        precision: Exact-match precision, used when config.precision is None
    """
    if config.precision is not None:
        precision = config.precision
    tolerance = config.base_point

    if data_a.shape is not data_b.shape:
        return _mismatch()

    points_a = tuple(data_a.coordinates)
    points_b = tuple(data_b.coordinates)
    if not points_a or len(points_a) != len(points_b):
        return _mismatch()

    if data_a.shape is ShapeKind.POINT:
        return _compare_sequences(points_a, points_b, tolerance, precision)

    if data_a.shape is ShapeKind.LINE:
        geometry = _best([
            _compare_sequences(points_a, points_b, tolerance, precision),
            _compare_sequences(points_a, points_b[::-1], tolerance, precision),
        ])
        return _with_offsets(geometry, data_a, data_b, config.offset, precision)

    for name in POLYGON_GROUP_ATTRIBUTES:
        if data_a.attributes.get(name, "") != data_b.attributes.get(name, ""):
            return _mismatch()

    # Polygon: every rotation of both windings of B against A
    candidates = []
    for winding in (points_b, points_b[::-1]):
        for shift in range(len(winding)):
            rotated = winding[shift:] + winding[:shift]
            candidates.append(_compare_sequences(points_a, rotated, tolerance, precision))
    return _best(candidates)


def _offsets(data: ElementData) -> Optional[Coordinate]:
    if not data.is_synthetic:
        return None
    return Coordinate(data.line_identity.offset_x, data.line_identity.offset_y, 0.0)


def _with_offsets(geometry, data_a, data_b, tolerance, precision) -> FieldComparison:
    """Downgrade a line comparison whose single-node offsets drifted past `tolerance`."""
    offset_a = _offsets(data_a)
    offset_b = _offsets(data_b)
    if offset_a is None or offset_b is None:
        return geometry

    offsets = compare_coordinates(offset_a, offset_b, tolerance, precision)
    if offsets.match_type.rank <= geometry.match_type.rank:
        return geometry
    return replace(geometry, match=offsets.match, match_type=offsets.match_type)
