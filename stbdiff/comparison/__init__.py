"""
Comparison module: tolerance matching and whole-model comparison.
"""

from stbdiff.comparison.tolerance import (
    FieldComparison,
    MatchType,
    compare_coordinates,
    compare_element_data,
)

from stbdiff.comparison.comparator import (
    ToleranceMatch,
    ToleranceMatcher,
    ToleranceResult,
    match_with_tolerance,
)

from stbdiff.comparison.model_comparison import (
    ModelComparison,
    TypeComparison,
    compare_models,
    iter_compare_models,
)

__all__ = [
    # Field comparison
    "FieldComparison",
    "MatchType",
    "compare_coordinates",
    "compare_element_data",
    # Tolerance matcher
    "ToleranceMatch",
    "ToleranceMatcher",
    "ToleranceResult",
    "match_with_tolerance",
    # Model comparison
    "ModelComparison",
    "TypeComparison",
    "compare_models",
    "iter_compare_models",
]
