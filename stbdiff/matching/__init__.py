"""
Matching module for linking elements of two structural models.

Provides:
- Key extractors for point, line and polygon elements
- Exact matching on identity keys
- Importance filtering and annotation on top of exact matching
"""

from stbdiff.matching.extractors import (
    ELEMENT_TYPES,
    ElementData,
    ElementTypeSpec,
    ExtractionResult,
    KeyExtractor,
    LineExtractor,
    PointExtractor,
    PolygonExtractor,
    ShapeKind,
    FootingLine,
    SyntheticLine,
    TwoNodeLine,
    build_extractor,
)

from stbdiff.matching.matcher import (
    ComparisonResult,
    MatchedPair,
    Matcher,
    match_elements,
)

from stbdiff.matching.importance import (
    FilterSettings,
    ImportanceComparisonResult,
    ImportanceMatcher,
    ImportanceResolver,
    ImportanceSettings,
    annotate_importance,
    element_path,
    filter_elements_by_importance,
    match_with_importance,
    reannotate_importance,
    resolve_element_importance,
)

__all__ = [
    # Extractors
    "ELEMENT_TYPES",
    "ElementData",
    "ElementTypeSpec",
    "ExtractionResult",
    "KeyExtractor",
    "LineExtractor",
    "PointExtractor",
    "PolygonExtractor",
    "ShapeKind",
    "FootingLine",
    "SyntheticLine",
    "TwoNodeLine",
    "build_extractor",
    # Matcher
    "ComparisonResult",
    "MatchedPair",
    "Matcher",
    "match_elements",
    # Importance
    "FilterSettings",
    "ImportanceComparisonResult",
    "ImportanceMatcher",
    "ImportanceResolver",
    "ImportanceSettings",
    "annotate_importance",
    "element_path",
    "filter_elements_by_importance",
    "match_with_importance",
    "reannotate_importance",
    "resolve_element_importance",
]
