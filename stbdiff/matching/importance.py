"""
Importance-aware matching.

Importance levels are attached to element paths such as
"//ST_BRIDGE/StbColumn". They decide which elements take part in a
comparison and how differences are weighted in reports, but they never
affect whether two elements match.

The level lookup is an injected ImportanceResolver; ImportanceSettings is
the in-memory implementation used by the command line tool and the tests.
"""

import io
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Protocol, Union

import pandas as pd

from stbdiff.errors import UnknownImportanceLevelError
from stbdiff.matching.matcher import ComparisonResult, Matcher, MatchedPair
from stbdiff.parsers.attributes import as_attribute_source
from stbdiff.reporting.statistics import ImportanceStats, importance_statistics
from stbdiff.settings.config import parse_importance_levels
from stbdiff.settings.enums import IMPORTANCE_LEVEL_NAMES, ImportanceLevel

logger = logging.getLogger(__name__)

BASE_PATH = "//ST_BRIDGE"

# Level of any path without an explicit setting
DEFAULT_IMPORTANCE = ImportanceLevel.REQUIRED

# Level given to result items whose source element is unknown
FALLBACK_IMPORTANCE = ImportanceLevel.OPTIONAL

CSV_COLUMNS = ["Element Path", "Importance Level"]


class ImportanceResolver(Protocol):
    """Anything that can tell the importance level of an element path."""

    def get_importance_level(self, path: str) -> ImportanceLevel:
        ...


def element_path(element_type: str) -> str:
    """Importance path of an element type, e.g. '//ST_BRIDGE/StbColumn'."""
    return f"{BASE_PATH}/{element_type}"


class ImportanceSettings:
    """In-memory importance settings keyed by element path."""

    def __init__(
        self,
        settings: Optional[Mapping[str, Union[ImportanceLevel, str]]] = None,
        default: ImportanceLevel = DEFAULT_IMPORTANCE
    ):
        self.default = ImportanceLevel.parse(default)
        self._settings: dict[str, ImportanceLevel] = {}
        for path, level in (settings or {}).items():
            self.set_importance_level(path, level)

    def get_importance_level(self, path: str) -> ImportanceLevel:
        return self._settings.get(path, self.default)

    def set_importance_level(self, path: str, level: Union[ImportanceLevel, str]) -> None:
        """
        Set the level of a path.

        Raises:
            UnknownImportanceLevelError: If the level is not recognized
        """
        self._settings[path] = ImportanceLevel.parse(level)

    def get_all_importance_settings(self) -> dict:
        return dict(self._settings)

    def __len__(self) -> int:
        return len(self._settings)

    def export_csv(self) -> str:
        """Export the explicit settings as CSV (path, level display name)."""
        frame = pd.DataFrame(
            [(path, IMPORTANCE_LEVEL_NAMES[level]) for path, level in self._settings.items()],
            columns=CSV_COLUMNS,
        )
        return frame.to_csv(index=False)

    def import_csv(self, csv_content: str) -> int:
        """
        Import settings exported by export_csv.

        Levels may be given by display name ("High") or value ("required").

        Returns:
            Number of paths set

        Raises:
            ValueError: If the CSV lacks the expected columns
            UnknownImportanceLevelError: If a row holds an unknown level
        """
        frame = pd.read_csv(io.StringIO(csv_content), dtype=str).dropna(how="all")

        missing = [column for column in CSV_COLUMNS if column not in frame.columns]
        if missing:
            raise ValueError(f"Importance CSV is missing columns: {missing}")

        # Parse everything first so a bad row leaves the settings untouched
        parsed = [
            (str(row[CSV_COLUMNS[0]]).strip(), ImportanceLevel.parse(str(row[CSV_COLUMNS[1]])))
            for _, row in frame.iterrows()
        ]
        for path, level in parsed:
            self._settings[path] = level

        logger.info("Imported %d importance settings", len(parsed))
        return len(parsed)


def _checked_level(value: Any, path: str) -> ImportanceLevel:
    """Validate a level returned by a resolver."""
    try:
        return ImportanceLevel.parse(value)
    except UnknownImportanceLevelError:
        raise UnknownImportanceLevelError(
            f"Resolver returned unknown importance level {value!r} for {path}"
        ) from None


def resolve_element_importance(
    element: Any,
    element_type: str,
    resolver: ImportanceResolver
) -> ImportanceLevel:
    """
    Get the importance level of one element.

    The element type path gives the base level. For elements with an id the
    more specific '<type path>/@id' setting overrides it whenever it differs
    from the default level.
    """
    base_path = element_path(element_type)
    importance = _checked_level(resolver.get_importance_level(base_path), base_path)

    if as_attribute_source(element).element_id:
        id_path = f"{base_path}/@id"
        id_importance = _checked_level(resolver.get_importance_level(id_path), id_path)
        if id_importance is not DEFAULT_IMPORTANCE:
            importance = id_importance

    return importance


def filter_elements_by_importance(
    elements: Iterable,
    element_type: str,
    target_importance_levels: Optional[Iterable],
    resolver: ImportanceResolver
) -> list:
    """
    Keep only elements whose importance level is one of the targets.

    No filtering happens when target_importance_levels is None or empty.
    """
    targets = parse_importance_levels(target_importance_levels)
    if not targets:
        return list(elements)

    return [
        element for element in elements
        if resolve_element_importance(element, element_type, resolver) in targets
    ]


@dataclass
class FilterSettings:
    """How much the importance filter removed before matching."""

    target_importance_levels: Optional[tuple]
    total_a: int
    total_b: int
    filtered_a: int
    filtered_b: int


@dataclass
class ImportanceComparisonResult(ComparisonResult):
    """ComparisonResult annotated with importance levels and statistics."""

    element_type: str = ""
    importance_stats: Optional[ImportanceStats] = None
    filter_settings: Optional[FilterSettings] = None


class ImportanceMatcher:
    """Exact matcher with an importance pre-filter and post-annotation."""

    def __init__(self, resolver: Optional[ImportanceResolver] = None, matcher: Optional[Matcher] = None):
        """
        Initialize the matcher.

        Args:
            resolver: Importance level lookup (default: everything REQUIRED)
            matcher: Exact matcher to delegate to
        """
        self.resolver = resolver if resolver is not None else ImportanceSettings()
        self.matcher = matcher or Matcher()

    def match(
        self,
        elements_a: Iterable,
        elements_b: Iterable,
        node_map_a,
        node_map_b,
        extractor,
        element_type: str,
        target_importance_levels: Optional[Iterable] = None,
        include_importance_info: bool = True
    ) -> ImportanceComparisonResult:
        """
        Match two element collections, restricted to target importance levels.

        Args:
            elements_a: Element records of model A
            elements_b: Element records of model B
            node_map_a: Node map of model A
            node_map_b: Node map of model B
            extractor: Key extractor for the element shape
            element_type: Importance path element name (e.g. "StbColumn")
            target_importance_levels: Levels to keep (None keeps everything)
            include_importance_info: Annotate each item with its level

        Returns:
            ImportanceComparisonResult
        """
        targets = parse_importance_levels(target_importance_levels)
        elements_a = list(elements_a)
        elements_b = list(elements_b)

        filtered_a = filter_elements_by_importance(elements_a, element_type, targets, self.resolver)
        filtered_b = filter_elements_by_importance(elements_b, element_type, targets, self.resolver)

        if targets:
            logger.debug(
                "%s: importance filter %s kept A %d/%d, B %d/%d",
                element_type, [level.value for level in targets],
                len(filtered_a), len(elements_a), len(filtered_b), len(elements_b)
            )

        basic = self.matcher.match(filtered_a, filtered_b, node_map_a, node_map_b, extractor)

        result = ImportanceComparisonResult(
            matched=basic.matched,
            only_a=basic.only_a,
            only_b=basic.only_b,
            unresolved_a=basic.unresolved_a,
            unresolved_b=basic.unresolved_b,
            element_type=element_type,
            filter_settings=FilterSettings(
                target_importance_levels=targets,
                total_a=len(elements_a),
                total_b=len(elements_b),
                filtered_a=len(filtered_a),
                filtered_b=len(filtered_b),
            ),
        )

        if include_importance_info:
            annotate_importance(result, element_type, self.resolver)
        result.importance_stats = importance_statistics(result, element_type)

        return result


def _importance_of(source: Any, element_type: str, resolver: ImportanceResolver) -> ImportanceLevel:
    if source is None:
        return FALLBACK_IMPORTANCE
    return resolve_element_importance(source, element_type, resolver)


def annotate_importance(
    result,
    element_type: str,
    resolver: ImportanceResolver
) -> None:
    """
    Replace every item of the result with a copy carrying its importance.

    Matched pairs take the level of their model A element. Bucket membership
    is left unchanged. Results with several pair buckets (tolerance results)
    name them in PAIR_BUCKETS.
    """
    def annotate_pair(pair: MatchedPair) -> MatchedPair:
        return replace(pair, importance=_importance_of(pair.data_a.source, element_type, resolver))

    def annotate_single(data):
        return replace(data, importance=_importance_of(data.source, element_type, resolver))

    for bucket in getattr(result, "PAIR_BUCKETS", ("matched",)):
        setattr(result, bucket, [annotate_pair(pair) for pair in getattr(result, bucket)])
    result.only_a = [annotate_single(data) for data in result.only_a]
    result.only_b = [annotate_single(data) for data in result.only_b]


def reannotate_importance(
    result: ImportanceComparisonResult,
    element_type: str,
    resolver: ImportanceResolver
) -> ImportanceComparisonResult:
    """
    Recompute importance annotations and statistics after a settings change.

    Returns a new result; the input result is not modified and no
    re-matching happens.
    """
    updated = replace(
        result,
        matched=list(result.matched),
        only_a=list(result.only_a),
        only_b=list(result.only_b),
        element_type=element_type,
    )
    annotate_importance(updated, element_type, resolver)
    updated.importance_stats = importance_statistics(updated, element_type)
    return updated


def match_with_importance(
    elements_a,
    elements_b,
    node_map_a,
    node_map_b,
    extractor,
    element_type: str,
    resolver: Optional[ImportanceResolver] = None,
    target_importance_levels: Optional[Iterable] = None,
    include_importance_info: bool = True
) -> ImportanceComparisonResult:
    """Run the importance matcher once; see ImportanceMatcher.match."""
    return ImportanceMatcher(resolver).match(
        elements_a, elements_b, node_map_a, node_map_b, extractor,
        element_type,
        target_importance_levels=target_importance_levels,
        include_importance_info=include_importance_info,
    )
