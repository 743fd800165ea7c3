"""
Whole-model comparison across element types.

Runs one comparison per element type and picks the matching path from the
configuration:
1. Tolerance matching when tolerance is enabled and not strict
2. Importance matching when importance filtering is on
3. Plain exact matching otherwise

A failure inside one element type is logged and recorded on that type's
TypeComparison; the other types are still compared. Configuration problems
are raised before any type is processed.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Optional, Union

from stbdiff.comparison.comparator import ToleranceMatcher, ToleranceResult
from stbdiff.errors import InvalidConfigurationError
from stbdiff.matching.extractors import ELEMENT_TYPES, KeyExtractor, NodeMap, build_extractor
from stbdiff.matching.importance import (
    ImportanceMatcher,
    ImportanceResolver,
    ImportanceSettings,
    annotate_importance,
    filter_elements_by_importance,
)
from stbdiff.matching.matcher import ComparisonResult, Matcher
from stbdiff.reporting.statistics import comparison_statistics, importance_statistics
from stbdiff.settings.config import ComparisonConfig, ComparisonMode, get_preset

logger = logging.getLogger(__name__)

# Prefix of element paths in the model schema ("Column" -> "StbColumn")
SCHEMA_PREFIX = "Stb"


@dataclass
class TypeComparison:
    """Comparison outcome of one element type."""

    element_type: str
    result: Union[ComparisonResult, ToleranceResult]
    total_a: int = 0
    total_b: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def has_differences(self) -> bool:
        return self.result.total_differences > 0


@dataclass
class ModelComparison:
    """Comparison outcome of every compared element type."""

    config: ComparisonConfig
    types: list = field(default_factory=list)  # List of TypeComparison

    def __getitem__(self, element_type: str) -> TypeComparison:
        for comparison in self.types:
            if comparison.element_type == element_type:
                return comparison
        raise KeyError(element_type)

    def __iter__(self) -> Iterator[TypeComparison]:
        return iter(self.types)

    @property
    def element_types(self) -> list[str]:
        return [comparison.element_type for comparison in self.types]

    @property
    def results(self) -> list:
        return [comparison.result for comparison in self.types]

    @property
    def errors(self) -> list[TypeComparison]:
        return [comparison for comparison in self.types if not comparison.ok]

    @property
    def total_differences(self) -> int:
        return sum(comparison.result.total_differences for comparison in self.types)

    @property
    def has_differences(self) -> bool:
        return self.total_differences > 0

    def summary(self) -> dict:
        return comparison_statistics(self)


def schema_type(element_type: str) -> str:
    """Element path name used for importance lookups."""
    return SCHEMA_PREFIX + element_type


def _select_types(
    elements_a: Mapping,
    elements_b: Mapping,
    element_types: Optional[Iterable[str]]
) -> list[str]:
    if element_types is not None:
        return list(dict.fromkeys(element_types))
    present = set(elements_a) | set(elements_b)
    return [name for name in ELEMENT_TYPES if name in present]


def iter_compare_models(
    elements_a: Mapping[str, Iterable],
    elements_b: Mapping[str, Iterable],
    node_map_a: NodeMap,
    node_map_b: NodeMap,
    config: Optional[ComparisonConfig] = None,
    resolver: Optional[ImportanceResolver] = None,
    element_types: Optional[Iterable[str]] = None
) -> Iterator[TypeComparison]:
    """
    Compare two models type by type, yielding after each type.

    Args:
        elements_a: Element records of model A per type name ("Column", ...)
        elements_b: Element records of model B per type name
        node_map_a: Node map of model A
        node_map_b: Node map of model B
        config: Comparison settings (default: the exact preset)
        resolver: Importance lookup (default: everything REQUIRED)
        element_types: Types to compare (default: registered types present
            in either model, in registry order)

    Yields:
        TypeComparison per element type

    Raises:
        InvalidConfigurationError: Before the first type, if the config or a
            type name is invalid
    """
    if config is None:
        config = get_preset(ComparisonMode.EXACT)
    if not isinstance(config, ComparisonConfig):
        raise InvalidConfigurationError("config must be a ComparisonConfig")
    if resolver is None:
        resolver = ImportanceSettings()

    types = _select_types(elements_a, elements_b, element_types)

    # Building every extractor up front rejects unknown type names early
    extractors = {
        name: build_extractor(name, key_type=config.key_type, precision=config.precision)
        for name in types
    }

    logger.info(
        "Comparing %d element types (%s, key type %s)",
        len(types), config.name, config.key_type.value
    )

    for name in types:
        records_a = list(elements_a.get(name, []))
        records_b = list(elements_b.get(name, []))
        logger.debug("%s - Model A: %d, Model B: %d", name, len(records_a), len(records_b))

        try:
            result = _compare_type(
                name, records_a, records_b, node_map_a, node_map_b,
                extractors[name], config, resolver
            )
            error = None
        except InvalidConfigurationError:
            raise
        except Exception as e:
            logger.exception("Error processing %s", name)
            result = ComparisonResult(matched=[], only_a=[], only_b=[])
            error = str(e)
        else:
            logger.info(
                "%s: %d matched, %d only A, %d only B",
                name, len(result.matched), len(result.only_a), len(result.only_b)
            )

        yield TypeComparison(
            element_type=name,
            result=result,
            total_a=len(records_a),
            total_b=len(records_b),
            error=error,
        )


def _compare_type(
    element_type: str,
    records_a: list,
    records_b: list,
    node_map_a: NodeMap,
    node_map_b: NodeMap,
    extractor: KeyExtractor,
    config: ComparisonConfig,
    resolver: ImportanceResolver
):
    path_type = schema_type(element_type)

    if config.uses_tolerance:
        if config.use_importance_filtering:
            targets = config.target_importance_levels
            records_a = filter_elements_by_importance(records_a, path_type, targets, resolver)
            records_b = filter_elements_by_importance(records_b, path_type, targets, resolver)

        result = ToleranceMatcher(config.tolerance).match(
            records_a, records_b, node_map_a, node_map_b, extractor
        )

        if config.use_importance_filtering:
            annotate_importance(result, path_type, resolver)
            result.element_type = path_type
            result.importance_stats = importance_statistics(result, path_type)
        return result

    if config.use_importance_filtering:
        return ImportanceMatcher(resolver).match(
            records_a, records_b, node_map_a, node_map_b, extractor,
            path_type,
            target_importance_levels=config.target_importance_levels,
        )

    return Matcher().match(records_a, records_b, node_map_a, node_map_b, extractor)


def compare_models(
    elements_a: Mapping[str, Iterable],
    elements_b: Mapping[str, Iterable],
    node_map_a: NodeMap,
    node_map_b: NodeMap,
    config: Optional[ComparisonConfig] = None,
    resolver: Optional[ImportanceResolver] = None,
    element_types: Optional[Iterable[str]] = None
) -> ModelComparison:
    """Compare every element type; see iter_compare_models."""
    if config is None:
        config = get_preset(ComparisonMode.EXACT)
    types = list(iter_compare_models(
        elements_a, elements_b, node_map_a, node_map_b,
        config=config, resolver=resolver, element_types=element_types,
    ))
    return ModelComparison(config=config, types=types)
