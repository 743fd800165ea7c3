"""
Tolerance matcher.

Extends exact key matching with a greedy "close enough" pass:
1. Exact: same identity key and geometry equal at the working precision
2. Within tolerance: geometry within the per-axis tolerance, any key
3. Mismatch (opt-in): same identity key, geometry out of tolerance
4. Only A / Only B: everything left over

Every element is paired at most once. B elements are processed in input
order and each one takes the first acceptable A candidate, so the outcome is
deterministic for a given input order.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, Optional

from stbdiff.comparison.tolerance import FieldComparison, MatchType, compare_element_data
from stbdiff.matching.extractors import ElementData, NodeMap
from stbdiff.matching.matcher import ComparisonResult, Matcher, MatchedPair
from stbdiff.settings.tolerance import DEFAULT_TOLERANCE_CONFIG, ToleranceConfig

logger = logging.getLogger(__name__)

# compare(data_a, data_b, config, precision) -> FieldComparison
CompareFn = Callable[[ElementData, ElementData, ToleranceConfig, Optional[int]], FieldComparison]


@dataclass
class ToleranceMatch(MatchedPair):
    """A matched pair with its tolerance classification."""

    match_type: MatchType = MatchType.EXACT

    # Largest absolute difference per axis
    differences: dict = field(default_factory=dict)


@dataclass
class ToleranceResult:
    """Result of a tolerance comparison."""

    # Buckets holding ToleranceMatch pairs
    PAIR_BUCKETS: ClassVar[tuple] = ("exact", "within_tolerance", "mismatch")

    exact: list = field(default_factory=list)
    within_tolerance: list = field(default_factory=list)
    mismatch: list = field(default_factory=list)
    only_a: list = field(default_factory=list)
    only_b: list = field(default_factory=list)

    unresolved_a: int = 0
    unresolved_b: int = 0

    errors: list = field(default_factory=list)

    # Filled in when importance annotation is requested
    element_type: str = ""
    importance_stats: Optional[object] = None

    @property
    def matched(self) -> list:
        """Exact and within-tolerance pairs."""
        return self.exact + self.within_tolerance

    @property
    def total_a(self) -> int:
        return len(self.matched) + len(self.mismatch) + len(self.only_a)

    @property
    def total_b(self) -> int:
        return len(self.matched) + len(self.mismatch) + len(self.only_b)

    @property
    def total_differences(self) -> int:
        return len(self.mismatch) + len(self.only_a) + len(self.only_b)

    @property
    def match_rate(self) -> float:
        total = self.total_a + self.total_b
        if total == 0:
            return 0.0
        return (len(self.matched) * 2 / total) * 100

    def to_comparison_result(self) -> ComparisonResult:
        """
        Flatten into a plain ComparisonResult.

        Mismatched pairs count as different, so each side goes to its only
        bucket.
        """
        return ComparisonResult(
            matched=list(self.matched),
            only_a=self.only_a + [pair.data_a for pair in self.mismatch],
            only_b=self.only_b + [pair.data_b for pair in self.mismatch],
            unresolved_a=self.unresolved_a,
            unresolved_b=self.unresolved_b,
            errors=list(self.errors),
        )

    def summary(self) -> dict:
        """Get a summary of the match results."""
        return {
            "total_a": self.total_a,
            "total_b": self.total_b,
            "exact": len(self.exact),
            "within_tolerance": len(self.within_tolerance),
            "mismatch": len(self.mismatch),
            "only_a": len(self.only_a),
            "only_b": len(self.only_b),
            "unresolved_a": self.unresolved_a,
            "unresolved_b": self.unresolved_b,
            "match_rate": f"{self.match_rate:.1f}%"
        }


class ToleranceMatcher:
    """Greedy one-to-one matcher with a tolerance fallback."""

    def __init__(
        self,
        config: ToleranceConfig = DEFAULT_TOLERANCE_CONFIG,
        compare: Optional[CompareFn] = None,
        matcher: Optional[Matcher] = None
    ):
        """
        Initialize the matcher.

        Args:
            config: Tolerance settings; strict or disabled configs fall back
                to exact key matching
            compare: Geometry comparison (default: compare_element_data)
            matcher: Exact matcher used in strict mode
        """
        self.config = config
        self.compare = compare or compare_element_data
        self.matcher = matcher or Matcher()

    def match(
        self,
        elements_a: Iterable,
        elements_b: Iterable,
        node_map_a: NodeMap,
        node_map_b: NodeMap,
        extractor
    ) -> ToleranceResult:
        """
        Classify elements into exact, within tolerance, mismatch and only A / B.

        Args:
            elements_a: Element records of model A
            elements_b: Element records of model B
            node_map_a: Node map of model A
            node_map_b: Node map of model B
            extractor: Key extractor; its precision decides exactness when the
                config does not set one

        Returns:
            ToleranceResult
        """
        if not self.config.is_active:
            return self._match_exact(elements_a, elements_b, node_map_a, node_map_b, extractor)

        precision = self.config.precision
        if precision is None:
            precision = getattr(extractor, "precision", None)

        result = ToleranceResult()

        # key -> A candidates still available, in input order
        candidates: dict[str, list[ElementData]] = {}
        for element in elements_a:
            extracted = extractor(element, node_map_a)
            if extracted.key is None:
                result.unresolved_a += 1
                continue
            candidates.setdefault(extracted.key, []).append(extracted.data)

        unmatched_b: dict[str, list[ElementData]] = {}
        for element in elements_b:
            extracted = extractor(element, node_map_b)
            if extracted.key is None:
                result.unresolved_b += 1
                continue

            key, data_b = extracted.key, extracted.data
            match = (
                self._take_exact(candidates, key, data_b, precision)
                or self._take_within_tolerance(candidates, data_b, precision)
            )
            if match is None and self.config.report_mismatches:
                match = self._take_mismatch(candidates, key, data_b, precision)

            if match is None:
                unmatched_b.setdefault(key, []).append(data_b)
            elif match.match_type is MatchType.EXACT:
                result.exact.append(match)
            elif match.match_type is MatchType.WITHIN_TOLERANCE:
                result.within_tolerance.append(match)
            else:
                result.mismatch.append(match)

        result.only_a = [data for remaining in candidates.values() for data in remaining]
        result.only_b = [data for remaining in unmatched_b.values() for data in remaining]

        logger.debug(
            "Tolerance match: %d exact, %d within tolerance, %d mismatch, %d only A, %d only B",
            len(result.exact), len(result.within_tolerance), len(result.mismatch),
            len(result.only_a), len(result.only_b)
        )
        return result

    def _match_exact(self, elements_a, elements_b, node_map_a, node_map_b, extractor) -> ToleranceResult:
        basic = self.matcher.match(elements_a, elements_b, node_map_a, node_map_b, extractor)
        return ToleranceResult(
            exact=[
                ToleranceMatch(pair.data_a, pair.data_b, match_key=pair.match_key)
                for pair in basic.matched
            ],
            only_a=basic.only_a,
            only_b=basic.only_b,
            unresolved_a=basic.unresolved_a,
            unresolved_b=basic.unresolved_b,
        )

    def _take_exact(self, candidates, key, data_b, precision) -> Optional[ToleranceMatch]:
        for index, data_a in enumerate(candidates.get(key, [])):
            comparison = self.compare(data_a, data_b, self.config, precision)
            if comparison.match and comparison.match_type is MatchType.EXACT:
                return self._consume(candidates, key, index, data_b, comparison)
        return None

    def _take_within_tolerance(self, candidates, data_b, precision) -> Optional[ToleranceMatch]:
        for key, remaining in candidates.items():
            for index, data_a in enumerate(remaining):
                comparison = self.compare(data_a, data_b, self.config, precision)
                if comparison.match and comparison.match_type is MatchType.WITHIN_TOLERANCE:
                    return self._consume(candidates, key, index, data_b, comparison)
        return None

    def _take_mismatch(self, candidates, key, data_b, precision) -> Optional[ToleranceMatch]:
        remaining = candidates.get(key)
        if not remaining:
            return None
        comparison = self.compare(remaining[0], data_b, self.config, precision)
        forced = FieldComparison(False, MatchType.MISMATCH, comparison.differences, comparison.per_point)
        return self._consume(candidates, key, 0, data_b, forced)

    @staticmethod
    def _consume(candidates, key, index, data_b, comparison: FieldComparison) -> ToleranceMatch:
        remaining = candidates[key]
        data_a = remaining.pop(index)
        if not remaining:
            del candidates[key]
        return ToleranceMatch(
            data_a=data_a,
            data_b=data_b,
            match_key=key,
            match_type=comparison.match_type,
            differences=comparison.differences,
        )


def match_with_tolerance(
    elements_a,
    elements_b,
    node_map_a,
    node_map_b,
    extractor,
    config: ToleranceConfig = DEFAULT_TOLERANCE_CONFIG
) -> ToleranceResult:
    """Run the tolerance matcher once; see ToleranceMatcher.match."""
    return ToleranceMatcher(config).match(elements_a, elements_b, node_map_a, node_map_b, extractor)
