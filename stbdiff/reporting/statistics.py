"""
Read-only statistics over comparison results.

Nothing here changes a result; every function is a projection used by the
reporter, the command line summary and callers that only need counts.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from stbdiff.settings.enums import ImportanceLevel

# Level counted for items that carry no importance annotation
UNANNOTATED_LEVEL = ImportanceLevel.OPTIONAL


@dataclass
class LevelCounts:
    """Counts of one importance level."""

    matched: int = 0
    only_a: int = 0
    only_b: int = 0
    mismatch: int = 0
    differences: int = 0

    def add(self, other: "LevelCounts") -> None:
        self.matched += other.matched
        self.only_a += other.only_a
        self.only_b += other.only_b
        self.mismatch += other.mismatch
        self.differences += other.differences

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "only_a": self.only_a,
            "only_b": self.only_b,
            "mismatch": self.mismatch,
            "differences": self.differences,
        }


def _empty_levels() -> dict:
    return {level: LevelCounts() for level in ImportanceLevel}


@dataclass
class ImportanceStats:
    """Per-importance-level counts of one element type."""

    element_type: str
    by_importance: dict = field(default_factory=_empty_levels)
    total_matched: int = 0
    total_only_a: int = 0
    total_only_b: int = 0
    total_mismatch: int = 0

    @property
    def total_differences(self) -> int:
        return self.total_only_a + self.total_only_b + self.total_mismatch

    def summary(self) -> dict:
        return {
            "total_matched": self.total_matched,
            "total_only_a": self.total_only_a,
            "total_only_b": self.total_only_b,
            "total_mismatch": self.total_mismatch,
            "total_differences": self.total_differences,
        }

    def to_dict(self) -> dict:
        return {
            "element_type": self.element_type,
            "by_importance": {
                level.value: counts.to_dict() for level, counts in self.by_importance.items()
            },
            "summary": self.summary(),
        }


def importance_statistics(result, element_type: str) -> ImportanceStats:
    """
    Count a result's items per importance level.

    Works on any result exposing matched / only_a / only_b (and optionally
    mismatch) lists. Items without an importance annotation count as
    OPTIONAL.
    """
    mismatch = list(getattr(result, "mismatch", []) or [])

    stats = ImportanceStats(
        element_type=element_type,
        total_matched=len(result.matched),
        total_only_a=len(result.only_a),
        total_only_b=len(result.only_b),
        total_mismatch=len(mismatch),
    )

    def count(items, category: str) -> None:
        for item in items:
            level = getattr(item, "importance", None) or UNANNOTATED_LEVEL
            counts = stats.by_importance[level]
            setattr(counts, category, getattr(counts, category) + 1)
            if category != "matched":
                counts.differences += 1

    count(result.matched, "matched")
    count(result.only_a, "only_a")
    count(result.only_b, "only_b")
    count(mismatch, "mismatch")

    return stats


@dataclass
class ImportanceSummary:
    """Importance counts across several element types."""

    total_elements: int = 0
    total_differences: int = 0
    by_importance: dict = field(default_factory=_empty_levels)
    by_element_type: dict = field(default_factory=dict)

    # Differences at REQUIRED level
    critical_differences: int = 0

    timestamp: str = ""

    def to_dict(self) -> dict:
        return {
            "total_elements": self.total_elements,
            "total_differences": self.total_differences,
            "critical_differences": self.critical_differences,
            "by_importance": {
                level.value: counts.to_dict() for level, counts in self.by_importance.items()
            },
            "by_element_type": dict(self.by_element_type),
            "timestamp": self.timestamp,
        }


def generate_importance_summary(results: Iterable) -> ImportanceSummary:
    """
    Aggregate the importance statistics of several results.

    Results without importance_stats (plain exact results, failed types) are
    skipped.
    """
    summary = ImportanceSummary(timestamp=datetime.now(timezone.utc).isoformat())

    for result in results:
        stats: Optional[ImportanceStats] = getattr(result, "importance_stats", None)
        if stats is None:
            continue

        summary.by_element_type[stats.element_type] = stats.summary()
        summary.total_elements += stats.total_matched + stats.total_differences
        summary.total_differences += stats.total_differences

        for level, counts in stats.by_importance.items():
            summary.by_importance[level].add(counts)
            if level is ImportanceLevel.REQUIRED:
                summary.critical_differences += counts.differences

    return summary


def comparison_statistics(model_comparison) -> dict:
    """
    Per-type and global counts of a multi-type comparison.

    Args:
        model_comparison: ModelComparison, or any iterable of TypeComparison

    Returns:
        Dict with global totals, an "element_types" breakdown and the list
        of per-type errors
    """
    type_comparisons = getattr(model_comparison, "types", model_comparison)

    stats = {
        "total_elements": 0,
        "matched": 0,
        "only_a": 0,
        "only_b": 0,
        "mismatch": 0,
        "element_types": {},
        "errors": [],
    }

    for comparison in type_comparisons:
        result = comparison.result
        mismatch = len(getattr(result, "mismatch", []) or [])
        type_stats = {
            "matched": len(result.matched),
            "only_a": len(result.only_a),
            "only_b": len(result.only_b),
            "mismatch": mismatch,
            "unresolved_a": result.unresolved_a,
            "unresolved_b": result.unresolved_b,
        }
        type_stats["total"] = (
            type_stats["matched"] + type_stats["only_a"] + type_stats["only_b"] + mismatch
        )

        stats["element_types"][comparison.element_type] = type_stats
        stats["total_elements"] += type_stats["total"]
        stats["matched"] += type_stats["matched"]
        stats["only_a"] += type_stats["only_a"]
        stats["only_b"] += type_stats["only_b"]
        stats["mismatch"] += mismatch

        if comparison.error:
            stats["errors"].append({
                "element_type": comparison.element_type,
                "error": comparison.error,
            })

    return stats


def tolerance_statistics(result) -> dict:
    """
    Bucket counts of a tolerance result plus the largest axis deviation
    accepted among the within-tolerance matches. Keys other than x, y and z
    in the differences are ignored.
    """
    max_deviation = {"x": 0.0, "y": 0.0, "z": 0.0}
    for match in result.within_tolerance:
        for axis, value in (match.differences or {}).items():
            if axis in max_deviation and value > max_deviation[axis]:
                max_deviation[axis] = value

    return {
        "exact": len(result.exact),
        "within_tolerance": len(result.within_tolerance),
        "mismatch": len(result.mismatch),
        "only_a": len(result.only_a),
        "only_b": len(result.only_b),
        "matched": len(result.exact) + len(result.within_tolerance),
        "max_deviation": max_deviation,
    }
