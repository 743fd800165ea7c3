"""Tests for the statistics projections."""

from types import SimpleNamespace

import pytest

from stbdiff.comparison.comparator import ToleranceMatch, ToleranceResult
from stbdiff.comparison.tolerance import MatchType
from stbdiff.matching.importance import ImportanceComparisonResult
from stbdiff.matching.matcher import ComparisonResult
from stbdiff.reporting.statistics import (
    comparison_statistics,
    generate_importance_summary,
    importance_statistics,
    tolerance_statistics,
)
from stbdiff.settings.enums import ImportanceLevel


def item(level=None):
    return SimpleNamespace(importance=level)


class TestImportanceStatistics:
    """Tests for importance_statistics."""

    def test_counts_per_level(self):
        result = ComparisonResult(
            matched=[item(ImportanceLevel.REQUIRED), item(ImportanceLevel.OPTIONAL)],
            only_a=[item(ImportanceLevel.REQUIRED)],
            only_b=[item(ImportanceLevel.UNNECESSARY), item()],
        )
        stats = importance_statistics(result, "StbBeam")

        required = stats.by_importance[ImportanceLevel.REQUIRED]
        assert (required.matched, required.only_a, required.differences) == (1, 1, 1)
        # Unannotated items count as OPTIONAL
        assert stats.by_importance[ImportanceLevel.OPTIONAL].only_b == 1
        assert stats.by_importance[ImportanceLevel.UNNECESSARY].differences == 1
        assert stats.by_importance[ImportanceLevel.NOT_APPLICABLE].differences == 0
        assert stats.summary() == {
            "total_matched": 2,
            "total_only_a": 1,
            "total_only_b": 2,
            "total_mismatch": 0,
            "total_differences": 3,
        }

    def test_every_level_present(self):
        stats = importance_statistics(ComparisonResult(matched=[], only_a=[], only_b=[]), "StbSlab")
        assert set(stats.by_importance) == set(ImportanceLevel)
        assert set(stats.to_dict()["by_importance"]) == {"required", "optional", "unnecessary", "notApplicable"}


class TestImportanceSummary:
    """Tests for generate_importance_summary."""

    def test_aggregate_types(self):
        """Test totals and critical differences across element types."""
        beams = ComparisonResult(
            matched=[item(ImportanceLevel.REQUIRED)],
            only_a=[item(ImportanceLevel.REQUIRED)],
            only_b=[],
        )
        slabs = ComparisonResult(matched=[], only_a=[], only_b=[item(ImportanceLevel.OPTIONAL)])

        results = []
        for element_type, result in (("StbBeam", beams), ("StbSlab", slabs)):
            annotated = ImportanceComparisonResult(
                matched=result.matched, only_a=result.only_a, only_b=result.only_b,
                element_type=element_type,
            )
            annotated.importance_stats = importance_statistics(annotated, element_type)
            results.append(annotated)

        # A result without stats is skipped
        results.append(ComparisonResult(matched=[], only_a=[item()], only_b=[]))

        summary = generate_importance_summary(results)
        assert summary.total_elements == 3
        assert summary.total_differences == 2
        assert summary.critical_differences == 1
        assert set(summary.by_element_type) == {"StbBeam", "StbSlab"}
        assert summary.by_importance[ImportanceLevel.OPTIONAL].only_b == 1
        assert summary.timestamp
        assert summary.to_dict()["critical_differences"] == 1


class TestComparisonStatistics:
    """Tests for comparison_statistics."""

    def test_per_type_and_errors(self):
        ok = SimpleNamespace(
            element_type="Beam",
            result=ComparisonResult(matched=[1, 2], only_a=[3], only_b=[], unresolved_a=1),
            error=None,
        )
        failed = SimpleNamespace(
            element_type="Slab",
            result=ComparisonResult(matched=[], only_a=[], only_b=[]),
            error="boom",
        )
        stats = comparison_statistics([ok, failed])

        assert stats["total_elements"] == 3
        assert stats["matched"] == 2
        assert stats["element_types"]["Beam"]["unresolved_a"] == 1
        assert stats["element_types"]["Beam"]["total"] == 3
        assert stats["errors"] == [{"element_type": "Slab", "error": "boom"}]


class TestToleranceStatistics:
    """Tests for tolerance_statistics."""

    def test_bucket_counts_and_deviation(self):
        result = ToleranceResult(
            exact=[ToleranceMatch("a", "b")],
            within_tolerance=[
                ToleranceMatch("c", "d", match_type=MatchType.WITHIN_TOLERANCE,
                               differences={"x": 2.0, "y": 0.0, "z": 1.0}),
                ToleranceMatch("e", "f", match_type=MatchType.WITHIN_TOLERANCE,
                               differences={"x": 0.5, "y": 3.0, "z": 0.0}),
            ],
            only_b=["g"],
        )
        stats = tolerance_statistics(result)

        assert stats["exact"] == 1
        assert stats["within_tolerance"] == 2
        assert stats["matched"] == 3
        assert stats["only_b"] == 1
        assert stats["max_deviation"] == pytest.approx({"x": 2.0, "y": 3.0, "z": 1.0})

    def test_unknown_difference_keys_ignored(self):
        """Test that custom comparisons may report extra difference keys."""
        result = ToleranceResult(within_tolerance=[
            ToleranceMatch("a", "b", match_type=MatchType.WITHIN_TOLERANCE,
                           differences={"start": 1.0, "x": 2.0, "rotation": 0.3}),
        ])
        stats = tolerance_statistics(result)
        assert stats["max_deviation"] == pytest.approx({"x": 2.0, "y": 0.0, "z": 0.0})
