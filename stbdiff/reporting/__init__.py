"""
Reporting: statistics projections and Excel / JSON reports.

The reporter itself is imported from stbdiff.reporting.reporter.
"""

from stbdiff.reporting.statistics import (
    ImportanceStats,
    ImportanceSummary,
    LevelCounts,
    comparison_statistics,
    generate_importance_summary,
    importance_statistics,
    tolerance_statistics,
)

__all__ = [
    "ImportanceStats",
    "ImportanceSummary",
    "LevelCounts",
    "comparison_statistics",
    "generate_importance_summary",
    "importance_statistics",
    "tolerance_statistics",
]
