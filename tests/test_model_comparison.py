"""Tests for whole-model comparison."""

import logging

import pytest

from stbdiff.comparison.comparator import ToleranceResult
from stbdiff.comparison.model_comparison import (
    ModelComparison,
    TypeComparison,
    compare_models,
    iter_compare_models,
    schema_type,
)
from stbdiff.errors import InvalidConfigurationError, UnknownElementTypeError
from stbdiff.geometry.keys import Coordinate
from stbdiff.matching.importance import ImportanceComparisonResult, ImportanceSettings
from stbdiff.matching.matcher import ComparisonResult
from stbdiff.settings.config import ComparisonConfig, get_preset
from stbdiff.settings.enums import ImportanceLevel


class FailingResolver:
    """Resolver that breaks on one element path."""

    def __init__(self, broken_path):
        self.broken_path = broken_path

    def get_importance_level(self, path):
        if path.startswith(self.broken_path):
            raise RuntimeError(f"lookup failed for {path}")
        return ImportanceLevel.REQUIRED


@pytest.fixture
def node_map_a():
    return {
        "1": Coordinate(0, 0, 0),
        "2": Coordinate(0, 0, 3000),
        "3": Coordinate(6000, 0, 0),
        "4": Coordinate(6000, 0, 3000),
    }


@pytest.fixture
def node_map_b(node_map_a):
    # Node 4 moved 3 mm along x
    return {**node_map_a, "4": Coordinate(6003, 0, 3000)}


@pytest.fixture
def elements():
    return {
        "Column": [
            {"id": "C1", "id_node_bottom": "1", "id_node_top": "2"},
            {"id": "C2", "id_node_bottom": "3", "id_node_top": "4"},
        ],
        "Beam": [{"id": "B1", "id_node_start": "2", "id_node_end": "4"}],
    }


class TestCompareModels:
    """Tests for compare_models."""

    def test_exact_preset(self, elements, node_map_a, node_map_b):
        """Test that moved nodes show up as differences in exact mode."""
        comparison = compare_models(elements, elements, node_map_a, node_map_b)

        assert comparison.element_types == ["Column", "Beam"]
        columns = comparison["Column"]
        assert isinstance(columns.result, ImportanceComparisonResult)
        assert [p.id_a for p in columns.result.matched] == ["C1"]
        assert [d.id for d in columns.result.only_a] == ["C2"]
        assert columns.total_a == 2
        assert columns.has_differences
        assert comparison.has_differences
        assert comparison.total_differences == 4

    def test_identical_models(self, elements, node_map_a):
        comparison = compare_models(elements, elements, node_map_a, node_map_a)
        assert not comparison.has_differences
        assert comparison.errors == []

    def test_tolerant_preset(self, elements, node_map_a, node_map_b):
        """Test that the tolerance path is taken and annotated."""
        comparison = compare_models(
            elements, elements, node_map_a, node_map_b, config=get_preset("tolerant")
        )

        columns = comparison["Column"].result
        assert isinstance(columns, ToleranceResult)
        assert [m.id_a for m in columns.exact] == ["C1"]
        assert [m.id_a for m in columns.within_tolerance] == ["C2"]
        assert all(m.importance is ImportanceLevel.REQUIRED for m in columns.matched)
        assert columns.importance_stats.total_matched == 2
        assert columns.element_type == "StbColumn"
        assert not comparison.has_differences

    def test_plain_path_without_importance(self, elements, node_map_a):
        config = ComparisonConfig(use_importance_filtering=False)
        comparison = compare_models(elements, elements, node_map_a, node_map_a, config=config)

        result = comparison["Beam"].result
        assert type(result) is ComparisonResult
        assert result.matched[0].importance is None

    def test_importance_target_filter(self, elements, node_map_a, node_map_b):
        """Test that only elements at the target levels are compared."""
        settings = ImportanceSettings({"//ST_BRIDGE/StbBeam": ImportanceLevel.UNNECESSARY})
        config = ComparisonConfig(target_importance_levels=["required"])

        comparison = compare_models(
            elements, elements, node_map_a, node_map_b, config=config, resolver=settings
        )

        beams = comparison["Beam"].result
        assert beams.matched == [] and beams.only_a == [] and beams.only_b == []
        assert beams.filter_settings.filtered_a == 0
        assert comparison["Column"].result.filter_settings.filtered_a == 2

    def test_type_error_is_recorded(self, elements, node_map_a, caplog):
        """Test that one failing type does not stop the others."""
        with caplog.at_level(logging.ERROR, logger="stbdiff"):
            comparison = compare_models(
                elements, elements, node_map_a, node_map_a,
                resolver=FailingResolver("//ST_BRIDGE/StbColumn"),
            )

        columns = comparison["Column"]
        assert not columns.ok
        assert "lookup failed" in columns.error
        assert columns.result.matched == []
        assert comparison["Beam"].ok
        assert len(comparison["Beam"].result.matched) == 1
        assert [c.element_type for c in comparison.errors] == ["Column"]
        assert comparison.summary()["errors"][0]["element_type"] == "Column"
        assert "Error processing Column" in caplog.text

    def test_unknown_type_raises(self, elements, node_map_a):
        with pytest.raises(UnknownElementTypeError):
            compare_models(elements, elements, node_map_a, node_map_a, element_types=["Column", "Truss"])

    def test_invalid_config(self, elements, node_map_a):
        with pytest.raises(InvalidConfigurationError):
            compare_models(elements, elements, node_map_a, node_map_a, config={"mode": "exact"})

    def test_explicit_types_keep_order(self, elements, node_map_a):
        comparison = compare_models(
            elements, elements, node_map_a, node_map_a, element_types=["Beam", "Column", "Beam"]
        )
        assert comparison.element_types == ["Beam", "Column"]

    def test_node_comparison(self, node_map_a, node_map_b):
        """Test comparing node records against the node maps."""
        nodes = {"Node": [{"id": node_id} for node_id in node_map_a]}
        comparison = compare_models(nodes, nodes, node_map_a, node_map_b)

        result = comparison["Node"].result
        assert len(result.matched) == 3
        assert [d.id for d in result.only_a] == ["4"]
        assert [d.id for d in result.only_b] == ["4"]

    def test_summary(self, elements, node_map_a, node_map_b):
        summary = compare_models(elements, elements, node_map_a, node_map_b).summary()
        assert summary["matched"] == 1
        assert summary["only_a"] == 2
        assert summary["only_b"] == 2
        assert summary["element_types"]["Beam"]["total"] == 2


class TestIterCompareModels:
    """Tests for the incremental generator."""

    def test_yields_per_type(self, elements, node_map_a):
        iterator = iter_compare_models(elements, elements, node_map_a, node_map_a)

        first = next(iterator)
        assert isinstance(first, TypeComparison)
        assert first.element_type == "Column"
        assert [c.element_type for c in iterator] == ["Beam"]

    def test_bad_type_before_first_yield(self, elements, node_map_a):
        iterator = iter_compare_models(elements, elements, node_map_a, node_map_a, element_types=["Truss"])
        with pytest.raises(UnknownElementTypeError):
            next(iterator)


class TestModelComparison:
    """Tests for ModelComparison."""

    def test_missing_type(self):
        comparison = ModelComparison(config=ComparisonConfig())
        with pytest.raises(KeyError):
            comparison["Column"]
        assert not comparison.has_differences

    def test_schema_type(self):
        assert schema_type("Column") == "StbColumn"
