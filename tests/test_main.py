"""Tests for main module and integration."""

import json

import pytest

from stbdiff.errors import InvalidConfigurationError
from stbdiff.main import build_config, load_importance_settings, main, parse_args
from stbdiff.settings.enums import ComparisonKeyType, ImportanceLevel
from stbdiff.settings.tolerance import AxisTolerance


def write_snapshot(path, nodes, elements):
    path.write_text(json.dumps({"nodes": nodes, "elements": elements}), encoding="utf-8")
    return path


@pytest.fixture
def nodes():
    return {
        "1": [0, 0, 0],
        "2": [0, 0, 3000],
        "3": [6000, 0, 0],
        "4": [6000, 0, 3000],
    }


@pytest.fixture
def elements():
    return {
        "StbColumn": [
            {"id": "C1", "id_node_bottom": "1", "id_node_top": "2"},
            {"id": "C2", "id_node_bottom": "3", "id_node_top": "4"},
        ],
        "StbGirder": [{"id": "G1", "id_node_start": "2", "id_node_end": "4"}],
    }


@pytest.fixture
def model_a(tmp_path, nodes, elements):
    return write_snapshot(tmp_path / "rev1.json", nodes, elements)


@pytest.fixture
def model_b_moved(tmp_path, nodes, elements):
    # Node 4 moved 3 mm
    return write_snapshot(tmp_path / "rev2.json", {**nodes, "4": [6003, 0, 3000]}, elements)


class TestBuildConfig:
    """Tests for turning arguments into a ComparisonConfig."""

    def args(self, *extra):
        return parse_args(["--model-a", "a.json", "--model-b", "b.json", *extra])

    def test_default_is_exact(self):
        config = build_config(self.args())
        assert config.name == "Exact"
        assert not config.uses_tolerance
        assert config.use_importance_filtering

    def test_tolerance_flag(self):
        config = build_config(self.args("--tolerance", "5"))
        assert config.uses_tolerance
        assert config.tolerance.base_point == AxisTolerance.uniform(5.0)

    def test_strict_overrides_tolerance(self):
        config = build_config(self.args("--mode", "tolerant", "--strict"))
        assert config.tolerance.strict_mode
        assert not config.uses_tolerance

    def test_report_mismatches_keeps_preset_tolerance(self):
        config = build_config(self.args("--mode", "tolerant", "--report-mismatches"))
        assert config.tolerance.report_mismatches
        assert config.tolerance.base_point == AxisTolerance.uniform(10.0)

    def test_overrides(self):
        config = build_config(self.args(
            "--key-type", "external", "--precision", "1",
            "--importance", "High", "--importance", "optional", "--no-importance",
        ))
        assert config.key_type is ComparisonKeyType.EXTERNAL
        assert config.precision == 1
        assert config.target_importance_levels == (ImportanceLevel.REQUIRED, ImportanceLevel.OPTIONAL)
        assert not config.use_importance_filtering

    def test_invalid_values(self):
        with pytest.raises(InvalidConfigurationError):
            build_config(self.args("--precision", "-1"))
        with pytest.raises(InvalidConfigurationError):
            build_config(self.args("--tolerance", "-2"))
        with pytest.raises(InvalidConfigurationError):
            build_config(self.args("--importance", "urgent"))

    def test_unknown_mode_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            self.args("--mode", "fuzzy")


class TestLoadImportanceSettings:
    """Tests for load_importance_settings."""

    def test_no_file(self):
        assert len(load_importance_settings(None)) == 0

    def test_from_csv(self, tmp_path):
        path = tmp_path / "importance.csv"
        path.write_text("Element Path,Importance Level\n//ST_BRIDGE/StbGirder,Low\n", encoding="utf-8")
        settings = load_importance_settings(path)
        assert settings.get_importance_level("//ST_BRIDGE/StbGirder") is ImportanceLevel.UNNECESSARY

    def test_missing_csv(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_importance_settings(tmp_path / "missing.csv")


class TestMain:
    """End-to-end runs of the command line tool."""

    def test_identical_models(self, tmp_path, model_a, capsys):
        """Test that identical models exit normally."""
        output = tmp_path / "report.xlsx"
        main(["--model-a", str(model_a), "--model-b", str(model_a), "-o", str(output)])

        assert output.exists()
        out = capsys.readouterr().out
        assert "STRUCTURAL MODEL COMPARISON RESULTS" in out
        assert "Report saved to" in out

    def test_differences_exit_code(self, tmp_path, model_a, model_b_moved):
        output = tmp_path / "report.xlsx"
        with pytest.raises(SystemExit) as exc_info:
            main(["--model-a", str(model_a), "--model-b", str(model_b_moved), "-o", str(output)])
        assert exc_info.value.code == 2
        assert output.exists()

    def test_tolerance_absorbs_shift(self, tmp_path, model_a, model_b_moved):
        """Test that a 3 mm shift is no difference at 10 mm tolerance."""
        output = tmp_path / "report.xlsx"
        json_path = tmp_path / "report.json"
        main([
            "--model-a", str(model_a), "--model-b", str(model_b_moved),
            "--mode", "tolerant", "-o", str(output), "--json", str(json_path), "-q",
        ])

        report = json.loads(json_path.read_text(encoding="utf-8"))
        # 4 nodes, 2 columns, 1 girder
        assert report["summary"]["matched"] == 7
        assert report["summary"]["only_a"] == 0
        assert report["element_types"]["Node"]["tolerance"]["within_tolerance"] == 1
        assert report["element_types"]["Girder"]["tolerance"]["within_tolerance"] == 1

    def test_quiet_prints_report_path(self, tmp_path, model_a, capsys):
        output = tmp_path / "report.xlsx"
        main(["--model-a", str(model_a), "--model-b", str(model_a), "-o", str(output), "--quiet"])
        assert capsys.readouterr().out.strip() == str(output)

    def test_types_filter(self, tmp_path, model_a, model_b_moved):
        """Test that only the requested types are compared."""
        output = tmp_path / "report.xlsx"
        json_path = tmp_path / "report.json"
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--model-a", str(model_a), "--model-b", str(model_b_moved),
                "--types", "Girder", "-o", str(output), "--json", str(json_path), "-q",
            ])
        assert exc_info.value.code == 2

        report = json.loads(json_path.read_text(encoding="utf-8"))
        assert list(report["element_types"]) == ["Girder"]

    def test_missing_model(self, tmp_path, model_a, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--model-a", str(model_a), "--model-b", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1
        assert "Model B file not found" in capsys.readouterr().err

    def test_invalid_snapshot(self, tmp_path, model_a, capsys):
        broken = tmp_path / "broken.json"
        broken.write_text("[]", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["--model-a", str(model_a), "--model-b", str(broken), "-o", str(tmp_path / "r.xlsx")])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_unknown_type(self, tmp_path, model_a, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--model-a", str(model_a), "--model-b", str(model_a),
                "--types", "Truss", "-o", str(tmp_path / "r.xlsx"),
            ])
        assert exc_info.value.code == 1
        assert "Unknown element type" in capsys.readouterr().err

    def test_log_file(self, tmp_path, model_a):
        log_file = tmp_path / "run.log"
        main([
            "--model-a", str(model_a), "--model-b", str(model_a),
            "-o", str(tmp_path / "r.xlsx"), "-q", "-v", "--log-file", str(log_file),
        ])
        assert "Logging initialized." in log_file.read_text(encoding="utf-8")
