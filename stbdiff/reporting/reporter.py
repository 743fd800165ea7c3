"""
Reporter for generating Excel and JSON reports of a model comparison.

Each sheet is built as a pandas DataFrame first (see build_frames) and then
written with openpyxl, which adds the header style and the bucket colours.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils.dataframe import dataframe_to_rows

from stbdiff.comparison.model_comparison import ModelComparison
from stbdiff.reporting.statistics import (
    comparison_statistics,
    generate_importance_summary,
    tolerance_statistics,
)
from stbdiff.settings.enums import IMPORTANCE_LEVEL_NAMES

logger = logging.getLogger(__name__)

MATCHED_COLUMNS = ["Type", "ID A", "ID B", "Name", "Match", "Importance", "Key"]
ONLY_COLUMNS = ["Type", "ID", "Name", "GUID", "Nodes", "Importance"]
TOLERANCE_COLUMNS = ["Type", "ID A", "ID B", "Name", "Match", "dX", "dY", "dZ", "Importance"]
IMPORTANCE_COLUMNS = ["Importance", "Matched", "Only A", "Only B", "Mismatch", "Differences"]
TYPE_COLUMNS = ["Type", "Model A", "Model B", "Matched", "Only A", "Only B", "Mismatch",
                "Unresolved A", "Unresolved B", "Error"]


@dataclass
class ReportConfig:
    """Configuration for report generation."""

    # Colors (RGB hex)
    color_error: str = "FF9999"  # Red
    color_warning: str = "FFFF99"  # Yellow
    color_ok: str = "99FF99"  # Green
    color_only_a: str = "FFCC99"  # Orange
    color_only_b: str = "99CCFF"  # Blue
    color_header: str = "4472C4"  # Dark blue

    # Display options
    show_matched: bool = True
    max_rows: int = 10000


def _importance_name(item) -> str:
    level = getattr(item, "importance", None)
    return IMPORTANCE_LEVEL_NAMES[level] if level is not None else ""


def _match_type(pair) -> str:
    match_type = getattr(pair, "match_type", None)
    return match_type.value if match_type is not None else "exact"


class Reporter:
    """Generates Excel and JSON reports for model comparison results."""

    def __init__(self, config: Optional[ReportConfig] = None):
        """
        Initialize the reporter.

        Args:
            config: Report configuration options
        """
        self.config = config or ReportConfig()

    def build_frames(self, comparison: ModelComparison) -> dict[str, pd.DataFrame]:
        """
        Build the detail tables of a comparison, one DataFrame per sheet.

        Returns:
            Dict with the "Matched", "Only A", "Only B", "Within Tolerance"
            and "By Importance" tables
        """
        matched, only_a, only_b, tolerance = [], [], [], []

        for type_comparison in comparison:
            name = type_comparison.element_type
            result = type_comparison.result

            for pair in result.matched:
                matched.append([
                    name, pair.id_a, pair.id_b, pair.name, _match_type(pair),
                    _importance_name(pair), pair.match_key or "",
                ])

            for pair in result.matched + list(getattr(result, "mismatch", [])):
                if _match_type(pair) == "exact":
                    continue
                differences = getattr(pair, "differences", {}) or {}
                tolerance.append([
                    name, pair.id_a, pair.id_b, pair.name, _match_type(pair),
                    differences.get("x", 0.0), differences.get("y", 0.0), differences.get("z", 0.0),
                    _importance_name(pair),
                ])

            for rows, items in ((only_a, result.only_a), (only_b, result.only_b)):
                for data in items:
                    rows.append([
                        name, data.id, data.name or "", data.guid or "",
                        " ".join(str(node_id) for node_id in data.node_ids),
                        _importance_name(data),
                    ])

        summary = generate_importance_summary(comparison.results)
        by_importance = [
            [
                IMPORTANCE_LEVEL_NAMES[level], counts.matched, counts.only_a,
                counts.only_b, counts.mismatch, counts.differences,
            ]
            for level, counts in summary.by_importance.items()
        ]

        return {
            "Matched": pd.DataFrame(matched, columns=MATCHED_COLUMNS),
            "Only A": pd.DataFrame(only_a, columns=ONLY_COLUMNS),
            "Only B": pd.DataFrame(only_b, columns=ONLY_COLUMNS),
            "Within Tolerance": pd.DataFrame(tolerance, columns=TOLERANCE_COLUMNS),
            "By Importance": pd.DataFrame(by_importance, columns=IMPORTANCE_COLUMNS),
        }

    def build_type_frame(self, comparison: ModelComparison) -> pd.DataFrame:
        """Per-type counts table shown on the summary sheet."""
        stats = comparison_statistics(comparison)
        rows = []
        for type_comparison in comparison:
            type_stats = stats["element_types"][type_comparison.element_type]
            rows.append([
                type_comparison.element_type,
                type_comparison.total_a,
                type_comparison.total_b,
                type_stats["matched"],
                type_stats["only_a"],
                type_stats["only_b"],
                type_stats["mismatch"],
                type_stats["unresolved_a"],
                type_stats["unresolved_b"],
                type_comparison.error or "",
            ])
        return pd.DataFrame(rows, columns=TYPE_COLUMNS)

    def generate_report(
        self,
        comparison: ModelComparison,
        output_path: str | Path,
        model_a_name: str = "Model A",
        model_b_name: str = "Model B",
        include_summary: bool = True
    ) -> Path:
        """
        Generate an Excel report.

        Args:
            comparison: Result of compare_models
            output_path: Path for the output Excel file
            model_a_name: Label of model A on the summary sheet
            model_b_name: Label of model B on the summary sheet
            include_summary: Whether to include a summary sheet

        Returns:
            Path to the generated report
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()

        # Remove default sheet
        if "Sheet" in wb.sheetnames:
            del wb["Sheet"]

        if include_summary:
            self._create_summary_sheet(wb, comparison, model_a_name, model_b_name)

        frames = self.build_frames(comparison)
        fills = {
            "Matched": self.config.color_ok,
            "Only A": self.config.color_only_a,
            "Only B": self.config.color_only_b,
            "Within Tolerance": self.config.color_warning,
            "By Importance": None,
        }

        for sheet_name, frame in frames.items():
            if sheet_name == "Matched" and not self.config.show_matched:
                continue
            ws = wb.create_sheet(sheet_name)
            self._write_frame(ws, frame, fills[sheet_name])

            if sheet_name == "Within Tolerance":
                match_column = TOLERANCE_COLUMNS.index("Match") + 1
                for row in range(2, ws.max_row + 1):
                    if ws.cell(row=row, column=match_column).value == "mismatch":
                        self._fill_row(ws, row, len(TOLERANCE_COLUMNS), self.config.color_error)

        wb.save(output_path)
        logger.info("Report saved to %s", output_path)
        return output_path

    def _create_summary_sheet(
        self,
        wb: Workbook,
        comparison: ModelComparison,
        model_a_name: str,
        model_b_name: str
    ) -> None:
        """Create the summary sheet."""
        ws = wb.create_sheet("Summary", 0)

        # Title
        ws["A1"] = "Structural Model Comparison Report"
        ws["A1"].font = Font(bold=True, size=16)
        ws.merge_cells("A1:D1")

        stats = comparison_statistics(comparison)
        importance = generate_importance_summary(comparison.results)
        config = comparison.config

        row = 3
        ws[f"A{row}"] = "Comparison Settings"
        ws[f"A{row}"].font = Font(bold=True, size=12)

        settings = [
            ("Model A", model_a_name),
            ("Model B", model_b_name),
            ("Mode", config.name),
            ("Key Type", config.key_type.value),
            ("Precision", config.precision),
            ("Tolerance", "on" if config.uses_tolerance else "off"),
        ]
        row += 1
        for label, value in settings:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1

        row += 1
        ws[f"A{row}"] = "Results"
        ws[f"A{row}"].font = Font(bold=True, size=12)

        results = [
            ("Total Elements", stats["total_elements"]),
            ("Matched", stats["matched"]),
            ("Only in A", stats["only_a"]),
            ("Only in B", stats["only_b"]),
            ("Mismatch", stats["mismatch"]),
            ("Critical Differences", importance.critical_differences),
            ("Errors", len(stats["errors"])),
        ]
        row += 1
        for label, value in results:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value

            # Color code
            if label in ("Critical Differences", "Errors") and value > 0:
                ws[f"B{row}"].fill = self._fill(self.config.color_error)
            elif label.startswith("Only") and value > 0:
                ws[f"B{row}"].fill = self._fill(self.config.color_warning)
            row += 1

        row += 1
        ws[f"A{row}"] = "By Element Type"
        ws[f"A{row}"].font = Font(bold=True, size=12)
        row += 1

        type_frame = self.build_type_frame(comparison)
        for offset, values in enumerate(dataframe_to_rows(type_frame, index=False, header=True)):
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row + offset, column=col, value=value)
                if offset == 0:
                    self._style_header(cell)

        # Adjust column widths
        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 15

    def _write_frame(self, ws, frame: pd.DataFrame, fill_color: Optional[str]) -> None:
        """Write a DataFrame with a styled header and optional row fill."""
        frame = frame.head(self.config.max_rows)

        for row_num, values in enumerate(dataframe_to_rows(frame, index=False, header=True), 1):
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row_num, column=col, value=value)
                if row_num == 1:
                    self._style_header(cell)
            if row_num > 1 and fill_color:
                self._fill_row(ws, row_num, len(values), fill_color)

        self._auto_width_columns(ws)

    def _style_header(self, cell) -> None:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = self._fill(self.config.color_header)
        cell.alignment = Alignment(horizontal="center")

    def _fill_row(self, ws, row: int, columns: int, color: str) -> None:
        for col in range(1, columns + 1):
            ws.cell(row=row, column=col).fill = self._fill(color)

    @staticmethod
    def _fill(color: str) -> PatternFill:
        return PatternFill(start_color=color, end_color=color, fill_type="solid")

    def _auto_width_columns(self, ws) -> None:
        """Auto-adjust column widths based on content."""
        for column in ws.columns:
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    def generate_json_report(self, comparison: ModelComparison) -> dict:
        """
        Generate a JSON-serializable report.

        Args:
            comparison: Result of compare_models

        Returns:
            Dictionary with report data
        """
        types = {}
        for type_comparison in comparison:
            result = type_comparison.result
            entry = {
                "summary": result.summary(),
                "error": type_comparison.error,
                "matched": [
                    {"id_a": p.id_a, "id_b": p.id_b, "match": _match_type(p), "key": p.match_key}
                    for p in result.matched
                ],
                "only_a": [{"id": d.id, "name": d.name, "guid": d.guid} for d in result.only_a],
                "only_b": [{"id": d.id, "name": d.name, "guid": d.guid} for d in result.only_b],
            }
            if hasattr(result, "within_tolerance"):
                entry["tolerance"] = tolerance_statistics(result)
                entry["mismatch"] = [
                    {"id_a": p.id_a, "id_b": p.id_b, "differences": p.differences}
                    for p in result.mismatch
                ]
            types[type_comparison.element_type] = entry

        config = comparison.config
        return {
            "settings": {
                "mode": config.name,
                "key_type": config.key_type.value,
                "precision": config.precision,
                "tolerance": config.tolerance.to_dict() if config.uses_tolerance else None,
                "target_importance_levels": [
                    level.value for level in (config.target_importance_levels or ())
                ],
            },
            "summary": comparison_statistics(comparison),
            "importance": generate_importance_summary(comparison.results).to_dict(),
            "element_types": types,
        }
