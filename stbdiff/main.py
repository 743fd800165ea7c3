"""
stbdiff

Main entry point for comparing two versions of a structural model.

Supports three comparison modes:
- exact: coordinate keys must be equal at the working precision
- tolerant: exact keys first, then the closest element within tolerance
- guid: match by guid attribute, coordinates as fallback
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from stbdiff.comparison.model_comparison import ModelComparison, compare_models
from stbdiff.logging_config import setup_logging
from stbdiff.matching.importance import ImportanceSettings
from stbdiff.parsers.snapshot import load_snapshot
from stbdiff.reporting.reporter import Reporter
from stbdiff.reporting.statistics import generate_importance_summary
from stbdiff.settings.config import ComparisonConfig, ComparisonMode, get_preset
from stbdiff.settings.enums import ComparisonKeyType
from stbdiff.settings.tolerance import AxisTolerance, ToleranceConfig

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Compare two structural model snapshots and flag differences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m stbdiff.main --model-a rev1.json --model-b rev2.json
  python -m stbdiff.main --model-a rev1.json --model-b rev2.json --mode tolerant --tolerance 5
  python -m stbdiff.main --model-a rev1.json --model-b rev2.json --mode guid --json diff.json
        """
    )

    parser.add_argument(
        "--model-a",
        required=True,
        help="Path to the model A snapshot (JSON)"
    )

    parser.add_argument(
        "--model-b",
        required=True,
        help="Path to the model B snapshot (JSON)"
    )

    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ComparisonMode],
        default=ComparisonMode.EXACT.value,
        help="Comparison preset. Default: exact"
    )

    parser.add_argument(
        "--key-type",
        choices=[key_type.value for key_type in ComparisonKeyType],
        default=None,
        help="Override the identity strategy of the preset"
    )

    parser.add_argument(
        "--precision",
        type=int,
        default=None,
        help="Decimals kept when encoding coordinates (default: 3)"
    )

    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Per-axis tolerance in mm; enables tolerance matching"
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Force exact matching even when tolerance is enabled"
    )

    parser.add_argument(
        "--report-mismatches",
        action="store_true",
        help="Pair same-key elements outside tolerance as mismatches"
    )

    parser.add_argument(
        "--importance",
        action="append",
        default=None,
        metavar="LEVEL",
        help="Only compare elements at this importance level (repeatable)"
    )

    parser.add_argument(
        "--importance-csv",
        default=None,
        help="CSV file with importance settings (Element Path, Importance Level)"
    )

    parser.add_argument(
        "--no-importance",
        action="store_true",
        help="Disable importance filtering and annotation"
    )

    parser.add_argument(
        "--types",
        nargs="+",
        default=None,
        help="Element types to compare (default: all types present)"
    )

    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output Excel report path (default: report_<timestamp>.xlsx)"
    )

    parser.add_argument(
        "--json",
        default=None,
        help="Output JSON report path (optional)"
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log messages to this file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet mode - only output file path"
    )

    return parser.parse_args(argv)


def build_config(args) -> ComparisonConfig:
    """
    Turn parsed arguments into a comparison config.

    Raises:
        InvalidConfigurationError: If any setting is invalid
    """
    config = get_preset(args.mode)
    changes = {}

    if args.key_type:
        changes["key_type"] = ComparisonKeyType.parse(args.key_type)
    if args.precision is not None:
        changes["precision"] = args.precision

    if args.tolerance is not None:
        changes["tolerance"] = ToleranceConfig(
            base_point=AxisTolerance.uniform(args.tolerance),
            strict_mode=args.strict,
            report_mismatches=args.report_mismatches,
        )
    elif args.strict or args.report_mismatches:
        changes["tolerance"] = replace(
            config.tolerance,
            strict_mode=args.strict or config.tolerance.strict_mode,
            report_mismatches=args.report_mismatches or config.tolerance.report_mismatches,
        )

    if args.no_importance:
        changes["use_importance_filtering"] = False
    if args.importance:
        changes["target_importance_levels"] = args.importance

    # replace() re-runs validation
    return replace(config, **changes) if changes else config


def load_importance_settings(csv_path) -> ImportanceSettings:
    settings = ImportanceSettings()
    if csv_path:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(f"Importance CSV not found: {path}")
        settings.import_csv(path.read_text(encoding="utf-8"))
    return settings


def print_summary(comparison: ModelComparison, verbose=False):
    """Print a summary of results to console."""
    stats = comparison.summary()
    importance = generate_importance_summary(comparison.results)

    print("\n" + "=" * 60)
    print("STRUCTURAL MODEL COMPARISON RESULTS")
    print("=" * 60)

    print("\n📊 ELEMENT SUMMARY")
    print(f"  {'Type':<10} {'Matched':>8} {'Only A':>8} {'Only B':>8}")
    for name, type_stats in stats["element_types"].items():
        print(
            f"  {name:<10} {type_stats['matched']:>8} "
            f"{type_stats['only_a']:>8} {type_stats['only_b']:>8}"
        )

    print("\n🔍 DIFFERENCE SUMMARY")
    print(f"  Total elements:       {stats['total_elements']}")
    print(f"  Matched:              {stats['matched']}")
    print(f"  Only in A:            {stats['only_a']}")
    print(f"  Only in B:            {stats['only_b']}")
    if stats["mismatch"]:
        print(f"  Mismatch:             {stats['mismatch']}")
    print(f"  🔴 Critical:          {importance.critical_differences}")

    if stats["errors"]:
        print("\n⚠️  ERRORS")
        for error in stats["errors"]:
            print(f"  {error['element_type']}: {error['error']}")

    if verbose:
        print("\n📝 DIFFERENCES:")
        shown = 0
        for type_comparison in comparison:
            result = type_comparison.result
            for side, items in (("A", result.only_a), ("B", result.only_b)):
                for data in items:
                    if shown < 20:
                        print(f"  [{type_comparison.element_type}] only in {side}: {data.label}")
                    shown += 1
        if shown > 20:
            print(f"  ... and {shown - 20} more")

    print("\n" + "=" * 60)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    setup_logging(level, args.log_file)

    # Validate input files
    path_a = Path(args.model_a)
    path_b = Path(args.model_b)

    if not path_a.exists():
        print(f"Error: Model A file not found: {path_a}", file=sys.stderr)
        sys.exit(1)

    if not path_b.exists():
        print(f"Error: Model B file not found: {path_b}", file=sys.stderr)
        sys.exit(1)

    # Determine output path
    if args.output:
        output_path = Path(args.output)
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = Path(f"report_{timestamp}.xlsx")

    try:
        config = build_config(args)
        importance_settings = load_importance_settings(args.importance_csv)

        if not args.quiet:
            print(f"📂 Model A: {path_a}")
            print(f"📂 Model B: {path_b}")
            print(f"📊 Output:  {output_path}")
            print(f"🔧 Mode:    {config.name}")
            print("\nProcessing...")

        if not args.quiet:
            print("  Loading snapshots...")
        snapshot_a = load_snapshot(path_a)
        snapshot_b = load_snapshot(path_b)

        if not args.quiet:
            print("  Comparing elements...")
        comparison = compare_models(
            snapshot_a.element_map(),
            snapshot_b.element_map(),
            snapshot_a.nodes,
            snapshot_b.nodes,
            config=config,
            resolver=importance_settings,
            element_types=args.types,
        )

        if not args.quiet:
            print("  Generating report...")
        reporter = Reporter()
        report_path = reporter.generate_report(
            comparison,
            output_path,
            model_a_name=path_a.name,
            model_b_name=path_b.name,
        )

        # Generate JSON if requested
        if args.json:
            json_report = reporter.generate_json_report(comparison)
            json_path = Path(args.json)
            with open(json_path, 'w', encoding='utf-8') as f:
                json.dump(json_report, f, indent=2, ensure_ascii=False)
            if not args.quiet:
                print(f"  JSON report: {json_path}")

        # Print summary
        if not args.quiet:
            print_summary(comparison, args.verbose)
            print(f"\n✅ Report saved to: {report_path}")
        else:
            print(report_path)

        if comparison.errors:
            logger.warning("%d element types failed to compare", len(comparison.errors))

        # Exit code 2 = differences found
        if comparison.has_differences:
            sys.exit(2)

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
