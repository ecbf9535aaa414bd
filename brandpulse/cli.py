"""CLI entry point for Brand Pulse.

Orchestrates the full pipeline: data ingestion, harmonization and the
derived-metrics views.

Usage::

    # Harmonize a workbook export and write the dense daily series
    brand-pulse harmonize \\
        --workbook data/dashboard.xlsx \\
        --historical 2025=data/history_2025.csv \\
        -o output/metrics.csv

    # Year-over-year variance, weekday-aligned
    brand-pulse compare \\
        --workbook data/dashboard.xlsx \\
        --historical 2025=data/history_2025.csv \\
        --start 2026-03-01 --end 2026-03-31

    # Month-to-date pacing against target
    brand-pulse pacing \\
        --live data/daily.csv --targets data/targets.csv \\
        --as-of 2026-03-18 --label "Brand A"

    # Brand benchmark table
    brand-pulse benchmark \\
        --workbook data/dashboard.xlsx \\
        --start 2026-03-01 --end 2026-03-31
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

from brandpulse.processor.analytics import (
    aggregate_by_date,
    calculate_brand_benchmarks,
    calculate_channel_split,
    calculate_mer_status,
    calculate_pacing,
    calculate_platform_comparison,
    calculate_roas_status,
    filter_by_date_range,
    filter_by_labels,
    month_key,
    rank_benchmarks,
    resolve_target,
)
from brandpulse.processor.comparison import compare_periods, previous_year_range
from brandpulse.processor.harmonizer import harmonize_sources
from brandpulse.processor.ingestion import (
    DAILY_SHEET,
    EVENTS_SHEET,
    TARGETS_SHEET,
    ingest,
    parse_local_date,
)
from brandpulse.schema.config import EngineConfig
from brandpulse.schema.design_system import (
    format_currency,
    format_percentage,
    format_ratio_percentage,
    format_roas,
)
from brandpulse.schema.loader import load_config
from brandpulse.schema.models import AlignmentMode


# Weekday-position counterparts can sit up to six days outside the plain
# one-year shift of the comparison window.
ALIGNMENT_MARGIN = timedelta(days=7)


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------

def _date_arg(value):
    parsed = parse_local_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            f"invalid date: {value!r} (use yyyy-mm-dd or d-m-yyyy)")
    return parsed


def _historical_arg(value):
    """Parse ``YEAR=PATH``."""
    year, sep, path = value.partition("=")
    if not sep or not year.strip().isdigit() or not path.strip():
        raise argparse.ArgumentTypeError(
            f"invalid historical source: {value!r} (use YEAR=PATH)")
    return int(year), path.strip()


# ---------------------------------------------------------------------------
# Data ingestion
# ---------------------------------------------------------------------------

def _existing(path):
    p = Path(path)
    if not p.exists():
        _error(f"Data file not found: {p}")
    return p


def _ingest_sources(args):
    """Ingest all data sources specified via CLI flags.

    A workbook supplies the live, targets and events batches; the explicit
    CSV flags take precedence over the matching workbook tab.
    """
    sources = {}

    if args.workbook:
        p = _existing(args.workbook)
        _info(f"Ingesting workbook from {p}")
        tabs = ingest(p, "workbook")
        if DAILY_SHEET in tabs:
            sources["live"] = tabs[DAILY_SHEET]
        if TARGETS_SHEET in tabs:
            sources["targets"] = tabs[TARGETS_SHEET]
        if EVENTS_SHEET in tabs:
            sources["events"] = tabs[EVENTS_SHEET]

    for flag in ("live", "targets", "events"):
        path = getattr(args, flag, None)
        if path is None:
            continue
        p = _existing(path)
        _info(f"Ingesting {flag} from {p}")
        sources[flag] = ingest(p, "csv")

    historical = {}
    for year, path in args.historical or []:
        p = _existing(path)
        _info(f"Ingesting historical {year} from {p}")
        historical[year] = ingest(p, "csv")
    if historical:
        sources["historical"] = historical

    if not sources:
        _warn("No data sources specified, dataset will be empty")

    return sources


def _load_engine_config(args):
    if not args.config:
        return EngineConfig()
    path = _existing(args.config)
    try:
        return load_config(path)
    except ValueError as exc:
        _error(f"Invalid config {path}: {exc}")


def _build_dataset(args):
    """Run one ingestion cycle and report its warnings."""
    config = _load_engine_config(args)
    sources = _ingest_sources(args)
    fill = False if args.no_fill else None
    dataset = harmonize_sources(sources, config=config, fill_missing_days=fill)

    if dataset.warnings:
        _info(f"{len(dataset.warnings)} warning(s)")
        for w in dataset.warnings:
            _warn(w)
    return dataset, config


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_harmonize(args):
    """Build the dataset, summarize it, optionally write it as CSV."""
    dataset, _ = _build_dataset(args)

    print(f"Records:  {len(dataset.metrics)}")
    print(f"Labels:   {', '.join(dataset.labels) or '-'}")
    if dataset.metrics:
        print(f"Span:     {dataset.first_date} .. {dataset.last_date}")
    print(f"Targets:  {len(dataset.targets)}")
    print(f"Events:   {len(dataset.events)}")
    for source in dataset.sources:
        print(f"  {source.source_type.value:<10} {source.year}  "
              f"{source.rows} rows  {source.first_date} .. {source.last_date}")

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        dataset.to_frame().to_csv(output, index=False)
        _info(f"Written: {output} ({len(dataset.metrics)} records)")


def cmd_compare(args):
    """Print the per-day year-over-year variance table."""
    if args.end < args.start:
        _error("--end must not be before --start")
    dataset, config = _build_dataset(args)
    metrics = filter_by_labels(list(dataset.metrics), args.label)

    current = aggregate_by_date(
        filter_by_date_range(metrics, args.start, args.end), config.attribution)
    prev_start, prev_end = previous_year_range(args.start, args.end)
    previous = aggregate_by_date(
        filter_by_date_range(metrics, prev_start - ALIGNMENT_MARGIN,
                             prev_end + ALIGNMENT_MARGIN),
        config.attribution)

    mode = AlignmentMode.EXACT_DATE if args.exact else AlignmentMode.WEEKDAY_POSITION
    comparison = compare_periods(current, previous, mode)

    print(f"{'Date':<12}{'Vs':<12}{'Revenue':>12}{'Previous':>12}"
          f"{'Variance':>12}{'%':>9}")
    for v in comparison.variance:
        counterpart = v.counterpart_date.isoformat() if v.counterpart_date else "-"
        print(f"{v.date.isoformat():<12}{counterpart:<12}"
              f"{format_currency(v.current_revenue):>12}"
              f"{format_currency(v.previous_revenue):>12}"
              f"{format_currency(v.revenue_variance):>12}"
              f"{format_percentage(v.revenue_variance_percent):>9}")

    current_total = sum(m.total_revenue for m in current)
    change = comparison.total_revenue_variance
    previous_total = current_total - change
    growth = change / previous_total * 100 if previous_total > 0 else 0.0
    print()
    print(f"Total: {format_currency(current_total)} vs "
          f"{format_currency(previous_total)} "
          f"({format_currency(change)}, {format_percentage(growth)})")


def cmd_pacing(args):
    """Print month-to-date pacing and the efficiency views."""
    dataset, config = _build_dataset(args)
    as_of = args.as_of
    month = month_key(as_of)

    metrics = filter_by_labels(list(dataset.metrics), args.label)
    month_to_date = filter_by_date_range(metrics, as_of.replace(day=1), as_of)

    target = resolve_target(list(dataset.targets), month, args.label)
    if target is None:
        _warn(f"No target found for {month}, pacing skipped")
    else:
        pacing = calculate_pacing(month_to_date, target, as_of,
                                  config.on_track_threshold)
        status = "on track" if pacing.on_track else "behind"
        print(f"Pacing {month} (day {pacing.days_passed}/{pacing.days_in_month})")
        print(f"  Revenue:    {format_currency(pacing.current_revenue)}"
              f" of {format_currency(pacing.target_revenue)}")
        print(f"  Pacing:     {pacing.pacing_percentage:.1f}%")
        print(f"  Projection: {format_currency(pacing.projected_revenue)}"
              f" ({pacing.projected_percentage:.1f}%, {status})")
        print()

    mer = calculate_mer_status(month_to_date, config)
    roas = calculate_roas_status(month_to_date, config)
    split = calculate_channel_split(month_to_date)
    print(f"MER:   {format_ratio_percentage(mer.value)} ({mer.status.value})")
    print(f"ROAS:  {format_roas(roas.value)} ({roas.status.value})")
    print(f"Web:   {format_currency(split.web)} ({split.web_percentage:.1f}%)")
    print(f"App:   {format_currency(split.app)} ({split.app_percentage:.1f}%)")
    print()
    for p in calculate_platform_comparison(month_to_date, config.attribution):
        print(f"  {p.platform.value:<10} spend {format_currency(p.spend)}"
              f"  revenue {format_currency(p.revenue)}"
              f"  ROAS {format_roas(p.roas)}"
              f"  CPC {format_currency(p.cpc)}  CPA {format_currency(p.cpa)}")


def cmd_benchmark(args):
    """Print the brand benchmark table and the best brand per ranking."""
    if args.end < args.start:
        _error("--end must not be before --start")
    dataset, _ = _build_dataset(args)

    if args.compare_start and args.compare_end:
        compare_start, compare_end = args.compare_start, args.compare_end
    elif args.compare_start or args.compare_end:
        _error("--compare-start and --compare-end must be given together")
    else:
        compare_start, compare_end = previous_year_range(args.start, args.end)

    metrics = list(dataset.metrics)
    benchmarks = calculate_brand_benchmarks(
        filter_by_date_range(metrics, args.start, args.end),
        filter_by_date_range(metrics, compare_start, compare_end),
    )
    if not benchmarks:
        _warn("No data in the selected period")
        return

    print(f"{'Label':<20}{'Revenue':>12}{'Spend':>12}{'ROAS':>8}"
          f"{'Orders':>8}{'AOV':>8}{'Growth':>9}")
    for b in benchmarks:
        print(f"{b.label:<20}{format_currency(b.revenue):>12}"
              f"{format_currency(b.spend):>12}{format_roas(b.roas):>8}"
              f"{b.orders:>8}{format_currency(b.aov):>8}"
              f"{format_percentage(b.growth_percentage):>9}")

    print()
    for ranking in ("revenue", "roas", "growth"):
        best = rank_benchmarks(benchmarks, ranking)[0]
        print(f"Top {ranking}: {best.label}")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="brand-pulse",
        description="Harmonize daily brand performance data and report on it.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- harmonize ----
    harm = subparsers.add_parser(
        "harmonize",
        help="Build the harmonized dataset and summarize it.",
    )
    _add_data_args(harm)
    harm.add_argument(
        "-o", "--output",
        help="Write the metrics as CSV to this path.",
    )
    harm.set_defaults(func=cmd_harmonize)

    # ---- compare ----
    comp = subparsers.add_parser(
        "compare",
        help="Per-day year-over-year revenue variance.",
    )
    _add_data_args(comp)
    _add_range_args(comp)
    comp.add_argument(
        "--exact",
        action="store_true",
        default=False,
        help="Compare with the same calendar date instead of the same weekday.",
    )
    _add_label_args(comp)
    comp.set_defaults(func=cmd_compare)

    # ---- pacing ----
    pace = subparsers.add_parser(
        "pacing",
        help="Month-to-date pacing against target and efficiency status.",
    )
    _add_data_args(pace)
    pace.add_argument(
        "--as-of",
        dest="as_of",
        type=_date_arg,
        required=True,
        help="Reference date; its month is paced up to and including it.",
    )
    _add_label_args(pace)
    pace.set_defaults(func=cmd_pacing)

    # ---- benchmark ----
    bench = subparsers.add_parser(
        "benchmark",
        help="Brand benchmark table with growth against a comparison period.",
    )
    _add_data_args(bench)
    _add_range_args(bench)
    bench.add_argument(
        "--compare-start",
        dest="compare_start",
        type=_date_arg,
        help="Comparison period start (default: same period last year).",
    )
    bench.add_argument(
        "--compare-end",
        dest="compare_end",
        type=_date_arg,
        help="Comparison period end.",
    )
    bench.set_defaults(func=cmd_benchmark)

    return parser


def _add_data_args(parser):
    """Add data source file path arguments."""
    data = parser.add_argument_group("data sources")
    data.add_argument(
        "--workbook",
        help="Dashboard export (.xlsx) with Daily_Input / Targets / Events tabs.",
    )
    data.add_argument(
        "--live",
        help="Current daily rows (.csv).",
    )
    data.add_argument(
        "--historical",
        action="append",
        type=_historical_arg,
        metavar="YEAR=PATH",
        help="Prior-year daily rows (.csv) tagged with a year. Repeatable.",
    )
    data.add_argument(
        "--targets",
        help="Monthly targets (.csv).",
    )
    data.add_argument(
        "--events",
        help="Event annotations (.csv).",
    )
    data.add_argument(
        "--config",
        help="Engine config (.yaml).",
    )
    data.add_argument(
        "--no-fill",
        dest="no_fill",
        action="store_true",
        default=False,
        help="Do not add zero records for missing days.",
    )


def _add_range_args(parser):
    """Add --start / --end args to a subparser."""
    parser.add_argument(
        "--start",
        type=_date_arg,
        required=True,
        help="Period start (inclusive).",
    )
    parser.add_argument(
        "--end",
        type=_date_arg,
        required=True,
        help="Period end (inclusive).",
    )


def _add_label_args(parser):
    parser.add_argument(
        "--label",
        action="append",
        help="Restrict to this brand label. Repeatable.",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
