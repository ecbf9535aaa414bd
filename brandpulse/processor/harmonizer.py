"""Data harmonizer - merges row batches into one HarmonizedDataset.

The harmonizer is a single-owner builder for one ingestion cycle::

    harmonizer = DataHarmonizer()
    harmonizer.add_historical_batch(rows_2025, year=2025)
    harmonizer.add_live_batch(live_rows)
    harmonizer.add_targets(target_rows)
    harmonizer.add_events(event_rows)
    dataset = harmonizer.harmonize(fill_missing_days=True)
    print(harmonizer.warnings)

Each ``add_*`` call parses its batch independently and returns a
``BatchSummary``. Data-quality problems never raise; they are counted and
written to the warning log. ``harmonize`` leaves the accumulators untouched,
so it can be called repeatedly until ``clear`` starts the next cycle.

Duplicate (date, label) keys: live rows override historical rows, and
within one source the later row wins. Each override is logged as a warning.
"""

from collections.abc import Mapping
from datetime import datetime, timezone

import pandas as pd

from brandpulse.log import get_logger
from brandpulse.schema.config import EngineConfig
from brandpulse.schema.models import (
    BatchSummary,
    DailyMetric,
    DataSource,
    HarmonizedDataset,
    SourceType,
)

from .ingestion import DAILY_SHEET, EVENTS_SHEET, TARGETS_SHEET
from .transform import (
    transform_event_row,
    transform_row,
    transform_target_row,
)

logger = get_logger("harmonizer")

# How many per-row reasons are spelled out in a batch warning.
MAX_REASONS = 3


def _check_batch(rows) -> list:
    if isinstance(rows, (str, bytes, Mapping)) or not hasattr(rows, "__iter__"):
        raise TypeError(
            f"Expected a list of row mappings, got {type(rows).__name__}"
        )
    return list(rows)


def _reason_suffix(reasons: list[str]) -> str:
    if not reasons:
        return ""
    shown = "; ".join(reasons[:MAX_REASONS])
    more = len(reasons) - MAX_REASONS
    if more > 0:
        shown += f"; +{more} more"
    return f" ({shown})"


class DataHarmonizer:
    """Accumulates historical, live, target and event batches.

    Args:
        config: EngineConfig supplying the attribution split and the default
            MER target. Defaults to ``EngineConfig()``.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.clear()

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    def clear(self) -> None:
        """Reset every accumulator for the next ingestion cycle."""
        self._historical: dict[int, dict] = {}
        self._live: dict = {}
        self._targets: dict = {}
        self._events: list = []
        self._warnings: list[str] = []

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    def record_warning(self, message: str) -> None:
        """Append a batch-level warning (e.g. an optional tab was absent)."""
        logger.warning(message)
        self._warnings.append(message)

    # -------------------------------------------------------------------
    # Daily batches
    # -------------------------------------------------------------------

    def _parse_daily(self, rows, batch_name: str):
        rows = _check_batch(rows)
        summary = BatchSummary()
        reasons: list[str] = []
        parsed: list[DailyMetric] = []
        for index, row in enumerate(rows):
            result = transform_row(row, attribution=self.config.attribution)
            if result.is_empty:
                summary.skipped_count += 1
            elif result.is_invalid:
                summary.error_count += 1
                reasons.append(f"row {index + 1}: {result.reason}")
                logger.debug("Dropped row", extra={
                    "batch": batch_name, "row": index + 1})
            else:
                parsed.append(result.record)
        if summary.error_count:
            self.record_warning(
                f"{batch_name}: {summary.error_count} rows failed validation"
                f"{_reason_suffix(reasons)}"
            )
        return parsed, summary

    def _merge_into(self, store: dict, metrics, batch_name: str) -> None:
        overridden = 0
        for m in metrics:
            if m.key in store:
                overridden += 1
            store[m.key] = m
        if overridden:
            self.record_warning(
                f"{batch_name}: {overridden} duplicate date/label rows, "
                f"later rows kept"
            )

    def add_historical_batch(self, rows, year: int) -> BatchSummary:
        """Add a batch of prior-year rows tagged with *year*.

        Rows dated outside *year* are skipped with a warning.
        """
        if isinstance(year, bool) or not isinstance(year, int):
            raise TypeError(f"year must be an int, got {type(year).__name__}")
        batch_name = f"Historical data ({year})"
        parsed, summary = self._parse_daily(rows, batch_name)

        in_year = [m for m in parsed if m.date.year == year]
        outside = len(parsed) - len(in_year)
        if outside:
            summary.skipped_count += outside
            self.record_warning(
                f"{batch_name}: {outside} rows dated outside {year} skipped"
            )
        summary.success_count = len(in_year)

        store = self._historical.setdefault(year, {})
        self._merge_into(store, in_year, batch_name)
        self._log_summary(batch_name, summary)
        return summary

    def add_live_batch(self, rows) -> BatchSummary:
        """Add a batch of current rows from the live sheet."""
        batch_name = "Live data"
        parsed, summary = self._parse_daily(rows, batch_name)
        summary.success_count = len(parsed)
        self._merge_into(self._live, parsed, batch_name)
        self._log_summary(batch_name, summary)
        return summary

    # -------------------------------------------------------------------
    # Targets and events
    # -------------------------------------------------------------------

    def add_targets(self, rows) -> BatchSummary:
        """Add monthly target rows; a later (month, label) replaces earlier."""
        rows = _check_batch(rows)
        summary = BatchSummary()
        reasons: list[str] = []
        for index, row in enumerate(rows):
            result = transform_target_row(
                row, default_mer_target=self.config.default_mer_target)
            if result.is_empty:
                summary.skipped_count += 1
            elif result.is_invalid:
                summary.error_count += 1
                reasons.append(f"row {index + 1}: {result.reason}")
            else:
                target = result.record
                self._targets[(target.month, target.label)] = target
                summary.success_count += 1
        if summary.error_count:
            self.record_warning(
                f"Targets: {summary.error_count} rows skipped"
                f"{_reason_suffix(reasons)}"
            )
        self._log_summary("Targets", summary)
        return summary

    def add_events(self, rows) -> BatchSummary:
        """Add event annotation rows."""
        rows = _check_batch(rows)
        summary = BatchSummary()
        reasons: list[str] = []
        for index, row in enumerate(rows):
            result = transform_event_row(row)
            if result.is_empty:
                summary.skipped_count += 1
            elif result.is_invalid:
                summary.error_count += 1
                reasons.append(f"row {index + 1}: {result.reason}")
            else:
                self._events.append(result.record)
                summary.success_count += 1
        if summary.error_count:
            self.record_warning(
                f"Events: {summary.error_count} rows skipped"
                f"{_reason_suffix(reasons)}"
            )
        self._log_summary("Events", summary)
        return summary

    def _log_summary(self, batch_name: str, summary: BatchSummary) -> None:
        logger.info(f"{batch_name}: {summary}", extra={
            "batch": batch_name,
            "success": summary.success_count,
            "errors": summary.error_count,
            "skipped": summary.skipped_count,
        })

    # -------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------

    def _merged_metrics(self) -> tuple[list[DailyMetric], int]:
        """Historical stores in year order, then live on top."""
        merged: dict = {}
        overridden = 0
        for year in sorted(self._historical):
            for key, m in self._historical[year].items():
                merged[key] = m
        for key, m in self._live.items():
            if key in merged:
                overridden += 1
            merged[key] = m
        return list(merged.values()), overridden

    @staticmethod
    def _fill_missing_days(metrics: list[DailyMetric]) -> list[DailyMetric]:
        """Add a zero record for every missing (day, label) in the span."""
        if not metrics:
            return metrics
        labels = list(dict.fromkeys(m.label for m in metrics))
        existing = {m.key for m in metrics}
        start = min(m.date for m in metrics)
        end = max(m.date for m in metrics)

        filled = list(metrics)
        for ts in pd.date_range(start, end, freq="D"):
            day = ts.date()
            for label in labels:
                if (day, label) not in existing:
                    filled.append(DailyMetric.zero(day, label))
        return filled

    def _sources(self) -> tuple[DataSource, ...]:
        sources = []
        for year in sorted(self._historical):
            store = self._historical[year]
            dates = [k[0] for k in store]
            sources.append(DataSource(
                source_type=SourceType.HISTORICAL,
                year=year,
                rows=len(store),
                first_date=min(dates) if dates else None,
                last_date=max(dates) if dates else None,
            ))
        if self._live:
            dates = [k[0] for k in self._live]
            first = min(dates)
            sources.append(DataSource(
                source_type=SourceType.LIVE,
                year=first.year,
                rows=len(self._live),
                first_date=first,
                last_date=max(dates),
            ))
        return tuple(sources)

    def harmonize(self, fill_missing_days: bool | None = None) -> HarmonizedDataset:
        """Build an immutable dataset from everything added so far.

        Args:
            fill_missing_days: Synthesize zero records so every label has a
                dense daily series across the observed span. Defaults to the
                config's ``fill_missing_days``.
        """
        if fill_missing_days is None:
            fill_missing_days = self.config.fill_missing_days

        metrics, overridden = self._merged_metrics()
        warnings = list(self._warnings)
        if overridden:
            message = (f"Live data overrides {overridden} historical rows "
                       f"with the same date and label")
            logger.warning(message)
            warnings.append(message)
        if fill_missing_days:
            metrics = self._fill_missing_days(metrics)
        metrics.sort(key=lambda m: m.date)

        events = sorted(self._events, key=lambda e: e.date)
        targets = sorted(self._targets.values(), key=lambda t: (t.month, t.label))
        return HarmonizedDataset(
            metrics=tuple(metrics),
            targets=tuple(targets),
            events=tuple(events),
            sources=self._sources(),
            last_updated=datetime.now(timezone.utc),
            warnings=tuple(warnings),
        )


# ---------------------------------------------------------------------------
# One-shot pipeline
# ---------------------------------------------------------------------------

def harmonize_sources(sources: dict, config: EngineConfig | None = None,
                      fill_missing_days: bool | None = None):
    """Run one ingestion cycle over a dict of already-fetched batches.

    Args:
        sources: Dict with optional keys ``live`` (list of rows),
            ``historical`` (dict mapping year -> list of rows), ``targets``
            and ``events`` (lists of rows). Absent optional batches are noted
            as warnings, not errors.
        config: EngineConfig for the cycle.
        fill_missing_days: Passed through to ``harmonize``.

    Returns:
        The HarmonizedDataset. Its ``warnings`` carry every warning of the
        cycle.
    """
    harmonizer = DataHarmonizer(config)

    for year, rows in sorted((sources.get("historical") or {}).items()):
        harmonizer.add_historical_batch(rows, int(year))

    live = sources.get("live")
    if live is not None:
        harmonizer.add_live_batch(live)
    elif not sources.get("historical"):
        harmonizer.record_warning(f"No {DAILY_SHEET} data found")

    targets = sources.get("targets")
    if targets:
        harmonizer.add_targets(targets)
    else:
        harmonizer.record_warning(f"No {TARGETS_SHEET} data found (optional)")

    events = sources.get("events")
    if events:
        harmonizer.add_events(events)
    else:
        harmonizer.record_warning(f"No {EVENTS_SHEET} data found (optional)")

    return harmonizer.harmonize(fill_missing_days)
