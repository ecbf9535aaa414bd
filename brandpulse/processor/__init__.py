"""Data processor module for Brand Pulse."""

from .ingestion import (
    ingest,
    ingest_workbook,
    read_csv_file,
    parse_csv_text,
    parse_decimal,
    parse_local_date,
    parse_event_date,
    clean_columns,
    detect_delimiter,
    detect_encoding,
    SOURCE_TYPES,
)
from .transform import (
    RowResult,
    transform_row,
    transform_target_row,
    transform_event_row,
    normalize_month_key,
)
from .harmonizer import (
    DataHarmonizer,
    harmonize_sources,
)
from .comparison import (
    align_by_weekday_position,
    compare_periods,
    counterpart_date,
    nth_weekday_of_month,
    previous_year_range,
)
from .analytics import (
    aggregate_by_date,
    build_chart_series,
    calculate_brand_benchmarks,
    calculate_channel_split,
    calculate_mer_status,
    calculate_pacing,
    calculate_platform_comparison,
    calculate_roas_status,
    classify_mer,
    classify_roas,
    events_in_range,
    filter_by_date_range,
    filter_by_labels,
    rank_benchmarks,
    resolve_target,
)
