"""Schema package - typed records and configuration for the engine.

Provides the contract between ingestion, the harmonizer and the analytics
calculators:

- models.py: Core dataclasses (DailyMetric, HarmonizedDataset, etc.)
- config.py: EngineConfig (attribution split, status thresholds)
- loader.py: YAML serialization/deserialization of EngineConfig
- design_system.py: Value formatting functions (currency, percentage, etc.)
"""

from .config import DEFAULT_MER_THRESHOLDS, DEFAULT_ROAS_THRESHOLDS, EngineConfig
from .design_system import (
    format_compact,
    format_currency,
    format_percentage,
    format_ratio_percentage,
    format_roas,
)
from .loader import load_config, save_config
from .models import (
    ALL_LABELS,
    COMBINED_LABEL,
    DEFAULT_ATTRIBUTION,
    AlignmentMode,
    BatchSummary,
    BrandBenchmark,
    ChannelSplit,
    ChartPoint,
    DailyMetric,
    DailyVariance,
    DataSource,
    EfficiencyStatus,
    EventAnnotation,
    EventType,
    HarmonizedDataset,
    MonthlyTarget,
    PacingData,
    Platform,
    PlatformComparison,
    RowStatus,
    SourceType,
    StatusBand,
    YoYComparison,
)

__all__ = [
    # Models
    "AlignmentMode",
    "BatchSummary",
    "BrandBenchmark",
    "ChannelSplit",
    "ChartPoint",
    "DailyMetric",
    "DailyVariance",
    "DataSource",
    "EfficiencyStatus",
    "EventAnnotation",
    "EventType",
    "HarmonizedDataset",
    "MonthlyTarget",
    "PacingData",
    "Platform",
    "PlatformComparison",
    "RowStatus",
    "SourceType",
    "StatusBand",
    "YoYComparison",
    # Constants
    "ALL_LABELS",
    "COMBINED_LABEL",
    "DEFAULT_ATTRIBUTION",
    "DEFAULT_MER_THRESHOLDS",
    "DEFAULT_ROAS_THRESHOLDS",
    # Config
    "EngineConfig",
    "load_config",
    "save_config",
    # Formatting
    "format_compact",
    "format_currency",
    "format_percentage",
    "format_ratio_percentage",
    "format_roas",
]
