"""Statistics pipeline: raw peer-connection snapshots -> named time series."""

from callscope.stats_pipeline.figure_generator import FigureGenerator
from callscope.stats_pipeline.named_series import NamedSeries, build_named_series, build_report_series
from callscope.stats_pipeline.pipeline_policy import DEFAULT_POLICY, PipelinePolicy
from callscope.stats_pipeline.rate_series import RateSeries, convert_total_to_rate_series
from callscope.stats_pipeline.series_normalizer import extend_steps, normalize_series
from callscope.stats_pipeline.stats_ingestor import (
    ConnectionSeries,
    IngestResult,
    ReportSeries,
    StatSnapshot,
    StatsIngestor,
)

__all__ = [
    "ConnectionSeries",
    "DEFAULT_POLICY",
    "FigureGenerator",
    "IngestResult",
    "NamedSeries",
    "PipelinePolicy",
    "RateSeries",
    "ReportSeries",
    "StatSnapshot",
    "StatsIngestor",
    "build_named_series",
    "build_report_series",
    "convert_total_to_rate_series",
    "extend_steps",
    "normalize_series",
]
