"""
callscope: WebRTC call telemetry processing.

This package provides:
- stats_pipeline: raw peer-connection stat snapshots -> normalized, gap-aware
  time series (with derived bit-rate series) and Plotly figure dicts
- timeline: call/media event classification, participant timeline geometry
  and per-participant issue counts
- Logging utilities for library and application use

For logging configuration in standalone scripts:
    ```python
    from callscope.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library, logging is handled by the parent application's
configuration.
"""

import logging

from callscope.exceptions import Diagnostic, DiagnosticKind, TelemetryValidationError
from callscope.stats_pipeline import DEFAULT_POLICY, PipelinePolicy, StatsIngestor, build_named_series
from callscope.timeline import EventClassifier, EventFilters, MetricsAggregator, TimelineLayoutEngine
from callscope.utils.logging import configure_logging, get_logger

# NullHandler so library logs don't reach root when no application has
# configured logging. configure_logging() replaces it with a real handler.
_logger = logging.getLogger("callscope")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_POLICY",
    "Diagnostic",
    "DiagnosticKind",
    "EventClassifier",
    "EventFilters",
    "MetricsAggregator",
    "PipelinePolicy",
    "StatsIngestor",
    "TelemetryValidationError",
    "TimelineLayoutEngine",
    "build_named_series",
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
