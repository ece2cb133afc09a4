"""Policy constants for the stats pipeline.

Single source of truth for the numeric thresholds and field-name whitelists
used by SeriesNormalizer, RateSeriesComputer, StatsIngestor and the named
series builder. Pass a PipelinePolicy explicitly to override any of them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

# Stale-interval threshold: a larger gap between samples gets a None marker.
GAP_THRESHOLD_MS = 20_000

# Sanity ceiling for computed bitrates (bits/second).
MAX_RATE_BPS = 1_000_000_000

# Consecutive cumulative samples closer than this are not differenced.
MIN_INTERVAL_S = 0.001

# Snapshots without a connectionId are grouped under this id.
DEFAULT_CONNECTION_ID = "PC_0"


@dataclass(frozen=True)
class PipelinePolicy:
    """Immutable configuration for series construction.

    Attributes:
        gap_threshold_ms: Insert a gap marker when a field's samples are further apart.
        max_rate_bps: Rates above this are dropped as out of range.
        min_interval_s: Pairs closer than this (seconds) are dropped as degenerate.
        default_connection_id: Bucket for snapshots with no connectionId.
        rate_series_whitelist: Cumulative byte counters that get a derived rate series.
        rate_series_suffix: Appended to a counter name to name its rate series.
        step_series: Quantized fields rendered hold-then-jump.
        visible_series: Fields visible by default; all others are legend-only.
        ignored_series: Fields never turned into a named series.
        excluded_report_types: Report types that describe the connection, not metrics.
    """
    gap_threshold_ms: float = GAP_THRESHOLD_MS
    max_rate_bps: float = MAX_RATE_BPS
    min_interval_s: float = MIN_INTERVAL_S
    default_connection_id: str = DEFAULT_CONNECTION_ID
    rate_series_whitelist: tuple[str, ...] = ("bytesSent", "bytesReceived")
    rate_series_suffix: str = "InBits/S"
    step_series: tuple[str, ...] = ("frameWidth", "frameHeight")
    visible_series: tuple[str, ...] = (
        "bytesReceivedInBits/S",
        "bytesSentInBits/S",
        "targetBitrate",
        "packetsLost",
        "jitter",
        "availableOutgoingBitrate",
        "roundTripTime",
    )
    ignored_series: tuple[str, ...] = ("type", "ssrc")
    excluded_report_types: tuple[str, ...] = (
        "localcandidate",
        "remotecandidate",
        "local-candidate",
        "remote-candidate",
    )

    def rate_series_name(self, name: str) -> str:
        """Derived field name for the rate series of a cumulative counter."""
        return f"{name}{self.rate_series_suffix}"

    def is_step_series(self, name: str) -> bool:
        return name in self.step_series

    def is_visible_by_default(self, name: str) -> bool:
        return name in self.visible_series

    def with_overrides(self, **changes: Any) -> "PipelinePolicy":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


DEFAULT_POLICY = PipelinePolicy()
