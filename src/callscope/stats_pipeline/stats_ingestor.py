"""Grouping of raw statistics snapshots into per-field time series.

StatsIngestor walks snapshots in arrival order and builds, per connection,
one ReportSeries per report id holding one sample list per numeric field.
Gap markers are inserted when a field goes quiet for longer than the policy
threshold, and every whitelisted cumulative counter gets a derived rate series.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

import pandas as pd

from callscope.exceptions import Diagnostic, DiagnosticKind, TelemetryValidationError
from callscope.stats_pipeline.pipeline_policy import DEFAULT_POLICY, PipelinePolicy
from callscope.stats_pipeline.rate_series import convert_total_to_rate_series
from callscope.stats_pipeline.series_normalizer import Sample, normalize_series
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

RAW_STATS_COLUMNS = ["timestamp", "report_id", "report_type", "field", "value"]

# plain decimal with optional exponent; no underscores, nan or inf
_NUMERIC_STRING = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a number if it is numeric or a numeric-looking string, else None."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _NUMERIC_STRING.fullmatch(text):
            return float(text)
    return None


@dataclass(frozen=True)
class StatSnapshot:
    """One periodic statistics capture from a peer connection.

    Attributes:
        timestamp: Capture time (ms).
        connection_id: Peer connection id, or None.
        data: report_id -> report fields (including a "type" discriminator).
    """
    timestamp: float
    connection_id: Optional[str]
    data: Mapping[str, Any]

    @classmethod
    def from_dict(cls, payload: Any) -> "StatSnapshot":
        """Validate a raw snapshot payload.

        Raises:
            TelemetryValidationError: If payload is not a mapping or has no numeric timestamp.
        """
        if isinstance(payload, StatSnapshot):
            return payload
        if not isinstance(payload, Mapping):
            raise TelemetryValidationError(
                f"stat snapshot must be a mapping, got {type(payload).__name__}", field="snapshot"
            )
        ts = coerce_number(payload.get("timestamp"))
        if ts is None or not math.isfinite(ts):
            raise TelemetryValidationError("stat snapshot requires a numeric timestamp", field="timestamp")
        data = payload.get("data")
        if data is None:
            data = {}
        elif not isinstance(data, Mapping):
            logger.warning(f"stat snapshot at {ts} has non-mapping data ({type(data).__name__}), ignoring")
            data = {}
        connection_id = payload.get("connectionId")
        return cls(
            timestamp=ts,
            connection_id=str(connection_id) if connection_id else None,
            data=data,
        )


@dataclass
class ReportSeries:
    """All series of one report within one connection.

    Attributes:
        report_id: Report identifier from the snapshot.
        report_type: The report's "type" field (first seen).
        fields: field name -> samples in ingestion order, with None gap markers.
        attributes: Latest value of non-numeric string fields (e.g. transportId).
    """
    report_id: str
    report_type: Optional[str] = None
    fields: dict[str, list[Sample]] = field(default_factory=dict)
    attributes: dict[str, str] = field(default_factory=dict)

    def append(self, name: str, timestamp: float, value: float, gap_threshold_ms: float) -> bool:
        """Append a sample, inserting a gap marker first if the field went stale.

        Returns:
            True if a gap marker was inserted.
        """
        series = self.fields.setdefault(name, [])
        inserted = False
        if series:
            last_t = series[-1][0]
            if timestamp - last_t > gap_threshold_ms:
                series.append((timestamp, None))
                inserted = True
        series.append((timestamp, value))
        return inserted


@dataclass
class ConnectionSeries:
    """Series map plus retained raw snapshots for one peer connection."""
    connection_id: str
    reports: dict[str, ReportSeries] = field(default_factory=dict)
    raw_stats: list[StatSnapshot] = field(default_factory=list)

    def series_count(self) -> int:
        return sum(len(r.fields) for r in self.reports.values())

    def duration_ms(self) -> Optional[float]:
        if len(self.raw_stats) < 2:
            return None
        return self.raw_stats[-1].timestamp - self.raw_stats[0].timestamp


@dataclass(frozen=True)
class ConnectionSummary:
    """Headline numbers for one connection (stats count, series, reports...)."""
    connection_id: str
    stats_count: int
    series_count: int
    report_count: int
    report_type_count: int
    visible_series_count: int
    duration_ms: Optional[float]


@dataclass
class IngestResult:
    """Output of StatsIngestor.ingest()."""
    connections: dict[str, ConnectionSeries]
    diagnostics: tuple[Diagnostic, ...] = ()

    def connection_ids(self) -> list[str]:
        return list(self.connections)

    def summary(self, connection_id: str, *, policy: PipelinePolicy = DEFAULT_POLICY) -> ConnectionSummary:
        """Summarize one connection for overview display."""
        conn = self.connections[connection_id]
        names = [
            name
            for report in conn.reports.values()
            for name in report.fields
            if name not in policy.ignored_series
        ]
        report_types = {r.report_type for r in conn.reports.values()}
        return ConnectionSummary(
            connection_id=connection_id,
            stats_count=len(conn.raw_stats),
            series_count=len(names),
            report_count=len(conn.reports),
            report_type_count=len(report_types),
            visible_series_count=sum(1 for n in names if policy.is_visible_by_default(n)),
            duration_ms=conn.duration_ms(),
        )

    def raw_stats_frame(self, connection_id: str) -> pd.DataFrame:
        """Long-format table of the raw snapshots of one connection (for inspection views).

        One row per (snapshot, report, field); values are kept as received.
        """
        conn = self.connections[connection_id]
        rows = []
        for snap in conn.raw_stats:
            for report_id, report in snap.data.items():
                if not isinstance(report, Mapping):
                    continue
                report_type = report.get("type")
                for name, value in report.items():
                    if name == "type":
                        continue
                    rows.append((snap.timestamp, str(report_id), report_type, str(name), value))
        return pd.DataFrame(rows, columns=RAW_STATS_COLUMNS)


class StatsIngestor:
    """Builds per-connection report series from raw statistics snapshots.

    Attributes:
        policy: Thresholds and whitelists (see PipelinePolicy).
    """

    def __init__(self, policy: PipelinePolicy = DEFAULT_POLICY) -> None:
        self.policy = policy

    def ingest(self, snapshots: Iterable[Union[Mapping[str, Any], StatSnapshot]]) -> IngestResult:
        """Ingest snapshots in arrival order.

        Args:
            snapshots: Raw snapshot dicts ({timestamp, connectionId?, data}) or StatSnapshot.

        Returns:
            IngestResult with one ConnectionSeries per connection id.

        Raises:
            TelemetryValidationError: If a snapshot is not a mapping or lacks a timestamp.
        """
        connections: dict[str, ConnectionSeries] = {}
        diagnostics: list[Diagnostic] = []
        n_snapshots = 0
        n_gaps = 0

        for payload in snapshots:
            snap = StatSnapshot.from_dict(payload)
            n_snapshots += 1
            conn_id = snap.connection_id or self.policy.default_connection_id
            conn = connections.get(conn_id)
            if conn is None:
                conn = connections[conn_id] = ConnectionSeries(connection_id=conn_id)
            conn.raw_stats.append(snap)

            for report_id, report in snap.data.items():
                n_gaps += self._ingest_report(conn, str(report_id), report, snap.timestamp, diagnostics)

        for conn in connections.values():
            for report in conn.reports.values():
                self._add_rate_series(conn.connection_id, report, diagnostics)

        logger.info(
            f"StatsIngestor.ingest: snapshots={n_snapshots}, connections={len(connections)}, "
            f"gap_markers={n_gaps}, diagnostics={len(diagnostics)}"
        )
        return IngestResult(connections=connections, diagnostics=tuple(diagnostics))

    def _ingest_report(
        self,
        conn: ConnectionSeries,
        report_id: str,
        report: Any,
        snapshot_ts: float,
        diagnostics: list[Diagnostic],
    ) -> int:
        """Ingest one report of one snapshot. Returns the number of gap markers inserted."""
        if not isinstance(report, Mapping):
            logger.debug(f"report {report_id!r} is not a mapping, skipping")
            return 0
        report_type = report.get("type")
        if report_type in self.policy.excluded_report_types:
            return 0

        # report timestamp wins over the snapshot timestamp
        report_ts = coerce_number(report.get("timestamp"))
        ts = report_ts if report_ts and math.isfinite(report_ts) else snapshot_ts

        n_gaps = 0
        for name, raw in report.items():
            if name in ("timestamp", "type"):
                continue
            if report_type == "ssrc" and name == "ssrc":
                continue

            value = coerce_number(raw)
            if value is not None and not math.isfinite(value):
                diagnostics.append(Diagnostic(
                    DiagnosticKind.INVALID_SAMPLE,
                    f"non-finite value for {report_id}/{name}",
                    timestamp=ts,
                    context={"connection_id": conn.connection_id, "report_id": report_id, "field": name},
                ))
                continue

            series = conn.reports.get(report_id)
            if value is not None:
                if series is None:
                    series = conn.reports[report_id] = ReportSeries(report_id=report_id, report_type=report_type)
                if series.append(name, ts, value, self.policy.gap_threshold_ms):
                    n_gaps += 1
            elif isinstance(raw, str):
                if series is None:
                    series = conn.reports[report_id] = ReportSeries(report_id=report_id, report_type=report_type)
                series.attributes[name] = raw
            else:
                diagnostics.append(Diagnostic(
                    DiagnosticKind.INVALID_SAMPLE,
                    f"non-numeric value for {report_id}/{name}",
                    timestamp=ts,
                    context={"connection_id": conn.connection_id, "report_id": report_id, "field": name},
                ))
        return n_gaps

    def _add_rate_series(
        self,
        connection_id: str,
        report: ReportSeries,
        diagnostics: list[Diagnostic],
    ) -> None:
        for name in self.policy.rate_series_whitelist:
            samples = report.fields.get(name)
            if samples is None:
                continue
            ordered = normalize_series(samples, keep_gaps=True)
            rate = convert_total_to_rate_series(ordered, policy=self.policy)
            report.fields[self.policy.rate_series_name(name)] = rate.to_list()
            for diag in rate.diagnostics:
                diagnostics.append(Diagnostic(
                    diag.kind,
                    diag.message,
                    timestamp=diag.timestamp,
                    context={
                        **diag.context,
                        "connection_id": connection_id,
                        "report_id": report.report_id,
                        "field": name,
                    },
                ))
