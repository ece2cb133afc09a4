"""Named series output for the rendering layer.

One NamedSeries per (connection, report, field). Series listed in the
policy's visible_series start visible; all others start legend-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from callscope.stats_pipeline.pipeline_policy import DEFAULT_POLICY, PipelinePolicy
from callscope.stats_pipeline.series_normalizer import normalize_series
from callscope.stats_pipeline.stats_ingestor import ConnectionSeries, ReportSeries

LEGEND_ONLY = "legendonly"

Visibility = Union[bool, str]


@dataclass(frozen=True)
class NamedSeries:
    """Display-ready series.

    Attributes:
        name: Trace name ("{report_id}-{field}" or just the field name).
        x: Timestamps (ms).
        y: Values; None breaks the line.
        visible: True or "legendonly".
        connection_id, report_id, series_name, report_type: Provenance.
        line_shape: "hv" for step series, else "linear".
        connect_gaps: False for step series and for series holding a gap
            marker, so the line breaks at the gap.
    """
    name: str
    x: tuple[float, ...]
    y: tuple[Optional[float], ...]
    visible: Visibility
    connection_id: str
    report_id: str
    series_name: str
    report_type: Optional[str] = None
    line_shape: str = "linear"
    connect_gaps: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "x": list(self.x),
            "y": list(self.y),
            "visible": self.visible,
            "connection_id": self.connection_id,
            "report_id": self.report_id,
            "series_name": self.series_name,
            "report_type": self.report_type,
            "line_shape": self.line_shape,
            "connect_gaps": self.connect_gaps,
        }


def visibility_for(name: str, policy: PipelinePolicy = DEFAULT_POLICY) -> Visibility:
    return True if policy.is_visible_by_default(name) else LEGEND_ONLY


def build_report_series(
    connection_id: str,
    report: ReportSeries,
    *,
    policy: PipelinePolicy = DEFAULT_POLICY,
    keep_gaps: bool = True,
    qualified_names: bool = False,
) -> list[NamedSeries]:
    """Build the named series of a single report.

    Args:
        connection_id: Owning connection.
        report: Ingested report series.
        policy: Visibility and step-series configuration.
        keep_gaps: Keep None gap markers in the output (default). Pass False
            for gap-free series.
        qualified_names: Name series "{report_id}-{field}" instead of "{field}".

    Returns:
        Series in field ingestion order; fields that normalize to nothing are omitted.
    """
    out: list[NamedSeries] = []
    for name, samples in report.fields.items():
        if name in policy.ignored_series:
            continue
        step = policy.is_step_series(name)
        cleaned = normalize_series(samples, step=step, keep_gaps=keep_gaps)
        if not cleaned:
            continue
        y = tuple(v for _, v in cleaned)
        out.append(NamedSeries(
            name=f"{report.report_id}-{name}" if qualified_names else name,
            x=tuple(t for t, _ in cleaned),
            y=y,
            visible=visibility_for(name, policy),
            connection_id=connection_id,
            report_id=report.report_id,
            series_name=name,
            report_type=report.report_type,
            line_shape="hv" if step else "linear",
            connect_gaps=not step and None not in y,
        ))
    return out


def build_named_series(
    connection: ConnectionSeries,
    *,
    policy: PipelinePolicy = DEFAULT_POLICY,
    keep_gaps: bool = True,
) -> list[NamedSeries]:
    """Flat list of all named series of a connection, named "{report_id}-{field}".

    Gap markers are kept unless keep_gaps is False.
    """
    out: list[NamedSeries] = []
    for report in connection.reports.values():
        out.extend(build_report_series(
            connection.connection_id,
            report,
            policy=policy,
            keep_gaps=keep_gaps,
            qualified_names=True,
        ))
    return out
