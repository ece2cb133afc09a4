"""Plotly figure generation for per-report statistics charts.

Returns Plotly figure dicts (never go.Figure) so the caller can hand them to
whatever plotting widget it uses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

import plotly.graph_objects as go

from callscope.stats_pipeline.named_series import NamedSeries, build_report_series
from callscope.stats_pipeline.pipeline_policy import DEFAULT_POLICY, PipelinePolicy
from callscope.stats_pipeline.stats_ingestor import ConnectionSeries
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

GRID_COLOR = "rgba(128,128,128,0.2)"
TIME_TICK_FORMAT = "%H:%M:%S"


def ms_to_datetime(ts: float) -> datetime:
    """Epoch milliseconds -> timezone-aware UTC datetime."""
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)


def report_title(connection_id: str, report_type: Optional[str], report_id: str) -> str:
    return f"{connection_id} type={report_type} {report_id}"


class FigureGenerator:
    """Generates Plotly figure dicts from ingested connection series.

    Attributes:
        policy: Visibility and step-series configuration.
        height: Figure height in pixels.
    """

    def __init__(self, policy: PipelinePolicy = DEFAULT_POLICY, *, height: int = 400) -> None:
        self.policy = policy
        self.height = height

    def make_trace(self, series: NamedSeries) -> go.Scatter:
        return go.Scatter(
            x=[ms_to_datetime(t) for t in series.x],
            y=list(series.y),
            name=series.name,
            mode="lines",
            visible=series.visible,
            line=dict(width=2, shape=series.line_shape),
            connectgaps=series.connect_gaps,
        )

    def make_figure(self, series: Sequence[NamedSeries], *, title: str = "") -> dict:
        """Figure with one trace per series and a date x-axis."""
        fig = go.Figure()
        for s in series:
            fig.add_trace(self.make_trace(s))
        fig.update_layout(
            title=dict(text=title),
            height=self.height,
            xaxis=dict(
                title=dict(text="Time"),
                type="date",
                tickformat=TIME_TICK_FORMAT,
                showgrid=True,
                gridcolor=GRID_COLOR,
            ),
            yaxis=dict(showgrid=True, gridcolor=GRID_COLOR),
            showlegend=True,
        )
        logger.debug(f"Figure generated: title={title!r}, traces={len(series)}")
        return fig.to_dict()

    def make_report_figures(self, connection: ConnectionSeries, *, keep_gaps: bool = True) -> dict[str, dict]:
        """One figure per report of a connection, keyed by report id.

        Reports without any plottable series are skipped. Traces holding a gap
        marker are drawn with connectgaps=False.
        """
        figures: dict[str, dict] = {}
        for report_id, report in connection.reports.items():
            series = build_report_series(
                connection.connection_id, report, policy=self.policy, keep_gaps=keep_gaps
            )
            if not series:
                continue
            figures[report_id] = self.make_figure(
                series, title=report_title(connection.connection_id, report.report_type, report_id)
            )
        return figures
