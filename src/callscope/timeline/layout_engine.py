"""
Participant timeline layout: a pure geometry function of bounds, participants,
events and filters.

Pixel model:
- Time axis: x(t) = margin_left + clamp01((t - start) / duration) * width,
  with duration guarded to at least 1 ms.
- Track i sits at y = margin_top + i * (track_height + track_spacing);
  canvas height = margin_top + n * (track_height + track_spacing) + margin_bottom.
- Inside a track band (offsets from the track y):
    session bar          +5  (height 8)
    screenshare lane     +15 (height 4)
    dominant-speaker     +20 (height 4)
    join/leave + media   +9  markers
    other events         +20 markers

The output is a tree of frozen dataclasses; ``TimelineGeometry.to_dict`` gives
the JSON-friendly form handed to renderers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Iterable, Optional, Sequence

from callscope.exceptions import Diagnostic, DiagnosticKind
from callscope.timeline.event_classifier import DEFAULT_CLASSIFIER, ClassifiedEvent, EventClassifier
from callscope.timeline.event_filters import EventFilters, FilterConfig, filter_enabled
from callscope.timeline.formatting import (
    DISPLAY_NAME_MAX_CHARS,
    STATISTICS_NAME_MAX_CHARS,
    client_type_icon_key,
    format_clock_time,
    role_icon_key,
    tooltip_text,
    truncate_label,
)
from callscope.timeline.models import (
    CallEvent,
    CallEventType,
    MediaEvent,
    MediaEventType,
    ParticipantTrack,
    SessionBounds,
)
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

MIN_DURATION_MS = 1.0


@dataclass(frozen=True)
class TimelineLayoutConfig:
    """Pixel constants of the timeline canvas."""
    width: float = 1200
    margin_left: float = 250
    margin_top: float = 20
    margin_bottom: float = 40
    right_padding: float = 10
    track_height: float = 40
    track_spacing: float = 10
    session_bar_offset: float = 5
    session_bar_height: float = 8
    screenshare_lane_offset: float = 15
    dominant_speaker_lane_offset: float = 20
    lane_height: float = 4
    join_leave_marker_offset: float = 9
    media_marker_offset: float = 9
    event_marker_offset: float = 20
    axis_tick_fractions: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["axis_tick_fractions"] = list(self.axis_tick_fractions)
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TimelineLayoutConfig":
        """Tolerant loader: unknown keys and unusable values are ignored with a warning."""
        defaults = cls()
        values: dict[str, Any] = {}
        known = {f.name for f in fields(cls)}
        for key, raw in d.items():
            if key not in known:
                logger.warning(f"Unknown key '{key}' in timeline layout config, ignoring")
                continue
            try:
                if key == "axis_tick_fractions":
                    values[key] = tuple(min(max(float(v), 0.0), 1.0) for v in raw)
                else:
                    values[key] = float(raw)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value {raw!r} for '{key}' in timeline layout config, using {getattr(defaults, key)!r}")
        return cls(**values)


DEFAULT_LAYOUT_CONFIG = TimelineLayoutConfig()


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


@dataclass(frozen=True)
class TimeProjection:
    """Maps epoch-ms timestamps onto the horizontal pixel axis."""
    start_time: float
    end_time: float
    margin_left: float
    width: float

    @property
    def duration(self) -> float:
        duration = self.end_time - self.start_time
        return duration if duration > 0 else MIN_DURATION_MS

    def fraction(self, timestamp: float) -> float:
        return (timestamp - self.start_time) / self.duration

    def x(self, timestamp: float) -> float:
        """Clamped projection: always within [margin_left, margin_left + width]."""
        return self.margin_left + _clamp01(self.fraction(timestamp)) * self.width

    def raw_x(self, timestamp: float) -> float:
        """Unclamped projection; may fall left of the margin."""
        return self.margin_left + self.fraction(timestamp) * self.width

    def timestamp_at(self, fraction: float) -> float:
        return self.start_time + fraction * (self.end_time - self.start_time)


@dataclass(frozen=True)
class SessionBar:
    x_start: float
    x_end: float
    raw_x_start: float
    width: float
    y: float
    height: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class IntervalSpan:
    """A paired start/stop media interval (screenshare or dominant speaker)."""
    kind: str
    start_time: float
    end_time: float
    x_start: float
    x_end: float
    width: float
    y: float
    height: float
    color_key: str
    matched: bool


@dataclass(frozen=True)
class Marker:
    x: float
    y: float
    shape_key: str
    color_key: str
    label: str
    tooltip: str
    category: Optional[str]
    timestamp: float
    participant_id: str
    source: str = "call"


@dataclass(frozen=True)
class AxisTick:
    fraction: float
    x: float
    timestamp: float
    label: str


@dataclass(frozen=True)
class TrackGeometry:
    participant_id: str
    index: int
    y: float
    label: str
    display_name: str
    statistics_label: Optional[str]
    role_icon_key: str
    client_icon_key: str
    session_bar: SessionBar
    screenshare_spans: tuple[IntervalSpan, ...] = ()
    dominant_speaker_spans: tuple[IntervalSpan, ...] = ()
    markers: tuple[Marker, ...] = ()


@dataclass(frozen=True)
class TimelineGeometry:
    """Complete, immutable render description of one timeline view."""
    start_time: float
    end_time: float
    canvas_width: float
    canvas_height: float
    axis_y: float
    ticks: tuple[AxisTick, ...]
    tracks: tuple[TrackGeometry, ...]
    diagnostics: tuple[Diagnostic, ...] = field(default=(), compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "axis_y": self.axis_y,
            "ticks": [asdict(t) for t in self.ticks],
            "tracks": [asdict(t) for t in self.tracks],
        }


def pair_intervals(
    media_events: Sequence[MediaEvent],
    start_type: str,
    stop_type: str,
) -> list[tuple[MediaEvent, Optional[MediaEvent]]]:
    """Pair start events with stop events, greedy left to right.

    Each start takes the earliest not-yet-used stop with a strictly later
    timestamp. A stop is never used twice. Unmatched starts pair with None.
    """
    starts = sorted((e for e in media_events if e.type == start_type), key=lambda e: e.timestamp)
    stops = sorted((e for e in media_events if e.type == stop_type), key=lambda e: e.timestamp)
    used = [False] * len(stops)
    pairs: list[tuple[MediaEvent, Optional[MediaEvent]]] = []
    for start in starts:
        match = None
        for i, stop in enumerate(stops):
            if not used[i] and stop.timestamp > start.timestamp:
                used[i] = True
                match = stop
                break
        pairs.append((start, match))
    return pairs


# (kind, start type, stop type, filter key, lane offset attr, color key)
_INTERVAL_LANES = (
    (
        "screenshare",
        MediaEventType.SCREENSHARE_START.value,
        MediaEventType.SCREENSHARE_STOP.value,
        "screenshare",
        "screenshare_lane_offset",
        "info",
    ),
    (
        "dominant_speaker",
        MediaEventType.DOMINANT_SPEAKER_START.value,
        MediaEventType.DOMINANT_SPEAKER_STOP.value,
        "dominant_speaker",
        "dominant_speaker_lane_offset",
        "secondary",
    ),
)

_TOP_ROW_EVENT_TYPES = (CallEventType.JOIN.value, CallEventType.LEAVE.value)

# Point-in-time media events; the other media types are drawn as interval lanes.
_MEDIA_MARKER_TYPES = (
    MediaEventType.VIDEO_ENABLE.value,
    MediaEventType.VIDEO_DISABLE.value,
    MediaEventType.AUDIO_MUTE.value,
    MediaEventType.AUDIO_UNMUTE.value,
)


class TimelineLayoutEngine:
    """Computes TimelineGeometry; holds only immutable configuration.

    Args:
        config: Pixel constants.
        classifier: Event classifier used to decide marker visibility and visuals.
    """

    def __init__(
        self,
        config: TimelineLayoutConfig = DEFAULT_LAYOUT_CONFIG,
        classifier: EventClassifier = DEFAULT_CLASSIFIER,
    ) -> None:
        self.config = config
        self.classifier = classifier

    def track_y(self, index: int) -> float:
        c = self.config
        return c.margin_top + index * (c.track_height + c.track_spacing)

    def canvas_height(self, n_tracks: int) -> float:
        c = self.config
        return c.margin_top + n_tracks * (c.track_height + c.track_spacing) + c.margin_bottom

    def projection(self, bounds: SessionBounds) -> TimeProjection:
        return TimeProjection(bounds.start_time, bounds.end_time, self.config.margin_left, self.config.width)

    def layout(
        self,
        bounds: SessionBounds,
        participants: Iterable[Any],
        events: Iterable[Any] = (),
        filters: Optional[FilterConfig] = None,
    ) -> TimelineGeometry:
        """Lay out one track per participant, in the given participant order.

        Args:
            bounds: Session time window (ms).
            participants: ParticipantTrack objects or their raw dicts.
            events: CallEvent objects or raw dicts for the whole session.
            filters: EventFilters or a category -> bool mapping; None enables all.

        Returns:
            TimelineGeometry with tracks, ticks and collected diagnostics.
        """
        if filters is None:
            filters = EventFilters()
        c = self.config
        proj = self.projection(bounds)
        tracks_in = [ParticipantTrack.from_dict(p) for p in participants]
        events_in = [CallEvent.from_dict(e) for e in events]

        diagnostics: list[Diagnostic] = []
        tracks: list[TrackGeometry] = []
        for index, participant in enumerate(tracks_in):
            own_events = [e for e in events_in if e.participant_id == participant.participant_id]
            tracks.append(self._layout_track(index, participant, own_events, bounds, proj, filters, diagnostics))

        height = self.canvas_height(len(tracks))
        axis_y = height - c.margin_bottom + 10
        ticks = tuple(
            AxisTick(
                fraction=f,
                x=c.margin_left + f * c.width,
                timestamp=proj.timestamp_at(f),
                label=format_clock_time(proj.timestamp_at(f))[:5],
            )
            for f in c.axis_tick_fractions
        )
        logger.debug(f"timeline layout: {len(tracks)} tracks, {sum(len(t.markers) for t in tracks)} markers")
        return TimelineGeometry(
            start_time=bounds.start_time,
            end_time=bounds.end_time,
            canvas_width=c.margin_left + c.width + c.right_padding,
            canvas_height=height,
            axis_y=axis_y,
            ticks=ticks,
            tracks=tuple(tracks),
            diagnostics=tuple(diagnostics),
        )

    def _layout_track(
        self,
        index: int,
        participant: ParticipantTrack,
        events: list[CallEvent],
        bounds: SessionBounds,
        proj: TimeProjection,
        filters: FilterConfig,
        diagnostics: list[Diagnostic],
    ) -> TrackGeometry:
        c = self.config
        y = self.track_y(index)

        end_time = participant.leave_time if participant.leave_time is not None else bounds.end_time
        raw_start = proj.raw_x(participant.join_time)
        x_start = max(c.margin_left, proj.x(participant.join_time))
        x_end = proj.x(end_time)
        bar = SessionBar(
            x_start=x_start,
            x_end=x_end,
            raw_x_start=raw_start,
            width=max(x_end - raw_start, 0.0),
            y=y + c.session_bar_offset,
            height=c.session_bar_height,
            start_time=participant.join_time,
            end_time=end_time,
        )

        lanes: dict[str, tuple[IntervalSpan, ...]] = {}
        for kind, start_type, stop_type, filter_key, offset_attr, color_key in _INTERVAL_LANES:
            if not filter_enabled(filters, filter_key):
                lanes[kind] = ()
                continue
            spans = []
            for start, stop in pair_intervals(participant.media_events, start_type, stop_type):
                if stop is None:
                    diagnostics.append(Diagnostic(
                        DiagnosticKind.UNMATCHED_INTERVAL,
                        f"{start_type} without {stop_type}, extended to track end",
                        timestamp=start.timestamp,
                        context={"participant_id": participant.participant_id},
                    ))
                    logger.debug(f"unmatched {start_type} at {start.timestamp} for {participant.participant_id}")
                span_end_time = stop.timestamp if stop is not None else end_time
                span_start_x = proj.x(start.timestamp)
                span_end_x = proj.x(stop.timestamp) if stop is not None else x_end
                spans.append(IntervalSpan(
                    kind=kind,
                    start_time=start.timestamp,
                    end_time=span_end_time,
                    x_start=span_start_x,
                    x_end=span_end_x,
                    width=max(span_end_x - span_start_x, 0.0),
                    y=y + getattr(c, offset_attr),
                    height=c.lane_height,
                    color_key=color_key,
                    matched=stop is not None,
                ))
            lanes[kind] = tuple(spans)

        markers: list[Marker] = []
        for event in events:
            classified = self.classifier.classify(event, filters)
            diagnostic = classified.diagnostic()
            if diagnostic is not None:
                diagnostics.append(diagnostic)
            if not classified.visible:
                continue
            offset = c.join_leave_marker_offset if event.event_type in _TOP_ROW_EVENT_TYPES else c.event_marker_offset
            markers.append(self._marker(classified, proj, y + offset, "call"))
        for media_event in participant.media_events:
            if media_event.type not in _MEDIA_MARKER_TYPES:
                continue
            classified = self.classifier.classify_media(media_event, filters)
            if classified.visible:
                markers.append(self._marker(classified, proj, y + c.media_marker_offset, "media"))

        statistics_label = None
        if participant.statistics_display_name:
            statistics_label = truncate_label(participant.statistics_display_name, STATISTICS_NAME_MAX_CHARS)

        return TrackGeometry(
            participant_id=participant.participant_id,
            index=index,
            y=y,
            label=truncate_label(participant.display_name, DISPLAY_NAME_MAX_CHARS),
            display_name=participant.display_name,
            statistics_label=statistics_label,
            role_icon_key=role_icon_key(participant.role),
            client_icon_key=client_type_icon_key(participant.client_type),
            session_bar=bar,
            screenshare_spans=lanes["screenshare"],
            dominant_speaker_spans=lanes["dominant_speaker"],
            markers=tuple(markers),
        )

    @staticmethod
    def _marker(classified: ClassifiedEvent, proj: TimeProjection, y: float, source: str) -> Marker:
        return Marker(
            x=proj.x(classified.timestamp),
            y=y,
            shape_key=classified.shape_key,
            color_key=classified.color_key,
            label=classified.label,
            tooltip=tooltip_text(classified.label, classified.timestamp),
            category=classified.category,
            timestamp=classified.timestamp,
            participant_id=classified.participant_id,
            source=source,
        )


def compute_layout(
    bounds: SessionBounds,
    participants: Iterable[Any],
    events: Iterable[Any] = (),
    filters: Optional[FilterConfig] = None,
    config: TimelineLayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> TimelineGeometry:
    """Convenience wrapper around TimelineLayoutEngine(config).layout(...)."""
    return TimelineLayoutEngine(config).layout(bounds, participants, events, filters)
