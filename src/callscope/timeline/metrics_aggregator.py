"""
Per-participant issue counts and session overview numbers.

Counts are exact integers over the events passed in; re-running an
aggregation over the same input gives the same result, and counts of disjoint
event sets add up (IssueCounts supports ``+``). Severity color-coding is a
separate layer (``severity_for``) so the thresholds never leak into counts.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional, Sequence

import pandas as pd

from callscope.timeline.event_classifier import ClassifiedEvent
from callscope.timeline.formatting import format_duration_long
from callscope.timeline.models import CallEvent, CallEventType, ParticipantTrack, SessionBounds
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

EVENT_PREVIEW_LIMIT = 20

# count > error threshold -> "error"; count > 0 -> "warning"; else "ok"
SEVERITY_ERROR_THRESHOLDS: dict[str, int] = {
    "media_interruptions": 5,
    "network_issues": 5,
    "connection_issues": 3,
}
DEFAULT_SEVERITY_ERROR_THRESHOLD = 5

COUNT_COLUMNS = list(SEVERITY_ERROR_THRESHOLDS)


@dataclass(frozen=True)
class IssueCounts:
    """Counts of raw issue events by type.

    network_issues counts every networkIssue event, whatever its subtype and
    whether or not it is visible on the timeline.
    """
    media_interruptions: int = 0
    network_issues: int = 0
    connection_issues: int = 0

    def __add__(self, other: "IssueCounts") -> "IssueCounts":
        if not isinstance(other, IssueCounts):
            return NotImplemented
        return IssueCounts(
            self.media_interruptions + other.media_interruptions,
            self.network_issues + other.network_issues,
            self.connection_issues + other.connection_issues,
        )

    @property
    def total(self) -> int:
        return self.media_interruptions + self.network_issues + self.connection_issues

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def severity_for(category: str, count: int) -> str:
    """Map a count to "ok", "warning" or "error".

    Args:
        category: An IssueCounts field name (media_interruptions, network_issues,
            connection_issues). Unknown names use the default threshold.
        count: The exact count.
    """
    threshold = SEVERITY_ERROR_THRESHOLDS.get(category, DEFAULT_SEVERITY_ERROR_THRESHOLD)
    if count > threshold:
        return "error"
    if count > 0:
        return "warning"
    return "ok"


def _raw_event(item: Any) -> CallEvent:
    if isinstance(item, ClassifiedEvent):
        return item.event
    return CallEvent.from_dict(item)


@dataclass(frozen=True)
class EventPreviewItem:
    timestamp: float
    participant_id: str
    event_type: str
    title: str


@dataclass(frozen=True)
class SessionOverview:
    """Numbers for a session header and the event list preview."""
    participant_count: int
    peak_concurrent: int
    duration_ms: float
    duration_label: str
    event_count: int
    event_preview: tuple[EventPreviewItem, ...]
    remaining_events: int


class MetricsAggregator:
    """Stateless aggregation over classified or raw call events."""

    @staticmethod
    def count_by_category(classified: Iterable[ClassifiedEvent], visible_only: bool = False) -> dict[str, int]:
        """Count classified events per category, unrecognized events excluded.

        Returns:
            Plain dict sorted by category name.
        """
        counter: Counter = Counter(
            c.category for c in classified
            if c.category is not None and (c.visible or not visible_only)
        )
        return dict(sorted(counter.items()))

    @staticmethod
    def issue_counts(events: Iterable[Any], participant_id: Optional[str] = None) -> IssueCounts:
        """Count mediaInterruption / networkIssue / connectionIssue events.

        Args:
            events: CallEvent, ClassifiedEvent or raw event dicts.
            participant_id: Only count this participant's events; None counts all.
        """
        counter: Counter = Counter()
        for item in events:
            event = _raw_event(item)
            if participant_id is not None and event.participant_id != participant_id:
                continue
            counter[event.event_type] += 1
        return IssueCounts(
            media_interruptions=counter[CallEventType.MEDIA_INTERRUPTION.value],
            network_issues=counter[CallEventType.NETWORK_ISSUE.value],
            connection_issues=counter[CallEventType.CONNECTION_ISSUE.value],
        )

    def participant_counts(
        self,
        participants: Iterable[Any],
        events: Iterable[Any],
    ) -> dict[str, IssueCounts]:
        """IssueCounts per participant, in participant order."""
        parsed_events = [_raw_event(e) for e in events]
        result: dict[str, IssueCounts] = {}
        for p in participants:
            track = ParticipantTrack.from_dict(p)
            result[track.participant_id] = self.issue_counts(parsed_events, track.participant_id)
        return result

    def counts_frame(self, participants: Iterable[Any], events: Iterable[Any]) -> pd.DataFrame:
        """Participant x issue-count table.

        Returns:
            DataFrame indexed by participant_id with a display_name column and
            one int column per COUNT_COLUMNS entry.
        """
        tracks = [ParticipantTrack.from_dict(p) for p in participants]
        counts = self.participant_counts(tracks, events)
        rows = [
            {"participant_id": t.participant_id, "display_name": t.display_name, **counts[t.participant_id].to_dict()}
            for t in tracks
        ]
        df = pd.DataFrame(rows, columns=["participant_id", "display_name", *COUNT_COLUMNS])
        df[COUNT_COLUMNS] = df[COUNT_COLUMNS].astype("int64")
        return df.set_index("participant_id")

    @staticmethod
    def peak_concurrent(participants: Sequence[ParticipantTrack], end_time: float) -> int:
        """Maximum number of simultaneously present participants.

        Sweep over join (+1) and leave (-1) points; a leave at the same
        instant as a join is processed first. Open sessions end at end_time.
        """
        points: list[tuple[float, int]] = []
        for p in participants:
            leave = p.leave_time if p.leave_time is not None else end_time
            points.append((p.join_time, 1))
            points.append((max(leave, p.join_time), -1))
        peak = current = 0
        for _, delta in sorted(points):
            current += delta
            peak = max(peak, current)
        return peak

    def session_overview(
        self,
        bounds: SessionBounds,
        participants: Iterable[Any],
        events: Iterable[Any] = (),
        preview_limit: int = EVENT_PREVIEW_LIMIT,
    ) -> SessionOverview:
        tracks = [ParticipantTrack.from_dict(p) for p in participants]
        parsed_events = [_raw_event(e) for e in events]
        preview = tuple(
            EventPreviewItem(
                timestamp=e.timestamp,
                participant_id=e.participant_id,
                event_type=e.event_type,
                title=e.event_type[:1].upper() + e.event_type[1:],
            )
            for e in parsed_events[:preview_limit]
        )
        duration = max(bounds.duration, 0.0)
        overview = SessionOverview(
            participant_count=len(tracks),
            peak_concurrent=self.peak_concurrent(tracks, bounds.end_time),
            duration_ms=duration,
            duration_label=format_duration_long(duration),
            event_count=len(parsed_events),
            event_preview=preview,
            remaining_events=max(len(parsed_events) - preview_limit, 0),
        )
        logger.debug(
            f"session overview: {overview.participant_count} participants, "
            f"peak {overview.peak_concurrent}, {overview.event_count} events"
        )
        return overview
