"""Event classification for the participant timeline.

Each raw event is matched against an ordered table of rules; the first rule
whose predicate matches decides the category, label and visual encoding.
Visibility is the AND of "a rule matched and maps to a filter" and "that
filter is enabled". Unmatched events are never visible, whatever the filters.

Order of CALL_EVENT_RULES:
  1. networkIssue / bwe_issue, remoteSourceSuspended, remoteSourceInterrupted -> bwe_issue
  2. networkIssue / ice_restart -> ice_restart
  3. any other networkIssue -> networkIssue (no filter, hidden)
  4. connectionIssue -> connectionIssue
  5. mediaInterruption -> bwe_issue
  6. join / leave -> join
  7. screenshare -> screenshare
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from callscope.exceptions import Diagnostic, DiagnosticKind
from callscope.timeline.event_filters import FilterConfig, filter_enabled
from callscope.timeline.models import CallEvent, CallEventType, MediaEvent, MediaEventType, NetworkIssueSubType
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

# colorKey -> hex, for renderers that want a default palette.
COLOR_PALETTE: dict[str, str] = {
    "bwe": "#FF6B35",
    "ice_restart": "#FF9800",
    "amber": "#FF9800",
    "success": "#2e7d32",
    "error": "#d32f2f",
    "info": "#0288d1",
    "warning": "#ed6c02",
    "secondary": "#9c27b0",
    "secondary_dark": "#7b1fa2",
    "grey": "#9e9e9e",
    "session_bar": "#bdbdbd",
}

UNKNOWN_COLOR_KEY = "grey"
UNKNOWN_SHAPE_KEY = "circle"


def _network_issue(*sub_types: str) -> Callable[[CallEvent], bool]:
    def predicate(event: CallEvent) -> bool:
        return event.event_type == CallEventType.NETWORK_ISSUE.value and event.sub_type in sub_types
    return predicate


def _event_type(*event_types: str) -> Callable[[CallEvent], bool]:
    def predicate(event: CallEvent) -> bool:
        return event.event_type in event_types
    return predicate


@dataclass(frozen=True)
class ClassificationRule:
    """One row of a rule table.

    Attributes:
        name: Rule identifier (for logs and tests).
        predicate: Matches raw events.
        category: Canonical category of matched events.
        label: Human-readable label.
        color_key: Palette key.
        shape_key: Marker shape key.
        filter_key: Filter flag that gates visibility; None = never visible.
    """
    name: str
    predicate: Callable[[Any], bool]
    category: str
    label: str
    color_key: str
    shape_key: str
    filter_key: Optional[str]


CALL_EVENT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "bwe_issue", _network_issue(NetworkIssueSubType.BWE_ISSUE.value),
        "bwe_issue", "BWE Issue", "bwe", "diamond", "bwe_issue",
    ),
    ClassificationRule(
        "remote_source_suspended", _network_issue(NetworkIssueSubType.REMOTE_SOURCE_SUSPENDED.value),
        "bwe_issue", "Remote Source Suspended", "bwe", "square", "bwe_issue",
    ),
    ClassificationRule(
        "remote_source_interrupted", _network_issue(NetworkIssueSubType.REMOTE_SOURCE_INTERRUPTED.value),
        "bwe_issue", "Remote Source Interrupted", "bwe", "triangle", "bwe_issue",
    ),
    ClassificationRule(
        "ice_restart", _network_issue(NetworkIssueSubType.ICE_RESTART.value),
        "ice_restart", "ICE Restart", "ice_restart", "hexagon", "ice_restart",
    ),
    ClassificationRule(
        "network_issue", _event_type(CallEventType.NETWORK_ISSUE.value),
        "networkIssue", "Network Issue", "error", "circle", None,
    ),
    ClassificationRule(
        "connection_issue", _event_type(CallEventType.CONNECTION_ISSUE.value),
        "connectionIssue", "Connection Issue", "amber", "hexagon", "connectionIssue",
    ),
    ClassificationRule(
        "media_interruption", _event_type(CallEventType.MEDIA_INTERRUPTION.value),
        "bwe_issue", "BWE Issue", "bwe", "diamond", "bwe_issue",
    ),
    ClassificationRule(
        "join", _event_type(CallEventType.JOIN.value),
        "join", "Joined", "success", "arrow-right", "join",
    ),
    ClassificationRule(
        "leave", _event_type(CallEventType.LEAVE.value),
        "join", "Left", "error", "arrow-left", "join",
    ),
    ClassificationRule(
        "screenshare", _event_type(CallEventType.SCREENSHARE.value),
        "screenshare", "Screen Share", "info", "circle", "screenshare",
    ),
)


def _media_type(*types: str) -> Callable[[MediaEvent], bool]:
    def predicate(event: MediaEvent) -> bool:
        return event.type in types
    return predicate


# Point-in-time media events drawn as markers (intervals are handled by the layout engine).
MEDIA_MARKER_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "video_enable", _media_type(MediaEventType.VIDEO_ENABLE.value),
        "video", "Video Started", "info", "circle", "video",
    ),
    ClassificationRule(
        "video_disable", _media_type(MediaEventType.VIDEO_DISABLE.value),
        "video", "Video Stopped", "warning", "circle", "video",
    ),
    ClassificationRule(
        "audio_mute", _media_type(MediaEventType.AUDIO_MUTE.value),
        "mute", "Audio Muted", "warning", "circle", "mute",
    ),
    ClassificationRule(
        "audio_unmute", _media_type(MediaEventType.AUDIO_UNMUTE.value),
        "mute", "Audio Unmuted", "success", "circle", "mute",
    ),
)


@dataclass(frozen=True)
class ClassifiedEvent:
    """Classification result for one event.

    category is None when no rule matched (recognized is False).
    """
    event: Union[CallEvent, MediaEvent]
    visible: bool
    category: Optional[str]
    label: str
    color_key: str
    shape_key: str
    rule: Optional[str] = None

    @property
    def recognized(self) -> bool:
        return self.rule is not None

    @property
    def timestamp(self) -> float:
        return self.event.timestamp

    @property
    def participant_id(self) -> str:
        return self.event.participant_id

    def diagnostic(self) -> Optional[Diagnostic]:
        """UNKNOWN_EVENT_TYPE record for unrecognized events, else None."""
        if self.recognized:
            return None
        return Diagnostic(
            DiagnosticKind.UNKNOWN_EVENT_TYPE,
            f"unrecognized event type {self.label!r}, hidden",
            timestamp=self.timestamp,
            context={"participant_id": self.participant_id},
        )


def _apply_rules(
    event: Union[CallEvent, MediaEvent],
    rules: Iterable[ClassificationRule],
    filters: FilterConfig,
    fallback_label: str,
) -> ClassifiedEvent:
    for rule in rules:
        if rule.predicate(event):
            visible = rule.filter_key is not None and filter_enabled(filters, rule.filter_key)
            return ClassifiedEvent(
                event=event,
                visible=visible,
                category=rule.category,
                label=rule.label,
                color_key=rule.color_key,
                shape_key=rule.shape_key,
                rule=rule.name,
            )
    logger.debug(f"unrecognized event {fallback_label!r} at {event.timestamp}, hidden")
    return ClassifiedEvent(
        event=event,
        visible=False,
        category=None,
        label=fallback_label or "Unknown Event",
        color_key=UNKNOWN_COLOR_KEY,
        shape_key=UNKNOWN_SHAPE_KEY,
    )


class EventClassifier:
    """Maps events to (visible, category, label, colorKey, shapeKey).

    Attributes:
        rules: Call-event rule table, evaluated top to bottom.
        media_rules: Media-event marker rule table.
    """

    def __init__(
        self,
        rules: tuple[ClassificationRule, ...] = CALL_EVENT_RULES,
        media_rules: tuple[ClassificationRule, ...] = MEDIA_MARKER_RULES,
    ) -> None:
        self.rules = rules
        self.media_rules = media_rules

    def classify(self, event: Union[CallEvent, Any], filters: FilterConfig) -> ClassifiedEvent:
        """Classify a call event (a CallEvent or its raw dict)."""
        event = CallEvent.from_dict(event)
        return _apply_rules(event, self.rules, filters, event.event_type)

    def classify_media(self, event: Union[MediaEvent, Any], filters: FilterConfig) -> ClassifiedEvent:
        """Classify a point-in-time media event (video/audio toggles)."""
        event = MediaEvent.from_dict(event)
        return _apply_rules(event, self.media_rules, filters, event.type)

    def classify_all(self, events: Iterable[Any], filters: FilterConfig) -> list[ClassifiedEvent]:
        return [self.classify(e, filters) for e in events]

    def visible_events(self, events: Iterable[Any], filters: FilterConfig) -> list[ClassifiedEvent]:
        return [c for c in self.classify_all(events, filters) if c.visible]


DEFAULT_CLASSIFIER = EventClassifier()


def classify_event(event: Union[CallEvent, Any], filters: FilterConfig) -> ClassifiedEvent:
    """Classify with the default rule tables."""
    return DEFAULT_CLASSIFIER.classify(event, filters)
