"""Participant timeline: event classification, layout geometry and issue counts."""

from callscope.timeline.event_classifier import (
    CALL_EVENT_RULES,
    MEDIA_MARKER_RULES,
    ClassificationRule,
    ClassifiedEvent,
    EventClassifier,
    classify_event,
)
from callscope.timeline.event_filters import FILTER_CATEGORIES, EventFilters
from callscope.timeline.layout_engine import (
    TimelineGeometry,
    TimelineLayoutConfig,
    TimelineLayoutEngine,
    compute_layout,
    pair_intervals,
)
from callscope.timeline.metrics_aggregator import IssueCounts, MetricsAggregator, SessionOverview, severity_for
from callscope.timeline.models import CallEvent, MediaEvent, ParticipantTrack, SessionBounds

__all__ = [
    "CALL_EVENT_RULES",
    "CallEvent",
    "ClassificationRule",
    "ClassifiedEvent",
    "EventClassifier",
    "EventFilters",
    "FILTER_CATEGORIES",
    "IssueCounts",
    "MEDIA_MARKER_RULES",
    "MediaEvent",
    "MetricsAggregator",
    "ParticipantTrack",
    "SessionBounds",
    "SessionOverview",
    "TimelineGeometry",
    "TimelineLayoutConfig",
    "TimelineLayoutEngine",
    "classify_event",
    "compute_layout",
    "pair_intervals",
    "severity_for",
]
