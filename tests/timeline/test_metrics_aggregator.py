"""Unit tests for MetricsAggregator and severity_for."""

import pandas as pd
import pytest

from callscope.timeline.event_classifier import EventClassifier
from callscope.timeline.event_filters import EventFilters
from callscope.timeline.metrics_aggregator import IssueCounts, MetricsAggregator, severity_for
from callscope.timeline.models import SessionBounds


@pytest.fixture
def participants():
    return [
        {"participantId": "p1", "displayName": "Alice", "joinTime": 0, "leaveTime": 50},
        {"participantId": "p2", "displayName": "Bob", "joinTime": 10},
        {"participantId": "p3", "displayName": "Carol", "joinTime": 50, "leaveTime": 60},
    ]


@pytest.fixture
def events():
    def ev(pid, event_type, sub=None, ts=1):
        e = {"timestamp": ts, "participantId": pid, "eventType": event_type}
        if sub:
            e["metadata"] = {"subType": sub}
        return e
    return [
        ev("p1", "join"),
        ev("p1", "mediaInterruption"),
        ev("p1", "mediaInterruption"),
        ev("p1", "networkIssue", "ice_restart"),
        ev("p1", "networkIssue", "unknown_subtype"),
        ev("p2", "connectionIssue"),
        ev("p2", "networkIssue", "bwe_issue"),
        ev("p2", "bogus"),
    ]


@pytest.fixture
def aggregator():
    return MetricsAggregator()


def test_issue_counts_per_participant(aggregator, participants, events):
    counts = aggregator.participant_counts(participants, events)
    assert counts["p1"] == IssueCounts(media_interruptions=2, network_issues=2, connection_issues=0)
    assert counts["p2"] == IssueCounts(media_interruptions=0, network_issues=1, connection_issues=1)
    assert counts["p3"] == IssueCounts()


def test_counts_are_stable_and_additive(aggregator, participants, events):
    first = aggregator.participant_counts(participants, events)
    second = aggregator.participant_counts(participants, events)
    assert first == second
    total = aggregator.issue_counts(events)
    assert first["p1"] + first["p2"] + first["p3"] == total
    assert total.total == 6


def test_issue_counts_accepts_classified_events(aggregator, events):
    classified = EventClassifier().classify_all(events, EventFilters.all_disabled())
    assert aggregator.issue_counts(classified) == aggregator.issue_counts(events)


def test_count_by_category(aggregator, events):
    classified = EventClassifier().classify_all(events, EventFilters().with_flag("bwe_issue", False))
    assert aggregator.count_by_category(classified) == {
        "bwe_issue": 3,
        "connectionIssue": 1,
        "ice_restart": 1,
        "join": 1,
        "networkIssue": 1,
    }
    assert aggregator.count_by_category(classified, visible_only=True) == {
        "connectionIssue": 1,
        "ice_restart": 1,
        "join": 1,
    }


@pytest.mark.parametrize("category, count, expected", [
    ("media_interruptions", 0, "ok"),
    ("media_interruptions", 5, "warning"),
    ("media_interruptions", 6, "error"),
    ("network_issues", 6, "error"),
    ("connection_issues", 3, "warning"),
    ("connection_issues", 4, "error"),
    ("unknown", 6, "error"),
])
def test_severity_for(category, count, expected):
    assert severity_for(category, count) == expected


def test_counts_frame(aggregator, participants, events):
    df = aggregator.counts_frame(participants, events)
    assert list(df.index) == ["p1", "p2", "p3"]
    assert list(df.columns) == ["display_name", "media_interruptions", "network_issues", "connection_issues"]
    assert df.loc["p1", "media_interruptions"] == 2
    assert df["connection_issues"].dtype == "int64"


def test_counts_frame_empty(aggregator):
    df = aggregator.counts_frame([], [])
    assert isinstance(df, pd.DataFrame)
    assert df.empty


def test_peak_concurrent_leave_before_join_at_same_instant(aggregator, participants, events):
    overview = aggregator.session_overview(SessionBounds(0, 100), participants, events)
    # p1 leaves at 50 exactly when p3 joins
    assert overview.peak_concurrent == 2
    assert overview.participant_count == 3


def test_session_overview_preview(aggregator, participants):
    many = [{"timestamp": i, "participantId": "p1", "eventType": "join"} for i in range(25)]
    overview = aggregator.session_overview(SessionBounds(0, 3_723_000), participants, many)
    assert len(overview.event_preview) == 20
    assert overview.remaining_events == 5
    assert overview.event_preview[0].title == "Join"
    assert overview.duration_label == "1h 2m 3s"


def test_session_overview_short_list(aggregator, participants, events):
    overview = aggregator.session_overview(SessionBounds(0, 100), participants, events)
    assert overview.remaining_events == 0
    assert overview.event_count == len(events)
