"""Unit tests for the rule-table EventClassifier."""

import pytest

from callscope.exceptions import DiagnosticKind
from callscope.timeline.event_classifier import (
    CALL_EVENT_RULES,
    COLOR_PALETTE,
    EventClassifier,
    classify_event,
)
from callscope.timeline.event_filters import EventFilters
from callscope.timeline.models import MediaEvent


def _event(event_type, sub_type=None, participant_id="p1", ts=1000):
    e = {"timestamp": ts, "participantId": participant_id, "eventType": event_type}
    if sub_type is not None:
        e["metadata"] = {"subType": sub_type}
    return e


@pytest.fixture
def all_on():
    return EventFilters()


def test_ice_restart_follows_its_filter():
    event = _event("networkIssue", "ice_restart")
    on = classify_event(event, {"ice_restart": True})
    assert on.visible is True
    assert on.category == "ice_restart"
    assert on.shape_key == "hexagon"
    off = classify_event(event, {"ice_restart": False})
    assert off.visible is False
    assert off.category == "ice_restart"


@pytest.mark.parametrize("sub_type, label, shape", [
    ("bwe_issue", "BWE Issue", "diamond"),
    ("remoteSourceSuspended", "Remote Source Suspended", "square"),
    ("remoteSourceInterrupted", "Remote Source Interrupted", "triangle"),
])
def test_bwe_subtypes(all_on, sub_type, label, shape):
    c = classify_event(_event("networkIssue", sub_type), all_on)
    assert c.category == "bwe_issue"
    assert c.label == label
    assert c.shape_key == shape
    assert c.color_key == "bwe"
    assert c.visible is True


@pytest.mark.parametrize("sub_type", [None, "something_else"])
def test_other_network_issues_are_hidden(all_on, sub_type):
    c = classify_event(_event("networkIssue", sub_type), all_on)
    assert c.visible is False
    assert c.category == "networkIssue"
    assert c.recognized is True


def test_connection_issue(all_on):
    c = classify_event(_event("connectionIssue"), all_on)
    assert (c.category, c.shape_key, c.color_key) == ("connectionIssue", "hexagon", "amber")
    assert c.visible is True


def test_media_interruption_shares_bwe_filter():
    event = _event("mediaInterruption")
    c = classify_event(event, EventFilters())
    assert (c.category, c.shape_key) == ("bwe_issue", "diamond")
    assert classify_event(event, EventFilters().with_flag("bwe_issue", False)).visible is False


def test_join_filter_toggles_join_and_leave():
    off = EventFilters().with_flag("join", False)
    join = classify_event(_event("join"), EventFilters())
    leave = classify_event(_event("leave"), EventFilters())
    assert (join.category, join.shape_key, join.label) == ("join", "arrow-right", "Joined")
    assert (leave.category, leave.shape_key, leave.label) == ("join", "arrow-left", "Left")
    assert join.visible and leave.visible
    assert not classify_event(_event("join"), off).visible
    assert not classify_event(_event("leave"), off).visible


def test_screenshare(all_on):
    c = classify_event(_event("screenshare"), all_on)
    assert (c.category, c.label, c.visible) == ("screenshare", "Screen Share", True)


@pytest.mark.parametrize("event_type", ["conference_started", "mute", "", "totally_new"])
def test_unknown_types_fail_closed_even_when_filters_enable_them(event_type):
    filters = {event_type: True, "networkIssue": True}
    c = classify_event(_event(event_type), filters)
    assert c.visible is False
    assert c.category is None
    assert c.recognized is False
    diag = c.diagnostic()
    assert diag.kind == DiagnosticKind.UNKNOWN_EVENT_TYPE


def test_recognized_event_has_no_diagnostic(all_on):
    assert classify_event(_event("join"), all_on).diagnostic() is None


def test_all_disabled_hides_everything():
    off = EventFilters.all_disabled()
    for event_type, sub in [("join", None), ("networkIssue", "ice_restart"), ("connectionIssue", None)]:
        assert classify_event(_event(event_type, sub), off).visible is False


def test_rule_order_subtype_rules_before_generic_network_issue():
    names = [r.name for r in CALL_EVENT_RULES]
    assert names.index("ice_restart") < names.index("network_issue")
    assert names.index("bwe_issue") < names.index("network_issue")


def test_every_rule_color_is_in_palette():
    assert all(r.color_key in COLOR_PALETTE for r in CALL_EVENT_RULES)


@pytest.mark.parametrize("media_type, category, label, filter_key", [
    ("video_enable", "video", "Video Started", "video"),
    ("video_disable", "video", "Video Stopped", "video"),
    ("audio_mute", "mute", "Audio Muted", "mute"),
    ("audio_unmute", "mute", "Audio Unmuted", "mute"),
])
def test_media_markers(media_type, category, label, filter_key):
    classifier = EventClassifier()
    event = MediaEvent(timestamp=5, type=media_type, participant_id="p1")
    on = classifier.classify_media(event, EventFilters())
    assert (on.category, on.label, on.visible, on.shape_key) == (category, label, True, "circle")
    off = classifier.classify_media(event, EventFilters().with_flag(filter_key, False))
    assert off.visible is False


def test_classify_is_pure(all_on):
    event = _event("networkIssue", "bwe_issue")
    assert classify_event(event, all_on) == classify_event(event, all_on)


def test_visible_events(all_on):
    events = [_event("join"), _event("bogus"), _event("networkIssue")]
    visible = EventClassifier().visible_events(events, all_on)
    assert [c.label for c in visible] == ["Joined"]
