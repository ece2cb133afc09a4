"""Unit tests for timeline model parsing and boundary validation."""

import pytest

from callscope.exceptions import TelemetryValidationError
from callscope.timeline.models import CallEvent, MediaEvent, ParticipantTrack, SessionBounds, parse_events


def test_call_event_from_dict():
    event = CallEvent.from_dict({
        "timestamp": 1000,
        "participantId": "p1",
        "eventType": "networkIssue",
        "metadata": {"subType": "ice_restart"},
    })
    assert event.participant_id == "p1"
    assert event.event_type == "networkIssue"
    assert event.sub_type == "ice_restart"


def test_call_event_without_metadata_has_no_subtype():
    event = CallEvent.from_dict({"timestamp": 1, "participantId": "p1", "eventType": "join"})
    assert event.metadata == {}
    assert event.sub_type is None


@pytest.mark.parametrize("payload", [None, [], "join", 3])
def test_non_mapping_event_raises(payload):
    with pytest.raises(TelemetryValidationError):
        CallEvent.from_dict(payload)


@pytest.mark.parametrize("timestamp", [None, "soon", float("nan"), True])
def test_event_requires_numeric_timestamp(timestamp):
    with pytest.raises(TelemetryValidationError) as exc_info:
        CallEvent.from_dict({"timestamp": timestamp, "eventType": "join"})
    assert exc_info.value.field == "timestamp"


def test_participant_from_dict():
    track = ParticipantTrack.from_dict({
        "participantId": "p1",
        "displayName": "Alice",
        "role": "moderator",
        "joinTime": 1000,
        "leaveTime": 5000,
        "statisticsDisplayName": "alice@example",
        "clientInfo": {"type": "desktop"},
        "mediaEvents": [{"timestamp": 2000, "type": "screenshare_start"}],
    })
    assert track.display_name == "Alice"
    assert track.leave_time == 5000
    assert track.client_type == "desktop"
    assert track.media_events == (MediaEvent(timestamp=2000, type="screenshare_start"),)


def test_participant_defaults():
    track = ParticipantTrack.from_dict({"participantId": "p2", "joinTime": 0})
    assert track.display_name == "p2"
    assert track.role == "viewer"
    assert track.leave_time is None
    assert track.media_events == ()


def test_participant_requires_join_time():
    with pytest.raises(TelemetryValidationError):
        ParticipantTrack.from_dict({"participantId": "p1"})


def test_participant_media_events_must_be_list():
    with pytest.raises(TelemetryValidationError):
        ParticipantTrack.from_dict({"participantId": "p1", "joinTime": 0, "mediaEvents": "x"})


def test_session_bounds_closed():
    bounds = SessionBounds.resolve(1000, 9000)
    assert bounds == SessionBounds(1000, 9000)
    assert bounds.duration == 8000


def test_session_bounds_open_ends_at_last_observation():
    participants = [ParticipantTrack.from_dict({
        "participantId": "p1", "joinTime": 1000, "mediaEvents": [{"timestamp": 7000, "type": "audio_mute"}],
    })]
    events = parse_events([{"timestamp": 4000, "participantId": "p1", "eventType": "join"}])
    bounds = SessionBounds.resolve(1000, None, participants, events)
    assert bounds.end_time == 7000


def test_session_bounds_open_without_observations():
    assert SessionBounds.resolve(1000, None) == SessionBounds(1000, 1000)
