"""Timeline data model: call events, media events, participant tracks, bounds.

All types are frozen dataclasses built from already-deserialized payloads via
``from_dict``. Structural problems (non-mapping payloads, missing or
non-numeric timestamps) raise TelemetryValidationError; everything else is
defaulted.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from callscope.exceptions import TelemetryValidationError


class CallEventType(str, Enum):
    """Raw session event types."""
    JOIN = "join"
    LEAVE = "leave"
    SCREENSHARE = "screenshare"
    NETWORK_ISSUE = "networkIssue"
    CONNECTION_ISSUE = "connectionIssue"
    MEDIA_INTERRUPTION = "mediaInterruption"
    CONFERENCE_STARTED = "conference_started"
    BATCH_PROCESSED = "batch_processed"


class NetworkIssueSubType(str, Enum):
    """metadata.subType values of networkIssue events."""
    BWE_ISSUE = "bwe_issue"
    REMOTE_SOURCE_SUSPENDED = "remoteSourceSuspended"
    REMOTE_SOURCE_INTERRUPTED = "remoteSourceInterrupted"
    ICE_RESTART = "ice_restart"


class MediaEventType(str, Enum):
    """Per-participant media event types."""
    AUDIO_MUTE = "audio_mute"
    AUDIO_UNMUTE = "audio_unmute"
    DOMINANT_SPEAKER_START = "dominant_speaker_start"
    DOMINANT_SPEAKER_STOP = "dominant_speaker_stop"
    SCREENSHARE_START = "screenshare_start"
    SCREENSHARE_STOP = "screenshare_stop"
    VIDEO_DISABLE = "video_disable"
    VIDEO_ENABLE = "video_enable"


def _require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise TelemetryValidationError(f"{what} must be a mapping, got {type(payload).__name__}", field=what)
    return payload


def _require_timestamp(payload: Mapping[str, Any], key: str, what: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise TelemetryValidationError(f"{what} requires a numeric {key!r}", field=key)
    return value


def _optional_timestamp(payload: Mapping[str, Any], key: str) -> Optional[float]:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return value


def _metadata(payload: Mapping[str, Any]) -> dict[str, Any]:
    meta = payload.get("metadata")
    return dict(meta) if isinstance(meta, Mapping) else {}


@dataclass(frozen=True)
class CallEvent:
    """A session-level event: a tagged variant over (event_type, sub_type)."""
    timestamp: float
    participant_id: str
    event_type: str
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def sub_type(self) -> Optional[str]:
        sub = self.metadata.get("subType")
        return sub if isinstance(sub, str) and sub else None

    @classmethod
    def from_dict(cls, payload: Any) -> "CallEvent":
        if isinstance(payload, CallEvent):
            return payload
        d = _require_mapping(payload, "call event")
        return cls(
            timestamp=_require_timestamp(d, "timestamp", "call event"),
            participant_id=str(d.get("participantId") or ""),
            event_type=str(d.get("eventType") or ""),
            metadata=_metadata(d),
        )


@dataclass(frozen=True)
class MediaEvent:
    """A per-participant media event (mute, screenshare start/stop...)."""
    timestamp: float
    type: str
    participant_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, payload: Any) -> "MediaEvent":
        if isinstance(payload, MediaEvent):
            return payload
        d = _require_mapping(payload, "media event")
        return cls(
            timestamp=_require_timestamp(d, "timestamp", "media event"),
            type=str(d.get("type") or ""),
            participant_id=str(d.get("participantId") or ""),
            metadata=_metadata(d),
        )


@dataclass(frozen=True)
class ParticipantTrack:
    """One participant's lifetime in a session view."""
    participant_id: str
    display_name: str
    role: str
    join_time: float
    leave_time: Optional[float] = None
    media_events: tuple[MediaEvent, ...] = ()
    statistics_display_name: Optional[str] = None
    client_type: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "ParticipantTrack":
        if isinstance(payload, ParticipantTrack):
            return payload
        d = _require_mapping(payload, "participant")
        raw_media = d.get("mediaEvents") or []
        if not isinstance(raw_media, (list, tuple)):
            raise TelemetryValidationError("participant mediaEvents must be a list", field="mediaEvents")
        client_info = d.get("clientInfo")
        client_type = client_info.get("type") if isinstance(client_info, Mapping) else None
        participant_id = str(d.get("participantId") or "")
        return cls(
            participant_id=participant_id,
            display_name=str(d.get("displayName") or participant_id),
            role=str(d.get("role") or "viewer"),
            join_time=_require_timestamp(d, "joinTime", "participant"),
            leave_time=_optional_timestamp(d, "leaveTime"),
            media_events=tuple(MediaEvent.from_dict(m) for m in raw_media),
            statistics_display_name=d.get("statisticsDisplayName") or None,
            client_type=str(client_type) if client_type else None,
        )


@dataclass(frozen=True)
class SessionBounds:
    """Time window of a session view (ms)."""
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @classmethod
    def resolve(
        cls,
        start_time: float,
        end_time: Optional[float],
        participants: Iterable[ParticipantTrack] = (),
        events: Iterable[CallEvent] = (),
    ) -> "SessionBounds":
        """Bounds for a session whose end may still be open.

        An open session ends at the latest observed join/leave/event/media
        timestamp (never wall-clock time), and never before start_time.
        """
        if end_time is not None:
            return cls(start_time, end_time)
        seen = [start_time]
        for p in participants:
            seen.append(p.join_time)
            if p.leave_time is not None:
                seen.append(p.leave_time)
            seen.extend(m.timestamp for m in p.media_events)
        seen.extend(e.timestamp for e in events)
        return cls(start_time, max(seen))


def parse_events(payloads: Iterable[Any]) -> list[CallEvent]:
    return [CallEvent.from_dict(p) for p in payloads]


def parse_participants(payloads: Iterable[Any]) -> list[ParticipantTrack]:
    return [ParticipantTrack.from_dict(p) for p in payloads]
