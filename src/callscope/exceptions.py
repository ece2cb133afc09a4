"""
Error and diagnostic types shared by the stats pipeline and the timeline.

Only structurally malformed input raises (TelemetryValidationError). Everything
else that goes wrong with well-typed input is recovered locally and recorded
as a Diagnostic so callers can inspect it offline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TelemetryValidationError(ValueError):
    """Raised when a snapshot or event payload is not structurally usable."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.message = message


class DiagnosticKind(Enum):
    """Non-fatal anomaly categories."""
    INVALID_SAMPLE = "invalid_sample"
    DEGENERATE_INTERVAL = "degenerate_interval"
    OUT_OF_RANGE_RATE = "out_of_range_rate"
    UNMATCHED_INTERVAL = "unmatched_interval"
    UNKNOWN_EVENT_TYPE = "unknown_event_type"


@dataclass(frozen=True)
class Diagnostic:
    """A dropped sample, skipped pair or hidden event, kept for investigation."""
    kind: DiagnosticKind
    message: str
    timestamp: Optional[float] = None
    context: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": dict(self.context),
        }
