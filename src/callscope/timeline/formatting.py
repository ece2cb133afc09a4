"""Display formatting helpers for timeline labels, tooltips and summaries.

All functions are deterministic: clock times are rendered in UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

DISPLAY_NAME_MAX_CHARS = 28
STATISTICS_NAME_MAX_CHARS = 35
ELLIPSIS = "..."
CLOCK_PLACEHOLDER = "--:--:--"

ROLE_ICON_KEYS = {
    "moderator": "moderator",
    "presenter": "presenter",
}
DEFAULT_ROLE_ICON_KEY = "viewer"

CLIENT_TYPE_ICON_KEYS = {
    "mobile": "mobile",
    "desktop": "desktop",
}
DEFAULT_CLIENT_TYPE_ICON_KEY = "web"


def format_duration_long(ms: float) -> str:
    """Format a duration as ``"1h 2m 3s"``, ``"2m 3s"`` or ``"3s"``.

    Negative durations are treated as zero.
    """
    total_seconds = int(max(ms, 0) // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_duration_clock(ms: float) -> str:
    """Format a duration as ``"m:ss"`` (minutes are not wrapped into hours)."""
    total_seconds = int(max(ms, 0) // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def format_clock_time(timestamp_ms: float) -> str:
    """Format an epoch-ms timestamp as UTC ``HH:MM:SS``.

    Timestamps outside the range datetime can represent give CLOCK_PLACEHOLDER.
    """
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).strftime("%H:%M:%S")
    except (OverflowError, ValueError, OSError):
        return CLOCK_PLACEHOLDER


def truncate_label(text: Optional[str], max_chars: int = DISPLAY_NAME_MAX_CHARS) -> str:
    """Cut text longer than max_chars and append ``...``."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def tooltip_text(label: str, timestamp_ms: float) -> str:
    return f"{label} at {format_clock_time(timestamp_ms)}"


def role_icon_key(role: Optional[str]) -> str:
    return ROLE_ICON_KEYS.get(role or "", DEFAULT_ROLE_ICON_KEY)


def client_type_icon_key(client_type: Optional[str]) -> str:
    return CLIENT_TYPE_ICON_KEYS.get(client_type or "", DEFAULT_CLIENT_TYPE_ICON_KEY)
