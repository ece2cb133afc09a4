"""Event filter configuration for the timeline.

EventFilters is the explicit, immutable replacement for UI checkbox state:
one boolean flag per filter category. Pass it into classification and layout;
nothing reads filter state from anywhere else.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from callscope.utils.logging import get_logger

logger = get_logger(__name__)

# Filter categories, in legend order.
FILTER_CATEGORIES: tuple[str, ...] = (
    "bwe_issue",
    "ice_restart",
    "connectionIssue",
    "join",
    "screenshare",
    "mute",
    "dominant_speaker",
    "video",
)


@dataclass(frozen=True)
class EventFilters:
    """Enabled/disabled flag per filter category (all enabled by default)."""
    flags: tuple[tuple[str, bool], ...] = tuple((c, True) for c in FILTER_CATEGORIES)

    def is_enabled(self, category: str) -> bool:
        """Unknown categories are never enabled."""
        return dict(self.flags).get(category, False)

    def with_flag(self, category: str, enabled: bool) -> "EventFilters":
        """Return a copy with one flag changed.

        Raises:
            ValueError: If category is not a filter category.
        """
        if category not in FILTER_CATEGORIES:
            raise ValueError(f"Unknown event filter category {category!r}")
        return EventFilters(tuple((c, enabled if c == category else v) for c, v in self.flags))

    def to_dict(self) -> dict[str, bool]:
        return dict(self.flags)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "EventFilters":
        """Tolerant loader: missing categories default to enabled, unknown keys are ignored."""
        values = {c: True for c in FILTER_CATEGORIES}
        for key, value in d.items():
            if key not in values:
                logger.warning(f"Unknown event filter key '{key}', ignoring")
                continue
            values[key] = bool(value)
        return cls(tuple((c, values[c]) for c in FILTER_CATEGORIES))

    @classmethod
    def all_disabled(cls) -> "EventFilters":
        return cls(tuple((c, False) for c in FILTER_CATEGORIES))


FilterConfig = Union[EventFilters, Mapping[str, bool]]


def filter_enabled(filters: FilterConfig, category: str) -> bool:
    """Look up a flag in EventFilters or a plain category -> bool mapping.

    A plain mapping only enables the categories it names with a truthy value.
    """
    if isinstance(filters, EventFilters):
        return filters.is_enabled(category)
    return bool(filters.get(category, False))
