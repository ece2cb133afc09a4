"""Unit tests for display formatting helpers."""

import pytest

from callscope.timeline.formatting import (
    CLOCK_PLACEHOLDER,
    client_type_icon_key,
    format_clock_time,
    format_duration_clock,
    format_duration_long,
    role_icon_key,
    tooltip_text,
    truncate_label,
)


@pytest.mark.parametrize("ms, expected", [
    (0, "0s"),
    (3_000, "3s"),
    (123_000, "2m 3s"),
    (3_723_000, "1h 2m 3s"),
    (3_600_000, "1h 0m 0s"),
    (-5, "0s"),
])
def test_format_duration_long(ms, expected):
    assert format_duration_long(ms) == expected


@pytest.mark.parametrize("ms, expected", [(0, "0:00"), (65_000, "1:05"), (3_723_000, "62:03")])
def test_format_duration_clock(ms, expected):
    assert format_duration_clock(ms) == expected


def test_format_clock_time_is_utc():
    assert format_clock_time(0) == "00:00:00"
    assert format_clock_time(3_723_000) == "01:02:03"


@pytest.mark.parametrize("ms", [1e18, -1e18, float("nan")])
def test_format_clock_time_out_of_range(ms):
    assert format_clock_time(ms) == CLOCK_PLACEHOLDER == "--:--:--"
    assert tooltip_text("Joined", ms) == "Joined at --:--:--"


def test_tooltip_text():
    assert tooltip_text("Joined", 3_723_000) == "Joined at 01:02:03"


def test_truncate_label():
    assert truncate_label("short") == "short"
    assert truncate_label("x" * 28) == "x" * 28
    assert truncate_label("x" * 29) == "x" * 28 + "..."
    assert truncate_label("y" * 40, 35) == "y" * 35 + "..."
    assert truncate_label(None) == ""


def test_icon_keys():
    assert role_icon_key("presenter") == "presenter"
    assert role_icon_key(None) == "viewer"
    assert client_type_icon_key("desktop") == "desktop"
    assert client_type_icon_key("tablet") == "web"
