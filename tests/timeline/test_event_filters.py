"""Unit tests for EventFilters."""

import pytest

from callscope.timeline.event_filters import FILTER_CATEGORIES, EventFilters, filter_enabled


def test_all_enabled_by_default():
    filters = EventFilters()
    assert all(filters.is_enabled(c) for c in FILTER_CATEGORIES)


def test_unknown_category_is_disabled():
    assert EventFilters().is_enabled("networkIssue") is False


def test_with_flag_returns_new_instance():
    filters = EventFilters()
    off = filters.with_flag("join", False)
    assert filters.is_enabled("join") is True
    assert off.is_enabled("join") is False
    assert off.is_enabled("screenshare") is True


def test_with_flag_unknown_category_raises():
    with pytest.raises(ValueError):
        EventFilters().with_flag("leave", False)


def test_from_dict_is_tolerant():
    filters = EventFilters.from_dict({"ice_restart": 0, "bogus": True})
    assert filters.is_enabled("ice_restart") is False
    assert filters.is_enabled("bwe_issue") is True
    assert "bogus" not in filters.to_dict()


def test_dict_round_trip():
    filters = EventFilters().with_flag("video", False)
    assert EventFilters.from_dict(filters.to_dict()) == filters


def test_all_disabled():
    assert not any(EventFilters.all_disabled().to_dict().values())


def test_filter_enabled_with_plain_mapping():
    assert filter_enabled({"ice_restart": True}, "ice_restart") is True
    assert filter_enabled({"ice_restart": True}, "join") is False
    assert filter_enabled(EventFilters(), "join") is True
