"""Unit tests for convert_total_to_rate_series."""

import math

import pytest

from callscope.exceptions import DiagnosticKind
from callscope.stats_pipeline.pipeline_policy import PipelinePolicy
from callscope.stats_pipeline.rate_series import convert_total_to_rate_series, round_half_up


def test_rate_example_one_second():
    """1250 bytes over 1 s is 10,000 bits/s, keyed on the later timestamp."""
    rate = convert_total_to_rate_series([(0, 0), (1000, 1250)])
    assert rate.to_list() == [(1000, 10000)]
    assert rate.diagnostics == ()


def test_degenerate_interval_same_timestamp_is_empty():
    rate = convert_total_to_rate_series([(1000, 100), (1000, 200)])
    assert rate.to_list() == []
    assert [d.kind for d in rate.diagnostics] == [DiagnosticKind.DEGENERATE_INTERVAL]


def test_sub_millisecond_interval_is_dropped():
    rate = convert_total_to_rate_series([(1000, 100), (1000.5, 200)])
    assert len(rate) == 0
    assert rate.diagnostics[0].kind == DiagnosticKind.DEGENERATE_INTERVAL


def test_counter_reset_is_out_of_range():
    rate = convert_total_to_rate_series([(0, 5000), (1000, 100), (2000, 1100)])
    assert rate.to_list() == [(2000, 8000)]
    assert len(rate.diagnostics) == 1
    diag = rate.diagnostics[0]
    assert diag.kind == DiagnosticKind.OUT_OF_RANGE_RATE
    assert diag.timestamp == 1000


def test_rate_above_ceiling_is_dropped():
    # 200 MB in one second = 1.6e9 bits/s
    rate = convert_total_to_rate_series([(0, 0), (1000, 200_000_000)])
    assert rate.to_list() == []
    assert rate.diagnostics[0].kind == DiagnosticKind.OUT_OF_RANGE_RATE


def test_ceiling_comes_from_policy():
    policy = PipelinePolicy(max_rate_bps=5000)
    rate = convert_total_to_rate_series([(0, 0), (1000, 1250)], policy=policy)
    assert rate.to_list() == []


def test_output_is_at_most_one_shorter():
    samples = [(i * 1000, i * 100) for i in range(10)]
    rate = convert_total_to_rate_series(samples)
    assert len(rate) == len(samples) - 1
    assert all(r == 800 for _, r in rate.to_list())


def test_emitted_rates_are_finite_nonnegative_and_bounded():
    samples = [(0, 0), (1000, 10), (1000, 20), (1500, 5), (2500, 1e12), (3500, float("inf")), (4500, 2e12)]
    rate = convert_total_to_rate_series(samples)
    for _, r in rate.to_list():
        assert r is not None
        assert math.isfinite(r)
        assert 0 <= r <= 1_000_000_000


def test_gap_marker_propagates_and_next_pair_is_skipped():
    samples = [(0, 0), (1000, 1000), (30000, None), (30000, 5000), (31000, 6000)]
    rate = convert_total_to_rate_series(samples)
    assert rate.to_list() == [(1000, 8000), (30000, None), (31000, 8000)]


def test_empty_and_single_input():
    assert convert_total_to_rate_series([]).to_list() == []
    assert convert_total_to_rate_series([(0, 1)]).to_list() == []


def test_input_is_not_mutated():
    samples = [(0, 0), (1000, 1250)]
    convert_total_to_rate_series(samples)
    assert samples == [(0, 0), (1000, 1250)]


@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.4, 2), (-0.5, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
