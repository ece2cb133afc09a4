"""Rate series computation for cumulative counters.

Converts a cumulative byte counter (e.g. bytesSent) into a bits/second rate
series by differencing consecutive samples. Each emitted rate is keyed on the
later sample's timestamp so gaps in the rate series line up with the source
cadence.

Pairs that cannot produce a meaningful rate are skipped and reported as
diagnostics:
  - DEGENERATE_INTERVAL: elapsed time <= 0 or below policy.min_interval_s.
  - OUT_OF_RANGE_RATE: NaN/inf, negative (counter reset), or above policy.max_rate_bps.

A None gap marker in the current sample yields a None rate at that timestamp;
a pair whose previous sample is a gap marker is skipped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from callscope.exceptions import Diagnostic, DiagnosticKind
from callscope.stats_pipeline.pipeline_policy import DEFAULT_POLICY, PipelinePolicy
from callscope.stats_pipeline.series_normalizer import Sample
from callscope.utils.logging import get_logger

logger = get_logger(__name__)

BITS_PER_BYTE = 8


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf (0.5 -> 1, -0.5 -> 0)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class RateSeries:
    """Output of convert_total_to_rate_series().

    Attributes:
        samples: (timestamp, bits_per_second or None) pairs.
        diagnostics: One entry per skipped pair.
    """
    samples: tuple[Sample, ...]
    diagnostics: tuple[Diagnostic, ...] = ()

    def __len__(self) -> int:
        return len(self.samples)

    def to_list(self) -> list[Sample]:
        return list(self.samples)


def convert_total_to_rate_series(
    samples: Sequence[Sample],
    *,
    policy: PipelinePolicy = DEFAULT_POLICY,
) -> RateSeries:
    """Difference a cumulative byte counter into bits per second.

    Args:
        samples: Normalized cumulative samples (ascending timestamps, ms).
        policy: Thresholds for minimum interval and maximum rate.

    Returns:
        RateSeries with at most len(samples) - 1 entries.
    """
    out: list[Sample] = []
    diagnostics: list[Diagnostic] = []

    for (t_prev, v_prev), (t, v) in zip(samples, samples[1:]):
        if v is None:
            out.append((t, None))
            continue
        if v_prev is None:
            continue

        dt_seconds = (t - t_prev) / 1000
        if dt_seconds <= 0 or dt_seconds < policy.min_interval_s:
            diagnostics.append(Diagnostic(
                DiagnosticKind.DEGENERATE_INTERVAL,
                f"interval of {dt_seconds}s between samples",
                timestamp=t,
                context={"prev_timestamp": t_prev},
            ))
            continue

        bits = (v - v_prev) * BITS_PER_BYTE
        raw_rate = bits / dt_seconds
        rate = round_half_up(raw_rate) if math.isfinite(raw_rate) else None
        if rate is None or rate < 0 or rate > policy.max_rate_bps:
            logger.debug(
                f"Bitrate calculation skipped: timestamp={t}, prev_timestamp={t_prev}, "
                f"total={v}, prev_total={v_prev}, dt={dt_seconds}, bits={bits}, rate={rate}"
            )
            diagnostics.append(Diagnostic(
                DiagnosticKind.OUT_OF_RANGE_RATE,
                f"rate {raw_rate} outside [0, {policy.max_rate_bps}]",
                timestamp=t,
                context={
                    "prev_timestamp": t_prev,
                    "total": v,
                    "prev_total": v_prev,
                    "seconds": dt_seconds,
                },
            ))
            continue

        out.append((t, rate))

    return RateSeries(samples=tuple(out), diagnostics=tuple(diagnostics))
