"""Series normalization for raw (timestamp, value) samples.

Turns an unordered, possibly dirty list of samples into a series that is
sorted ascending by timestamp with one sample per timestamp (last value
wins). Non-finite values are dropped before deduplication.

Step series (quantized fields such as frame width/height) are additionally
extended with a synthetic sample just before every value change so that a
hold-then-jump rendering is exact instead of interpolated.

Gap markers (samples whose value is ``None``) are dropped by default. With
``keep_gaps=True`` they are kept, ordered before the real sample sharing
their timestamp.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from callscope.utils.logging import get_logger

logger = get_logger(__name__)

# (timestamp_ms, value); value None marks a gap.
Sample = tuple[Any, Optional[float]]


def _is_pair(item: Any) -> bool:
    return isinstance(item, (tuple, list)) and len(item) == 2


def _is_scalar_number(value: Any) -> bool:
    # bools are not metric values; numeric strings are coerced later
    return isinstance(value, (int, float, str, np.number)) and not isinstance(value, bool)


def _samples_frame(samples: Iterable[Sample]) -> pd.DataFrame:
    """Coerce samples to a frame with numeric t/v columns and a gap flag."""
    pairs = [tuple(item) for item in samples if _is_pair(item)]
    if not pairs:
        return pd.DataFrame({"t": [], "v": [], "gap": []})
    # object dtype keeps None distinct from NaN
    raw_t = pd.Series([p[0] for p in pairs], dtype=object)
    raw_v = pd.Series([p[1] for p in pairs], dtype=object)
    gap = raw_v.map(lambda value: value is None).astype(bool)
    t = pd.to_numeric(raw_t.where(raw_t.map(_is_scalar_number).astype(bool), np.nan), errors="coerce")
    v = pd.to_numeric(raw_v.where(raw_v.map(_is_scalar_number).astype(bool), np.nan), errors="coerce")
    return pd.DataFrame({"t": t.astype(float), "v": v.astype(float), "gap": gap})


def _finite(s: pd.Series) -> pd.Series:
    return pd.Series(np.isfinite(s.to_numpy(dtype=float)), index=s.index)


def _to_samples(df: pd.DataFrame) -> list[Sample]:
    ts = df["t"].tolist()
    vs = df["v"].tolist()
    gaps = df["gap"].tolist() if "gap" in df.columns else [False] * len(ts)
    return [(t, None if g else v) for t, v, g in zip(ts, vs, gaps)]


def extend_steps(samples: Sequence[Sample]) -> list[Sample]:
    """Insert (next_t - 1, previous_value) before every value change.

    No synthetic sample follows the final sample, none is inserted across a
    gap marker, and none is inserted where it would not fall strictly between
    the two samples (so the pass is idempotent).

    Args:
        samples: Normalized samples (ascending timestamps).

    Returns:
        New list with synthetic hold samples; empty or single-element input
        is returned unchanged.
    """
    if len(samples) < 2:
        return list(samples)
    out: list[Sample] = []
    for (t, v), (t_next, v_next) in zip(samples, samples[1:]):
        out.append((t, v))
        if v is None or v_next is None or v == v_next:
            continue
        hold_t = t_next - 1
        if hold_t > t:
            out.append((hold_t, v))
    out.append(samples[-1])
    return out


def normalize_series(
    samples: Iterable[Sample],
    *,
    step: bool = False,
    keep_gaps: bool = False,
) -> list[Sample]:
    """Sort, clean and deduplicate a single metric's samples.

    Args:
        samples: Iterable of (timestamp, value) pairs in arrival order. Values
            may be numbers, numeric strings, None or NaN.
        step: If True, apply extend_steps() after deduplication.
        keep_gaps: If True, keep None gap markers (one per timestamp), ordered
            before the real sample that shares their timestamp.

    Returns:
        List of (timestamp, value) pairs. Without gaps, timestamps are
        strictly increasing.
    """
    df = _samples_frame(samples)
    if df.empty:
        return []

    t_ok = _finite(df["t"])
    real = df[t_ok & _finite(df["v"]) & ~df["gap"].astype(bool)]
    dropped = int((~df["gap"].astype(bool)).sum()) - len(real)
    if dropped:
        logger.debug(f"normalize_series: dropped {dropped} invalid sample(s)")

    real = real.drop_duplicates(subset="t", keep="last").assign(order=1)
    if keep_gaps:
        gaps = df[t_ok & df["gap"].astype(bool)].drop_duplicates(subset="t", keep="last")
        merged = pd.concat([gaps.assign(order=0), real], ignore_index=True)
    else:
        merged = real.reset_index(drop=True)

    merged = merged.sort_values(["t", "order"], kind="mergesort")
    out = _to_samples(merged)
    if step:
        out = extend_steps(out)
    return out


def is_normalized(samples: Sequence[Sample]) -> bool:
    """True if timestamps are strictly increasing and every value is finite."""
    for i, (t, v) in enumerate(samples):
        if v is None or not np.isfinite(v):
            return False
        if i and not samples[i - 1][0] < t:
            return False
    return True
