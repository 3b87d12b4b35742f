# daqbin/core/resample.py
"""Reduce a channel window to a plottable number of points, and channel statistics."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .channel import Channel

__all__ = [
    "ResampledSeries",
    "ChannelStatistics",
    "find_time_index",
    "resample",
    "statistics",
]

DEFAULT_SIGNIFICANCE_RATIO = 0.1
DEFAULT_NEAR_ZERO = 1e-9


@dataclass(frozen=True, slots=True)
class ResampledSeries:
    time: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)

    @classmethod
    def empty(cls) -> "ResampledSeries":
        return cls(time=np.empty(0, dtype=np.float32), values=np.empty(0, dtype=np.float32))

    @property
    def n(self) -> int:
        return int(self.time.size)

    def as_dict(self) -> dict[str, list[float]]:
        return {"time": self.time.tolist(), "values": self.values.tolist()}


@dataclass(frozen=True, slots=True)
class ChannelStatistics:
    count: int
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    stddev: float | None = None
    rms: float | None = None
    unit: str | None = None
    label: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "stddev": self.stddev,
            "rms": self.rms,
            "count": self.count,
            "unit": self.unit,
            "label": self.label,
        }


def find_time_index(time: np.ndarray, target: float) -> int:
    """Leftmost index with time >= target, clamped to [0, len - 1]."""
    if time.size == 0:
        return 0
    # Compare in the time axis' own precision (float32 seconds).
    idx = int(np.searchsorted(time, time.dtype.type(target), side="left"))
    return max(0, min(time.size - 1, idx))


def resample(
    channel: Channel | None,
    start: float,
    end: float,
    max_points: int,
    *,
    significance_ratio: float = DEFAULT_SIGNIFICANCE_RATIO,
    near_zero: float = DEFAULT_NEAR_ZERO,
) -> ResampledSeries:
    """
    Reduce the window [start, end) of `channel` to roughly `max_points` points.

    Windows that already fit are returned unchanged. Larger windows are cut
    into buckets of `step` samples; a bucket whose spread exceeds
    `significance_ratio * |avg|` emits (min, max, avg) so spikes stay
    visible, any other bucket emits its average only. Buckets with
    |avg| <= near_zero never count as significant. The output may therefore
    hold up to 3x more points than buckets.
    """
    # 0 or negative budgets collapse the window into a single bucket
    max_points = max(int(max_points), 1)
    if channel is None or channel.n == 0:
        return ResampledSeries.empty()

    t, v = channel.time, channel.values
    start_idx = find_time_index(t, start)
    end_idx = find_time_index(t, end)
    total = end_idx - start_idx

    if total <= max_points:
        return ResampledSeries(time=t[start_idx:end_idx], values=v[start_idx:end_idx])

    step = total // max_points
    window = v[start_idx:end_idx].astype(np.float64)
    offsets = np.arange(0, total, step)

    mins = np.minimum.reduceat(window, offsets)
    maxs = np.maximum.reduceat(window, offsets)
    counts = np.diff(np.append(offsets, total))
    avg = np.add.reduceat(window, offsets) / counts

    bucket_t = t[start_idx + offsets].astype(np.float64)
    span = channel.dt * step

    abs_avg = np.abs(avg)
    significant = (abs_avg > near_zero) & (np.abs(maxs - mins) > significance_ratio * abs_avg)

    width = np.where(significant, 3, 1)
    pos = np.cumsum(width) - width
    out_t = np.empty(int(width.sum()), dtype=np.float64)
    out_v = np.empty_like(out_t)

    out_t[pos] = bucket_t
    out_v[pos] = np.where(significant, mins, avg)

    sig_pos = pos[significant]
    sig_t = bucket_t[significant]
    out_t[sig_pos + 1] = sig_t + span
    out_v[sig_pos + 1] = maxs[significant]
    out_t[sig_pos + 2] = sig_t + 0.5 * span
    out_v[sig_pos + 2] = avg[significant]

    return ResampledSeries(time=out_t.astype(np.float32), values=out_v.astype(np.float32))


def statistics(channel: Channel) -> ChannelStatistics:
    """min/max/mean/stddev/rms of the channel values (float64 accumulation)."""
    v = np.asarray(channel.values, dtype=np.float64)
    n = int(v.size)
    if n == 0:
        return ChannelStatistics(count=0, unit=channel.unit, label=channel.label)

    total = float(v.sum())
    sum_squares = float(np.dot(v, v))
    mean = total / n
    variance = sum_squares / n - mean * mean

    return ChannelStatistics(
        count=n,
        min=float(v.min()),
        max=float(v.max()),
        mean=mean,
        stddev=math.sqrt(max(variance, 0.0)),
        rms=math.sqrt(sum_squares / n),
        unit=channel.unit,
        label=channel.label,
    )
