# daqbin/core/timeseries.py
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .exceptions import InvalidTimeSeries

def _frozen(a: np.ndarray) -> np.ndarray:
    """Return a read-only float32 view/copy of `a`."""
    out = np.asarray(a, dtype=np.float32)
    if out.flags.writeable:
        if out.base is not None or out is a:
            out = out.copy()
        out.flags.writeable = False
    return out

@dataclass(frozen=True, slots=True)
class TimeSeries:
    """Immutable time series: 1D float32 time vector (seconds) + 1D float32 values."""

    time: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)
    unit: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        t = np.asarray(self.time)
        v = np.asarray(self.values)

        if t.ndim != 1:
            raise InvalidTimeSeries(f"`time` must be 1D, got shape {t.shape}")
        if v.ndim != 1:
            raise InvalidTimeSeries(f"`values` must be 1D, got shape {v.shape}")
        if t.size != v.size:
            raise InvalidTimeSeries(
                f"`time` and `values` must have same length, got {t.size} vs {v.size}"
            )

        t = _frozen(t)
        v = _frozen(v)

        if t.size > 0:
            if not np.isfinite(t).all():
                raise InvalidTimeSeries("`time` contains non-finite values (NaN/Inf).")
            if np.any(np.diff(t) < 0):
                raise InvalidTimeSeries("`time` must be monotonic non-decreasing.")

        object.__setattr__(self, "time", t)
        object.__setattr__(self, "values", v)

    @property
    def n(self) -> int:
        return int(self.time.size)

    @property
    def t_start(self) -> float | None:
        return None if self.n == 0 else float(self.time[0])

    @property
    def t_end(self) -> float | None:
        return None if self.n == 0 else float(self.time[-1])
