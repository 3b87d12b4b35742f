# daqbin/core/conversion.py
"""
Scalar conversions applied while decoding a measurement file.

- ADC counts -> physical (engineering-unit) values, using the per-channel
  range code and scaling stored in the file header
- legacy 64-bit tick timestamps -> Unix milliseconds
"""
from __future__ import annotations

import logging
import time

import numpy as np

from .exceptions import ConfigError
from .metadata import TIMESTAMP_UNAVAILABLE

_log = logging.getLogger(__name__)

# Full-scale input range in volts, by range code.
RANGE_TABLE: dict[int, float] = {
    0: 0.01,
    1: 0.02,
    2: 0.05,
    3: 0.1,
    4: 0.2,
    5: 0.5,
    6: 1.0,
    7: 2.0,
    8: 5.0,
    9: 10.0,
    10: 20.0,
    11: 50.0,
    12: 100.0,
    13: 200.0,
}
DEFAULT_RANGE_V = 5.0

TICKS_MASK = 0x3FFFFFFFFFFFFFFF
EPOCH_OFFSET_TICKS = 621355968000000000  # 0001-01-01 -> 1970-01-01, in 100 ns ticks
TICKS_PER_MS = 10000
DEFAULT_HORIZON_MS = 365 * 24 * 3600 * 1000


def voltage_range(range_code: int) -> float:
    return RANGE_TABLE.get(int(range_code), DEFAULT_RANGE_V)


def _check_max_adc(max_adc: int) -> None:
    if int(max_adc) == 0:
        raise ConfigError("max ADC value is 0; cannot convert samples to physical values.")


def to_physical(raw_adc: int, max_adc: int, range_code: int, scaling: int) -> float:
    """Convert one ADC sample to its engineering-unit value (float32 precision)."""
    _check_max_adc(max_adc)
    millivolts = (raw_adc / max_adc) * voltage_range(range_code) * 1000
    return float(np.float32((scaling / 1000.0) * millivolts))


def to_physical_array(raw_adc: np.ndarray, max_adc: int, range_code: int, scaling: int) -> np.ndarray:
    """Vectorized `to_physical` over an array of ADC samples; returns float32."""
    _check_max_adc(max_adc)
    raw = np.asarray(raw_adc, dtype=np.float64)
    millivolts = (raw / max_adc) * voltage_range(range_code) * 1000
    return ((scaling / 1000.0) * millivolts).astype(np.float32)


def to_unix_ms(
    raw_ticks: int,
    *,
    now_ms: int | None = None,
    horizon_ms: int = DEFAULT_HORIZON_MS,
) -> int:
    """
    Convert a stored 64-bit tick value to Unix milliseconds.

    The low 62 bits hold 100 ns ticks since 0001-01-01; the top two bits are a
    kind tag and are always discarded, whatever the sign of `raw_ticks`.
    Returns TIMESTAMP_UNAVAILABLE (0) when the result is not in
    (0, now + horizon).
    """
    try:
        ticks = int(raw_ticks) & TICKS_MASK
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        if ticks > EPOCH_OFFSET_TICKS:
            unix_ms = (ticks - EPOCH_OFFSET_TICKS) // TICKS_PER_MS
            if 0 < unix_ms < now_ms + horizon_ms:
                return unix_ms
    except (TypeError, ValueError, OverflowError) as e:
        _log.warning("TIMESTAMP_CONVERSION_FAILED raw=%r error=%s", raw_ticks, e)
        return TIMESTAMP_UNAVAILABLE

    _log.warning("TIMESTAMP_UNAVAILABLE raw=%r (time alignment disabled)", raw_ticks)
    return TIMESTAMP_UNAVAILABLE
