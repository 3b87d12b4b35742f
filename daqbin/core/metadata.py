# daqbin/core/metadata.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from .exceptions import InvalidHeader

N_RAW_CHANNELS = 8

# Sentinel returned by the timestamp conversion when the start time cannot be trusted.
TIMESTAMP_UNAVAILABLE = 0


class FormatVersion(Enum):
    """
    Discriminant for the two generations of measurement files.

    Both share the same binary layout; they differ in what the loader
    builds on top of the decoded raw channels:
    - LEGACY: raw channels only
    - CURRENT: raw channels + derived engineering channels
    """
    LEGACY = "legacy"
    CURRENT = "current"

    @property
    def has_derived_channels(self) -> bool:
        return self is FormatVersion.CURRENT

    @classmethod
    def parse(cls, value: "str | FormatVersion") -> "FormatVersion":
        if isinstance(value, FormatVersion):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ValueError(f"unknown format version: {value!r}") from e


class ChannelKind(Enum):
    RAW = "raw"
    DERIVED = "derived"


def _tuple8(name: str, seq: Sequence) -> tuple:
    out = tuple(seq)
    if len(out) != N_RAW_CHANNELS:
        raise InvalidHeader(f"FileHeader.{name} must have {N_RAW_CHANNELS} entries, got {len(out)}")
    return out


@dataclass(frozen=True, slots=True)
class FileHeader:
    """
    Decoded header of a measurement file.

    Per-channel fields (channel_range, channel_scaling, downsampling, units,
    labels) always hold exactly eight entries, indexed by raw channel number.
    `start_time_ms` is the Unix time in milliseconds, or TIMESTAMP_UNAVAILABLE
    when the stored tick value could not be converted.
    """
    header: str
    buffer_size: int
    start_time_raw: int
    start_time_ms: int
    max_adc_value: int
    channel_range: tuple[int, ...]
    channel_scaling: tuple[int, ...]
    sampling_interval_ns: int
    downsampling: tuple[int, ...]
    units: tuple[str, ...]
    labels: tuple[str, ...]
    format_version: FormatVersion = field(default=FormatVersion.CURRENT)

    def __post_init__(self) -> None:
        for name in ("channel_range", "channel_scaling", "downsampling", "units", "labels"):
            object.__setattr__(self, name, _tuple8(name, getattr(self, name)))

        if self.buffer_size < 0:
            raise InvalidHeader("FileHeader.buffer_size must be >= 0.")
        for c, ds in enumerate(self.downsampling):
            if ds < 1:
                raise InvalidHeader(f"FileHeader.downsampling[{c}] must be >= 1, got {ds}")
        if not isinstance(self.format_version, FormatVersion):
            raise InvalidHeader("FileHeader.format_version must be a FormatVersion.")

    @property
    def has_timestamp(self) -> bool:
        return self.start_time_ms != TIMESTAMP_UNAVAILABLE

    @property
    def start_datetime(self) -> datetime | None:
        if not self.has_timestamp:
            return None
        return datetime.fromtimestamp(self.start_time_ms / 1000.0, tz=timezone.utc)

    @property
    def sampling_rate_hz(self) -> float | None:
        if self.sampling_interval_ns == 0:
            return None
        return 1e9 / self.sampling_interval_ns

    def expected_points(self, channel: int) -> int:
        return self.buffer_size // self.downsampling[channel]

    def channel_dt(self, channel: int) -> float:
        return (self.sampling_interval_ns * self.downsampling[channel]) / 1e9
