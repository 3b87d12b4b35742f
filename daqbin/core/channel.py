# daqbin/core/channel.py

from __future__ import annotations

from dataclasses import dataclass, field

from .timeseries import TimeSeries
from .exceptions import InvalidChannel
from .metadata import ChannelKind

import numpy as np


def raw_channel_id(index: int) -> str:
    return f"channel_{int(index)}"


@dataclass(slots=True, frozen=True)
class Channel:
    """
    One decoded or derived signal.

    Raw channels are identified as "channel_<n>" and have no sources.
    Derived channels are identified as "D<n>" and list the ids they were
    computed from; the first entry is the primary source whose time axis
    and downsampling they inherit.
    """
    id: str
    series: TimeSeries
    label: str = ""
    unit: str = ""
    downsampling: int = 1
    sampling_interval_ns: int = 0
    kind: ChannelKind = ChannelKind.RAW
    sources: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidChannel("Channel.id must be a non-empty string.")

        if not isinstance(self.series, TimeSeries):
            raise InvalidChannel("Channel.series must be a TimeSeries.")

        if int(self.downsampling) < 1:
            raise InvalidChannel("Channel.downsampling must be >= 1.")

        if int(self.sampling_interval_ns) < 0:
            raise InvalidChannel("Channel.sampling_interval_ns must be >= 0.")

        object.__setattr__(self, "sources", tuple(self.sources))
        if self.kind is ChannelKind.DERIVED and not self.sources:
            raise InvalidChannel(f"Derived channel '{self.id}' must list its sources.")
        if self.kind is ChannelKind.RAW and self.sources:
            raise InvalidChannel(f"Raw channel '{self.id}' cannot have sources.")

    # Convenience accessors
    @property
    def time(self) -> np.ndarray:
        return self.series.time

    @property
    def values(self) -> np.ndarray:
        return self.series.values

    @property
    def n(self) -> int:
        return self.series.n

    @property
    def points(self) -> int:
        return self.series.n

    @property
    def t_start(self) -> float | None:
        return self.series.t_start

    @property
    def t_end(self) -> float | None:
        return self.series.t_end

    @property
    def dt(self) -> float:
        """Seconds between two consecutive samples of this channel."""
        return (self.sampling_interval_ns * self.downsampling) / 1e9

    @property
    def is_derived(self) -> bool:
        return self.kind is ChannelKind.DERIVED

    @property
    def primary_source(self) -> str | None:
        return self.sources[0] if self.sources else None
