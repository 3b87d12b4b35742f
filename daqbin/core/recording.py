# daqbin/core/recording.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from .channel import Channel, raw_channel_id
from .exceptions import ChannelNotFound, InvalidRecording
from .metadata import ChannelKind, FileHeader
from .resample import (
    DEFAULT_NEAR_ZERO,
    DEFAULT_SIGNIFICANCE_RATIO,
    ChannelStatistics,
    ResampledSeries,
    resample,
    statistics,
)

DEFAULT_MAX_POINTS = 2000

# Derived channels shown when a file is first opened, in display order.
DEFAULT_DISPLAY_CHANNELS = ("D5", "D3", "D4", "D6")

_UNIT_AXES = {"V": "y", "A": "y2", "Bar": "y3"}

_CALC_RE = re.compile(r"^calc_(?P<idx>\d+)$")


def axis_for_unit(unit: str | None) -> str:
    """Plot y-axis a unit is drawn on (V -> y, A -> y2, Bar -> y3, anything else -> y)."""
    return _UNIT_AXES.get(unit or "", "y")


@dataclass(frozen=True, slots=True)
class Recording:
    """
    One loaded measurement file: header, raw channels and derived channels.

    Design goals:
    - easy access: rec["channel_0"], rec["D3"], rec["calc_3"], rec[0]
    - explicit context: everything a plotting front end needs for one file
      lives here, nothing in module-level state
    - immutable: channels are never modified after loading
    """
    header: FileHeader
    raw: Mapping[str, Channel] = field(default_factory=dict, repr=False)
    derived: Mapping[str, Channel] = field(default_factory=dict, repr=False)
    name: str = ""
    source: str | None = None
    # resampling defaults for plotting queries on this recording
    max_points: int = DEFAULT_MAX_POINTS
    significance_ratio: float = DEFAULT_SIGNIFICANCE_RATIO
    near_zero: float = DEFAULT_NEAR_ZERO

    def __post_init__(self) -> None:
        if self.max_points < 1:
            raise InvalidRecording("Recording.max_points must be positive.")
        if not isinstance(self.header, FileHeader):
            raise InvalidRecording("Recording.header must be a FileHeader instance.")
        for attr, kind in (("raw", ChannelKind.RAW), ("derived", ChannelKind.DERIVED)):
            channels = getattr(self, attr)
            if not isinstance(channels, Mapping):
                raise InvalidRecording(f"Recording.{attr} must be a mapping (e.g., dict).")
            normalized: dict[str, Channel] = {}
            for key, ch in channels.items():
                if not isinstance(ch, Channel):
                    raise InvalidRecording(f"Recording.{attr} values must be Channel instances.")
                if ch.id != key:
                    raise InvalidRecording(
                        f"Channel id mismatch: key '{key}' but Channel.id is '{ch.id}'."
                    )
                if ch.kind is not kind:
                    raise InvalidRecording(f"Channel '{key}' is not a {kind.value} channel.")
                normalized[key] = ch
            object.__setattr__(self, attr, normalized)

        overlap = set(self.raw) & set(self.derived)
        if overlap:
            raise InvalidRecording(f"Channel ids used twice: {sorted(overlap)}")

    @classmethod
    def from_channels(
        cls,
        header: FileHeader,
        raw: Iterable[Channel],
        derived: Iterable[Channel] = (),
        *,
        name: str = "",
        source: str | None = None,
        **settings: Any,
    ) -> "Recording":
        return cls(
            header=header,
            raw={ch.id: ch for ch in raw},
            derived={ch.id: ch for ch in derived},
            name=name,
            source=source,
            **settings,
        )

    # ---- lookup ----
    def resolve(self, ref: str | int) -> str:
        """
        Normalize a channel reference to a channel id.

        Accepted forms: "channel_<n>", "D<n>", "calc_<n>" (alias of "D<n>"),
        and a bare integer or digit string (raw channel number).
        """
        if isinstance(ref, bool):
            raise ChannelNotFound(ref)
        if isinstance(ref, int):
            return raw_channel_id(ref)
        ref = str(ref).strip()
        if ref.isdigit():
            return raw_channel_id(int(ref))
        m = _CALC_RE.match(ref)
        if m:
            return f"D{int(m.group('idx'))}"
        return ref

    def _all(self) -> dict[str, Channel]:
        return {**self.raw, **self.derived}

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self.raw) + len(self.derived)

    def __iter__(self) -> Iterator[str]:
        return iter(self._all())

    def keys(self) -> Iterable[str]:
        return self._all().keys()

    def items(self) -> Iterable[tuple[str, Channel]]:
        return self._all().items()

    def values(self) -> Iterable[Channel]:
        return self._all().values()

    def __contains__(self, ref: object) -> bool:
        try:
            return self.resolve(ref) in self._all()  # type: ignore[arg-type]
        except ChannelNotFound:
            return False

    def __getitem__(self, ref: str | int) -> Channel:
        key = self.resolve(ref)
        try:
            return self._all()[key]
        except KeyError as e:
            raise ChannelNotFound(ref) from e

    def get(self, ref: str | int, default: Channel | None = None) -> Channel | None:
        try:
            return self[ref]
        except ChannelNotFound:
            return default

    # ---- derived time bounds ----
    @property
    def t_start(self) -> float | None:
        starts = [ch.t_start for ch in self.values() if ch.t_start is not None]
        return None if not starts else float(min(starts))

    @property
    def t_end(self) -> float | None:
        ends = [ch.t_end for ch in self.values() if ch.t_end is not None]
        return None if not ends else float(max(ends))

    def time_range(self) -> tuple[float, float] | None:
        if self.t_start is None or self.t_end is None:
            return None
        return self.t_start, self.t_end

    # ---- plotting queries ----
    def resample(
        self,
        ref: str | int,
        start: float,
        end: float,
        max_points: int | None = None,
    ) -> ResampledSeries:
        """Resampled window of a channel; unknown channels give an empty series."""
        return resample(
            self.get(ref),
            start,
            end,
            self.max_points if max_points is None else max_points,
            significance_ratio=self.significance_ratio,
            near_zero=self.near_zero,
        )

    def statistics(self, ref: str | int) -> ChannelStatistics | None:
        ch = self.get(ref)
        return None if ch is None else statistics(ch)

    def data_ranges(self, *, padding: float = 0.05) -> dict[str, dict[str, Any]]:
        """Per-channel value range widened by `padding` of its span, for auto-scaling."""
        ranges: dict[str, dict[str, Any]] = {}
        for ch in self.values():
            if ch.n == 0:
                continue
            lo = float(ch.values.min())
            hi = float(ch.values.max())
            pad = (hi - lo) * padding
            ranges[ch.id] = {
                "min": lo - pad,
                "max": hi + pad,
                "unit": ch.unit,
                "label": ch.label,
                "type": ch.kind.value,
            }
        return ranges

    def channels_by_unit(self) -> dict[str, list[dict[str, str]]]:
        by_unit: dict[str, list[dict[str, str]]] = {}
        for ch in self.values():
            by_unit.setdefault(ch.unit, []).append(
                {"id": ch.id, "label": ch.label, "type": ch.kind.value}
            )
        return by_unit

    def default_display_channels(self) -> list[str]:
        return [cid for cid in DEFAULT_DISPLAY_CHANNELS if cid in self.derived]

    def raw_channel_ids(self) -> list[str]:
        return list(self.raw)

    def summary(self) -> dict[str, Any]:
        """Description of the file and its channels for a plotting client."""

        def _entry(ch: Channel) -> dict[str, Any]:
            entry: dict[str, Any] = {
                "id": ch.id,
                "label": ch.label,
                "unit": ch.unit,
                "points": ch.points,
                "duration": ch.t_end if ch.t_end is not None else 0.0,
                "axis": axis_for_unit(ch.unit),
                "type": ch.kind.value,
            }
            if ch.is_derived:
                entry["sources"] = list(ch.sources)
            return entry

        return {
            "name": self.name,
            "header": self.header.header,
            "format_version": self.header.format_version.value,
            "start_time_ms": self.header.start_time_ms if self.header.has_timestamp else None,
            "sampling_rate_hz": self.header.sampling_rate_hz,
            "channels": [_entry(ch) for ch in self.raw.values()],
            "derived_channels": [_entry(ch) for ch in self.derived.values()],
            "total_points": sum(ch.points for ch in self.values()),
            "duration": self.t_end or 0.0,
        }
