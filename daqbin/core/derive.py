# daqbin/core/derive.py
"""
Derived engineering channels computed from the eight raw channels.

The set is fixed. Some entries consume other derived entries (D1 -> D3,
D2 -> D4, D0 -> D5), so evaluation runs in dependency waves: every entry of a
wave only reads raw channels or entries of earlier waves.
"""
from __future__ import annotations

import logging
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

import numpy as np

from .channel import Channel, raw_channel_id
from .exceptions import MissingSourceChannelWarning, SourceLengthMismatchWarning
from .metadata import ChannelKind
from .timeseries import TimeSeries

_log = logging.getLogger(__name__)

K1 = 35          # current-transformer multiplier
C1 = 6.2832      # force coefficients
C2 = 5.0108


@dataclass(frozen=True)
class DerivedChannelDef:
    id: str
    label: str
    unit: str
    sources: tuple[str, ...]          # first entry is the primary source
    compute: Callable[..., np.ndarray]


def _neg_sum(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return -a - b


def _dc_current(a: np.ndarray, b: np.ndarray, diff: np.ndarray) -> np.ndarray:
    return K1 * (np.abs(a) + np.abs(b) + np.abs(diff))


def _dc_voltage(a: np.ndarray, b: np.ndarray, diff: np.ndarray) -> np.ndarray:
    return (np.abs(a) + np.abs(b) + np.abs(diff)) / K1


def _force(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a * C1 - b * C2


_R = raw_channel_id

DERIVED_CHANNELS: tuple[DerivedChannelDef, ...] = (
    DerivedChannelDef("D0", "UL3L1", "V", (_R(0), _R(1)), _neg_sum),
    DerivedChannelDef("D1", "IL2GR1", "V", (_R(2), _R(3)), _neg_sum),
    DerivedChannelDef("D2", "IL2GR2", "V", (_R(4), _R(5)), _neg_sum),
    DerivedChannelDef("D3", "I_DC_GR1", "A", (_R(2), _R(3), "D1"), _dc_current),
    DerivedChannelDef("D4", "I_DC_GR2", "A", (_R(4), _R(5), "D2"), _dc_current),
    DerivedChannelDef("D5", "U_DC", "V", (_R(0), _R(1), "D0"), _dc_voltage),
    DerivedChannelDef("D6", "F_Schlitten", "kN", (_R(6), _R(7)), _force),
)


def dependency_waves(
    defs: Sequence[DerivedChannelDef] = DERIVED_CHANNELS,
) -> list[list[DerivedChannelDef]]:
    """Group `defs` so that each group only depends on raw channels or earlier groups."""
    ids = {d.id for d in defs}
    level: dict[str, int] = {}
    for d in defs:
        derived_sources = [s for s in d.sources if s in ids]
        if any(s not in level for s in derived_sources):
            raise ValueError(f"derived channel {d.id} references a later entry")
        deps = [level[s] for s in derived_sources]
        level[d.id] = 1 + max(deps) if deps else 0

    waves: list[list[DerivedChannelDef]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for d in defs:
        waves[level[d.id]].append(d)
    return waves


def _normalize_raw(raw: Sequence[Channel | None] | Mapping[int | str, Channel | None]) -> dict[str, Channel]:
    if isinstance(raw, Mapping):
        items = raw.items()
    else:
        items = enumerate(raw)

    pool: dict[str, Channel] = {}
    for key, ch in items:
        if ch is None:
            continue
        pool[raw_channel_id(key) if isinstance(key, int) else str(key)] = ch
    return pool


def _compute_one(
    defn: DerivedChannelDef,
    pool: Mapping[str, Channel],
) -> tuple[Channel | None, tuple[type[Warning], str] | None]:
    missing = [s for s in defn.sources if s not in pool]
    if missing:
        return None, (
            MissingSourceChannelWarning,
            f"derived channel {defn.id} ({defn.label}) skipped: missing source(s) {', '.join(missing)}",
        )

    sources = [pool[s] for s in defn.sources]
    counts = {s.id: s.n for s in sources}
    if len(set(counts.values())) > 1:
        return None, (
            SourceLengthMismatchWarning,
            f"derived channel {defn.id} ({defn.label}) skipped: source point counts differ {counts}",
        )

    primary = sources[0]
    values = defn.compute(*(s.values.astype(np.float64) for s in sources))
    channel = Channel(
        id=defn.id,
        series=TimeSeries(
            time=primary.time,
            values=np.asarray(values, dtype=np.float32),
            unit=defn.unit,
            name=defn.id,
        ),
        label=defn.label,
        unit=defn.unit,
        downsampling=primary.downsampling,
        sampling_interval_ns=primary.sampling_interval_ns,
        kind=ChannelKind.DERIVED,
        sources=defn.sources,
    )
    return channel, None


def derive(
    raw: Sequence[Channel | None] | Mapping[int | str, Channel | None],
    *,
    max_workers: int | None = None,
    defs: Sequence[DerivedChannelDef] = DERIVED_CHANNELS,
) -> dict[str, Channel]:
    """
    Compute the derived channels from the raw ones.

    `raw` is either the eight raw channels in order (entries may be None) or a
    mapping keyed by raw index or channel id. An entry whose sources are
    missing or have unequal lengths is skipped with a DerivationWarning; the
    others are still computed. With max_workers > 1, the entries of one
    dependency wave run concurrently.
    """
    t0 = time.perf_counter()
    pool = _normalize_raw(raw)
    computed: dict[str, Channel] = {}
    problems: list[tuple[type[Warning], str]] = []

    for wave in dependency_waves(defs):
        if max_workers and max_workers > 1 and len(wave) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(executor.map(lambda d: _compute_one(d, pool), wave))
        else:
            outcomes = [_compute_one(d, pool) for d in wave]

        # Publish the wave only once it is complete.
        for channel, problem in outcomes:
            if channel is not None:
                computed[channel.id] = channel
            if problem is not None:
                problems.append(problem)
        pool = {**pool, **computed}

    for category, message in problems:
        _log.warning("DERIVED_SKIPPED %s", message)
        warnings.warn(message, category, stacklevel=2)

    _log.info(
        "DERIVE_DONE computed=%d skipped=%d seconds=%.3f",
        len(computed), len(problems), time.perf_counter() - t0,
    )
    return {d.id: computed[d.id] for d in defs if d.id in computed}
