# daqbin/io/reader.py
from __future__ import annotations

import logging
import struct
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from daqbin.config import PipelineConfig
from daqbin.core.channel import Channel, raw_channel_id
from daqbin.core.conversion import to_physical_array, to_unix_ms
from daqbin.core.exceptions import ConfigError, FormatError, TruncatedFileError
from daqbin.core.metadata import N_RAW_CHANNELS, ChannelKind, FileHeader, FormatVersion
from daqbin.core.timeseries import TimeSeries
from daqbin.io.varint import decode_string

_log = logging.getLogger(__name__)

_SAMPLE_DTYPE = np.dtype("<i2")


@dataclass(frozen=True)
class DecodedFile:
    """Header plus the eight raw channels of one measurement file."""

    header: FileHeader
    channels: tuple[Channel, ...]


def _unpack(fmt: str, buffer, offset: int) -> tuple[tuple, int]:
    size = struct.calcsize(fmt)
    if offset + size > len(buffer):
        raise TruncatedFileError(offset)
    return struct.unpack_from(fmt, buffer, offset), offset + size


def _read_strings(buffer, offset: int, count: int) -> tuple[list[str], int]:
    out: list[str] = []
    for _ in range(count):
        text, offset = decode_string(buffer, offset)
        out.append(text)
    return out, offset


def _sample_positions(downsampling: np.ndarray, channel: int, points: int) -> np.ndarray:
    """
    Stream positions (in samples) of the first `points` samples of `channel`.

    Rows are written in order; inside a row, channel c contributes one sample
    when row % downsampling[c] == 0, lower channel numbers first. So the k-th
    sample of channel c sits at row j = k * ds[c], after every sample of rows
    0..j-1 and after the lower channels present in row j.
    """
    rows = np.arange(points, dtype=np.int64) * downsampling[channel]
    pos = np.zeros(points, dtype=np.int64)
    for c, ds in enumerate(downsampling):
        pos += (rows + ds - 1) // ds
        if c < channel:
            pos += (rows % ds == 0)
    return pos


def _total_samples(downsampling: np.ndarray, buffer_size: int) -> int:
    return int(sum((buffer_size + int(ds) - 1) // int(ds) for ds in downsampling))


def decode(
    buffer: bytes | bytearray | memoryview,
    *,
    version: FormatVersion | str = FormatVersion.CURRENT,
    config: PipelineConfig | None = None,
) -> DecodedFile:
    """
    Decode a whole measurement file held in memory.

    Raises TruncatedFileError / FormatError on malformed input and ConfigError
    when the header's max ADC value is zero. Nothing is returned on failure.
    """
    cfg = config or PipelineConfig()
    version = FormatVersion.parse(version)

    try:
        offset = 0
        header_text, offset = decode_string(buffer, offset)
        (buffer_size,), offset = _unpack("<I", buffer, offset)
        (start_time_raw,), offset = _unpack("<q", buffer, offset)
        (max_adc_value,), offset = _unpack("<h", buffer, offset)
        channel_range, offset = _unpack(f"<{N_RAW_CHANNELS}i", buffer, offset)
        channel_scaling, offset = _unpack(f"<{N_RAW_CHANNELS}h", buffer, offset)
        (sampling_interval_ns,), offset = _unpack("<I", buffer, offset)
        downsampling, offset = _unpack(f"<{N_RAW_CHANNELS}i", buffer, offset)
        units, offset = _read_strings(buffer, offset, N_RAW_CHANNELS)
        labels, offset = _read_strings(buffer, offset, N_RAW_CHANNELS)
    except struct.error as e:
        raise FormatError(f"cannot parse file header: {e}") from e

    for c, ds in enumerate(downsampling):
        if ds < 1:
            raise FormatError(f"downsampling factor of channel {c} must be >= 1, got {ds}")
    if max_adc_value == 0:
        raise ConfigError("max ADC value in file header is 0; refusing to convert samples.")

    header = FileHeader(
        header=header_text,
        buffer_size=buffer_size,
        start_time_raw=start_time_raw,
        start_time_ms=to_unix_ms(start_time_raw, horizon_ms=cfg.timestamp_horizon_ms),
        max_adc_value=max_adc_value,
        channel_range=channel_range,
        channel_scaling=channel_scaling,
        sampling_interval_ns=sampling_interval_ns,
        downsampling=downsampling,
        units=units,
        labels=labels,
        format_version=version,
    )
    _log.info(
        "HEADER header=%r buffer_size=%d sampling_interval_ns=%d start_time_ms=%d version=%s",
        header.header, header.buffer_size, header.sampling_interval_ns,
        header.start_time_ms, version.value,
    )

    channels = _decode_samples(buffer, offset, header)
    return DecodedFile(header=header, channels=channels)


def _decode_samples(buffer, offset: int, header: FileHeader) -> tuple[Channel, ...]:
    ds = np.asarray(header.downsampling, dtype=np.int64)
    total = _total_samples(ds, header.buffer_size)
    available = (len(buffer) - offset) // _SAMPLE_DTYPE.itemsize
    if available < total:
        raise TruncatedFileError(
            offset + available * _SAMPLE_DTYPE.itemsize,
            f"sample region needs {total} samples from offset {offset}, buffer holds {available}",
        )

    if total:
        samples = np.frombuffer(buffer, dtype=_SAMPLE_DTYPE, count=total, offset=offset)
    else:
        samples = np.empty(0, dtype=_SAMPLE_DTYPE)
    end = offset + total * _SAMPLE_DTYPE.itemsize
    if end < len(buffer):
        _log.debug("TRAILING_BYTES count=%d offset=%d", len(buffer) - end, end)

    channels: list[Channel] = []
    for c in range(N_RAW_CHANNELS):
        points = header.expected_points(c)
        raw = samples[_sample_positions(ds, c, points)]
        values = to_physical_array(
            raw, header.max_adc_value, header.channel_range[c], header.channel_scaling[c]
        )
        step_ns = header.sampling_interval_ns * header.downsampling[c]
        t = np.arange(points, dtype=np.float64) * step_ns / 1e9

        channel_id = raw_channel_id(c)
        channels.append(
            Channel(
                id=channel_id,
                series=TimeSeries(time=t, values=values, unit=header.units[c], name=channel_id),
                label=header.labels[c],
                unit=header.units[c],
                downsampling=header.downsampling[c],
                sampling_interval_ns=header.sampling_interval_ns,
                kind=ChannelKind.RAW,
            )
        )
        _log.debug("RAW_CHANNEL id=%s label=%r points=%d", channel_id, header.labels[c], points)

    return tuple(channels)


def read_file(
    path: str | Path,
    *,
    version: FormatVersion | str = FormatVersion.CURRENT,
    config: PipelineConfig | None = None,
) -> DecodedFile:
    """Read `path` into memory in one go and decode it."""
    path = Path(path)
    t0 = time.perf_counter()
    with path.open("rb") as fh:
        buffer = fh.read()
    _log.info("FILE_LOADED path=%s size_mb=%.1f", path, len(buffer) / 1024 / 1024)

    decoded = decode(buffer, version=version, config=config)
    _log.info("DECODE_DONE path=%s seconds=%.3f", path, time.perf_counter() - t0)
    return decoded
