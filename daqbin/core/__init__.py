# daqbin/core/__init__.py
"""
Core domain objects and algorithms for daqbin.

This module defines the format-independent part of the pipeline:
- TimeSeries: validated, immutable float32 signal over time
- Channel: raw or derived signal (id + TimeSeries + calibration context)
- FileHeader: decoded file metadata
- conversion: ADC -> physical values, legacy ticks -> Unix ms
- derive: the fixed set of derived engineering channels
- resample / statistics: plotting queries over one channel
- Recording: one loaded file, the context passed to plotting queries

The core layer does not read files; see daqbin.io.
"""

from .timeseries import TimeSeries
from .channel import Channel, raw_channel_id
from .metadata import (
    ChannelKind,
    FileHeader,
    FormatVersion,
    N_RAW_CHANNELS,
    TIMESTAMP_UNAVAILABLE,
)
from .conversion import RANGE_TABLE, to_physical, to_physical_array, to_unix_ms
from .derive import DERIVED_CHANNELS, DerivedChannelDef, derive
from .resample import ChannelStatistics, ResampledSeries, resample, statistics
from .recording import Recording, axis_for_unit
from .exceptions import (
    CoreError,
    InvalidTimeSeries,
    InvalidChannel,
    InvalidHeader,
    InvalidRecording,
    FormatError,
    TruncatedFileError,
    ConfigError,
    ChannelNotFound,
    DerivationWarning,
    MissingSourceChannelWarning,
    SourceLengthMismatchWarning,
)


__all__ = [
    # time series / channels
    "TimeSeries",
    "Channel",
    "ChannelKind",
    "raw_channel_id",

    # metadata
    "FileHeader",
    "FormatVersion",
    "N_RAW_CHANNELS",
    "TIMESTAMP_UNAVAILABLE",

    # pipeline
    "RANGE_TABLE",
    "to_physical",
    "to_physical_array",
    "to_unix_ms",
    "DERIVED_CHANNELS",
    "DerivedChannelDef",
    "derive",
    "ResampledSeries",
    "ChannelStatistics",
    "resample",
    "statistics",
    "Recording",
    "axis_for_unit",

    # exceptions
    "CoreError",
    "InvalidTimeSeries",
    "InvalidChannel",
    "InvalidHeader",
    "InvalidRecording",
    "FormatError",
    "TruncatedFileError",
    "ConfigError",
    "ChannelNotFound",

    # warnings
    "DerivationWarning",
    "MissingSourceChannelWarning",
    "SourceLengthMismatchWarning",
]
