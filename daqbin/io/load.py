# daqbin/io/load.py
from __future__ import annotations

import logging
from pathlib import Path

from daqbin.config import PipelineConfig
from daqbin.core import FormatVersion, Recording, derive
from daqbin.io.reader import DecodedFile, decode, read_file

_log = logging.getLogger(__name__)


def load_recording(
    source: str | Path | bytes | bytearray | memoryview,
    *,
    config: PipelineConfig | None = None,
    version: FormatVersion | str | None = None,
    name: str | None = None,
) -> Recording:
    """
    Decode a measurement file (path or in-memory buffer) into a Recording.

    Derived channels are computed for FormatVersion.CURRENT files only.
    """
    cfg = config or PipelineConfig()
    fmt = FormatVersion.parse(version) if version is not None else cfg.format_version

    if isinstance(source, (bytes, bytearray, memoryview)):
        decoded: DecodedFile = decode(source, version=fmt, config=cfg)
        rec_name = name or "<buffer>"
        rec_source = None
    else:
        path = Path(source)
        decoded = read_file(path, version=fmt, config=cfg)
        rec_name = name or path.stem
        rec_source = str(path)

    derived = {}
    if fmt.has_derived_channels:
        derived = derive(decoded.channels, max_workers=cfg.derive_workers or None)
    else:
        _log.info("DERIVE_SKIPPED version=%s", fmt.value)

    return Recording.from_channels(
        decoded.header,
        decoded.channels,
        derived.values(),
        name=rec_name,
        source=rec_source,
        max_points=cfg.max_points,
        significance_ratio=cfg.significance_ratio,
        near_zero=cfg.near_zero_average,
    )
