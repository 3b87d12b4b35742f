# daqbin/config.py
from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path

from daqbin.core.metadata import FormatVersion

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class PipelineConfig:
    format_version: FormatVersion = FormatVersion.CURRENT
    timestamp_horizon_days: int = 365
    max_points: int = 2000
    significance_ratio: float = 0.1
    near_zero_average: float = 1e-9
    derive_workers: int = 0
    log_level: str = "INFO"
    ini_path: Path | None = None

    @property
    def timestamp_horizon_ms(self) -> int:
        return int(self.timestamp_horizon_days) * 24 * 3600 * 1000

    def setup_logging(self, log_path: Path | None = None) -> None:
        """Install the daqbin log handlers at `log_level`."""
        configure_logging(self.log_level, log_path)

    @classmethod
    def load(cls, ini_path: str | Path | None = None) -> "PipelineConfig":
        cfg = cls()
        path = Path(ini_path or "daqbin.ini")
        if path.exists():
            parser = configparser.ConfigParser()
            parser.read(path)

            decode = parser["decode"] if "decode" in parser else None
            if decode:
                raw_version = decode.get("format_version", fallback=cfg.format_version.value)
                try:
                    cfg.format_version = FormatVersion.parse(raw_version)
                except ValueError:
                    pass
                cfg.timestamp_horizon_days = _positive(
                    decode.getint("timestamp_horizon_days", fallback=cfg.timestamp_horizon_days),
                    cfg.timestamp_horizon_days,
                )

            resample = parser["resample"] if "resample" in parser else None
            if resample:
                cfg.max_points = _positive(
                    resample.getint("max_points", fallback=cfg.max_points), cfg.max_points
                )
                cfg.significance_ratio = _non_negative(
                    resample.getfloat("significance_ratio", fallback=cfg.significance_ratio),
                    cfg.significance_ratio,
                )
                cfg.near_zero_average = _non_negative(
                    resample.getfloat("near_zero_average", fallback=cfg.near_zero_average),
                    cfg.near_zero_average,
                )

            derive = parser["derive"] if "derive" in parser else None
            if derive:
                cfg.derive_workers = _non_negative(
                    derive.getint("workers", fallback=cfg.derive_workers), cfg.derive_workers
                )

            log_section = parser["logging"] if "logging" in parser else None
            if log_section:
                level = log_section.get("level", fallback=cfg.log_level).strip().upper()
                if isinstance(logging.getLevelName(level), int):
                    cfg.log_level = level
        cfg.ini_path = path
        return cfg

    def save(self) -> None:
        if self.ini_path is None:
            return
        parser = configparser.ConfigParser()
        parser["decode"] = {
            "format_version": self.format_version.value,
            "timestamp_horizon_days": str(self.timestamp_horizon_days),
        }
        parser["resample"] = {
            "max_points": str(self.max_points),
            "significance_ratio": f"{self.significance_ratio:g}",
            "near_zero_average": f"{self.near_zero_average:g}",
        }
        parser["derive"] = {"workers": str(self.derive_workers)}
        parser["logging"] = {"level": self.log_level}
        with self.ini_path.open("w") as fh:
            parser.write(fh)


def _positive(value, default):
    return value if value > 0 else default


def _non_negative(value, default):
    return value if value >= 0 else default


def configure_logging(level: str | int = "INFO", log_path: Path | None = None) -> None:
    """
    Attach a stream handler (and optionally a file handler) to the root logger.
    Idempotent: handlers already installed by this function are not duplicated.
    """
    root = logging.getLogger()
    formatter = logging.Formatter(_LOG_FORMAT)

    if not any(getattr(h, "_daqbin", False) and not isinstance(h, logging.FileHandler) for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        sh._daqbin = True  # type: ignore[attr-defined]
        root.addHandler(sh)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        target = str(log_path.resolve())
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        ):
            fh = logging.FileHandler(log_path, encoding="utf-8", delay=True)
            fh.setFormatter(formatter)
            fh._daqbin = True  # type: ignore[attr-defined]
            root.addHandler(fh)

    root.setLevel(level if isinstance(level, int) else str(level).upper())
