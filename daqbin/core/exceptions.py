# daqbin/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all daqbin exceptions."""


# ---- Validation / construction errors ----
class InvalidTimeSeries(CoreError):
    """Raised when a TimeSeries is constructed with invalid inputs."""


class InvalidChannel(CoreError):
    """Raised when a Channel is constructed with invalid inputs."""


class InvalidHeader(CoreError):
    """Raised when a FileHeader is constructed with inconsistent fields."""


class InvalidRecording(CoreError):
    """Raised when a Recording is constructed with invalid inputs."""


# ---- Decode errors (abort the whole decode) ----
class FormatError(CoreError):
    """Raised when the input buffer is malformed."""


class TruncatedFileError(FormatError):
    """Raised when a read would run past the end of the buffer."""

    def __init__(self, offset: int, message: str | None = None) -> None:
        self.offset = int(offset)
        super().__init__(message or f"unexpected end of buffer at offset {self.offset}")


class ConfigError(CoreError):
    """Raised when the file calibration cannot be applied (e.g. max ADC value of zero)."""


# ---- Lookup errors (also behave like KeyError for dict-like APIs) ----
class ChannelNotFound(CoreError, KeyError):
    """Raised when a requested channel id is not present."""


# ---- Non-fatal warnings ----
class DerivationWarning(UserWarning):
    """Base warning for a derived channel that could not be computed."""


class MissingSourceChannelWarning(DerivationWarning):
    """A source channel of a derived channel is absent; the derived channel is skipped."""


class SourceLengthMismatchWarning(DerivationWarning):
    """Source channels of a derived channel have different point counts; it is skipped."""
