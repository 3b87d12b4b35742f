from datetime import datetime, timezone

import pytest

from daqbin.core import FileHeader, FormatVersion, InvalidHeader, TIMESTAMP_UNAVAILABLE


def _header(**overrides):
    fields = dict(
        header="DAQ",
        buffer_size=10,
        start_time_raw=0,
        start_time_ms=3_600_000,
        max_adc_value=32767,
        channel_range=[8] * 8,
        channel_scaling=[1000] * 8,
        sampling_interval_ns=1_000_000,
        downsampling=[1, 2, 3, 4, 1, 1, 1, 1],
        units=["V"] * 8,
        labels=[f"CH{i}" for i in range(8)],
    )
    fields.update(overrides)
    return FileHeader(**fields)


def test_header_normalizes_sequences_to_tuples():
    h = _header()
    assert isinstance(h.channel_range, tuple)
    assert isinstance(h.labels, tuple)
    assert h.format_version is FormatVersion.CURRENT


def test_header_expected_points_and_dt():
    h = _header()
    assert [h.expected_points(c) for c in range(4)] == [10, 5, 3, 2]
    assert h.channel_dt(3) == pytest.approx(0.004)
    assert h.sampling_rate_hz == pytest.approx(1000.0)


def test_header_rejects_wrong_channel_count():
    with pytest.raises(InvalidHeader):
        _header(units=["V"] * 7)


def test_header_rejects_zero_downsampling():
    with pytest.raises(InvalidHeader):
        _header(downsampling=[0] + [1] * 7)


def test_timestamp_available():
    h = _header()
    assert h.has_timestamp
    assert h.start_datetime == datetime(1970, 1, 1, 1, 0, tzinfo=timezone.utc)


def test_timestamp_unavailable_is_distinct_from_a_date():
    h = _header(start_time_ms=TIMESTAMP_UNAVAILABLE)
    assert not h.has_timestamp
    assert h.start_datetime is None


def test_zero_sampling_interval_has_no_rate():
    assert _header(sampling_interval_ns=0).sampling_rate_hz is None


def test_format_version_parse():
    assert FormatVersion.parse("Legacy") is FormatVersion.LEGACY
    assert FormatVersion.parse(FormatVersion.CURRENT) is FormatVersion.CURRENT
    assert FormatVersion.CURRENT.has_derived_channels
    assert not FormatVersion.LEGACY.has_derived_channels
    with pytest.raises(ValueError):
        FormatVersion.parse("v3")
