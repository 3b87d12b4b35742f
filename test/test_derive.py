import warnings

import numpy as np
import pytest

from daqbin.core import Channel, ChannelKind, TimeSeries
from daqbin.core.derive import C1, C2, DERIVED_CHANNELS, K1, dependency_waves, derive
from daqbin.core.exceptions import MissingSourceChannelWarning, SourceLengthMismatchWarning


def _raw(index: int, values, *, downsampling: int = 1, interval_ns: int = 1_000_000):
    v = np.asarray(values, dtype=float)
    dt = interval_ns * downsampling / 1e9
    return Channel(
        id=f"channel_{index}",
        series=TimeSeries(time=np.arange(v.size) * dt, values=v),
        label=f"CH{index}",
        unit="V",
        downsampling=downsampling,
        sampling_interval_ns=interval_ns,
    )


@pytest.fixture
def raw_channels():
    rng = np.random.default_rng(7)
    return [_raw(c, rng.normal(0.0, 10.0, size=50)) for c in range(8)]


def test_d0_example():
    raw = [_raw(0, [1, 2, 3]), _raw(1, [0, 1, 1])] + [_raw(c, [0, 0, 0]) for c in range(2, 8)]
    out = derive(raw)
    assert np.allclose(out["D0"].values, [-1, -3, -4])


def test_all_seven_channels_in_table_order(raw_channels):
    out = derive(raw_channels)
    assert list(out) == ["D0", "D1", "D2", "D3", "D4", "D5", "D6"]
    assert [out[k].label for k in out] == [
        "UL3L1", "IL2GR1", "IL2GR2", "I_DC_GR1", "I_DC_GR2", "U_DC", "F_Schlitten",
    ]
    assert all(ch.kind is ChannelKind.DERIVED for ch in out.values())


def test_formulas(raw_channels):
    r = [ch.values.astype(np.float64) for ch in raw_channels]
    out = derive(raw_channels)

    d0 = -r[0] - r[1]
    d1 = -r[2] - r[3]
    d2 = -r[4] - r[5]
    assert np.allclose(out["D0"].values, d0, rtol=1e-5)
    assert np.allclose(out["D1"].values, d1, rtol=1e-5)
    assert np.allclose(out["D2"].values, d2, rtol=1e-5)
    assert np.allclose(out["D3"].values, K1 * (np.abs(r[2]) + np.abs(r[3]) + np.abs(d1)), rtol=1e-5)
    assert np.allclose(out["D4"].values, K1 * (np.abs(r[4]) + np.abs(r[5]) + np.abs(d2)), rtol=1e-5)
    assert np.allclose(out["D5"].values, (np.abs(r[0]) + np.abs(r[1]) + np.abs(d0)) / K1, rtol=1e-5)
    assert np.allclose(out["D6"].values, r[6] * C1 - r[7] * C2, rtol=1e-5, atol=1e-4)


def test_time_axis_and_downsampling_from_primary_source():
    raw = [_raw(c, np.ones(4), downsampling=3 if c == 6 else 1) for c in range(8)]
    out = derive(raw)
    d6 = out["D6"]
    assert d6.downsampling == 3
    assert d6.points == raw[6].points
    assert np.array_equal(d6.time, raw[6].time)
    assert d6.dt == raw[6].dt
    assert d6.sources == ("channel_6", "channel_7")
    assert out["D3"].sources == ("channel_2", "channel_3", "D1")
    assert out["D3"].primary_source == "channel_2"


def test_missing_source_skips_only_dependants(raw_channels):
    raw = list(raw_channels)
    raw[3] = None
    with pytest.warns(MissingSourceChannelWarning) as record:
        out = derive(raw)

    assert "D1" not in out
    assert "D3" not in out
    assert set(out) == {"D0", "D2", "D4", "D5", "D6"}
    messages = " ".join(str(w.message) for w in record)
    assert "D1" in messages and "D3" in messages


def test_mapping_input_by_index_or_id(raw_channels):
    by_index = {c: ch for c, ch in enumerate(raw_channels) if c not in (6, 7)}
    with pytest.warns(MissingSourceChannelWarning):
        out = derive(by_index)
    assert "D6" not in out and "D5" in out

    by_id = {ch.id: ch for ch in raw_channels}
    assert list(derive(by_id)) == [d.id for d in DERIVED_CHANNELS]


def test_length_mismatch_is_flagged_not_truncated(raw_channels):
    raw = list(raw_channels)
    raw[7] = _raw(7, np.zeros(raw[6].points - 1))
    with pytest.warns(SourceLengthMismatchWarning):
        out = derive(raw)
    assert "D6" not in out
    assert "D0" in out


def test_no_warning_when_complete(raw_channels):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        derive(raw_channels)


def test_inputs_are_not_modified(raw_channels):
    before = [ch.values.copy() for ch in raw_channels]
    derive(raw_channels)
    for ch, b in zip(raw_channels, before):
        assert np.array_equal(ch.values, b)


def test_parallel_matches_sequential(raw_channels):
    seq = derive(raw_channels)
    par = derive(raw_channels, max_workers=4)
    assert list(seq) == list(par)
    for key in seq:
        assert np.array_equal(seq[key].values, par[key].values)
        assert np.array_equal(seq[key].time, par[key].time)


def test_parallel_missing_source_still_warns(raw_channels):
    raw = list(raw_channels)
    raw[0] = None
    with pytest.warns(MissingSourceChannelWarning):
        out = derive(raw, max_workers=3)
    assert "D0" not in out and "D5" not in out
    assert "D6" in out


def test_dependency_waves():
    waves = [[d.id for d in wave] for wave in dependency_waves()]
    assert waves == [["D0", "D1", "D2", "D6"], ["D3", "D4", "D5"]]
