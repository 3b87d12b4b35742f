import struct

import numpy as np
import pytest

from daqbin.io.varint import encode_string


EPOCH_OFFSET_TICKS = 621355968000000000


def build_file(
    *,
    header: str = "DAQ Messdaten V2",
    buffer_size: int = 6,
    start_time_raw: int = EPOCH_OFFSET_TICKS + 36_000_000_000,
    max_adc: int = 32767,
    ranges=(8,) * 8,
    scaling=(1000,) * 8,
    interval_ns: int = 1_000_000,
    downsampling=(1,) * 8,
    units=("V",) * 8,
    labels=tuple(f"CH{i}" for i in range(8)),
    samples=None,
    trailing: bytes = b"",
) -> bytes:
    """
    Write a measurement file the way the instrument does.

    `samples[c]` lists the ADC values of channel c in stream order; it must
    hold one entry per row j with j % downsampling[c] == 0. When omitted,
    channel c gets the values 100*c + k.
    """
    out = bytearray()
    out += encode_string(header)
    out += struct.pack("<I", buffer_size)
    out += struct.pack("<q", start_time_raw)
    out += struct.pack("<h", max_adc)
    out += struct.pack("<8i", *ranges)
    out += struct.pack("<8h", *scaling)
    out += struct.pack("<I", interval_ns)
    out += struct.pack("<8i", *downsampling)
    for u in units:
        out += encode_string(u)
    for label in labels:
        out += encode_string(label)

    if samples is None:
        samples = [
            [100 * c + k for k in range(len(range(0, buffer_size, downsampling[c])))]
            for c in range(8)
        ]
    cursors = [0] * 8
    for j in range(buffer_size):
        for c in range(8):
            if j % downsampling[c] == 0:
                out += struct.pack("<h", samples[c][cursors[c]])
                cursors[c] += 1
    out += trailing
    return bytes(out)


@pytest.fixture
def make_file():
    return build_file


@pytest.fixture
def simple_file():
    return build_file()


@pytest.fixture
def mixed_downsampling_file():
    rng = np.random.default_rng(1234)
    ds = (1, 2, 3, 1, 4, 1, 5, 2)
    n = 23
    samples = [
        [int(x) for x in rng.integers(-32768, 32767, size=len(range(0, n, ds[c])))]
        for c in range(8)
    ]
    data = build_file(
        buffer_size=n,
        downsampling=ds,
        ranges=(0, 3, 6, 8, 9, 13, 99, -1),
        scaling=(1000, 500, -250, 35, 1, 2000, 1000, 7),
        max_adc=8192,
        samples=samples,
    )
    return data, samples, ds, n
