# daqbin/io/varint.py
"""Length-prefixed UTF-8 strings with a 7-bit-per-byte continuation length."""
from __future__ import annotations

from daqbin.core.exceptions import FormatError, TruncatedFileError

# A 32-bit length never needs more than 5 prefix bytes.
_MAX_PREFIX_BYTES = 5


def decode_string(buffer: bytes | bytearray | memoryview, offset: int) -> tuple[str, int]:
    """Decode one string at `offset`; return (text, offset just past it)."""
    size = len(buffer)
    length = 0
    shift = 0
    pos = offset

    for _ in range(_MAX_PREFIX_BYTES):
        if pos >= size:
            raise TruncatedFileError(pos)
        byte = buffer[pos]
        pos += 1
        length |= (byte & 0x7F) << shift
        if byte & 0x80 == 0:
            break
        shift += 7
    else:
        raise FormatError(f"string length prefix at offset {offset} exceeds {_MAX_PREFIX_BYTES} bytes")

    if length == 0:
        return "", pos

    end = pos + length
    if end > size:
        raise TruncatedFileError(pos, f"string of {length} bytes at offset {pos} runs past end of buffer ({size})")

    text = bytes(buffer[pos:end]).decode("utf-8", errors="replace")
    return text, end


def encode_string(text: str) -> bytes:
    """Inverse of `decode_string`."""
    data = text.encode("utf-8")
    n = len(data)
    prefix = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            prefix.append(byte | 0x80)
        else:
            prefix.append(byte)
            break
    return bytes(prefix) + data
