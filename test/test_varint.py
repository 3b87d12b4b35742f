import pytest

from daqbin.core.exceptions import FormatError, TruncatedFileError
from daqbin.io.varint import decode_string, encode_string


def test_zero_length_string():
    assert decode_string(b"\x00", 0) == ("", 1)


def test_zero_length_does_not_consume_following_bytes():
    assert decode_string(b"\x00hello", 0) == ("", 1)


def test_short_string():
    assert decode_string(bytes([0x05]) + b"hello", 0) == ("hello", 6)


def test_decode_at_offset():
    data = b"xx" + bytes([0x02]) + b"ok" + b"rest"
    assert decode_string(data, 2) == ("ok", 5)


def test_multi_byte_length_prefix():
    text = "a" * 300
    data = bytes([0xAC, 0x02]) + text.encode()  # 300 = 0b10_0101100
    assert decode_string(data, 0) == (text, 302)


def test_utf8_content():
    raw = "Kraft µm".encode("utf-8")
    assert decode_string(bytes([len(raw)]) + raw, 0) == ("Kraft µm", 1 + len(raw))


def test_invalid_utf8_is_replaced_not_rejected():
    text, end = decode_string(b"\x02\xff\xfe", 0)
    assert end == 3
    assert "�" in text


def test_truncated_prefix():
    with pytest.raises(TruncatedFileError) as exc:
        decode_string(b"\x85", 0)
    assert exc.value.offset == 1


def test_empty_buffer():
    with pytest.raises(TruncatedFileError) as exc:
        decode_string(b"", 0)
    assert exc.value.offset == 0


def test_truncated_payload():
    with pytest.raises(TruncatedFileError):
        decode_string(b"\x05hel", 0)


def test_overlong_prefix_is_malformed():
    with pytest.raises(FormatError):
        decode_string(b"\x80\x80\x80\x80\x80\x01", 0)


@pytest.mark.parametrize("text", ["", "V", "x" * 127, "y" * 128, "z" * 20000])
def test_encode_matches_decoder(text):
    data = encode_string(text)
    assert decode_string(data, 0) == (text, len(data))
