import pytest

from util import chunks, pretty_hex_bytes, xor_bytes


def test_xor_bytes():
    assert (xor_bytes(bytes.fromhex("1c0111001f010100061a024b53535009181c"),
                      bytes.fromhex("686974207468652062756c6c277320657965")) ==
            b"the kid don't play")


def test_xor_bytes_with_more_than_two_inputs():
    assert xor_bytes(b"\x01\x02", b"\x02\x04", b"\x04\x08") == b"\x07\x0e"


def test_xor_bytes_rejects_unequal_lengths():
    with pytest.raises(ValueError):
        xor_bytes(b"abc", b"ab")


def test_chunks():
    assert chunks(b"abcdefg", 3) == [b"abc", b"def", b"g"]
    assert chunks(b"") == []


def test_pretty_hex_bytes():
    assert pretty_hex_bytes(b"\x00\xab\x10") == "00 ab 10"
