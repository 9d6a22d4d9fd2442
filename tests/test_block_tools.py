import base64
import os

import pytest

import Cryptodome.Util.Counter
from Cryptodome.Cipher import AES

import block_tools
from block_tools import PaddingError, pkcs7_pad, pkcs7_unpad

KEY = b"YELLOW SUBMARINE"
SECRET = (b"Rollin' in my 5.0\nWith my rag-top down so my hair can blow\n"
          b"The girlies on standby waving just to say hi\n")


@pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 31, 32, 100])
def test_pkcs7_pad_and_unpad(length):
    message = os.urandom(length)
    padded = pkcs7_pad(message)
    assert len(padded) % 16 == 0
    assert len(padded) > len(message)
    assert pkcs7_unpad(padded) == message


def test_pkcs7_pad_adds_full_block_to_aligned_input():
    assert pkcs7_pad(b"YELLOW SUBMARINE") == b"YELLOW SUBMARINE" + b"\x10" * 16
    assert pkcs7_pad(b"YELLOW SUBMARINE", 20) == b"YELLOW SUBMARINE\x04\x04\x04\x04"


def test_pkcs7_unpad_rejects_zero_padding():
    with pytest.raises(PaddingError) as excinfo:
        pkcs7_unpad(b"ICE ICE BABY\x00\x00\x00\x00")
    assert excinfo.value.padding_length == 0


def test_pkcs7_unpad_rejects_inconsistent_padding():
    with pytest.raises(PaddingError) as excinfo:
        pkcs7_unpad(b"ICE ICE BABY\x01\x02\x03\x04")
    assert excinfo.value.padding_length == 4
    assert excinfo.value.bad_byte == 3

    with pytest.raises(PaddingError) as excinfo:
        pkcs7_unpad(b"ICE ICE BABY\x05\x05\x05\x05")
    assert excinfo.value.padding_length == 5
    assert excinfo.value.bad_byte == ord("Y")


def test_pkcs7_unpad_reports_mismatch_nearest_the_end():
    with pytest.raises(PaddingError) as excinfo:
        pkcs7_unpad(b"ICE ICE BA\x07\x09\x05\x05\x05")
    assert excinfo.value.padding_length == 5
    assert excinfo.value.bad_byte == 9


def test_pkcs7_unpad_rejects_padding_longer_than_input():
    with pytest.raises(PaddingError):
        pkcs7_unpad(b"\x03\x03")
    with pytest.raises(PaddingError):
        pkcs7_unpad(b"")


def test_padding_error_is_value_error():
    assert issubclass(PaddingError, ValueError)
    assert not block_tools.pkcs7_padding_is_valid(b"ICE ICE BABY\x05\x05\x05\x05")
    assert block_tools.pkcs7_padding_is_valid(b"ICE ICE BABY\x04\x04\x04\x04")


def test_aes_block_functions_need_one_block():
    with pytest.raises(ValueError):
        block_tools.aes_encrypt_block(b"too short", KEY)
    with pytest.raises(ValueError):
        block_tools.aes_decrypt_block(b"A" * 32, KEY)
    block = os.urandom(16)
    assert block_tools.aes_decrypt_block(block_tools.aes_encrypt_block(block, KEY), KEY) == block


def test_ecb_known_answer():
    ciphertext = block_tools.aes_encrypt(b"YELLOW SUBMARINE" * 2, KEY, "ECB")
    assert ciphertext.hex() == "d1aa4f6578926542fbb6dd876cd20508" * 2


def test_cbc_known_answer():
    ciphertext = block_tools.aes_encrypt(b"YELLOW SUBMARINE" * 2, KEY, "CBC", bytes(16))
    assert ciphertext.hex().startswith(
        "d1aa4f6578926542fbb6dd876cd20508eaed974f65b7a3a9240d36daef1a31e")


@pytest.mark.parametrize("mode", ["ECB", "CBC"])
def test_block_modes_reject_unaligned_input(mode):
    args = [bytes(16)] if mode == "CBC" else []
    with pytest.raises(ValueError):
        block_tools.aes_encrypt(b"A" * 17, KEY, mode, *args)
    with pytest.raises(ValueError):
        block_tools.aes_decrypt(b"A" * 15, KEY, mode, *args)


def test_cbc_matches_library_implementation():
    key = block_tools.random_aes_key()
    iv = os.urandom(16)
    plaintext = os.urandom(80)
    ciphertext = block_tools.aes_encrypt(plaintext, key, "CBC", iv)
    assert ciphertext == AES.new(key, AES.MODE_CBC, iv).encrypt(plaintext)
    assert block_tools.aes_decrypt(ciphertext, key, "CBC", iv) == plaintext


def test_cbc_with_padding():
    key = block_tools.random_aes_key()
    iv = os.urandom(16)
    ciphertext = block_tools.aes_encrypt(SECRET, key, "CBC", iv, pad=True)
    assert block_tools.aes_decrypt(ciphertext, key, "CBC", iv, unpad=True) == SECRET


@pytest.mark.parametrize("length", [0, 1, 16, 35])
def test_ctr_matches_library_implementation(length):
    key = block_tools.random_aes_key()
    nonce = os.urandom(8)
    plaintext = os.urandom(length)
    counter = Cryptodome.Util.Counter.new(
        nbits=64, prefix=nonce, initial_value=3, little_endian=True)
    expected = AES.new(key, AES.MODE_CTR, counter=counter).encrypt(plaintext)
    ciphertext = block_tools.aes_encrypt(plaintext, key, "CTR", nonce, block_index=3)
    assert ciphertext == expected
    assert block_tools.aes_decrypt(ciphertext, key, "CTR", nonce, block_index=3) == plaintext


def test_ctr_known_answer():
    ciphertext = base64.b64decode(
        "L77na/nrFsKvynd6HzOoG7GHTLXsTVu9qvY/2syLXzhPweyyMTJULu/6/kXX0KSvoOLSFQ==")
    plaintext = block_tools.aes_decrypt(ciphertext, KEY, "CTR", bytes(8))
    assert plaintext.startswith(b"Yo, VIP Let's kick it Ice, Ice, baby")
    assert len(plaintext) == len(ciphertext)


def test_ctr_rejects_bad_nonce():
    with pytest.raises(ValueError):
        block_tools.aes_encrypt(b"data", KEY, "CTR", bytes(16))


def make_ecb_oracle(secret, prefix=b""):
    key = block_tools.random_aes_key()

    def oracle_fn(attacker_bytes):
        return block_tools.aes_encrypt(prefix + attacker_bytes + secret, key, "ECB", pad=True)

    return oracle_fn


def make_cbc_oracle(secret):
    key = block_tools.random_aes_key()

    def oracle_fn(attacker_bytes):
        iv = os.urandom(16)
        return block_tools.aes_encrypt(attacker_bytes + secret, key, "CBC", iv, pad=True)

    return oracle_fn


def test_detect_block_size():
    assert block_tools.detect_block_size(make_ecb_oracle(SECRET)) == 16
    assert block_tools.detect_block_size(make_cbc_oracle(b"")) == 16


def test_detect_block_size_without_jump():
    assert block_tools.detect_block_size(lambda x: bytes(20)) is None


def test_detect_ecb():
    assert block_tools.detect_ecb(make_ecb_oracle(SECRET, prefix=os.urandom(7)))
    assert not block_tools.detect_ecb(make_cbc_oracle(SECRET))

    key = block_tools.random_aes_key()
    nonce = os.urandom(8)
    assert not block_tools.detect_ecb(
        lambda x: block_tools.aes_encrypt(x + SECRET, key, "CTR", nonce))


def test_looks_like_ecb():
    assert block_tools.looks_like_ecb(b"A" * 16 + b"B" * 16 + b"A" * 16)
    assert not block_tools.looks_like_ecb(b"A" * 16 + b"B" * 16)


@pytest.mark.parametrize("secret_length", [0, 1, 15, 16, 17, len(SECRET)])
def test_crack_ecb_oracle(secret_length):
    secret = SECRET[:secret_length]
    assert block_tools.extract_fixed_suffix(make_ecb_oracle(secret), 16) == secret


def test_crack_ecb_oracle_with_binary_secret():
    secret = bytes(range(256)) + b"\x01"
    assert block_tools.crack_ecb_oracle(make_ecb_oracle(secret)) == secret


@pytest.mark.parametrize("prefix_length", [0, 1, 5, 16, 23, 40])
def test_crack_ecb_oracle_with_prefix(prefix_length):
    prefix = bytes(range(100, 100 + prefix_length))
    oracle_fn = make_ecb_oracle(SECRET, prefix=prefix)
    assert block_tools.detect_prefix_length(oracle_fn) == prefix_length
    assert block_tools.crack_ecb_oracle(oracle_fn, prefix_length=prefix_length) == SECRET


def test_detect_prefix_length_rejects_cbc():
    with pytest.raises(ValueError):
        block_tools.detect_prefix_length(make_cbc_oracle(SECRET))


def test_crack_ecb_oracle_detects_broken_oracle():
    # Output that doesn't depend on the input never lets a guess match past
    # the first byte, and the first byte is not a padding byte.
    def oracle_fn(attacker_bytes):
        return os.urandom(32)

    with pytest.raises(block_tools.CantRecoverByteError):
        block_tools.crack_ecb_oracle(oracle_fn)
