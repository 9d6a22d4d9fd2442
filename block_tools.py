import struct

from collections import Counter
from itertools import count
from os import urandom

from Cryptodome.Cipher import AES

from english import all_bytes_by_frequency
from util import chunks, pretty_hex_bytes, xor_bytes

# Longest input detect_block_size will try before giving up.
MAX_BLOCK_SIZE_PROBE = 64


class PaddingError(ValueError):
    """Raised by pkcs7_unpad.

    padding_length is the value of the last byte (the padding length the
    input claims to have) and bad_byte is the byte of the claimed padding
    closest to the end that doesn't match it, or None if the claim itself is
    impossible.
    """

    def __init__(self, message, padding_length=None, bad_byte=None):
        super().__init__(message)
        self.padding_length = padding_length
        self.bad_byte = bad_byte


class CantRecoverByteError(Exception):
    pass


def aes_encrypt_block(block, key):
    if len(block) != AES.block_size:
        raise ValueError("block must be {} bytes long".format(AES.block_size))
    return AES.new(key, AES.MODE_ECB).encrypt(block)


def aes_decrypt_block(block, key):
    if len(block) != AES.block_size:
        raise ValueError("block must be {} bytes long".format(AES.block_size))
    return AES.new(key, AES.MODE_ECB).decrypt(block)


def aes_encrypt(plaintext, key, mode, *args, pad=False, **kwargs):
    cipher = globals()["_aes_" + mode + "_cipher"](key, *args, **kwargs)
    return cipher.encrypt(pkcs7_pad(plaintext) if pad else plaintext)


def aes_decrypt(ciphertext, key, mode, *args, unpad=False, **kwargs):
    cipher = globals()["_aes_" + mode + "_cipher"](key, *args, **kwargs)
    plaintext = cipher.decrypt(ciphertext)
    return pkcs7_unpad(plaintext) if unpad else plaintext


def _aes_ECB_cipher(key):
    return AES.new(key, AES.MODE_ECB)


def _aes_CBC_cipher(key, iv):
    return CbcCipher(key, iv)


def _aes_CTR_cipher(key, nonce, block_index=0):
    return CtrCipher(key, nonce, block_index)


def _check_block_alignment(data, block_size=AES.block_size):
    if len(data) % block_size != 0:
        raise ValueError("data length must be a multiple of {}".format(block_size))


class CbcCipher:
    def __init__(self, key, iv):
        if len(iv) != AES.block_size:
            raise ValueError("iv must be {} bytes long".format(AES.block_size))
        self.key = key
        self.iv = iv

    def encrypt(self, plaintext):
        _check_block_alignment(plaintext)
        result = bytearray()
        prev_cipher_block = self.iv
        for plain_block in chunks(plaintext):
            cipher_block = aes_encrypt_block(xor_bytes(prev_cipher_block, plain_block), self.key)
            result += cipher_block
            prev_cipher_block = cipher_block
        return bytes(result)

    def decrypt(self, ciphertext):
        _check_block_alignment(ciphertext)
        result = bytearray()
        prev_cipher_block = self.iv
        for cipher_block in chunks(ciphertext):
            result += xor_bytes(prev_cipher_block, aes_decrypt_block(cipher_block, self.key))
            prev_cipher_block = cipher_block
        return bytes(result)


class CtrCipher:
    # The nonce and the counter each fill half of the counter block, and the
    # counter is a 64-bit little-endian integer.

    def __init__(self, key, nonce, block_index=0):
        if len(nonce) != AES.block_size // 2:
            raise ValueError("nonce must be {} bytes long".format(AES.block_size // 2))
        self.key = key
        self.nonce = nonce
        self.block_index = block_index

    def keystream_blocks(self):
        for i in count(start=self.block_index):
            yield aes_encrypt_block(self.nonce + struct.pack("<Q", i), self.key)

    def encrypt(self, input_bytes):
        result = bytearray()
        for block, keystream in zip(chunks(input_bytes), self.keystream_blocks()):
            result += xor_bytes(block, keystream[:len(block)])
        return bytes(result)

    decrypt = encrypt


def looks_like_ecb(ciphertext, block_size=16):
    # TODO: use birthday paradox to calculate an estimate for the expected
    # number of duplicate blocks so this function works on big ciphertexts.
    block_counter = Counter(chunks(ciphertext, block_size))
    return block_counter.most_common(1)[0][1] > 1


def random_aes_key():
    return urandom(16)


def detect_block_size(oracle_fn):
    """Return the block size of oracle_fn's cipher, or None.

    Longer and longer inputs are fed to oracle_fn until the length of its
    output changes. The size of that jump is the block size.
    """
    prev_size = None
    for input_length in range(1, MAX_BLOCK_SIZE_PROBE + 1):
        size = len(oracle_fn(b"A" * input_length))
        if prev_size is not None and size != prev_size:
            return size - prev_size
        prev_size = size
    return None


def detect_ecb(oracle_fn, block_size=16):
    # 3 blocks of identical input always contain 2 full blocks that are
    # block-aligned, wherever oracle_fn puts them.
    return looks_like_ecb(oracle_fn(bytes(3 * block_size)), block_size)


def detect_prefix_length(oracle_fn, block_size=16):
    """Return the length of the unknown bytes oracle_fn puts before its input.

    The prefix must be the same on every call. This assumes the prefix
    doesn't end with b"A", the byte used to fill the probes.
    """
    test_output = oracle_fn(b"A" * (3*block_size))
    if not looks_like_ecb(test_output, block_size):
        raise ValueError("oracle_fn does not appear to produce ECB mode output")
    blocks = chunks(test_output, block_size)
    attacker_block, attacker_block_count = Counter(blocks).most_common(1)[0]
    for i in range(block_size):
        blocks = chunks(oracle_fn(b"A" * (3*block_size - i - 1)), block_size)
        if blocks.count(attacker_block) < attacker_block_count:
            last_attacker_block_index = (len(blocks) - 1 -
                                         list(reversed(blocks)).index(attacker_block))
            return block_size * (last_attacker_block_index - 1) + i
    raise ValueError("could not find the end of the prefix")


def crack_ecb_oracle(oracle_fn, block_size=16, prefix_length=0, verbose=False):
    """Recover the secret bytes oracle_fn appends to its input.

    oracle_fn must encrypt (prefix + input + secret) in ECB mode with PKCS#7
    padding, and give the same output every time it gets the same input.
    """
    result = bytearray()
    # The secret can't be longer than the ciphertext of an empty input.
    max_length = len(oracle_fn(b""))
    while len(result) <= max_length:
        short_block_length = (block_size - len(result) - 1 - prefix_length) % block_size
        short_input_block = b"A" * short_block_length
        block_index = (len(result) + prefix_length) // block_size
        block_to_look_for = chunks(oracle_fn(short_input_block), block_size)[block_index]
        for guess in all_bytes_by_frequency:
            test_input = short_input_block + result + bytes([guess])
            if chunks(oracle_fn(test_input), block_size)[block_index] == block_to_look_for:
                result.append(guess)
                if verbose:
                    print("recovered so far: {}".format(bytes(result)))
                break
        else:  # if no byte matches
            # The byte before this one was the last byte of the secret's
            # padding, which is always \x01 when it is matched. After it, the
            # padding is \x02\x02 and nothing can match any more.
            if not result or result[-1] != 1:
                raise CantRecoverByteError(
                    "no byte matches at position {} after {}".format(
                        len(result), pretty_hex_bytes(result[-block_size:])))
            return bytes(result[:-1])
    raise CantRecoverByteError("recovered more bytes than oracle_fn outputs")


extract_fixed_suffix = crack_ecb_oracle


def pkcs7_pad(input_bytes, block_size=16):
    padding_length = -len(input_bytes) % block_size
    if padding_length == 0:
        padding_length = block_size
    return input_bytes + bytes([padding_length] * padding_length)


def pkcs7_unpad(input_bytes, block_size=16):
    if not input_bytes:
        raise PaddingError("Invalid padding: input is empty")
    padding_length = input_bytes[-1]
    if padding_length == 0 or padding_length > block_size or padding_length > len(input_bytes):
        raise PaddingError("Invalid padding length: {}".format(padding_length),
                           padding_length=padding_length)
    for byte in reversed(input_bytes[-padding_length:]):
        if byte != padding_length:
            raise PaddingError(
                "Invalid padding: expected {} but found {}".format(padding_length, byte),
                padding_length=padding_length, bad_byte=byte)
    return input_bytes[:-padding_length]


def pkcs7_padding_is_valid(input_bytes):
    try:
        pkcs7_unpad(input_bytes)
    except PaddingError:
        return False
    else:
        return True
