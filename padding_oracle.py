# Details of how the CBC padding oracle attack works can be found at
# https://blog.skullsecurity.org/2013/padding-oracle-attacks-in-depth
#
# oracle_fn(ciphertext, iv) must decrypt ciphertext in CBC mode and return
# whether the result has valid PKCS#7 padding, and nothing else.

from block_tools import CantRecoverByteError, pkcs7_unpad
from english import all_bytes_by_frequency
from util import chunks, pretty_hex_bytes, xor_bytes


def _padding_is_single_byte(oracle_fn, test_iv, cipher_block):
    # Only called when test_iv already gives valid padding. Changing the
    # second to last plaintext byte keeps it valid only if the padding is
    # just \x01.
    changed_iv = bytearray(test_iv)
    changed_iv[-2] ^= 1
    return oracle_fn(cipher_block, bytes(changed_iv))


def recover_plain_byte(oracle_fn, prev_cipher_block, cipher_block, recovered_so_far):
    block_size = len(cipher_block)
    pos = block_size - len(recovered_so_far) - 1
    padding_byte = len(recovered_so_far) + 1
    # Make every byte already recovered decrypt to padding_byte.
    test_iv = bytearray(xor_bytes(
        prev_cipher_block,
        (bytes([padding_byte]) * len(recovered_so_far)).rjust(block_size, b"\x00"),
        recovered_so_far.rjust(block_size, b"\x00")))
    for guess in all_bytes_by_frequency:
        test_iv[pos] = prev_cipher_block[pos] ^ guess ^ padding_byte
        if oracle_fn(cipher_block, bytes(test_iv)):
            if (pos == block_size - 1 and block_size > 1 and
                    not _padding_is_single_byte(oracle_fn, test_iv, cipher_block)):
                # The plaintext happens to end with longer valid padding,
                # such as \x02\x02, so guess is not the real last byte.
                continue
            return guess
    raise CantRecoverByteError(
        "no byte gives valid padding at position {} of block {}".format(
            pos, pretty_hex_bytes(cipher_block)))


def cbc_padding_oracle(oracle_fn, prev_cipher_block, cipher_block):
    """Decrypt cipher_block using only a padding oracle.

    prev_cipher_block is the ciphertext block before cipher_block, or the IV
    if cipher_block is the first block. Returns the plaintext block, still
    padded if it is the last one.
    """
    if len(prev_cipher_block) != len(cipher_block):
        raise ValueError("blocks must be of equal length")
    result = bytes()
    for _ in range(len(cipher_block)):
        guess = recover_plain_byte(oracle_fn, prev_cipher_block, cipher_block, result)
        result = bytes([guess]) + result
    return result


def crack_padding_oracle(oracle_fn, iv, ciphertext, verbose=False):
    block_size = len(iv)
    if not ciphertext or len(ciphertext) % block_size != 0:
        raise ValueError("ciphertext length must be a nonzero multiple of {}".format(
            block_size))
    result = bytearray()
    prev_cipher_block = iv
    for cipher_block in chunks(ciphertext, block_size):
        result += cbc_padding_oracle(oracle_fn, prev_cipher_block, cipher_block)
        prev_cipher_block = cipher_block
        if verbose:
            print("recovered so far: {}".format(bytes(result)))
    return pkcs7_unpad(bytes(result), block_size)
