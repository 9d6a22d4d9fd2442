#!/usr/bin/env python3

# standard library modules
import base64
import cProfile
import inspect
import os
import re
import sys
import traceback
import warnings

from argparse import ArgumentParser
from contextlib import redirect_stdout
from hashlib import sha1
from urllib.parse import quote as url_quote


# modules in this project
import block_tools
import merkle_damgard
import mersenne_twister
import padding_oracle
import util

random = util.random


warnings.simplefilter("default", BytesWarning)
warnings.simplefilter("default", ResourceWarning)
warnings.simplefilter("default", DeprecationWarning)

EXAMPLE_PLAIN_BYTES = (b"Give a man a beer, he'll waste an hour. "
                       b"Teach a man to brew, he'll waste a lifetime.")


def make_user_query_string(user_data):
    return ("comment1=cooking%20MCs;userdata=" + url_quote(user_data) +
            ";comment2=%20like%20a%20pound%20of%20bacon").encode()


def challenge9():
    """Implement PKCS#7 padding"""
    assert (block_tools.pkcs7_pad(b"YELLOW SUBMARINE", 20) ==
            b"YELLOW SUBMARINE\x04\x04\x04\x04")
    assert block_tools.pkcs7_pad(b"YELLOW SUBMARINE") == b"YELLOW SUBMARINE" + b"\x10" * 16


def challenge10():
    """Implement CBC mode"""
    key = b"YELLOW SUBMARINE"
    iv = b"\x00" * 16
    plain_bytes = b"YELLOW SUBMARINE" * 2

    ecb_ciphertext = block_tools.aes_encrypt(plain_bytes, key, "ECB")
    cbc_ciphertext = block_tools.aes_encrypt(plain_bytes, key, "CBC", iv)
    print(ecb_ciphertext.hex())
    print(cbc_ciphertext.hex())
    assert ecb_ciphertext.hex() == "d1aa4f6578926542fbb6dd876cd20508" * 2
    # The first CBC block is XORed with a zero IV, so it matches ECB.
    assert cbc_ciphertext.hex().startswith(
        "d1aa4f6578926542fbb6dd876cd20508eaed974f65b7a3a9240d36daef1a31e")
    assert block_tools.aes_decrypt(cbc_ciphertext, key, "CBC", iv) == plain_bytes


def challenge11():
    """An ECB/CBC detection oracle"""
    def encrypt_with_random_mode(plain_bytes):
        settings = {
            "key": block_tools.random_aes_key(),
            "mode": random.choice(["CBC", "ECB"]),
            "pad": True,
        }
        prefix = os.urandom(random.randint(5, 10))
        suffix = os.urandom(random.randint(5, 10))
        cipher_input = prefix + plain_bytes + suffix
        if settings["mode"] == "CBC":
            settings["iv"] = os.urandom(16)
        return (block_tools.aes_encrypt(cipher_input, **settings), settings["mode"])

    for _ in range(100):
        mode = None

        def oracle_fn(plain_bytes):
            nonlocal mode
            ciphertext, mode = encrypt_with_random_mode(plain_bytes)
            return ciphertext

        detected_mode = "ECB" if block_tools.detect_ecb(oracle_fn) else "CBC"
        assert detected_mode == mode


def challenge12():
    """Byte-at-a-time ECB decryption (Simple)"""
    unknown_bytes = base64.b64decode(
        "Um9sbGluJyBpbiBteSA1LjAKV2l0aCBteSByYWctdG9wIGRvd24gc28gbXkgaGFpciBjYW"
        "4gYmxvdwpUaGUgZ2lybGllcyBvbiBzdGFuZGJ5IHdhdmluZyBqdXN0IHRvIHNheSBoaQpE"
        "aWQgeW91IHN0b3A/IE5vLCBJIGp1c3QgZHJvdmUgYnkK")
    key = block_tools.random_aes_key()

    def oracle_fn(attacker_bytes):
        plaintext = attacker_bytes + unknown_bytes
        return block_tools.aes_encrypt(plaintext, key, "ECB", pad=True)

    block_size = block_tools.detect_block_size(oracle_fn)
    print("block size: {}".format(block_size))
    assert block_size == 16
    assert block_tools.detect_ecb(oracle_fn, block_size)

    plaintext = block_tools.extract_fixed_suffix(oracle_fn, block_size)
    print(plaintext.decode())
    assert plaintext == unknown_bytes


def challenge14():
    """Byte-at-a-time ECB decryption (Harder)"""
    key = block_tools.random_aes_key()
    # The prefix can't end with b"A", which is what the attacker sends.
    random_bytes = os.urandom(random.randint(0, 64)).replace(b"A", b"B")
    target_bytes = EXAMPLE_PLAIN_BYTES

    def oracle_fn(attacker_bytes):
        plaintext = random_bytes + attacker_bytes + target_bytes
        return block_tools.aes_encrypt(plaintext, key, "ECB", pad=True)

    prefix_length = block_tools.detect_prefix_length(oracle_fn)
    print("prefix length: {}".format(prefix_length))
    assert prefix_length == len(random_bytes)
    plaintext = block_tools.crack_ecb_oracle(oracle_fn, prefix_length=prefix_length)
    assert plaintext == target_bytes


def challenge15():
    """PKCS#7 padding validation"""
    assert block_tools.pkcs7_unpad(b"ICE ICE BABY\x04\x04\x04\x04") == b"ICE ICE BABY"

    for bad_bytes in [b"ICE ICE BABY\x05\x05\x05\x05", b"ICE ICE BABY\x01\x02\x03\x04"]:
        try:
            block_tools.pkcs7_unpad(bad_bytes)
        except block_tools.PaddingError as e:
            print("{!r}: {}".format(bad_bytes, e))
        else:
            assert False, "Padding should not be considered valid"


def challenge17():
    """The CBC padding oracle"""
    plaintexts = [base64.b64decode(x) for x in [
        "MDAwMDAwTm93IHRoYXQgdGhlIHBhcnR5IGlzIGp1bXBpbmc=",
        "MDAwMDAxV2l0aCB0aGUgYmFzcyBraWNrZWQgaW4gYW5kIHRoZSBWZWdhJ3MgYXJlIHB1bXBpbic=",
        "MDAwMDAyUXVpY2sgdG8gdGhlIHBvaW50LCB0byB0aGUgcG9pbnQsIG5vIGZha2luZw==",
        "MDAwMDAzQ29va2luZyBNQydzIGxpa2UgYSBwb3VuZCBvZiBiYWNvbg==",
        "MDAwMDA0QnVybmluZyAnZW0sIGlmIHlvdSBhaW4ndCBxdWljayBhbmQgbmltYmxl",
        "MDAwMDA1SSBnbyBjcmF6eSB3aGVuIEkgaGVhciBhIGN5bWJhbA==",
        "MDAwMDA2QW5kIGEgaGlnaCBoYXQgd2l0aCBhIHNvdXBlZCB1cCB0ZW1wbw==",
        "MDAwMDA3SSdtIG9uIGEgcm9sbCwgaXQncyB0aW1lIHRvIGdvIHNvbG8=",
        "MDAwMDA4b2xsaW4nIGluIG15IGZpdmUgcG9pbnQgb2g=",
        "MDAwMDA5aXRoIG15IHJhZy10b3AgZG93biBzbyBteSBoYWlyIGNhbiBibG93",
    ]]

    random.shuffle(plaintexts)

    key = block_tools.random_aes_key()

    def encrypt(plaintext):
        iv = os.urandom(16)
        return (iv, block_tools.aes_encrypt(plaintext, key, "CBC", iv, pad=True))

    def has_valid_padding(ciphertext, iv):
        plain_bytes = block_tools.aes_decrypt(ciphertext, key, "CBC", iv)
        return block_tools.pkcs7_padding_is_valid(plain_bytes)

    for plaintext in plaintexts:
        iv, ciphertext = encrypt(plaintext)
        recovered_plaintext = padding_oracle.crack_padding_oracle(
            has_valid_padding, iv, ciphertext)
        assert recovered_plaintext == plaintext
        print(recovered_plaintext.decode())


def challenge18():
    """Implement CTR, the stream cipher mode"""
    ciphertext = base64.b64decode(
        "L77na/nrFsKvynd6HzOoG7GHTLXsTVu9qvY/2syLXzhPweyyMTJULu/6/kXX0KSvoOLSFQ==")
    key = b"YELLOW SUBMARINE"
    nonce = b"\x00" * 8

    plaintext = block_tools.aes_decrypt(ciphertext, key, "CTR", nonce)
    print(plaintext.decode())
    assert plaintext.startswith(b"Yo, VIP Let's kick it Ice, Ice, baby")
    assert block_tools.aes_encrypt(plaintext, key, "CTR", nonce) == ciphertext


def challenge21():
    """Implement the MT19937 Mersenne Twister RNG"""
    rng = mersenne_twister.MT19937_RNG(seed=0)
    numbers = [rng.get_number() for _ in range(10)]
    assert numbers == [2357136044, 2546248239, 3071714933, 3626093760, 2588848963,
                       3684848379, 2340255427, 3638918503, 1819583497, 2678185683]


def challenge23():
    """Clone an MT19937 RNG from its output"""
    rng = mersenne_twister.MT19937_RNG(seed=random.getrandbits(32))
    numbers = [rng.get_number() for _ in range(624)]

    cloned_rng = mersenne_twister.clone(numbers)
    for _ in range(1000):
        assert cloned_rng.get_number() == rng.get_number()


def challenge28():
    """Implement a SHA-1 keyed MAC"""
    key = os.urandom(16)
    mac = merkle_damgard.sha1.keyed_mac(key, b"message1")
    assert mac == sha1(key + b"message1").digest()
    assert mac != merkle_damgard.sha1.keyed_mac(key, b"message2")
    assert merkle_damgard.sha1.validate_mac(key, b"message1", mac)
    assert not merkle_damgard.sha1.validate_mac(key[:-1], b"message1", mac)


def _break_keyed_mac(hash_fn):
    key = os.urandom(random.randint(1, 32))
    query_string = make_user_query_string("foo")
    mac = hash_fn.keyed_mac(key, query_string)

    def mac_is_valid(message, mac):
        return hash_fn.validate_mac(key, message, mac)

    key_length, new_query_string, new_mac = merkle_damgard.forge_keyed_mac(
        hash_fn, query_string, mac, b";admin=true", mac_is_valid)
    print("key length: {}".format(key_length))
    print(new_query_string)
    assert key_length == len(key)
    assert new_mac == hash_fn.keyed_mac(key, new_query_string)
    return (key, new_query_string, new_mac)


def challenge29():
    """Break a SHA-1 keyed MAC using length extension"""
    key, new_query_string, new_mac = _break_keyed_mac(merkle_damgard.sha1)
    assert new_mac == sha1(key + new_query_string).digest()


def challenge30():
    """Break an MD4 keyed MAC using length extension"""
    _break_keyed_mac(merkle_damgard.md4)


class ChallengeNotFoundError(ValueError):
    pass


def get_challenges(challenge_nums):
    result = []
    for num in challenge_nums:
        fn = globals().get("challenge" + str(num))
        if not callable(fn):
            raise ChallengeNotFoundError("challenge {} not found".format(num))
        result.append(fn)
    return result


def get_all_challenges():
    challenges = {}
    for name, var in globals().items():
        try:
            num = int(re.findall(r"^challenge(\d+)$", name)[0])
        except IndexError:
            pass
        else:
            if callable(var):
                challenges[num] = var
    return [challenges[num] for num in sorted(challenges)]


def main():
    parser = ArgumentParser(description="Run the block cipher, hash and RNG attacks.")
    parser.add_argument(
        "challenges", nargs="*",
        help="Challenge(s) to run. If not specified, all challenges will be run.")
    parser.add_argument(
        "-p", "--profile", help="Profile challenges.", action="store_true")
    parser.add_argument(
        "-q", "--quiet", help="Don't show challenge output.", action="store_true")
    args = parser.parse_args()
    try:
        challenges = get_challenges(args.challenges) or get_all_challenges()
    except ChallengeNotFoundError as e:
        parser.error(e)

    profile = cProfile.Profile() if args.profile else None
    failure_count = 0
    try:
        with open(os.devnull, "w") as null_stream:
            output_stream = null_stream if args.quiet else sys.stdout
            for challenge in challenges:
                num = re.findall(r"^challenge(.+)$", challenge.__name__)[0]
                print("Running challenge {}: {}".format(num, challenge.__doc__))
                try:
                    challenge_args = {name: value for name, value in vars(args).items()
                                      if name in inspect.signature(challenge).parameters}
                    with redirect_stdout(output_stream):
                        if profile:
                            profile.runcall(challenge, **challenge_args)
                        else:
                            challenge(**challenge_args)
                except Exception:
                    failure_count += 1
                    traceback.print_exc()
                else:
                    print("Challenge {} passed.".format(num))
    finally:
        if profile:
            print()
            profile.print_stats(sort="cumulative")
    return 1 if failure_count else 0


if __name__ == "__main__":
    sys.exit(main())
