import struct

from util import chunks

_MASK = 0xffffffff


def _left_rotate(x, n):
    x &= _MASK
    return ((x << n) | (x >> (32 - n))) & _MASK


class KeyLengthNotFoundError(ValueError):
    pass


class MerkleDamgardHash:
    """A hash function built from a compression function on 64-byte blocks.

    The state passed between blocks has the same format as the digest, so a
    digest can be used as the initial state to continue hashing where it left
    off. That is all a length extension attack needs.
    """

    block_size = 64
    digest_size = None
    initial_state = None
    # struct format of the message bit length at the end of the padding
    length_format = None

    def compress(self, state, block):
        raise NotImplementedError

    def padding(self, message_length, encoded_length=None):
        if encoded_length is None:
            encoded_length = message_length
        length_size = struct.calcsize(self.length_format)
        zero_count = (-message_length - 1 - length_size) % self.block_size
        return (b"\x80" + b"\x00" * zero_count +
                struct.pack(self.length_format, encoded_length * 8))

    def pad(self, message):
        return message + self.padding(len(message))

    def pad_fake_size(self, message, total_length):
        # Pad message as if it were the last total_length bytes hashed, not
        # the only ones.
        return message + self.padding(len(message), encoded_length=total_length)

    def hash_with_initial_state(self, state, padded_message):
        if len(state) != self.digest_size:
            raise ValueError("length of state must be {}".format(self.digest_size))
        if len(padded_message) % self.block_size != 0:
            raise ValueError("length of padded_message must be a multiple of {}".format(
                self.block_size))
        for block in chunks(padded_message, self.block_size):
            state = self.compress(state, block)
        return state

    def hash(self, padded_message):
        return self.hash_with_initial_state(self.initial_state, padded_message)

    def __call__(self, message, state=None, *, pad=True):
        state = state or self.initial_state
        prepared_message = self.pad(message) if pad else message
        return self.hash_with_initial_state(state, prepared_message)

    def keyed_mac(self, key, message):
        return self(key + message)

    def validate_mac(self, key, message, mac):
        return self.keyed_mac(key, message) == mac


class Sha1(MerkleDamgardHash):
    digest_size = 20
    initial_state = struct.pack(
        ">5I", 0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476, 0xc3d2e1f0)
    length_format = ">Q"

    def compress(self, state, block):
        h = struct.unpack(">5I", state)
        w = list(struct.unpack(">16I", block))
        for i in range(16, 80):
            w.append(_left_rotate(w[i-3] ^ w[i-8] ^ w[i-14] ^ w[i-16], 1))

        a, b, c, d, e = h
        for i in range(80):
            if i < 20:
                f = (b & c) | (~b & d)
                k = 0x5a827999
            elif i < 40:
                f = b ^ c ^ d
                k = 0x6ed9eba1
            elif i < 60:
                f = (b & c) | (b & d) | (c & d)
                k = 0x8f1bbcdc
            else:
                f = b ^ c ^ d
                k = 0xca62c1d6
            a, b, c, d, e = ((_left_rotate(a, 5) + f + e + k + w[i]) & _MASK,
                             a, _left_rotate(b, 30), c, d)

        return struct.pack(">5I", *((x + y) & _MASK for x, y in zip(h, (a, b, c, d, e))))


class Md4(MerkleDamgardHash):
    digest_size = 16
    initial_state = struct.pack("<4I", 0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476)
    length_format = "<Q"

    def compress(self, state, block):
        def f(x, y, z):
            return (x & y) | (~x & z)

        def g(x, y, z):
            return (x & y) | (x & z) | (y & z)

        def h(x, y, z):
            return x ^ y ^ z

        x = struct.unpack("<16I", block)
        a, b, c, d = initial = struct.unpack("<4I", state)

        for i in [0, 4, 8, 12]:
            a = _left_rotate(a + f(b, c, d) + x[i], 3)
            d = _left_rotate(d + f(a, b, c) + x[i + 1], 7)
            c = _left_rotate(c + f(d, a, b) + x[i + 2], 11)
            b = _left_rotate(b + f(c, d, a) + x[i + 3], 19)

        for i in range(4):
            a = _left_rotate(a + g(b, c, d) + x[i] + 0x5a827999, 3)
            d = _left_rotate(d + g(a, b, c) + x[i + 4] + 0x5a827999, 5)
            c = _left_rotate(c + g(d, a, b) + x[i + 8] + 0x5a827999, 9)
            b = _left_rotate(b + g(c, d, a) + x[i + 12] + 0x5a827999, 13)

        for i in [0, 2, 1, 3]:
            a = _left_rotate(a + h(b, c, d) + x[i] + 0x6ed9eba1, 3)
            d = _left_rotate(d + h(a, b, c) + x[i + 8] + 0x6ed9eba1, 9)
            c = _left_rotate(c + h(d, a, b) + x[i + 4] + 0x6ed9eba1, 11)
            b = _left_rotate(b + h(c, d, a) + x[i + 12] + 0x6ed9eba1, 15)

        return struct.pack("<4I", *((s + t) & _MASK for s, t in zip(initial, (a, b, c, d))))


sha1 = Sha1()
md4 = Md4()


def extend_keyed_mac(hash_fn, message, mac, key_length, suffix):
    """Forge a keyed MAC for message + glue padding + suffix.

    mac must be hash_fn.keyed_mac(key, message) for a key that is
    key_length bytes long. The key itself is not needed. Returns a
    (forged_message, forged_mac) tuple.
    """
    glue_padding = hash_fn.padding(key_length + len(message))
    forged_message = message + glue_padding + suffix
    padded_suffix = hash_fn.pad_fake_size(suffix, key_length + len(forged_message))
    return (forged_message, hash_fn.hash_with_initial_state(mac, padded_suffix))


def forge_keyed_mac(hash_fn, message, mac, suffix, mac_is_valid, max_key_length=64):
    """Like extend_keyed_mac, but find the key length by trying each one.

    mac_is_valid(message, mac) is asked about every forgery until it accepts
    one. Returns a (key_length, forged_message, forged_mac) tuple.
    """
    for key_length in range(max_key_length + 1):
        forged_message, forged_mac = extend_keyed_mac(
            hash_fn, message, mac, key_length, suffix)
        if mac_is_valid(forged_message, forged_mac):
            return (key_length, forged_message, forged_mac)
    raise KeyLengthNotFoundError(
        "no key length up to {} produces a valid MAC".format(max_key_length))
