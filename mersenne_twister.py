STATE_SIZE = 624


class MT19937_RNG:
    """Mersenne Twister random number generator"""

    def __init__(self, seed):
        self.index = STATE_SIZE
        buffer = self.buffer = [seed & 0xffffffff] + [0]*(STATE_SIZE - 1)
        prev = buffer[0]
        for i in range(1, STATE_SIZE):
            prev = buffer[i] = 0xffffffff & (1812433253 * (prev ^ (prev >> 30)) + i)

    @classmethod
    def from_buffer(cls, buffer):
        """Make a generator whose next twist starts from the given buffer."""
        if len(buffer) != STATE_SIZE:
            raise ValueError("buffer must contain {} numbers".format(STATE_SIZE))
        rng = cls.__new__(cls)
        rng.buffer = list(buffer)
        rng.index = STATE_SIZE
        return rng

    def get_number(self):
        if self.index >= STATE_SIZE:
            self.twist()
        result = temper(self.buffer[self.index])
        self.index += 1
        return result

    def twist(self):
        buffer = self.buffer
        for i in range(STATE_SIZE):
            y = ((buffer[i] & 0x80000000) +
                       (buffer[(i + 1) % STATE_SIZE] & 0x7fffffff))
            buffer[i] = buffer[(i + 397) % STATE_SIZE] ^ (y >> 1)

            if y & 1:
                buffer[i] ^= 0x9908b0df
        self.index = 0


def temper(x):
    x ^= (x >> 11)
    x ^= (x << 7) & 0x9d2c5680
    x ^= (x << 15) & 0xefc60000
    x ^= (x >> 18)
    return x


def _undo_right_shift_xor(y, shift):
    # Each pass recovers another `shift` of the top bits.
    x = y
    for _ in range(32 // shift):
        x = y ^ (x >> shift)
    return x


def _undo_left_shift_xor(y, shift, mask):
    # Same as above, working up from the bottom bits.
    x = y
    for _ in range(32 // shift):
        x = y ^ ((x << shift) & mask & 0xffffffff)
    return x


def untemper(x):
    x = _undo_right_shift_xor(x, 18)
    x = _undo_left_shift_xor(x, 15, 0xefc60000)
    x = _undo_left_shift_xor(x, 7, 0x9d2c5680)
    x = _undo_right_shift_xor(x, 11)
    return x


def clone(outputs):
    """Return a generator that continues where the given outputs left off.

    outputs must be STATE_SIZE or more consecutive numbers from the
    generator, starting anywhere in its output. Twisting any STATE_SIZE
    consecutive outputs in place gives the next STATE_SIZE, so they don't
    have to line up with the generator's own twists. Only the first
    STATE_SIZE of them are used, and the clone continues right after those.
    """
    outputs = list(outputs)
    if len(outputs) < STATE_SIZE:
        raise ValueError("at least {} outputs are needed to clone the generator, got {}"
                         .format(STATE_SIZE, len(outputs)))
    return MT19937_RNG.from_buffer([untemper(x) for x in outputs[:STATE_SIZE]])
