from collections import defaultdict

# Character frequencies were taken from raw letter averages at
# http://www.macfreek.nl/memory/Letter_Distribution, then rounded to 6
# decimal places for readability. Uppercase letters get the same weight as
# lowercase ones, scaled down, since most recovered plaintext is mixed case.
english_byte_frequencies = defaultdict(
    # Any byte not explicitly represented (binary data, PKCS#7 padding) is
    # tried after all the printable text.
    lambda: 4e-6,
    {ord(char): freq for char, freq in {
        " ": 0.183169, "a": 0.065531, "b": 0.012708, "c": 0.022651, "d": 0.033523,
        "e": 0.102179, "f": 0.019718, "g": 0.016359, "h": 0.048622, "i": 0.057343,
        "j": 0.001144, "k": 0.005692, "l": 0.033562, "m": 0.020173, "n": 0.057031,
        "o": 0.062006, "p": 0.015031, "q": 0.000881, "r": 0.049720, "s": 0.053263,
        "t": 0.075100, "u": 0.022952, "v": 0.007880, "w": 0.016896, "x": 0.001498,
        "y": 0.014700, "z": 0.000598, "\n": 0.010000, ".": 0.006000, ",": 0.006000,
        "'": 0.002000, "0": 0.001000, "1": 0.001000, "2": 0.001000, "3": 0.001000,
        "4": 0.001000, "5": 0.001000, "6": 0.001000, "7": 0.001000, "8": 0.001000,
        "9": 0.001000, "?": 0.000500, "!": 0.000500, ";": 0.000500, "=": 0.000500,
        "%": 0.000200, "&": 0.000200, "-": 0.000500,
    }.items()})
english_byte_frequencies.update(
    {ord(chr(byte).upper()): freq / 10
     for byte, freq in list(english_byte_frequencies.items()) if chr(byte).isalpha()})


# All 256 byte values, most English-like first. Attacks that guess one byte at
# a time iterate over this instead of range(256) so text is found sooner.
# sorted() is stable, so bytes with equal frequency stay in numeric order.
all_bytes_by_frequency = sorted(
    range(256), key=lambda byte: english_byte_frequencies[byte], reverse=True)
