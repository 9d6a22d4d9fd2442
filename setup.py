#!/usr/bin/env python3

from setuptools import setup

setup(
    author="Elias Zamaria",
    description="Attacks on block cipher modes, padding, Merkle-Damgard hashes and MT19937.",
    extras_require={"test": ["pytest >= 7.0"]},
    install_requires="pycryptodomex >= 3.4.2",
    license="MIT",
    name="cryptopals-attack-toolkit",
    py_modules=[
        "block_tools",
        "challenges",
        "english",
        "merkle_damgard",
        "mersenne_twister",
        "padding_oracle",
        "util",
    ],
    python_requires=">=3.5",
    version="0.1.0",
)
