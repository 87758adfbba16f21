"""
OTP Code Generator
==================
Cryptographically random numeric codes.
"""

import secrets


def generate_code(length: int = 6) -> str:
    """
    Generate a numeric code with no leading zero.

    Uniform over [10**(length-1), 10**length - 1], i.e. [100000, 999999]
    for six digits. Uses ``secrets`` so codes are not predictable.
    """
    if length < 1:
        raise ValueError("length must be >= 1")
    low = 10 ** (length - 1)
    high = 10 ** length
    return str(low + secrets.randbelow(high - low))


class CodeGenerator:
    """Injectable wrapper around generate_code."""

    def __init__(self, length: int = 6):
        self.length = length

    def generate(self) -> str:
        return generate_code(self.length)
