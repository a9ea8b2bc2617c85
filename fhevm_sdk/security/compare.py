"""Timing-safe comparison and randomness helpers."""

import re
import secrets


_UNSAFE_CHARS = re.compile(r"[<>'\"]")


def secure_compare(a: str, b: str) -> bool:
    """
    Compare two secret-derived strings without an early exit.

    Every character is visited and the differences are OR-ed together, so the
    time taken does not reveal where the strings first differ. Only the
    length comparison short-circuits.
    """
    if len(a) != len(b):
        return False

    result = 0
    for left, right in zip(a, b):
        result |= ord(left) ^ ord(right)

    return result == 0


def generate_random_bytes(length: int) -> bytes:
    if length < 0:
        raise ValueError("length must be non-negative")
    return secrets.token_bytes(length)


def sanitize_input(text: str) -> str:
    """Strip characters used for markup or quote injection."""
    return _UNSAFE_CHARS.sub("", text)
