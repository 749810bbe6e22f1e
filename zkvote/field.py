# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import secrets

from zkvote.constants import FIELD_ORDER

P = FIELD_ORDER


def to_field(value: int | str) -> int:
    """
    Reduce an integer, decimal string, or 0x-prefixed hex string into [0, P).

    Negative integers wrap around the modulus, matching how circom treats
    negative witness values.

    Args:
        value: The value to reduce.

    Returns:
        int: The canonical representative in [0, P).

    Raises:
        TypeError: If the value is not an int or str (bools are rejected).
        ValueError: If a string is not a valid decimal or hex literal.
    """
    if isinstance(value, bool):
        raise TypeError("field elements cannot be bool")
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            return int(text[2:], 16) % P
        return int(text, 10) % P
    if isinstance(value, int):
        return value % P
    raise TypeError(f"cannot convert {type(value).__name__} to a field element")


def is_field_element(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < P


def require_field_element(value: object, name: str = "value") -> int:
    """
    Check that a value is already a reduced field element.

    Engine entry points call this instead of `to_field` so that an unreduced
    value is rejected rather than silently aliased to another element.

    Raises:
        ValueError: If the value is not an int in [0, P).
    """
    if not is_field_element(value):
        raise ValueError(f"{name} must be a field element in [0, P), got {value!r}")
    return value  # type: ignore[return-value]


def add(a: int, b: int) -> int:
    return (a + b) % P


def sub(a: int, b: int) -> int:
    return (a - b) % P


def mul(a: int, b: int) -> int:
    return (a * b) % P


def neg(a: int) -> int:
    return (-a) % P


def inv(a: int) -> int:
    """
    Multiplicative inverse modulo P via Fermat's little theorem.

    Raises:
        ZeroDivisionError: If `a` is congruent to zero.
    """
    if a % P == 0:
        raise ZeroDivisionError("zero has no inverse in the field")
    return pow(a, P - 2, P)


def rng() -> int:
    """
    Draw a uniformly random non-zero field element.

    Returns:
        int: A random number in [1, P).
    """
    return secrets.randbelow(P - 1) + 1


def to_hex(value: int) -> str:
    """Fixed-width 32-byte big-endian hex encoding of a field element."""
    return require_field_element(value).to_bytes(32, "big").hex()


def from_hex(text: str) -> int:
    h = text.strip().lower()
    if h.startswith("0x"):
        h = h[2:]
    raw = bytes.fromhex(h)
    if len(raw) != 32:
        raise ValueError(f"field element must be 32 bytes, got {len(raw)}")
    return require_field_element(int.from_bytes(raw, "big"))


def to_decimal(value: int) -> str:
    # snarkjs carries field elements as decimal strings
    return str(require_field_element(value))
