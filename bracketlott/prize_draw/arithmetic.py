"""Checked unsigned 128-bit arithmetic for fee and reward math."""

from __future__ import annotations

from ..errors import ArithmeticOverflowError
from ..models.types import U128_MAX

BASIS_POINTS = 10_000
"""Denominator of every parts-per-10000 value (fees, reward breakdown)."""


def ensure_u128(value: int, *, label: str = "value") -> int:
    """Return ``value`` if it fits in ``[0, 2**128)``, raise otherwise."""
    if value < 0:
        raise ArithmeticOverflowError(f"{label} underflowed below zero", details=value)
    if value > U128_MAX:
        raise ArithmeticOverflowError(f"{label} exceeds the 128-bit range", details=value)
    return value


def checked_add(a: int, b: int, *, label: str = "sum") -> int:
    return ensure_u128(a + b, label=label)


def checked_sub(a: int, b: int, *, label: str = "difference") -> int:
    return ensure_u128(a - b, label=label)


def checked_mul(a: int, b: int, *, label: str = "product") -> int:
    return ensure_u128(a * b, label=label)


def checked_div(a: int, b: int, *, label: str = "quotient") -> int:
    if b == 0:
        raise ArithmeticOverflowError(f"{label} divides by zero")
    return ensure_u128(a // b, label=label)


def apply_basis_points(amount: int, basis_points: int, *, label: str = "fee") -> int:
    """Return ``amount * basis_points / 10000`` with the product overflow-checked."""
    return checked_mul(amount, basis_points, label=label) // BASIS_POINTS


__all__ = [
    "BASIS_POINTS",
    "apply_basis_points",
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_sub",
    "ensure_u128",
]
