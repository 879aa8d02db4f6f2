"""Column types shared by the lottery models."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.types import TypeDecorator

# Use BigInteger by default, with a SQLite-safe Integer variant for autoincrement PKs.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

U128_MAX = (1 << 128) - 1
U128_DIGITS = len(str(U128_MAX))


class U128(TypeDecorator):
    """Unsigned 128-bit integer persisted as a decimal string.

    SQLite integers stop at 64 bits and ``Numeric`` round-trips through
    floats there, so amounts are stored as text and converted back to
    ``int`` on load. Values outside ``[0, 2**128)`` are rejected on bind.
    """

    impl = String(U128_DIGITS)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"U128 columns only accept int values, got {value!r}")
        if value < 0 or value > U128_MAX:
            raise ValueError(f"value {value} is outside the unsigned 128-bit range")
        return str(value)

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[int]:
        if value is None:
            return None
        return int(value)


__all__ = ["ID_TYPE", "U128", "U128_MAX"]
