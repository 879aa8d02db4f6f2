"""Helpers for deriving the deterministic final number from a random seed."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidInputError
from .brackets import MIN_TICKET_NUMBER

MIN_SEED_LENGTH = 32
SELECTED_POSITIONS = 10
POSITION_MODULUS = 9
NUMBER_SPACE = 1_000_000


@dataclass(frozen=True)
class DrawAudit:
    """Everything needed to replay a draw from its seed.

    Attributes
    ----------
    seed_hex : str
        Hex encoding of the seed the draw was computed from.
    positions : tuple[int, ...]
        Seed byte positions that were read, in order.
    digits : str
        Concatenated decimal values of the bytes at ``positions``.
    final_number : int
        Winning number in ``[1000000, 1999999]``.
    """

    seed_hex: str
    positions: tuple[int, ...]
    digits: str
    final_number: int


def _normalize_seed(seed: bytes) -> bytes:
    """Validate that ``seed`` is bytes-like and long enough."""

    if seed is None:
        raise InvalidInputError("seed must not be None")
    if not isinstance(seed, (bytes, bytearray, memoryview)):
        raise InvalidInputError("seed must be bytes")
    raw = bytes(seed)
    if len(raw) < MIN_SEED_LENGTH:
        raise InvalidInputError(
            f"seed must contain at least {MIN_SEED_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def random_positions(seed: bytes) -> tuple[int, ...]:
    """Return the seed positions read by the draw.

    The first ten seed bytes, each reduced modulo 9, pick which bytes feed the
    digit string.
    """

    raw = _normalize_seed(seed)
    return tuple(byte % POSITION_MODULUS for byte in raw[:SELECTED_POSITIONS])


def derive_draw(seed: bytes) -> DrawAudit:
    """Compute the final number for ``seed`` together with its audit trail.

    Parameters
    ----------
    seed : bytes
        Unpredictable seed of at least 32 bytes supplied by the host when the
        lottery is closed.

    Returns
    -------
    DrawAudit
        The selected positions, digit string and the final number
        ``1000000 + int(digits) % 1000000``.
    """

    raw = _normalize_seed(seed)
    positions = random_positions(raw)
    digits = "".join(str(raw[position]) for position in positions)
    final_number = MIN_TICKET_NUMBER + int(digits) % NUMBER_SPACE
    return DrawAudit(
        seed_hex=raw.hex(),
        positions=positions,
        digits=digits,
        final_number=final_number,
    )


def derive_final_number(seed: bytes) -> int:
    """Return only the final number for ``seed``."""

    return derive_draw(seed).final_number


__all__ = [
    "DrawAudit",
    "MIN_SEED_LENGTH",
    "derive_draw",
    "derive_final_number",
    "random_positions",
]
