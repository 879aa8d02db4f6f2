"""Seed sources feeding the final-number draw."""

from __future__ import annotations

import secrets
from typing import Protocol, runtime_checkable

from ..prize_draw.draw_number import MIN_SEED_LENGTH


@runtime_checkable
class SeedSource(Protocol):
    """Anything able to hand out an unpredictable seed of at least 32 bytes."""

    def random_seed(self) -> bytes:  # pragma: no cover - protocol
        ...


class SystemSeedSource:
    """Seed source backed by the operating system CSPRNG."""

    def __init__(self, length: int = MIN_SEED_LENGTH) -> None:
        if length < MIN_SEED_LENGTH:
            raise ValueError(f"Seed length must be at least {MIN_SEED_LENGTH} bytes")
        self.length = length

    def random_seed(self) -> bytes:
        return secrets.token_bytes(self.length)


class FixedSeedSource:
    """Replays a known seed; used to reproduce a draw from its audit record."""

    def __init__(self, seed: bytes) -> None:
        self.seed = bytes(seed)

    @classmethod
    def from_hex(cls, seed_hex: str) -> "FixedSeedSource":
        return cls(bytes.fromhex(seed_hex))

    def random_seed(self) -> bytes:
        return self.seed


__all__ = ["FixedSeedSource", "SeedSource", "SystemSeedSource"]
