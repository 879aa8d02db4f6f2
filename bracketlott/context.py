"""Host collaborators handed to every state-changing workflow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from .errors import InvalidInputError
from .randomness.seeds import SeedSource

StorageGate = Callable[[str, int], bool]
"""``storage_gate(account, incremental_bytes)`` returns ``False`` to refuse."""


@dataclass(frozen=True)
class ExecutionContext:
    """Who is calling, what they attached, and what the host provides.

    Attributes
    ----------
    caller : str
        Account invoking the operation.
    attached_value : int
        Amount (smallest units) sent along with the call.
    now : int
        Current time in seconds since the epoch.
    seed : Union[bytes, SeedSource, None]
        Random seed for closing a lottery, either raw bytes or a source
        queried on demand.
    storage_gate : Optional[StorageGate]
        Asked before new tickets are stored; ``None`` accepts everything.
    """

    caller: str
    attached_value: int = 0
    now: int = 0
    seed: Union[bytes, SeedSource, None] = None
    storage_gate: Optional[StorageGate] = None

    def resolve_seed(self) -> bytes:
        if self.seed is None:
            raise InvalidInputError("No random seed available for the draw")
        if isinstance(self.seed, (bytes, bytearray, memoryview)):
            return bytes(self.seed)
        return self.seed.random_seed()

    def allows_storage(self, incremental_bytes: int) -> bool:
        if self.storage_gate is None:
            return True
        return bool(self.storage_gate(self.caller, incremental_bytes))


__all__ = ["ExecutionContext", "StorageGate"]
