"""Exception hierarchy shared by every lottery operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class LotteryError(Exception):
    """Base error for rejected lottery calls.

    A raised error means the whole call was rejected: operations validate
    everything before their first mutation, so nothing was persisted and no
    transfer was scheduled.
    """

    code: str
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(LotteryError):
    """Lottery, ticket or deployment state does not exist."""

    def __init__(self, message: str = "Not found", details: Optional[Any] = None) -> None:
        super().__init__(code="not_found", message=message, details=details)


class InvalidStateError(LotteryError):
    """Operation is not allowed in the current lottery or deployment state."""

    def __init__(self, message: str = "Invalid state", details: Optional[Any] = None) -> None:
        super().__init__(code="invalid_state", message=message, details=details)


class InvalidInputError(LotteryError):
    """Arguments failed validation."""

    def __init__(self, message: str = "Invalid input", details: Optional[Any] = None) -> None:
        super().__init__(code="invalid_input", message=message, details=details)


class UnauthorizedError(LotteryError):
    """Caller does not hold the required role or does not own the ticket."""

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None) -> None:
        super().__init__(code="unauthorized", message=message, details=details)


class InsufficientPaymentError(LotteryError):
    """Attached value (or storage allowance) does not cover the call."""

    def __init__(
        self, message: str = "Insufficient payment", details: Optional[Any] = None
    ) -> None:
        super().__init__(code="insufficient_payment", message=message, details=details)


class NoPrizeError(LotteryError):
    """Ticket has no reward at the requested bracket."""

    def __init__(
        self, message: str = "No prize for this bracket", details: Optional[Any] = None
    ) -> None:
        super().__init__(code="no_prize", message=message, details=details)


class WrongBracketError(LotteryError):
    """Ticket matches a stricter bracket than the one claimed."""

    def __init__(
        self, message: str = "Bracket must be higher", details: Optional[Any] = None
    ) -> None:
        super().__init__(code="wrong_bracket", message=message, details=details)


class ArithmeticOverflowError(LotteryError):
    """An amount left the unsigned 128-bit range."""

    def __init__(
        self, message: str = "Arithmetic overflow", details: Optional[Any] = None
    ) -> None:
        super().__init__(code="arithmetic_overflow", message=message, details=details)


__all__ = [
    "LotteryError",
    "NotFoundError",
    "InvalidStateError",
    "InvalidInputError",
    "UnauthorizedError",
    "InsufficientPaymentError",
    "NoPrizeError",
    "WrongBracketError",
    "ArithmeticOverflowError",
]
