"""Bracket keys and the per-lottery bracket counter.

A ticket matches the winning number at bracket ``b`` when their last
``b + 1`` digits are equal. Each (number, bracket) pair is encoded into a
single integer key::

    key(number, b) = offset(b) + number % 10 ** (b + 1)

where ``offset(b)`` is a run of ``b + 1`` ones (1, 11, ..., 111111). The
ranges ``[offset(b), offset(b) + 10 ** (b + 1))`` of different brackets are
disjoint, so counting tickets per key answers "how many tickets match at
bracket ``b``" for every bracket at once.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import InvalidInputError
from ..models.lottery import NUMBER_OF_BRACKETS, BracketCount

MIN_TICKET_NUMBER = 1_000_000
MAX_TICKET_NUMBER = 1_999_999
TOP_BRACKET = NUMBER_OF_BRACKETS - 1


def create_number_one(sequence: int) -> int:
    """Return the integer written with ``sequence`` ones (1, 11, 111, ...)."""
    if sequence < 1:
        raise InvalidInputError("sequence must be at least 1")
    return int("1" * sequence)


BRACKET_CALCULATOR: dict[int, int] = {
    bracket: create_number_one(bracket + 1) for bracket in range(NUMBER_OF_BRACKETS)
}
"""Offset added to the ticket suffix for each bracket."""


def validate_ticket_number(number: int) -> int:
    if isinstance(number, bool) or not isinstance(number, int):
        raise InvalidInputError(f"Ticket number must be an integer, got {number!r}")
    if not MIN_TICKET_NUMBER <= number <= MAX_TICKET_NUMBER:
        raise InvalidInputError(
            f"The ticket number should be in a range {MIN_TICKET_NUMBER} - {MAX_TICKET_NUMBER}",
            details=number,
        )
    return number


def validate_bracket(bracket: int) -> int:
    if isinstance(bracket, bool) or not isinstance(bracket, int):
        raise InvalidInputError(f"Bracket must be an integer, got {bracket!r}")
    if not 0 <= bracket <= TOP_BRACKET:
        raise InvalidInputError("Bracket out of range", details=bracket)
    return bracket


def encode_bracket_key(number: int, bracket: int) -> int:
    """Return the counter key of ``number`` at ``bracket``."""
    validate_ticket_number(number)
    validate_bracket(bracket)
    return BRACKET_CALCULATOR[bracket] + number % 10 ** (bracket + 1)


def bracket_keys(number: int) -> list[int]:
    """Return the six keys of ``number``, bracket 0 first."""
    return [encode_bracket_key(number, bracket) for bracket in range(NUMBER_OF_BRACKETS)]


def matches_at(ticket_number: int, final_number: int, bracket: int) -> bool:
    return encode_bracket_key(ticket_number, bracket) == encode_bracket_key(
        final_number, bracket
    )


def best_bracket(ticket_number: int, final_number: int) -> Optional[int]:
    """Return the strictest bracket at which the ticket matches, or ``None``."""
    for bracket in range(TOP_BRACKET, -1, -1):
        if matches_at(ticket_number, final_number, bracket):
            return bracket
    return None


def record_purchase(session: Session, lottery_id: int, number: int) -> None:
    """Increment the six bracket counters of ``lottery_id`` for ``number``."""
    for key in bracket_keys(number):
        row = session.get(BracketCount, (lottery_id, key))
        if row is None:
            session.add(BracketCount(lottery_id=lottery_id, bracket_key=key, count=1))
        else:
            row.count += 1
    # Later purchases in the same call must see the rows added above.
    session.flush()


def count_at(session: Session, lottery_id: int, key: int) -> int:
    """Return how many tickets of ``lottery_id`` share ``key`` (0 if none)."""
    count = session.scalar(
        select(BracketCount.count).where(
            BracketCount.lottery_id == lottery_id,
            BracketCount.bracket_key == key,
        )
    )
    return int(count or 0)


__all__ = [
    "BRACKET_CALCULATOR",
    "MAX_TICKET_NUMBER",
    "MIN_TICKET_NUMBER",
    "TOP_BRACKET",
    "best_bracket",
    "bracket_keys",
    "count_at",
    "create_number_one",
    "encode_bracket_key",
    "matches_at",
    "record_purchase",
    "validate_bracket",
    "validate_ticket_number",
]
