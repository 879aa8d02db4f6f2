"""Bulk ticket pricing."""

from __future__ import annotations

from ..errors import InvalidInputError
from .arithmetic import checked_mul, checked_sub


def calculate_total_price_for_bulk_tickets(
    discount_divisor: int, price_ticket: int, number_tickets: int
) -> int:
    """Return the price of ``number_tickets`` tickets bought in one call.

    The bulk discount grows linearly with the number of tickets::

        price * n * (divisor + 1 - n) / divisor

    so one ticket always costs exactly ``price``; the smaller the divisor the
    larger the discount. A divisor of ``0`` disables the discount.

    Parameters
    ----------
    discount_divisor : int
        Divisor controlling the discount magnitude.
    price_ticket : int
        Price of a single ticket in smallest units.
    number_tickets : int
        Number of tickets bought together; must be positive.

    Raises
    ------
    InvalidInputError
        If ``number_tickets`` is zero, or exceeds a non-zero divisor (the
        discount factor would no longer be positive).
    """
    if number_tickets <= 0:
        raise InvalidInputError("Number of tickets must be > 0")
    gross = checked_mul(price_ticket, number_tickets, label="ticket price")
    if discount_divisor == 0:
        return gross
    if number_tickets > discount_divisor:
        raise InvalidInputError(
            "Too many tickets for the discount divisor",
            details={"number_tickets": number_tickets, "discount_divisor": discount_divisor},
        )
    factor = checked_sub(discount_divisor + 1, number_tickets, label="discount factor")
    return checked_mul(gross, factor, label="discounted price") // discount_divisor


__all__ = ["calculate_total_price_for_bulk_tickets"]
