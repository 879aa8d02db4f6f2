"""Read-only queries over the lottery state."""

from typing import Sequence

from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import Lottery, LotteryState, Ticket
from .prize_draw.brackets import validate_bracket
from .prize_draw.claims import reward_for_ticket
from .prize_draw.pricing import calculate_total_price_for_bulk_tickets


def view_lottery(session: Session, lottery_id: int) -> dict:
    """Return the JSON-ready record of ``lottery_id``."""
    return Lottery.get_or_raise(session, lottery_id).to_json()


def view_latest_lottery_id(session: Session) -> int:
    return LotteryState.load(session).current_lottery_id


def view_rewards_for_ticket(
    session: Session, lottery_id: int, ticket_id: int, bracket: int
) -> int:
    """Return what ``ticket_id`` would receive at ``bracket``.

    ``0`` when the lottery is not claimable, the ticket was not sold in it, or
    it does not match at ``bracket``. Ownership is not checked, so a claimed
    ticket still reports its reward.
    """
    validate_bracket(bracket)
    lottery = Lottery.get_or_raise(session, lottery_id)
    if not lottery.contains_ticket_id(ticket_id):
        return 0
    ticket = session.get(Ticket, ticket_id)
    if ticket is None:
        return 0
    return reward_for_ticket(lottery, ticket, bracket)


def view_ticket_status(session: Session, ticket_ids: Sequence[int]) -> list[dict]:
    """Return number and claimed flag of each ticket, in request order.

    Raises
    ------
    NotFoundError
        If any of ``ticket_ids`` does not exist.
    """
    tickets = Ticket.get_many(session, ticket_ids)
    statuses = []
    for ticket_id in ticket_ids:
        ticket = tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} does not exist")
        statuses.append(
            {"ticket_id": ticket.id, "number": ticket.number, "claimed": ticket.claimed}
        )
    return statuses


def view_user_tickets(session: Session, user: str, lottery_id: int) -> list[dict]:
    """Return every ticket ``user`` bought in ``lottery_id``, claimed ones included."""
    return [ticket.to_json() for ticket in Ticket.for_buyer(session, user, lottery_id)]


def view_total_price(session: Session, lottery_id: int, number_tickets: int) -> int:
    lottery = Lottery.get_or_raise(session, lottery_id)
    return calculate_total_price_for_bulk_tickets(
        lottery.discount_divisor, lottery.price_ticket, number_tickets
    )


def view_config(session: Session) -> dict:
    return LotteryState.load(session).to_json()


def view_random_result(session: Session) -> int:
    return LotteryState.load(session).random_result


__all__ = [
    "view_config",
    "view_latest_lottery_id",
    "view_lottery",
    "view_random_result",
    "view_rewards_for_ticket",
    "view_ticket_status",
    "view_total_price",
    "view_user_tickets",
]
