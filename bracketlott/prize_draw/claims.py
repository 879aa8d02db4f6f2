"""Claim verification for settled lotteries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from .arithmetic import checked_add
from .brackets import TOP_BRACKET, matches_at, validate_bracket
from ..errors import (
    InvalidInputError,
    InvalidStateError,
    NoPrizeError,
    NotFoundError,
    UnauthorizedError,
    WrongBracketError,
)
from ..models import (
    CLAIMED_OWNER,
    Lottery,
    LotteryState,
    LotteryStatus,
    ScheduledTransfer,
    Ticket,
    TransferKind,
)

logger = logging.getLogger(__name__)


def reward_for_ticket(lottery: Lottery, ticket: Ticket, bracket: int) -> int:
    """Return what ``ticket`` would receive when claimed at ``bracket``.

    ``0`` is returned when the lottery is not claimable yet, when the ticket
    was not sold in ``lottery`` or when it does not match at ``bracket``.
    Ownership and the best-bracket rule are not checked here.
    """
    if lottery.status != LotteryStatus.CLAIMABLE.value:
        return 0
    if not lottery.contains_ticket_id(ticket.id) or ticket.lottery_id != lottery.id:
        return 0
    if not matches_at(ticket.number, lottery.final_number, bracket):
        return 0
    return lottery.near_per_bracket[bracket]


@dataclass(frozen=True)
class ClaimResult:
    lottery_id: int
    ticket_ids: tuple[int, ...]
    total_reward: int
    transfer: Optional[ScheduledTransfer]


class ClaimVerifier:
    """Validates claim batches and pays them out in one transfer."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def claim(
        self,
        caller: str,
        lottery_id: int,
        ticket_ids: Sequence[int],
        brackets: Sequence[int],
    ) -> ClaimResult:
        """Claim ``ticket_ids`` of ``lottery_id`` at the paired ``brackets``.

        Every pair is checked before any ticket is touched, so a rejected
        batch leaves all of its tickets claimable.

        Parameters
        ----------
        caller : str
            Account claiming; must own every ticket.
        lottery_id : int
            Claimable lottery the tickets were sold in.
        ticket_ids : Sequence[int]
            Tickets to claim.
        brackets : Sequence[int]
            Bracket claimed for each ticket; must be the ticket's best match.

        Returns
        -------
        ClaimResult
            Claimed ids, summed reward and the scheduled payout.

        Raises
        ------
        InvalidInputError
            Mismatched lengths, empty or oversized batch, bracket or ticket id
            out of range.
        NotFoundError
            Lottery or ticket does not exist.
        InvalidStateError
            Lottery is not claimable.
        UnauthorizedError
            Caller does not own a ticket (claimed tickets included), or the
            caller is the claimed-ticket owner itself.
        NoPrizeError
            A ticket has no reward at its bracket.
        WrongBracketError
            A ticket also matches the next stricter bracket.
        """

        if caller == CLAIMED_OWNER:
            raise UnauthorizedError("Claimed tickets cannot be claimed again", details=caller)

        state = LotteryState.load(self._session)
        ids = list(ticket_ids)
        claimed_brackets = list(brackets)
        if len(ids) != len(claimed_brackets):
            raise InvalidInputError("Ticket ids and brackets must have the same length")
        if not ids:
            raise InvalidInputError("At least one ticket must be claimed")
        if len(ids) > state.max_tickets_per_call:
            raise InvalidInputError(
                "Too many tickets to claim",
                details={"limit": state.max_tickets_per_call, "requested": len(ids)},
            )
        for bracket in claimed_brackets:
            validate_bracket(bracket)

        lottery = Lottery.get_or_raise(self._session, lottery_id)
        if lottery.status != LotteryStatus.CLAIMABLE.value:
            raise InvalidStateError(
                f"Lottery {lottery_id} is not claimable", details={"status": lottery.status}
            )

        tickets = Ticket.get_many(self._session, ids)
        seen: set[int] = set()
        total = 0
        for ticket_id, bracket in zip(ids, claimed_brackets):
            if ticket_id >= lottery.first_ticket_id_next_lottery:
                raise InvalidInputError("Ticket id too high", details=ticket_id)
            if ticket_id < lottery.first_ticket_id:
                raise InvalidInputError("Ticket id too low", details=ticket_id)
            ticket = tickets.get(ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} does not exist")
            if ticket.owner != caller or ticket_id in seen:
                raise UnauthorizedError("Caller does not own this ticket", details=ticket_id)
            seen.add(ticket_id)

            reward = reward_for_ticket(lottery, ticket, bracket)
            if reward == 0:
                raise NoPrizeError(details={"ticket_id": ticket_id, "bracket": bracket})
            if bracket != TOP_BRACKET and matches_at(
                ticket.number, lottery.final_number, bracket + 1
            ):
                raise WrongBracketError(details={"ticket_id": ticket_id, "bracket": bracket})
            total = checked_add(total, reward, label="claim total")

        for ticket_id in ids:
            tickets[ticket_id].mark_claimed()
        transfer = ScheduledTransfer.schedule(
            self._session, caller, total, TransferKind.PAYOUT, lottery.id
        )
        self._session.flush()

        logger.info(
            f"claim_tickets lottery_id={lottery.id} caller={caller} "
            f"tickets={len(ids)} reward={total}"
        )
        return ClaimResult(
            lottery_id=lottery.id,
            ticket_ids=tuple(ids),
            total_reward=total,
            transfer=transfer,
        )


__all__ = ["ClaimResult", "ClaimVerifier", "reward_for_ticket"]
