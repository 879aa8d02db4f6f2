"""Settlement engine turning a closed lottery into a claimable payout table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .arithmetic import apply_basis_points, checked_add, checked_mul, checked_sub
from .brackets import (
    MAX_TICKET_NUMBER,
    MIN_TICKET_NUMBER,
    TOP_BRACKET,
    count_at,
    encode_bracket_key,
)
from ..errors import InvalidStateError
from ..models import (
    NUMBER_OF_BRACKETS,
    Lottery,
    LotteryState,
    LotteryStatus,
    ScheduledTransfer,
    TransferKind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    """Value object describing a settled lottery.

    Attributes
    ----------
    lottery_id : int
        Id of the settled lottery.
    final_number : int
        Winning number the payout table was computed against.
    operate_fee : int
        Operating fee taken from newly raised funds and sent to the treasury.
    reserve_fee : int
        Reserve fee taken from the collected amount.
    amount_to_share : int
        Prize money split across the brackets.
    rollover : int
        Prize money that found no winner, including integer-division dust.
    near_per_bracket : tuple[int, ...]
        Reward per winning ticket, per bracket.
    count_winners_per_bracket : tuple[int, ...]
        Number of tickets whose best bracket is ``b``.
    carried_to_next : int
        Amount seeded into the next lottery (``0`` without auto injection).
    """

    lottery_id: int
    final_number: int
    operate_fee: int
    reserve_fee: int
    amount_to_share: int
    rollover: int
    near_per_bracket: tuple[int, ...]
    count_winners_per_bracket: tuple[int, ...]
    carried_to_next: int

    @property
    def total_payable(self) -> int:
        """Sum of every reward that winning tickets can claim."""
        return sum(
            near * count
            for near, count in zip(self.near_per_bracket, self.count_winners_per_bracket)
        )


class SettlementEngine:
    """Computes and persists the payout table of the current lottery."""

    def __init__(self, session: Session) -> None:
        """Create a settlement engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups and persistence.
        """

        self._session = session

    def settle(self, lottery_id: int, auto_injection: bool) -> SettlementResult:
        """Settle ``lottery_id`` against the final number drawn at close.

        Parameters
        ----------
        lottery_id : int
            Lottery to settle; must be the current lottery and in ``close``.
        auto_injection : bool
            When ``True`` the rollover and reserve fee seed the next lottery,
            otherwise they are scheduled to the treasury right away.

        Returns
        -------
        SettlementResult
            The computed fee split and payout table.

        Notes
        -----
        The steps are:

        1. Take the operating fee from ticket sales only (``amount_collected``
           minus the carried pot), then the reserve fee from what remains.
        2. Walk the brackets from the strictest (5) down to 0. The counter at
           ``key(final_number, b)`` counts every ticket matching at ``b`` or
           higher, so subtracting the previous count gives the tickets whose
           best bracket is ``b``.
        3. Brackets without winners roll their share over. Division dust of
           paid brackets rolls over as well so that payouts, rollover and fees
           add up to exactly ``amount_collected``.

        Raises
        ------
        NotFoundError
            If the lottery does not exist.
        InvalidStateError
            If the lottery is not the current one, is not closed, or no final
            number was drawn.
        ArithmeticOverflowError
            If an intermediate amount leaves the 128-bit range.
        """

        state = LotteryState.load(self._session)
        lottery = Lottery.get_or_raise(self._session, lottery_id)
        if lottery.id != state.current_lottery_id:
            raise InvalidStateError(
                f"Lottery {lottery_id} is not the current lottery",
                details={"current_lottery_id": state.current_lottery_id},
            )
        if lottery.status != LotteryStatus.CLOSE.value:
            raise InvalidStateError(
                f"Lottery {lottery_id} is not closed", details={"status": lottery.status}
            )
        final_number = state.random_result
        if not MIN_TICKET_NUMBER <= final_number <= MAX_TICKET_NUMBER:
            raise InvalidStateError("No final number has been drawn", details=final_number)

        sales = checked_sub(lottery.amount_collected, lottery.last_pot_size, label="ticket sales")
        operate_fee = apply_basis_points(sales, lottery.operate_fee, label="operating fee")
        after_operate = checked_sub(lottery.amount_collected, operate_fee, label="pot after fee")
        reserve_fee = apply_basis_points(after_operate, lottery.reserve_fee, label="reserve fee")
        amount_to_share = checked_sub(after_operate, reserve_fee, label="amount to share")

        near_per_bracket = [0] * NUMBER_OF_BRACKETS
        count_winners = [0] * NUMBER_OF_BRACKETS
        if lottery.ticket_count == 0:
            rollover = amount_to_share
        else:
            rollover = 0
            allocated = 0
            previous = 0
            for bracket in range(TOP_BRACKET, -1, -1):
                share = apply_basis_points(
                    amount_to_share,
                    lottery.rewards_breakdown[bracket],
                    label=f"bracket {bracket} share",
                )
                allocated = checked_add(allocated, share, label="allocated shares")
                matched = count_at(
                    self._session, lottery.id, encode_bracket_key(final_number, bracket)
                )
                winners = matched - previous
                count_winners[bracket] = winners
                if winners == 0:
                    rollover = checked_add(rollover, share, label="rollover")
                elif share:
                    reward = share // winners
                    near_per_bracket[bracket] = reward
                    paid = checked_mul(reward, winners, label=f"bracket {bracket} payout")
                    rollover = checked_add(rollover, share - paid, label="rollover")
                previous = matched
            rollover = checked_add(
                rollover,
                checked_sub(amount_to_share, allocated, label="unallocated share"),
                label="rollover",
            )

        lottery.final_number = final_number
        lottery.near_per_bracket = near_per_bracket
        lottery.count_winners_per_bracket = count_winners
        lottery.operate_fee_amount = operate_fee
        lottery.reserve_fee_amount = reserve_fee
        lottery.amount_to_share = amount_to_share
        lottery.rollover_amount = rollover
        lottery.auto_injection = bool(auto_injection)
        lottery.status = LotteryStatus.CLAIMABLE.value
        lottery.settled_at = datetime.now(timezone.utc)

        to_treasury = checked_add(rollover, reserve_fee, label="treasury amount")
        if auto_injection:
            state.pending_injection_next_lottery = to_treasury
            carried = to_treasury
        else:
            ScheduledTransfer.schedule(
                self._session, state.treasury_id, to_treasury, TransferKind.TREASURY, lottery.id
            )
            carried = 0
        ScheduledTransfer.schedule(
            self._session, state.treasury_id, operate_fee, TransferKind.OPERATE_FEE, lottery.id
        )
        self._session.flush()

        logger.info(
            f"settle lottery_id={lottery.id} final_number={final_number} "
            f"amount_to_share={amount_to_share} rollover={rollover} "
            f"winners={count_winners} auto_injection={bool(auto_injection)}"
        )
        return SettlementResult(
            lottery_id=lottery.id,
            final_number=final_number,
            operate_fee=operate_fee,
            reserve_fee=reserve_fee,
            amount_to_share=amount_to_share,
            rollover=rollover,
            near_per_bracket=tuple(near_per_bracket),
            count_winners_per_bracket=tuple(count_winners),
            carried_to_next=carried,
        )


__all__ = ["SettlementEngine", "SettlementResult"]
