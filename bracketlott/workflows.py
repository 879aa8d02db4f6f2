"""State-changing lottery operations.

Every workflow takes the active SQLAlchemy ``Session`` and, where a caller is
involved, an :class:`~bracketlott.context.ExecutionContext`. Workflows never
commit; callers own the transaction. Each one validates all of its inputs
before the first mutation, so a raised :class:`~bracketlott.errors.LotteryError`
leaves the database as it was.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from .config import LotteryConfig
from .context import ExecutionContext
from .errors import (
    InsufficientPaymentError,
    InvalidInputError,
    InvalidStateError,
    UnauthorizedError,
)
from .models import (
    CLAIMED_OWNER,
    NUMBER_OF_BRACKETS,
    Lottery,
    LotteryState,
    LotteryStatus,
    RunningState,
    ScheduledTransfer,
    Ticket,
    TransferKind,
)
from .prize_draw.arithmetic import BASIS_POINTS, checked_add, ensure_u128
from .prize_draw.brackets import record_purchase, validate_ticket_number
from .prize_draw.claims import ClaimResult, ClaimVerifier
from .prize_draw.draw_number import DrawAudit, derive_draw
from .prize_draw.engine import SettlementEngine, SettlementResult
from .prize_draw.pricing import calculate_total_price_for_bulk_tickets

logger = logging.getLogger(__name__)

TICKET_STORAGE_BYTES = 160
"""Approximate storage consumed by one ticket and its counter updates."""


def _require_running(state: LotteryState) -> None:
    if not state.is_running:
        raise InvalidStateError("Lottery is paused")


def _require_owner(state: LotteryState, ctx: ExecutionContext) -> None:
    if ctx.caller != state.owner_id:
        raise UnauthorizedError("Only the owner can do this", details=ctx.caller)


def _require_operator(state: LotteryState, ctx: ExecutionContext) -> None:
    if ctx.caller != state.operator_id:
        raise UnauthorizedError("Only the operator can do this", details=ctx.caller)


def initialize_state(
    session: Session,
    owner: str,
    operator: str,
    treasury: str,
    injector: Optional[str] = None,
    config: Optional[LotteryConfig] = None,
) -> LotteryState:
    """Create the deployment state row.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    owner : str
        Account allowed to pause, resume and change settings.
    operator : str
        Account allowed to start, close and settle lotteries.
    treasury : str
        Account receiving operating fees and non-injected rollovers.
    injector : Optional[str]
        Account allowed to inject funds besides the owner. Defaults to
        ``owner``.
    config : Optional[LotteryConfig]
        Operating limits; :meth:`LotteryConfig.from_env` is used when omitted.

    Returns
    -------
    LotteryState
        The persisted state with no lottery started yet.
    """
    if LotteryState.get(session) is not None:
        raise InvalidStateError("Lottery state is already initialized")

    state = LotteryState(
        owner_id=owner,
        operator_id=operator,
        treasury_id=treasury,
        injector_id=injector,
        config=config or LotteryConfig.from_env(),
    )
    session.add(state)
    session.flush()
    logger.info(f"initialize_state owner={owner} operator={operator} treasury={treasury}")
    return state


def _validate_breakdown(rewards_breakdown: Sequence[int]) -> list[int]:
    breakdown = list(rewards_breakdown)
    if len(breakdown) != NUMBER_OF_BRACKETS:
        raise InvalidInputError(
            f"Rewards breakdown must have {NUMBER_OF_BRACKETS} entries",
            details=len(breakdown),
        )
    for share in breakdown:
        if isinstance(share, bool) or not isinstance(share, int) or share < 0:
            raise InvalidInputError("Rewards breakdown entries must be non-negative integers")
    if sum(breakdown) != BASIS_POINTS:
        raise InvalidInputError(
            f"Rewards breakdown must sum to {BASIS_POINTS}", details=sum(breakdown)
        )
    return breakdown


def start_lottery(
    session: Session,
    ctx: ExecutionContext,
    end_time: int,
    price_ticket: int,
    discount_divisor: int,
    rewards_breakdown: Sequence[int],
    reserve_fee: int,
    operate_fee: int,
) -> Lottery:
    """Open the next lottery, seeded with the pot carried from the last one.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    ctx : ExecutionContext
        Caller must be the operator; ``ctx.now`` is the start time.
    end_time : int
        End of the sale window in seconds; the window length must fall within
        the configured bounds.
    price_ticket : int
        Price of a single ticket, within the configured limits.
    discount_divisor : int
        Bulk discount divisor, at least the configured minimum.
    rewards_breakdown : Sequence[int]
        Six parts-per-10000 shares (bracket 0 first) summing to 10000.
    reserve_fee, operate_fee : int
        Fees in parts-per-10000, at most the configured caps.

    Returns
    -------
    Lottery
        The new open lottery.
    """
    state = LotteryState.load(session)
    _require_operator(state, ctx)
    _require_running(state)

    unfinished = Lottery.non_terminal(session)
    if unfinished:
        raise InvalidStateError(
            "The current lottery must be claimable before starting a new one",
            details={"lottery_id": unfinished[0].id, "status": unfinished[0].status},
        )

    length = end_time - ctx.now
    if not state.min_length_lottery < length < state.max_length_lottery:
        raise InvalidInputError(
            "Lottery length is outside the allowed range",
            details={
                "length": length,
                "min": state.min_length_lottery,
                "max": state.max_length_lottery,
            },
        )
    if not state.min_price_ticket <= price_ticket <= state.max_price_ticket:
        raise InvalidInputError("Ticket price is outside the allowed range", details=price_ticket)
    if discount_divisor < state.min_discount_divisor:
        raise InvalidInputError("Discount divisor is too low", details=discount_divisor)
    if not 0 <= reserve_fee <= state.max_reserve_fee:
        raise InvalidInputError("Reserve fee is too high", details=reserve_fee)
    if not 0 <= operate_fee <= state.max_operate_fee:
        raise InvalidInputError("Operating fee is too high", details=operate_fee)
    breakdown = _validate_breakdown(rewards_breakdown)

    carried = state.pending_injection_next_lottery
    lottery = Lottery(
        id=state.current_lottery_id + 1,
        start_time=ctx.now,
        end_time=end_time,
        price_ticket=price_ticket,
        discount_divisor=discount_divisor,
        rewards_breakdown=breakdown,
        reserve_fee=reserve_fee,
        operate_fee=operate_fee,
        first_ticket_id=state.current_ticket_id,
        amount_collected=carried,
        last_pot_size=carried,
    )
    session.add(lottery)
    state.current_lottery_id = lottery.id
    state.pending_injection_next_lottery = 0
    session.flush()

    logger.info(
        f"start_lottery lottery_id={lottery.id} end_time={end_time} "
        f"price={price_ticket} carried={carried}"
    )
    return lottery


def buy_tickets(
    session: Session,
    ctx: ExecutionContext,
    lottery_id: int,
    numbers: Sequence[int],
) -> list[Ticket]:
    """Buy one ticket per entry of ``numbers`` for ``ctx.caller``.

    The caller pays the bulk price of the whole batch out of
    ``ctx.attached_value``; any excess is scheduled back as a refund.

    Returns
    -------
    list[Ticket]
        The new tickets, in the order of ``numbers``.
    """
    if ctx.caller == CLAIMED_OWNER:
        raise UnauthorizedError("This account cannot buy tickets", details=ctx.caller)
    state = LotteryState.load(session)
    _require_running(state)

    ticket_numbers = list(numbers)
    if not ticket_numbers:
        raise InvalidInputError("No ticket specified")
    if len(ticket_numbers) > state.max_tickets_per_call:
        raise InvalidInputError(
            "Too many tickets",
            details={"limit": state.max_tickets_per_call, "requested": len(ticket_numbers)},
        )
    for number in ticket_numbers:
        validate_ticket_number(number)

    lottery = Lottery.get_or_raise(session, lottery_id)
    if lottery.status != LotteryStatus.OPEN.value:
        raise InvalidStateError(f"Lottery {lottery_id} is not open")
    if ctx.now >= lottery.end_time:
        raise InvalidStateError(f"Lottery {lottery_id} is over", details=lottery.end_time)

    price = calculate_total_price_for_bulk_tickets(
        lottery.discount_divisor, lottery.price_ticket, len(ticket_numbers)
    )
    if ctx.attached_value < price:
        raise InsufficientPaymentError(
            "Attached value does not cover the tickets",
            details={"required": str(price), "attached": str(ctx.attached_value)},
        )
    if not ctx.allows_storage(len(ticket_numbers) * TICKET_STORAGE_BYTES):
        raise InsufficientPaymentError("Not enough storage balance for the tickets")
    new_collected = checked_add(lottery.amount_collected, price, label="amount collected")

    tickets: list[Ticket] = []
    for number in ticket_numbers:
        ticket = Ticket(
            id=state.current_ticket_id,
            lottery_id=lottery.id,
            number=number,
            owner=ctx.caller,
        )
        session.add(ticket)
        record_purchase(session, lottery.id, number)
        tickets.append(ticket)
        state.current_ticket_id += 1

    lottery.amount_collected = new_collected
    lottery.first_ticket_id_next_lottery = state.current_ticket_id
    ScheduledTransfer.schedule(
        session,
        ctx.caller,
        ctx.attached_value - price,
        TransferKind.REFUND,
        lottery.id,
    )
    session.flush()

    logger.info(
        f"buy_tickets lottery_id={lottery.id} buyer={ctx.caller} "
        f"tickets={len(tickets)} price={price}"
    )
    return tickets


def close_lottery(session: Session, ctx: ExecutionContext, lottery_id: int) -> DrawAudit:
    """Stop ticket sales and draw the final number from the context seed.

    Returns
    -------
    DrawAudit
        Seed, positions and digits the final number was derived from.
    """
    state = LotteryState.load(session)
    _require_operator(state, ctx)
    _require_running(state)

    lottery = Lottery.get_or_raise(session, lottery_id)
    if lottery.id != state.current_lottery_id:
        raise InvalidStateError(f"Lottery {lottery_id} is not the current lottery")
    if lottery.status != LotteryStatus.OPEN.value:
        raise InvalidStateError(f"Lottery {lottery_id} is not open")
    if ctx.now < lottery.end_time:
        raise InvalidStateError(
            f"Lottery {lottery_id} is not over", details={"end_time": lottery.end_time}
        )

    audit = derive_draw(ctx.resolve_seed())
    state.random_result = audit.final_number
    lottery.status = LotteryStatus.CLOSE.value
    session.flush()

    logger.debug(
        f"draw_final_number positions={list(audit.positions)} digits={audit.digits}"
    )
    logger.info(
        f"draw_final_number lottery_id={lottery.id} final_number={audit.final_number}"
    )
    logger.info(f"close_lottery lottery_id={lottery.id}")
    return audit


def draw_and_settle(
    session: Session, ctx: ExecutionContext, lottery_id: int, auto_injection: bool
) -> SettlementResult:
    """Compute the payout table of a closed lottery and make it claimable."""
    state = LotteryState.load(session)
    _require_operator(state, ctx)
    _require_running(state)
    return SettlementEngine(session).settle(lottery_id, auto_injection)


def claim_tickets(
    session: Session,
    ctx: ExecutionContext,
    lottery_id: int,
    ticket_ids: Sequence[int],
    brackets: Sequence[int],
) -> ClaimResult:
    """Claim winning tickets of ``ctx.caller``; see :class:`ClaimVerifier`."""
    state = LotteryState.load(session)
    _require_running(state)
    return ClaimVerifier(session).claim(ctx.caller, lottery_id, ticket_ids, brackets)


def inject_funds(session: Session, ctx: ExecutionContext, lottery_id: int) -> Lottery:
    """Add ``ctx.attached_value`` to the prize pot of an open lottery.

    Injected funds count towards ``last_pot_size`` as well, so the operating
    fee never applies to them.
    """
    state = LotteryState.load(session)
    if ctx.caller not in (state.owner_id, state.injector_id):
        raise UnauthorizedError("Only the owner or injector can inject funds")
    _require_running(state)
    if ctx.attached_value <= 0:
        raise InvalidInputError("Nothing attached to inject")

    lottery = Lottery.get_or_raise(session, lottery_id)
    if lottery.status != LotteryStatus.OPEN.value:
        raise InvalidStateError(f"Lottery {lottery_id} is not open")

    collected = checked_add(lottery.amount_collected, ctx.attached_value, label="amount collected")
    pot = checked_add(lottery.last_pot_size, ctx.attached_value, label="pot size")
    lottery.amount_collected = collected
    lottery.last_pot_size = pot
    session.flush()

    logger.info(f"inject_funds lottery_id={lottery.id} amount={ctx.attached_value}")
    return lottery


def pause(session: Session, ctx: ExecutionContext) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if not state.is_running:
        raise InvalidStateError("Lottery is already paused")
    state.running_state = RunningState.PAUSED.value
    session.flush()
    logger.info("pause")
    return state


def resume(session: Session, ctx: ExecutionContext) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if state.is_running:
        raise InvalidStateError("Lottery is already running")
    state.running_state = RunningState.RUNNING.value
    session.flush()
    logger.info("resume")
    return state


def set_owner(session: Session, ctx: ExecutionContext, new_owner: str) -> LotteryState:
    """Hand ownership of the deployment to ``new_owner``."""
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if not new_owner or new_owner == CLAIMED_OWNER:
        raise InvalidInputError("Invalid owner account", details=new_owner)
    previous = state.owner_id
    state.owner_id = new_owner
    session.flush()
    logger.info(f"set_owner previous={previous} owner={new_owner}")
    return state


def set_role_addresses(
    session: Session,
    ctx: ExecutionContext,
    *,
    operator: Optional[str] = None,
    treasury: Optional[str] = None,
    injector: Optional[str] = None,
) -> LotteryState:
    """Replace any of the operator, treasury and injector accounts."""
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if operator is not None:
        state.operator_id = operator
    if treasury is not None:
        state.treasury_id = treasury
    if injector is not None:
        state.injector_id = injector
    session.flush()
    logger.info(
        f"set_role_addresses operator={state.operator_id} "
        f"treasury={state.treasury_id} injector={state.injector_id}"
    )
    return state


def set_max_tickets_per_call(session: Session, ctx: ExecutionContext, value: int) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if value <= 0:
        raise InvalidInputError("Max tickets per call must be > 0", details=value)
    state.max_tickets_per_call = value
    session.flush()
    return state


def set_ticket_price_limits(
    session: Session, ctx: ExecutionContext, min_price: int, max_price: int
) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if min_price <= 0 or min_price > max_price:
        raise InvalidInputError(
            "Price limits must satisfy 0 < min <= max",
            details={"min": str(min_price), "max": str(max_price)},
        )
    ensure_u128(max_price, label="max price")
    state.min_price_ticket = min_price
    state.max_price_ticket = max_price
    session.flush()
    return state


def set_min_discount_divisor(session: Session, ctx: ExecutionContext, value: int) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    if value < 0:
        raise InvalidInputError("Discount divisor must not be negative", details=value)
    state.min_discount_divisor = value
    session.flush()
    return state


def set_fee_caps(
    session: Session,
    ctx: ExecutionContext,
    *,
    max_reserve_fee: Optional[int] = None,
    max_operate_fee: Optional[int] = None,
) -> LotteryState:
    state = LotteryState.load(session)
    _require_owner(state, ctx)
    for fee in (max_reserve_fee, max_operate_fee):
        if fee is not None and not 0 <= fee <= BASIS_POINTS:
            raise InvalidInputError(f"Fee caps must be within 0..{BASIS_POINTS}", details=fee)
    if max_reserve_fee is not None:
        state.max_reserve_fee = max_reserve_fee
    if max_operate_fee is not None:
        state.max_operate_fee = max_operate_fee
    session.flush()
    return state


__all__ = [
    "buy_tickets",
    "claim_tickets",
    "close_lottery",
    "draw_and_settle",
    "initialize_state",
    "inject_funds",
    "pause",
    "resume",
    "set_fee_caps",
    "set_max_tickets_per_call",
    "set_min_discount_divisor",
    "set_owner",
    "set_role_addresses",
    "set_ticket_price_limits",
    "start_lottery",
]
