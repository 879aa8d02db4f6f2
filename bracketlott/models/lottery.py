"""Database models for lottery rounds and their bracket counters."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .types import U128
from ..errors import NotFoundError

if TYPE_CHECKING:
    from .ticket import Ticket

NUMBER_OF_BRACKETS = 6


class LotteryStatus(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    CLAIMABLE = "claimable"


def _zeros() -> list[int]:
    return [0] * NUMBER_OF_BRACKETS


class Lottery(Base):
    """One draw cycle: sale parameters while open, payout table once settled."""

    __tablename__ = "lotteries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    """Lottery id, assigned from ``LotteryState.current_lottery_id``."""

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LotteryStatus.OPEN.value
    )

    start_time: Mapped[int] = mapped_column(Integer, nullable=False)
    """Sale window start, seconds since the epoch."""

    end_time: Mapped[int] = mapped_column(Integer, nullable=False)
    """Sale window end (exclusive), seconds since the epoch."""

    price_ticket: Mapped[int] = mapped_column(U128, nullable=False)
    discount_divisor: Mapped[int] = mapped_column(U128, nullable=False)

    rewards_breakdown: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Share of the prize pool per bracket in parts-per-10000; sums to 10000."""

    reserve_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    """Reserve fee in parts-per-10000, taken after the operating fee."""

    operate_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    """Operating fee in parts-per-10000, applied to newly raised funds only."""

    first_ticket_id: Mapped[int] = mapped_column(Integer, nullable=False)
    first_ticket_id_next_lottery: Mapped[int] = mapped_column(Integer, nullable=False)
    """Exclusive upper bound of the ticket ids sold in this lottery."""

    amount_collected: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    """Ticket sales plus carried pot and injections."""

    last_pot_size: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    """Pot carried in (rollover and injections); exempt from the operating fee."""

    final_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # JSON lists hold python ints; json preserves arbitrary precision integers.
    near_per_bracket: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Reward paid per winning ticket, per bracket."""

    count_winners_per_bracket: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Tickets whose best matching bracket is ``b``."""

    operate_fee_amount: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    reserve_fee_amount: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    amount_to_share: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    rollover_amount: Mapped[int] = mapped_column(U128, nullable=False, default=0)
    """Un-won prize money (including rounding dust) left over after settlement."""

    auto_injection: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    settled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    tickets: Mapped[list["Ticket"]] = relationship(
        back_populates="lottery", order_by="Ticket.id"
    )
    bracket_counts: Mapped[list["BracketCount"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('open','close','claimable')", name="status_enum"
        ),
        Index("ix_lotteries_status", "status"),
    )

    def __init__(
        self,
        *,
        id: int,
        start_time: int,
        end_time: int,
        price_ticket: int,
        discount_divisor: int,
        rewards_breakdown: Sequence[int],
        reserve_fee: int,
        operate_fee: int,
        first_ticket_id: int,
        amount_collected: int = 0,
        last_pot_size: int = 0,
    ) -> None:
        self.id = id
        self.status = LotteryStatus.OPEN.value
        self.start_time = start_time
        self.end_time = end_time
        self.price_ticket = price_ticket
        self.discount_divisor = discount_divisor
        self.rewards_breakdown = list(rewards_breakdown)
        self.reserve_fee = reserve_fee
        self.operate_fee = operate_fee
        self.first_ticket_id = first_ticket_id
        self.first_ticket_id_next_lottery = first_ticket_id
        self.amount_collected = amount_collected
        self.last_pot_size = last_pot_size
        self.final_number = 0
        self.near_per_bracket = _zeros()
        self.count_winners_per_bracket = _zeros()
        self.operate_fee_amount = 0
        self.reserve_fee_amount = 0
        self.amount_to_share = 0
        self.rollover_amount = 0

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Lottery(id={self.id}, status={self.status}, "
            f"amount_collected={self.amount_collected}, final_number={self.final_number})>"
        )

    @property
    def ticket_count(self) -> int:
        return self.first_ticket_id_next_lottery - self.first_ticket_id

    def contains_ticket_id(self, ticket_id: int) -> bool:
        """Return ``True`` when ``ticket_id`` was sold in this lottery."""
        return self.first_ticket_id <= ticket_id < self.first_ticket_id_next_lottery

    @classmethod
    def get_or_raise(cls, session: Session, lottery_id: int) -> "Lottery":
        lottery = session.get(cls, lottery_id)
        if lottery is None:
            raise NotFoundError(f"Lottery {lottery_id} does not exist")
        return lottery

    @classmethod
    def non_terminal(cls, session: Session) -> list["Lottery"]:
        """Return lotteries that are still open or awaiting settlement."""
        stmt = select(cls).where(
            cls.status.in_([LotteryStatus.OPEN.value, LotteryStatus.CLOSE.value])
        )
        return list(session.scalars(stmt).all())

    def to_json(self) -> dict:
        """Serialize the lottery; amounts are strings to survive JSON clients."""
        return {
            "lottery_id": self.id,
            "status": self.status,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "price_ticket": str(self.price_ticket),
            "discount_divisor": str(self.discount_divisor),
            "rewards_breakdown": list(self.rewards_breakdown),
            "reserve_fee": self.reserve_fee,
            "operate_fee": self.operate_fee,
            "first_ticket_id": self.first_ticket_id,
            "first_ticket_id_next_lottery": self.first_ticket_id_next_lottery,
            "amount_collected": str(self.amount_collected),
            "last_pot_size": str(self.last_pot_size),
            "final_number": self.final_number,
            "near_per_bracket": [str(v) for v in self.near_per_bracket],
            "count_winners_per_bracket": list(self.count_winners_per_bracket),
            "operate_fee_amount": str(self.operate_fee_amount),
            "reserve_fee_amount": str(self.reserve_fee_amount),
            "amount_to_share": str(self.amount_to_share),
            "rollover_amount": str(self.rollover_amount),
        }


class BracketCount(Base):
    """Number of tickets of one lottery sharing a bracket key.

    The table is a flat map keyed by ``(lottery_id, bracket_key)``. Because
    bracket keys carry a per-bracket offset, one row per key is enough to
    answer "how many tickets match the last ``b+1`` digits" in one lookup.
    """

    __tablename__ = "bracket_counts"

    lottery_id: Mapped[int] = mapped_column(
        ForeignKey("lotteries.id", ondelete="CASCADE"), primary_key=True
    )
    bracket_key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    lottery: Mapped["Lottery"] = relationship(back_populates="bracket_counts")

    def __init__(self, *, lottery_id: int, bracket_key: int, count: int = 0) -> None:
        self.lottery_id = lottery_id
        self.bracket_key = bracket_key
        self.count = count

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<BracketCount(lottery_id={self.lottery_id}, "
            f"bracket_key={self.bracket_key}, count={self.count})>"
        )


__all__ = ["BracketCount", "Lottery", "LotteryStatus", "NUMBER_OF_BRACKETS"]
