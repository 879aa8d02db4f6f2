"""Outbox of value transfers scheduled by lottery operations."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .types import ID_TYPE, U128


class TransferKind(str, Enum):
    PAYOUT = "payout"
    OPERATE_FEE = "operate_fee"
    TREASURY = "treasury"
    REFUND = "refund"


class ScheduledTransfer(Base):
    """A transfer emitted as the post-call effect of a successful operation.

    Rows are only written after every check of the call passed; the host
    executes them and records ``executed_at``.
    """

    __tablename__ = "scheduled_transfers"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    recipient: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[int] = mapped_column(U128, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    lottery_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lotteries.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    executed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "kind IN ('payout','operate_fee','treasury','refund')", name="kind_enum"
        ),
        Index("ix_scheduled_transfers_recipient", "recipient"),
        Index("ix_scheduled_transfers_pending", "executed_at"),
    )

    def __init__(
        self,
        *,
        recipient: str,
        amount: int,
        kind: TransferKind,
        lottery_id: Optional[int] = None,
    ) -> None:
        self.recipient = recipient
        self.amount = amount
        self.kind = kind.value
        self.lottery_id = lottery_id

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<ScheduledTransfer(id={self.id}, recipient={self.recipient}, "
            f"amount={self.amount}, kind={self.kind})>"
        )

    @classmethod
    def schedule(
        cls,
        session: Session,
        recipient: str,
        amount: int,
        kind: TransferKind,
        lottery_id: Optional[int] = None,
    ) -> Optional["ScheduledTransfer"]:
        """Queue a transfer; zero amounts are skipped and return ``None``."""
        if amount <= 0:
            return None
        transfer = cls(recipient=recipient, amount=amount, kind=kind, lottery_id=lottery_id)
        session.add(transfer)
        return transfer

    @classmethod
    def pending(cls, session: Session) -> list["ScheduledTransfer"]:
        stmt = select(cls).where(cls.executed_at.is_(None)).order_by(cls.id.asc())
        return list(session.scalars(stmt).all())

    @classmethod
    def total_for(
        cls,
        session: Session,
        *,
        lottery_id: Optional[int] = None,
        kind: Optional[TransferKind] = None,
        recipient: Optional[str] = None,
    ) -> int:
        """Sum scheduled amounts matching the filters (summed in Python, not SQL)."""
        stmt = select(cls)
        if lottery_id is not None:
            stmt = stmt.where(cls.lottery_id == lottery_id)
        if kind is not None:
            stmt = stmt.where(cls.kind == kind.value)
        if recipient is not None:
            stmt = stmt.where(cls.recipient == recipient)
        return sum(t.amount for t in session.scalars(stmt).all())

    def mark_executed(self) -> None:
        self.executed_at = datetime.now(timezone.utc)


__all__ = ["ScheduledTransfer", "TransferKind"]
