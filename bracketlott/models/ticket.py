"""Ticket ledger model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .lottery import Lottery

CLAIMED_OWNER = "0"
"""Owner value written to a ticket once it has been claimed."""


class Ticket(Base):
    """A sold ticket.

    ``owner`` is rewritten to :data:`CLAIMED_OWNER` when the ticket is
    claimed; that rewrite is what prevents a second claim. ``buyer`` keeps the
    original purchaser so per-user views still work after a claim.
    """

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    """Dense ticket id, monotonic across all lotteries."""

    lottery_id: Mapped[int] = mapped_column(
        ForeignKey("lotteries.id", ondelete="RESTRICT"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    owner: Mapped[str] = mapped_column(String(100), nullable=False)
    buyer: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    claimed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="tickets")

    __table_args__ = (
        Index("ix_tickets_lottery_buyer", "lottery_id", "buyer"),
    )

    def __init__(self, *, id: int, lottery_id: int, number: int, owner: str) -> None:
        self.id = id
        self.lottery_id = lottery_id
        self.number = number
        self.owner = owner
        self.buyer = owner

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Ticket(id={self.id}, lottery_id={self.lottery_id}, "
            f"number={self.number}, owner={self.owner})>"
        )

    @property
    def claimed(self) -> bool:
        return self.owner == CLAIMED_OWNER

    def mark_claimed(self) -> None:
        self.owner = CLAIMED_OWNER
        self.claimed_at = datetime.now(timezone.utc)

    @classmethod
    def get_many(cls, session: Session, ticket_ids: Iterable[int]) -> dict[int, "Ticket"]:
        """Return the existing tickets among ``ticket_ids`` keyed by id."""
        ids = list(ticket_ids)
        if not ids:
            return {}
        rows = session.scalars(select(cls).where(cls.id.in_(ids))).all()
        return {row.id: row for row in rows}

    @classmethod
    def for_buyer(cls, session: Session, buyer: str, lottery_id: int) -> list["Ticket"]:
        stmt = (
            select(cls)
            .where(cls.buyer == buyer, cls.lottery_id == lottery_id)
            .order_by(cls.id.asc())
        )
        return list(session.scalars(stmt).all())

    def to_json(self) -> dict:
        return {
            "ticket_id": self.id,
            "lottery_id": self.lottery_id,
            "number": self.number,
            "owner": self.owner,
            "claimed": self.claimed,
        }


__all__ = ["CLAIMED_OWNER", "Ticket"]
