"""Deployment-wide lottery state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .types import ID_TYPE, U128
from ..config import LotteryConfig
from ..errors import InvalidStateError, NotFoundError

CURRENT_SCHEMA_VERSION = 1


class RunningState(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"


class LotteryState(Base):
    """Counters, role addresses, operating limits and the carried pot.

    Exactly one row exists per deployment. It is loaded through
    :meth:`LotteryState.load` by every workflow so that all operations act on
    the state of the session they were given.
    """

    __tablename__ = "lottery_state"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    schema_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=CURRENT_SCHEMA_VERSION
    )
    """Layout version of this row; see :func:`upgrade_state`."""

    running_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RunningState.RUNNING.value
    )

    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)
    operator_id: Mapped[str] = mapped_column(String(100), nullable=False)
    treasury_id: Mapped[str] = mapped_column(String(100), nullable=False)
    """Fee sink receiving operating fees and non-injected rollovers."""
    injector_id: Mapped[str] = mapped_column(String(100), nullable=False)

    current_lottery_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Id of the latest lottery; ``0`` before the first round."""

    current_ticket_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Id the next sold ticket receives; ticket ids are dense across lotteries."""

    pending_injection_next_lottery: Mapped[int] = mapped_column(
        U128, nullable=False, default=0
    )
    """Pot carried into the next lottery when it starts."""

    random_result: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Final number drawn when the current lottery was closed."""

    max_tickets_per_call: Mapped[int] = mapped_column(Integer, nullable=False)
    min_price_ticket: Mapped[int] = mapped_column(U128, nullable=False)
    max_price_ticket: Mapped[int] = mapped_column(U128, nullable=False)
    min_discount_divisor: Mapped[int] = mapped_column(U128, nullable=False)
    max_reserve_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    max_operate_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    min_length_lottery: Mapped[int] = mapped_column(Integer, nullable=False)
    max_length_lottery: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "running_state IN ('running','paused')", name="running_state_enum"
        ),
    )

    def __init__(
        self,
        *,
        owner_id: str,
        operator_id: str,
        treasury_id: str,
        injector_id: Optional[str] = None,
        config: Optional[LotteryConfig] = None,
    ) -> None:
        cfg = config or LotteryConfig()
        self.schema_version = CURRENT_SCHEMA_VERSION
        self.running_state = RunningState.RUNNING.value
        self.owner_id = owner_id
        self.operator_id = operator_id
        self.treasury_id = treasury_id
        self.injector_id = injector_id or owner_id
        self.current_lottery_id = 0
        self.current_ticket_id = 0
        self.pending_injection_next_lottery = 0
        self.random_result = 0
        self.max_tickets_per_call = cfg.max_tickets_per_call
        self.min_price_ticket = cfg.min_price_ticket
        self.max_price_ticket = cfg.max_price_ticket
        self.min_discount_divisor = cfg.min_discount_divisor
        self.max_reserve_fee = cfg.max_reserve_fee
        self.max_operate_fee = cfg.max_operate_fee
        self.min_length_lottery = cfg.min_length_lottery
        self.max_length_lottery = cfg.max_length_lottery

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<LotteryState(id={self.id}, current_lottery_id={self.current_lottery_id}, "
            f"current_ticket_id={self.current_ticket_id}, state={self.running_state})>"
        )

    @property
    def is_running(self) -> bool:
        return self.running_state == RunningState.RUNNING.value

    @classmethod
    def get(cls, session: Session) -> Optional["LotteryState"]:
        """Return the deployment state row, or ``None`` before initialization."""
        return session.scalars(select(cls).order_by(cls.id.asc())).first()

    @classmethod
    def load(cls, session: Session) -> "LotteryState":
        """Return the deployment state, upgraded to the current schema version."""
        state = cls.get(session)
        if state is None:
            raise NotFoundError("Lottery state has not been initialized")
        return upgrade_state(state)

    def to_json(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "state": self.running_state,
            "owner_id": self.owner_id,
            "operator_id": self.operator_id,
            "treasury_id": self.treasury_id,
            "injector_id": self.injector_id,
            "current_lottery_id": self.current_lottery_id,
            "current_ticket_id": self.current_ticket_id,
            "pending_injection_next_lottery": str(self.pending_injection_next_lottery),
            "max_tickets_per_call": self.max_tickets_per_call,
            "min_price_ticket": str(self.min_price_ticket),
            "max_price_ticket": str(self.max_price_ticket),
            "min_discount_divisor": str(self.min_discount_divisor),
            "max_reserve_fee": self.max_reserve_fee,
            "max_operate_fee": self.max_operate_fee,
            "min_length_lottery": self.min_length_lottery,
            "max_length_lottery": self.max_length_lottery,
        }


StateMigration = Callable[[LotteryState], None]

# Maps a schema version to the function moving a row from that version to the
# next one. Add an entry and bump CURRENT_SCHEMA_VERSION when the layout changes.
STATE_MIGRATIONS: Dict[int, StateMigration] = {}


def upgrade_state(
    state: LotteryState,
    *,
    migrations: Optional[Dict[int, StateMigration]] = None,
    target_version: int = CURRENT_SCHEMA_VERSION,
) -> LotteryState:
    """Apply per-version migrations until ``state`` reaches ``target_version``."""
    registry = STATE_MIGRATIONS if migrations is None else migrations
    while state.schema_version < target_version:
        migrate = registry.get(state.schema_version)
        if migrate is None:
            raise InvalidStateError(
                f"No migration registered from schema version {state.schema_version}"
            )
        migrate(state)
        state.schema_version += 1
    if state.schema_version > target_version:
        raise InvalidStateError(
            f"State schema version {state.schema_version} is newer than supported "
            f"version {target_version}"
        )
    return state


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "LotteryState",
    "RunningState",
    "STATE_MIGRATIONS",
    "upgrade_state",
]
