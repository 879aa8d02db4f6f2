from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .state import LotteryState, RunningState  # noqa: F401
from .lottery import BracketCount, Lottery, LotteryStatus, NUMBER_OF_BRACKETS  # noqa: F401
from .ticket import CLAIMED_OWNER, Ticket  # noqa: F401
from .transfer import ScheduledTransfer, TransferKind  # noqa: F401

__all__ = [
    "Base",
    "BracketCount",
    "CLAIMED_OWNER",
    "Lottery",
    "LotteryState",
    "LotteryStatus",
    "NUMBER_OF_BRACKETS",
    "RunningState",
    "ScheduledTransfer",
    "Ticket",
    "TransferKind",
]
