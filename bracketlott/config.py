"""Environment-based lottery configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

ONE_UNIT = 10**24
"""Smallest-unit multiplier of one whole coin (yocto precision)."""

DEFAULT_BEACON_URL = "https://api.drand.sh"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{name}' must be an integer") from exc


@dataclass(frozen=True)
class LotteryConfig:
    """Operating limits copied into the deployment state on initialization."""

    max_tickets_per_call: int = 12
    min_price_ticket: int = ONE_UNIT // 100
    max_price_ticket: int = 100 * ONE_UNIT
    min_discount_divisor: int = 300
    max_reserve_fee: int = 3000
    max_operate_fee: int = 3000
    # after 4 hours - 5 minutes up to 4 days + 5 minutes
    min_length_lottery: int = 4 * 3600 - 300
    max_length_lottery: int = 4 * 86400 + 300
    beacon_url: str = DEFAULT_BEACON_URL

    @staticmethod
    def from_env() -> "LotteryConfig":
        load_dotenv()
        defaults = LotteryConfig()
        return LotteryConfig(
            max_tickets_per_call=_env_int(
                "LOTTERY_MAX_TICKETS_PER_CALL", defaults.max_tickets_per_call
            ),
            min_price_ticket=_env_int("LOTTERY_MIN_PRICE", defaults.min_price_ticket),
            max_price_ticket=_env_int("LOTTERY_MAX_PRICE", defaults.max_price_ticket),
            min_discount_divisor=_env_int(
                "LOTTERY_MIN_DISCOUNT_DIVISOR", defaults.min_discount_divisor
            ),
            max_reserve_fee=_env_int("LOTTERY_MAX_RESERVE_FEE", defaults.max_reserve_fee),
            max_operate_fee=_env_int("LOTTERY_MAX_OPERATE_FEE", defaults.max_operate_fee),
            min_length_lottery=_env_int("LOTTERY_MIN_LENGTH", defaults.min_length_lottery),
            max_length_lottery=_env_int("LOTTERY_MAX_LENGTH", defaults.max_length_lottery),
            beacon_url=os.getenv("LOTTERY_BEACON_URL", "").strip() or defaults.beacon_url,
        )


__all__ = ["DEFAULT_BEACON_URL", "LotteryConfig", "ONE_UNIT"]
