"""Bracket matching, pricing, draw and settlement logic."""

from .brackets import (
    BRACKET_CALCULATOR,
    best_bracket,
    bracket_keys,
    count_at,
    encode_bracket_key,
    matches_at,
    record_purchase,
    validate_ticket_number,
)
from .claims import ClaimResult, ClaimVerifier, reward_for_ticket
from .draw_number import DrawAudit, derive_draw, derive_final_number
from .engine import SettlementEngine, SettlementResult
from .pricing import calculate_total_price_for_bulk_tickets

__all__ = [
    "BRACKET_CALCULATOR",
    "ClaimResult",
    "ClaimVerifier",
    "DrawAudit",
    "SettlementEngine",
    "SettlementResult",
    "best_bracket",
    "bracket_keys",
    "calculate_total_price_for_bulk_tickets",
    "count_at",
    "derive_draw",
    "derive_final_number",
    "encode_bracket_key",
    "matches_at",
    "record_purchase",
    "reward_for_ticket",
    "validate_ticket_number",
]
