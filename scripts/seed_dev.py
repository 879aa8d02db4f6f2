"""Play one complete lottery round against a fresh development database."""

import logging

from bracketlott.config import ONE_UNIT, LotteryConfig
from bracketlott.context import ExecutionContext
from bracketlott.db.engine import get_sessionmaker, make_engine
from bracketlott.models import Base, ScheduledTransfer, Ticket
from bracketlott.prize_draw import best_bracket
from bracketlott.randomness import SystemSeedSource
from bracketlott.views import view_lottery, view_rewards_for_ticket
from bracketlott.workflows import (
    buy_tickets,
    claim_tickets,
    close_lottery,
    draw_and_settle,
    initialize_state,
    start_lottery,
)

OWNER = "owner.dev"
OPERATOR = "operator.dev"
TREASURY = "treasury.dev"
PLAYERS = {
    "alice.dev": [1039219, 1106409, 1192039],
    "bob.dev": [1000699, 1327419, 1555555],
}


def main() -> None:
    """Reset the schema, then start, sell, close, settle and claim one lottery."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    engine = make_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    start = 1_700_000_000
    end = start + 6 * 3600

    with Session.begin() as session:
        initialize_state(session, OWNER, OPERATOR, TREASURY, config=LotteryConfig())
        lottery = start_lottery(
            session,
            ExecutionContext(caller=OPERATOR, now=start),
            end_time=end,
            price_ticket=ONE_UNIT,
            discount_divisor=2000,
            rewards_breakdown=[125, 375, 750, 1250, 2500, 5000],
            reserve_fee=2000,
            operate_fee=500,
        )
        lottery_id = lottery.id

    with Session.begin() as session:
        for player, numbers in PLAYERS.items():
            buy_tickets(
                session,
                ExecutionContext(caller=player, attached_value=10 * ONE_UNIT, now=start + 60),
                lottery_id,
                numbers,
            )

    operator = ExecutionContext(caller=OPERATOR, now=end, seed=SystemSeedSource())
    with Session.begin() as session:
        close_lottery(session, operator, lottery_id)
        draw_and_settle(session, operator, lottery_id, auto_injection=True)

    with Session.begin() as session:
        final_number = view_lottery(session, lottery_id)["final_number"]
        for player in PLAYERS:
            winning = []
            for ticket in Ticket.for_buyer(session, player, lottery_id):
                bracket = best_bracket(ticket.number, final_number)
                if bracket is None:
                    continue
                if view_rewards_for_ticket(session, lottery_id, ticket.id, bracket):
                    winning.append((ticket.id, bracket))
            if winning:
                ids, brackets = zip(*winning)
                claim_tickets(
                    session, ExecutionContext(caller=player), lottery_id, ids, brackets
                )

    with Session.begin() as session:
        print("Lottery:", view_lottery(session, lottery_id))
        for transfer in ScheduledTransfer.pending(session):
            print(f"  {transfer.kind:<12} {transfer.recipient:<14} {transfer.amount}")

    engine.dispose()


if __name__ == "__main__":
    main()
