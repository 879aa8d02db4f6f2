import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bracketlott.config import ONE_UNIT, LotteryConfig
from bracketlott.context import ExecutionContext
from bracketlott.errors import InvalidInputError, NotFoundError
from bracketlott.models import Base
from bracketlott.views import (
    view_config,
    view_latest_lottery_id,
    view_lottery,
    view_random_result,
    view_rewards_for_ticket,
    view_ticket_status,
    view_total_price,
    view_user_tickets,
)
from bracketlott.workflows import (
    buy_tickets,
    claim_tickets,
    close_lottery,
    draw_and_settle,
    initialize_state,
    start_lottery,
)

OWNER = "owner.test"
OPERATOR = "operator.test"
ALICE = "alice.test"
BOB = "bob.test"
START = 1_700_000_000
END = START + 6 * 3600
SEED = bytes(
    [1, 2, 3, 4, 5, 6, 7, 8, 9, 1, 2, 4, 5, 6, 7, 8,
     9, 1, 2, 3, 3, 4, 5, 6, 6, 7, 8, 9, 1, 2, 4, 5]
)


class ViewsTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)
        with self.Session.begin() as session:
            initialize_state(session, OWNER, OPERATOR, "treasury.test", config=LotteryConfig())
            self.lottery_id = start_lottery(
                session,
                ExecutionContext(caller=OPERATOR, now=START),
                end_time=END,
                price_ticket=ONE_UNIT,
                discount_divisor=2000,
                rewards_breakdown=[125, 375, 750, 1250, 2500, 5000],
                reserve_fee=2000,
                operate_fee=500,
            ).id
            buy_tickets(
                session,
                ExecutionContext(caller=ALICE, attached_value=4 * ONE_UNIT, now=START),
                self.lottery_id,
                [1039212, 1106402, 1192032, 1000692],
            )

    def tearDown(self):
        self.engine.dispose()

    def _settle(self):
        operator = ExecutionContext(caller=OPERATOR, now=END, seed=SEED)
        with self.Session.begin() as session:
            close_lottery(session, operator, self.lottery_id)
            draw_and_settle(session, operator, self.lottery_id, True)

    def test_rewards_are_zero_until_claimable(self):
        with self.Session() as session:
            self.assertEqual(view_rewards_for_ticket(session, self.lottery_id, 0, 1), 0)

    def test_rewards_after_settlement(self):
        self._settle()
        with self.Session() as session:
            self.assertEqual(
                view_rewards_for_ticket(session, self.lottery_id, 0, 1),
                113829000000000000000000,
            )
            self.assertEqual(
                view_rewards_for_ticket(session, self.lottery_id, 1, 0),
                12647666666666666666666,
            )
            self.assertEqual(view_rewards_for_ticket(session, self.lottery_id, 1, 2), 0)
            self.assertEqual(view_rewards_for_ticket(session, self.lottery_id, 99, 0), 0)
            with self.assertRaises(InvalidInputError):
                view_rewards_for_ticket(session, self.lottery_id, 0, 6)

    def test_ticket_status_and_user_tickets_after_claim(self):
        self._settle()
        with self.Session.begin() as session:
            claim_tickets(session, ExecutionContext(caller=ALICE), self.lottery_id, [1], [0])

        with self.Session() as session:
            statuses = view_ticket_status(session, [1, 2])
            self.assertEqual(
                statuses,
                [
                    {"ticket_id": 1, "number": 1106402, "claimed": True},
                    {"ticket_id": 2, "number": 1192032, "claimed": False},
                ],
            )
            with self.assertRaises(NotFoundError):
                view_ticket_status(session, [42])

            mine = view_user_tickets(session, ALICE, self.lottery_id)
            self.assertEqual([t["ticket_id"] for t in mine], [0, 1, 2, 3])
            self.assertEqual(view_user_tickets(session, BOB, self.lottery_id), [])

    def test_lottery_and_state_views(self):
        self._settle()
        with self.Session() as session:
            lottery = view_lottery(session, self.lottery_id)
            self.assertEqual(lottery["status"], "claimable")
            self.assertEqual(lottery["amount_collected"], "3994000000000000000000000")
            self.assertEqual(lottery["count_winners_per_bracket"], [3, 1, 0, 0, 0, 0])
            self.assertEqual(view_latest_lottery_id(session), self.lottery_id)
            self.assertEqual(view_random_result(session), 1678912)
            config = view_config(session)
            self.assertEqual(config["pending_injection_next_lottery"], "3642528000000000000000002")
            self.assertEqual(config["max_tickets_per_call"], 12)
            with self.assertRaises(NotFoundError):
                view_lottery(session, 42)

    def test_total_price(self):
        with self.Session() as session:
            self.assertEqual(
                view_total_price(session, self.lottery_id, 10), 9955000000000000000000000
            )


if __name__ == "__main__":
    unittest.main()
