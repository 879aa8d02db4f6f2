import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bracketlott.config import ONE_UNIT, LotteryConfig
from bracketlott.context import ExecutionContext
from bracketlott.errors import (
    InvalidInputError,
    InvalidStateError,
    NoPrizeError,
    NotFoundError,
    UnauthorizedError,
    WrongBracketError,
)
from bracketlott.models import (
    CLAIMED_OWNER,
    Base,
    Lottery,
    LotteryState,
    ScheduledTransfer,
    Ticket,
    TransferKind,
)
from bracketlott.workflows import (
    buy_tickets,
    claim_tickets,
    close_lottery,
    draw_and_settle,
    initialize_state,
    pause,
    start_lottery,
)

OWNER = "owner.test"
OPERATOR = "operator.test"
TREASURY = "treasury.test"
ALICE = "alice.test"
BOB = "bob.test"

START = 1_700_000_000
END = START + 6 * 3600
SEED = bytes(
    [1, 2, 3, 4, 5, 6, 7, 8, 9, 1, 2, 4, 5, 6, 7, 8,
     9, 1, 2, 3, 3, 4, 5, 6, 6, 7, 8, 9, 1, 2, 4, 5]
)
NEAR_BRACKET_0 = 12647666666666666666666
NEAR_BRACKET_1 = 113829000000000000000000


class ClaimTestCase(unittest.TestCase):
    """Alice owns tickets 0-3: ticket 0 wins at bracket 1, tickets 1-3 at bracket 0."""

    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)
        self.operator = ExecutionContext(caller=OPERATOR, now=END, seed=SEED)
        with self.Session.begin() as session:
            initialize_state(session, OWNER, OPERATOR, TREASURY, config=LotteryConfig())
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
        with self.Session.begin() as session:
            close_lottery(session, self.operator, self.lottery_id)
            draw_and_settle(session, self.operator, self.lottery_id, True)

    def _claim(self, session, caller, ticket_ids, brackets):
        return claim_tickets(
            session, ExecutionContext(caller=caller), self.lottery_id, ticket_ids, brackets
        )

    def test_claim_pays_sum_of_rewards_in_one_transfer(self):
        self._settle()
        with self.Session.begin() as session:
            result = self._claim(session, ALICE, [0, 1, 2, 3], [1, 0, 0, 0])
            self.assertEqual(result.total_reward, NEAR_BRACKET_1 + 3 * NEAR_BRACKET_0)

        with self.Session() as session:
            payouts = [
                t for t in ScheduledTransfer.pending(session) if t.kind == TransferKind.PAYOUT.value
            ]
            self.assertEqual(len(payouts), 1)
            self.assertEqual(payouts[0].recipient, ALICE)
            self.assertEqual(payouts[0].amount, 151771999999999999999998)
            tickets = Ticket.get_many(session, [0, 1, 2, 3])
            self.assertTrue(all(t.owner == CLAIMED_OWNER for t in tickets.values()))
            self.assertTrue(all(t.buyer == ALICE for t in tickets.values()))

    def test_second_claim_is_unauthorized(self):
        self._settle()
        with self.Session.begin() as session:
            self._claim(session, ALICE, [1], [0])
        with self.Session() as session:
            with self.assertRaises(UnauthorizedError):
                self._claim(session, ALICE, [1], [0])

    def test_duplicate_ticket_in_one_call_is_unauthorized(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(UnauthorizedError):
                self._claim(session, ALICE, [1, 1], [0, 0])

    def test_claimed_owner_account_cannot_claim_again(self):
        self._settle()
        with self.Session.begin() as session:
            self._claim(session, ALICE, [0], [1])
        for _ in range(3):
            with self.Session() as session:
                with self.assertRaises(UnauthorizedError):
                    self._claim(session, CLAIMED_OWNER, [0], [1])
        with self.Session() as session:
            self.assertEqual(
                ScheduledTransfer.total_for(session, kind=TransferKind.PAYOUT), NEAR_BRACKET_1
            )

    def test_claimed_owner_account_cannot_buy(self):
        with self.Session() as session:
            with self.assertRaises(UnauthorizedError):
                buy_tickets(
                    session,
                    ExecutionContext(caller=CLAIMED_OWNER, attached_value=ONE_UNIT, now=START),
                    self.lottery_id,
                    [1000001],
                )
            self.assertIsNone(session.get(Ticket, 4))

    def test_claim_by_non_owner_is_unauthorized(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(UnauthorizedError):
                self._claim(session, BOB, [1], [0])

    def test_weaker_bracket_is_rejected(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(WrongBracketError):
                self._claim(session, ALICE, [0], [0])

    def test_four_digit_match_must_be_claimed_at_bracket_three(self):
        with self.Session.begin() as session:
            bob_ticket = buy_tickets(
                session,
                ExecutionContext(caller=BOB, attached_value=ONE_UNIT, now=START),
                self.lottery_id,
                [1008912],
            )[0].id
        self._settle()
        with self.Session() as session:
            with self.assertRaises(WrongBracketError):
                self._claim(session, BOB, [bob_ticket], [1])
            with self.assertRaises(NoPrizeError):
                self._claim(session, BOB, [bob_ticket], [4])
        with self.Session.begin() as session:
            lottery = session.get(Lottery, self.lottery_id)
            self.assertEqual(lottery.count_winners_per_bracket[3], 1)
            self.assertGreater(lottery.near_per_bracket[3], 0)
            result = self._claim(session, BOB, [bob_ticket], [3])
            self.assertEqual(result.total_reward, lottery.near_per_bracket[3])

    def test_bracket_without_match_has_no_prize(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(NoPrizeError):
                self._claim(session, ALICE, [1], [1])

    def test_rejected_batch_leaves_every_ticket_claimable(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(WrongBracketError):
                self._claim(session, ALICE, [1, 0], [0, 0])
            self.assertEqual(session.get(Ticket, 1).owner, ALICE)
            self.assertEqual(ScheduledTransfer.total_for(session, kind=TransferKind.PAYOUT), 0)

    def test_every_claim_keeps_funds_conserved(self):
        self._settle()
        for ticket_ids, brackets in (([3], [0]), ([2, 0], [0, 1]), ([1], [0])):
            with self.Session.begin() as session:
                self._claim(session, ALICE, ticket_ids, brackets)

        with self.Session() as session:
            lottery = session.get(Lottery, self.lottery_id)
            state = LotteryState.load(session)
            paid = ScheduledTransfer.total_for(session, kind=TransferKind.PAYOUT)
            operate = ScheduledTransfer.total_for(session, kind=TransferKind.OPERATE_FEE)
            treasury = ScheduledTransfer.total_for(session, kind=TransferKind.TREASURY)
            # reserve fee and rollover are both inside the pending injection
            self.assertEqual(
                state.pending_injection_next_lottery,
                lottery.reserve_fee_amount + lottery.rollover_amount,
            )
            self.assertEqual(paid, 151771999999999999999998)
            self.assertEqual(
                paid + operate + treasury + state.pending_injection_next_lottery,
                lottery.amount_collected,
            )
            self.assertEqual(lottery.amount_collected, 3994000000000000000000000)

    def test_invalid_batches(self):
        self._settle()
        with self.Session() as session:
            with self.assertRaises(InvalidInputError):
                self._claim(session, ALICE, [1, 2], [0])
            with self.assertRaises(InvalidInputError):
                self._claim(session, ALICE, [], [])
            with self.assertRaises(InvalidInputError):
                self._claim(session, ALICE, [1], [6])
            with self.assertRaises(InvalidInputError):
                self._claim(session, ALICE, [99], [0])
            with self.assertRaises(InvalidInputError):
                self._claim(session, ALICE, list(range(13)), [0] * 13)
            with self.assertRaises(NotFoundError):
                claim_tickets(session, ExecutionContext(caller=ALICE), 42, [1], [0])

    def test_claim_before_settlement_is_rejected(self):
        with self.Session() as session:
            with self.assertRaises(InvalidStateError):
                self._claim(session, ALICE, [1], [0])

    def test_claim_while_paused_is_rejected(self):
        self._settle()
        with self.Session.begin() as session:
            pause(session, ExecutionContext(caller=OWNER))
        with self.Session() as session:
            with self.assertRaises(InvalidStateError):
                self._claim(session, ALICE, [1], [0])


if __name__ == "__main__":
    unittest.main()
