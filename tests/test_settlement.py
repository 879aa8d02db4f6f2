import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bracketlott.config import ONE_UNIT, LotteryConfig
from bracketlott.context import ExecutionContext
from bracketlott.errors import ArithmeticOverflowError, InvalidStateError, UnauthorizedError
from bracketlott.models import (
    Base,
    Lottery,
    LotteryState,
    LotteryStatus,
    ScheduledTransfer,
    TransferKind,
)
from bracketlott.models.types import U128_MAX
from bracketlott.prize_draw.brackets import count_at, encode_bracket_key
from bracketlott.workflows import (
    buy_tickets,
    close_lottery,
    draw_and_settle,
    initialize_state,
    inject_funds,
    start_lottery,
)

OWNER = "owner.test"
OPERATOR = "operator.test"
TREASURY = "treasury.test"
ALICE = "alice.test"

START = 1_700_000_000
END = START + 6 * 3600
BREAKDOWN = [125, 375, 750, 1250, 2500, 5000]
# Draws 1678912.
SEED = bytes(
    [1, 2, 3, 4, 5, 6, 7, 8, 9, 1, 2, 4, 5, 6, 7, 8,
     9, 1, 2, 3, 3, 4, 5, 6, 6, 7, 8, 9, 1, 2, 4, 5]
)
# One ticket matching "12", three matching only the last "2".
TICKETS = [1039212, 1106402, 1192032, 1000692]


class SettlementTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)
        self.operator = ExecutionContext(caller=OPERATOR, now=END, seed=SEED)
        with self.Session.begin() as session:
            initialize_state(session, OWNER, OPERATOR, TREASURY, config=LotteryConfig())
            self.lottery_id = self._start(session).id

    def tearDown(self):
        self.engine.dispose()

    def _start(self, session, now=START):
        return start_lottery(
            session,
            ExecutionContext(caller=OPERATOR, now=now),
            end_time=now + 6 * 3600,
            price_ticket=ONE_UNIT,
            discount_divisor=2000,
            rewards_breakdown=BREAKDOWN,
            reserve_fee=2000,
            operate_fee=500,
        )

    def _buy(self, numbers):
        with self.Session.begin() as session:
            buy_tickets(
                session,
                ExecutionContext(caller=ALICE, attached_value=len(numbers) * ONE_UNIT, now=START),
                self.lottery_id,
                numbers,
            )

    def _close_and_settle(self, auto_injection=True):
        with self.Session.begin() as session:
            close_lottery(session, self.operator, self.lottery_id)
            return draw_and_settle(session, self.operator, self.lottery_id, auto_injection)

    def test_four_ticket_scenario(self):
        self._buy(TICKETS)
        result = self._close_and_settle()

        self.assertEqual(result.final_number, 1678912)
        self.assertEqual(result.operate_fee, 199700000000000000000000)
        self.assertEqual(result.reserve_fee, 758860000000000000000000)
        self.assertEqual(result.amount_to_share, 3035440000000000000000000)
        self.assertEqual(result.count_winners_per_bracket, (3, 1, 0, 0, 0, 0))
        self.assertEqual(result.near_per_bracket[0], 12647666666666666666666)
        self.assertEqual(result.near_per_bracket[1], 113829000000000000000000)
        self.assertEqual(result.near_per_bracket[2:], (0, 0, 0, 0))

        with self.Session() as session:
            lottery = session.get(Lottery, self.lottery_id)
            state = LotteryState.load(session)
            self.assertEqual(lottery.status, LotteryStatus.CLAIMABLE.value)
            self.assertEqual(lottery.amount_collected, 3994000000000000000000000)
            self.assertEqual(lottery.final_number, 1678912)
            self.assertEqual(lottery.near_per_bracket[0], 12647666666666666666666)
            self.assertTrue(lottery.auto_injection)
            self.assertEqual(state.pending_injection_next_lottery, 3642528000000000000000002)
            self.assertEqual(
                ScheduledTransfer.total_for(session, kind=TransferKind.OPERATE_FEE),
                199700000000000000000000,
            )
            self.assertEqual(ScheduledTransfer.total_for(session, kind=TransferKind.TREASURY), 0)

    def test_conservation_is_exact(self):
        self._buy(TICKETS)
        result = self._close_and_settle()
        self.assertEqual(
            result.total_payable + result.rollover + result.operate_fee + result.reserve_fee,
            3994000000000000000000000,
        )

    def test_winner_counts_match_bracket_counters(self):
        self._buy(TICKETS + [1678912, 1578912])
        result = self._close_and_settle()
        self.assertEqual(result.count_winners_per_bracket, (3, 1, 0, 0, 1, 1))

        with self.Session() as session:
            for bracket in range(6):
                matched = count_at(
                    session, self.lottery_id, encode_bracket_key(1678912, bracket)
                )
                self.assertEqual(matched, sum(result.count_winners_per_bracket[bracket:]))

    def test_settling_twice_is_rejected(self):
        self._buy(TICKETS)
        self._close_and_settle()
        with self.Session() as session:
            with self.assertRaises(InvalidStateError):
                draw_and_settle(session, self.operator, self.lottery_id, True)

    def test_settle_requires_closed_lottery_and_operator(self):
        with self.Session() as session:
            with self.assertRaises(InvalidStateError):
                draw_and_settle(session, self.operator, self.lottery_id, True)
            with self.assertRaises(UnauthorizedError):
                draw_and_settle(session, ExecutionContext(caller=ALICE), self.lottery_id, True)

    def test_without_auto_injection_rollover_goes_to_treasury(self):
        self._buy(TICKETS)
        self._close_and_settle(auto_injection=False)

        with self.Session() as session:
            state = LotteryState.load(session)
            self.assertEqual(state.pending_injection_next_lottery, 0)
            self.assertEqual(
                ScheduledTransfer.total_for(
                    session, kind=TransferKind.TREASURY, recipient=TREASURY
                ),
                3642528000000000000000002,
            )

    def test_lottery_without_tickets_rolls_everything_over(self):
        with self.Session.begin() as session:
            inject_funds(
                session,
                ExecutionContext(caller=OWNER, attached_value=100 * ONE_UNIT),
                self.lottery_id,
            )
        result = self._close_and_settle()

        self.assertEqual(result.operate_fee, 0)
        self.assertEqual(result.reserve_fee, 20 * ONE_UNIT)
        self.assertEqual(result.rollover, 80 * ONE_UNIT)
        self.assertEqual(result.count_winners_per_bracket, (0,) * 6)
        self.assertEqual(result.carried_to_next, 100 * ONE_UNIT)

    def test_fee_overflow_leaves_lottery_closed(self):
        pot = U128_MAX // 1000
        with self.Session.begin() as session:
            inject_funds(
                session, ExecutionContext(caller=OWNER, attached_value=pot), self.lottery_id
            )
            close_lottery(session, self.operator, self.lottery_id)

        with self.Session() as session:
            with self.assertRaises(ArithmeticOverflowError):
                draw_and_settle(session, self.operator, self.lottery_id, True)
            lottery = session.get(Lottery, self.lottery_id)
            self.assertEqual(lottery.status, LotteryStatus.CLOSE.value)
            self.assertEqual(lottery.amount_collected, pot)
            self.assertEqual(lottery.near_per_bracket, [0] * 6)
            self.assertEqual(LotteryState.load(session).pending_injection_next_lottery, 0)
            self.assertEqual(ScheduledTransfer.pending(session), [])

    def test_next_lottery_starts_with_carried_pot(self):
        self._buy(TICKETS)
        self._close_and_settle()

        with self.Session.begin() as session:
            lottery = self._start(session, now=END + 60)
            self.assertEqual(lottery.id, self.lottery_id + 1)
            self.assertEqual(lottery.amount_collected, 3642528000000000000000002)
            self.assertEqual(lottery.last_pot_size, 3642528000000000000000002)
            self.assertEqual(lottery.first_ticket_id, len(TICKETS))
            self.assertEqual(LotteryState.load(session).pending_injection_next_lottery, 0)

        with self.Session() as session:
            with self.assertRaises(InvalidStateError):
                draw_and_settle(session, self.operator, self.lottery_id, True)

    def test_carried_pot_is_exempt_from_operating_fee(self):
        self._buy(TICKETS)
        self._close_and_settle()
        with self.Session.begin() as session:
            second = self._start(session, now=END + 60)
            self.lottery_id = second.id
        end = END + 60 + 6 * 3600
        with self.Session.begin() as session:
            buy_tickets(
                session,
                ExecutionContext(caller=ALICE, attached_value=ONE_UNIT, now=END + 120),
                self.lottery_id,
                [1000001],
            )
        self.operator = ExecutionContext(caller=OPERATOR, now=end, seed=SEED)
        result = self._close_and_settle()
        self.assertEqual(result.operate_fee, ONE_UNIT * 500 // 10000)


if __name__ == "__main__":
    unittest.main()
