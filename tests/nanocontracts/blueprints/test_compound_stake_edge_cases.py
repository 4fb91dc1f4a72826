"""
Edge cases for the staking contract.

This module tests:
- Amount validation and fail-fast arithmetic
- Deposit gating around the finish time
- Compounding of pending rewards on repeated stakes
- Restake of the remainder on partial withdrawals
- Reserve protection on recovery
- Administrative access control
- All-or-nothing behaviour of failed calls
"""

from compound_staking.nanocontracts.blueprints.compound_stake import (
    InsufficientClaimable,
    InvalidAmount,
    InvalidInput,
    Recovered,
    ReserveProtected,
    Staked,
    StakeFrontEndInfo,
    StakeUserInfo,
    StakingClosed,
    StakingEnds,
    Unauthorized,
    Withdrawn,
)
from compound_staking.nanocontracts.blueprints.fungible_token import (
    FungibleToken,
    InsufficientAllowance,
    InsufficientBalance,
)
from compound_staking.nanocontracts.blueprints.ownable import OwnershipTransferred
from compound_staking.nanocontracts.exception import NCArithmeticError, NCContractDoesNotExist
from compound_staking.utils.fixed_point import MAX_AMOUNT
from tests.nanocontracts.blueprints.test_utilities import StakeConstants, StakeTestFixture
from tests.nanocontracts.blueprints.unittest import BlueprintTestCase

QTY = StakeConstants.QTY
MONTH = StakeConstants.MONTH_IN_SECONDS
YEAR = StakeConstants.YEAR_IN_SECONDS


class CompoundStakeEdgeCasesTest(BlueprintTestCase):
    def setUp(self):
        super().setUp()
        self.fixture = StakeTestFixture(self)
        self.fixture.deploy()
        self.owner = self.fixture.owner
        self.user = self.fixture.new_user(2 * QTY)

    def test_initialize_requires_existing_token(self):
        contract_id = self.gen_random_contract_id()
        with self.assertRaises(NCContractDoesNotExist):
            self.runner.create_contract(
                contract_id,
                self.fixture.stake_blueprint_id,
                self.create_context(caller_id=self.owner),
                self.gen_random_contract_id(),
            )
        self.assertFalse(self.runner.has_contract(contract_id))

    def test_stake_zero_or_negative(self):
        for amount in (0, -1):
            with self.assertRaises(InvalidAmount):
                self.fixture.stake_call(self.user, "stake", amount)
        self.assertEqual(self.fixture.total_supply(), 0)

    def test_withdraw_zero(self):
        self.fixture.stake(self.user, QTY)
        with self.assertRaises(InvalidAmount):
            self.fixture.withdraw(self.user, 0)
        self.assertEqual(self.fixture.balance_of(self.user), QTY)

    def test_withdraw_all_without_position(self):
        with self.assertRaises(InvalidAmount):
            self.fixture.withdraw_all(self.user)

    def test_stake_without_allowance(self):
        with self.assertRaises(InsufficientAllowance):
            self.fixture.stake_call(self.user, "stake", QTY)
        self.assertEqual(self.fixture.balance_of(self.user), 0)
        self.assertEqual(self.fixture.total_supply(), 0)
        self.assertNotIn(Staked(self.user, QTY), [event.data for event in self.runner.events])

    def test_stake_more_than_held(self):
        poor = self.fixture.new_user(10)
        with self.assertRaises(InsufficientBalance):
            self.fixture.stake(poor, 11)
        self.assertEqual(self.fixture.balance_of(poor), 0)
        self.assertEqual(self.fixture.token_balance(poor), 10)

    def test_stake_overflow_fails_fast(self):
        token = self.gen_random_contract_id()
        self.runner.create_contract(
            token,
            self.fixture.token_blueprint_id,
            self.create_context(caller_id=self.owner),
            "Huge",
            "HUGE",
            MAX_AMOUNT,
        )
        stake_id = self.gen_random_contract_id()
        self.runner.create_contract(
            stake_id, self.fixture.stake_blueprint_id, self.create_context(caller_id=self.owner), token
        )
        self.runner.call_public_method(token, "approve", self.create_context(caller_id=self.owner), stake_id, MAX_AMOUNT)
        self.runner.call_public_method(stake_id, "stake", self.create_context(caller_id=self.owner), MAX_AMOUNT - 1)

        with self.assertRaises(NCArithmeticError):
            self.runner.call_public_method(stake_id, "stake", self.create_context(caller_id=self.owner), 2)
        self.assertEqual(self.runner.call_view_method(stake_id, "total_supply"), MAX_AMOUNT - 1)

    def test_deposit_gating_boundary(self):
        finish_time = self.now + MONTH
        self.fixture.set_finish(finish_time)
        self.assertTrue(self.fixture.view("is_open"))

        self.fast_forward_to(finish_time - 1)
        self.fixture.stake(self.user, QTY)
        self.assertEqual(self.fixture.balance_of(self.user), QTY)

        self.fast_forward_to(finish_time)
        self.assertFalse(self.fixture.view("is_open"))
        with self.assertRaises(StakingClosed):
            self.fixture.stake(self.user, QTY)
        self.assertEqual(self.fixture.balance_of(self.user), QTY)

    def test_finish_in_the_past_closes_immediately(self):
        self.fixture.stake(self.user, QTY)
        start = self.now
        self.fast_forward_to(start + MONTH)
        self.fixture.set_finish(start + MONTH // 2)
        self.assertFalse(self.fixture.view("is_open"))

        frozen = self.fixture.rewards_of(self.user)
        self.assertGreater(frozen, 0)
        self.fast_forward_to(start + 2 * MONTH)
        self.assertEqual(self.fixture.rewards_of(self.user), frozen)

    def test_finish_can_be_moved(self):
        self.fixture.set_finish(self.now + MONTH)
        self.fixture.set_finish(self.now + YEAR)
        self.assertEqual(self.fixture.stake_events(), [StakingEnds(self.now + YEAR)])
        self.assertEqual(self.fixture.view("get_finish_time"), self.now + YEAR)

    def test_set_finish_validation(self):
        with self.assertRaises(Unauthorized):
            self.fixture.set_finish(self.now + YEAR, caller=self.user)
        with self.assertRaises(InvalidInput):
            self.fixture.set_finish(-1)
        self.assertIsNone(self.fixture.view("get_finish_time"))

    def test_position_started_after_finish_does_not_accrue(self):
        self.fixture.stake(self.user, QTY)
        self.fixture.set_finish(self.now + MONTH)
        self.fast_forward_to(self.now + 2 * MONTH)
        self.fixture.withdraw(self.user, QTY // 2)
        remainder = self.fixture.balance_of(self.user)

        self.fast_forward_to(self.now + YEAR)
        self.assertEqual(self.fixture.rewards_of(self.user), 0)
        self.assertEqual(self.fixture.balance_of(self.user), remainder)

    def test_stake_compounds_pending_rewards(self):
        self.fixture.stake(self.user, QTY)
        self.fast_forward_to(self.now + MONTH)
        pending = self.fixture.rewards_of(self.user)
        self.assertGreater(pending, 0)

        self.fixture.stake(self.user, QTY // 2)
        # only the fresh deposit is reported
        self.assertEqual(self.fixture.stake_events(), [Staked(self.user, QTY // 2)])
        self.assertEqual(self.fixture.balance_of(self.user), QTY + QTY // 2 + pending)
        self.assertEqual(self.fixture.total_supply(), QTY + QTY // 2 + pending)
        self.assertEqual(self.fixture.rewards_of(self.user), 0)

        info = self.fixture.view("get_user_info", self.user)
        self.assertEqual(info, StakeUserInfo(QTY + QTY // 2 + pending, 0, QTY + QTY // 2 + pending, self.now))

    def test_compounding_matches_a_single_period(self):
        """Touching a position only realizes rewards, up to rounding."""
        other = self.fixture.new_user(QTY)
        self.fixture.stake(self.user, QTY)
        self.fixture.stake(other, QTY)
        start = self.now

        for month in range(1, 13):
            self.fast_forward_to(start + month * MONTH)
            self.fixture.stake(self.user, 1)

        self.fast_forward_to(start + 12 * MONTH)
        compounded = self.fixture.balance_of(self.user) - 12
        untouched = QTY + self.fixture.rewards_of(other)
        self.assertLess(abs(untouched - compounded), QTY // 10**12)

    def test_partial_withdraw_restakes_remainder(self):
        self.fixture.stake(self.user, QTY)
        self.fast_forward_to(self.now + MONTH)
        claimable = QTY + self.fixture.rewards_of(self.user)
        amount = QTY // 4

        self.fixture.withdraw(self.user, amount)
        self.assertEqual(
            self.fixture.stake_events(),
            [Withdrawn(self.user, amount), Staked(self.user, claimable - amount)],
        )
        self.assertEqual(self.fixture.balance_of(self.user), claimable - amount)
        self.assertEqual(self.fixture.total_supply(), claimable - amount)
        self.assertEqual(self.fixture.rewards_of(self.user), 0)
        self.assertEqual(self.fixture.token_balance(self.user), QTY + amount)

        self.fast_forward_to(self.now + 1)
        self.assertGreater(self.fixture.rewards_of(self.user), 0)

    def test_withdraw_exact_claimable_clears_position(self):
        self.fixture.stake(self.user, QTY)
        self.fast_forward_to(self.now + MONTH)
        claimable = QTY + self.fixture.rewards_of(self.user)

        self.fixture.withdraw(self.user, claimable)
        self.assertEqual(self.fixture.stake_events(), [Withdrawn(self.user, claimable)])
        self.assertEqual(self.fixture.balance_of(self.user), 0)
        self.assertEqual(self.fixture.view("get_user_info", self.user), StakeUserInfo(0, 0, 0, None))

    def test_withdraw_more_than_claimable(self):
        self.fixture.stake(self.user, QTY)
        self.fast_forward_to(self.now + MONTH)
        claimable = QTY + self.fixture.rewards_of(self.user)

        with self.assertRaises(InsufficientClaimable):
            self.fixture.withdraw(self.user, claimable + 1)
        self.assertEqual(self.fixture.balance_of(self.user), QTY)
        self.assertEqual(self.fixture.total_supply(), QTY)

        stranger = self.gen_random_address()
        with self.assertRaises(InsufficientClaimable):
            self.fixture.withdraw(stranger, 1)

    def test_restake_after_full_withdraw_is_fresh(self):
        self.fixture.stake(self.user, QTY)
        self.fast_forward_to(self.now + MONTH)
        self.fixture.withdraw_all(self.user)
        self.assertEqual(self.fixture.balance_of(self.user), 0)

        self.fast_forward_to(self.now + MONTH)
        self.fixture.stake(self.user, QTY)
        self.assertEqual(self.fixture.stake_events(), [Staked(self.user, QTY)])
        self.assertEqual(self.fixture.balance_of(self.user), QTY)
        self.assertEqual(self.fixture.rewards_of(self.user), 0)

    def test_withdraw_fails_when_pool_cannot_pay(self):
        fixture = StakeTestFixture(self)
        fixture.deploy(reward_pool=0)
        user = fixture.new_user(QTY)
        fixture.stake(user, QTY)
        self.fast_forward_to(self.now + MONTH)

        with self.assertRaises(InsufficientBalance):
            fixture.withdraw_all(user)
        self.assertEqual(fixture.balance_of(user), QTY)
        self.assertGreater(fixture.rewards_of(user), 0)

        fixture.withdraw(user, QTY)
        self.assertEqual(fixture.token_balance(fixture.stake_id), 0)

    def test_recover_protects_principal(self):
        self.fixture.stake(self.user, QTY)
        stake_id = self.fixture.stake_id
        token_id = self.fixture.token_id
        held = self.fixture.token_balance(stake_id)
        surplus = held - QTY

        with self.assertRaises(ReserveProtected):
            self.fixture.recover(token_id, surplus + 1)
        self.assertEqual(self.fixture.token_balance(stake_id), held)

        owner_tokens = self.fixture.token_balance(self.owner)
        self.fixture.recover(token_id, surplus)
        self.assertEqual(self.fixture.stake_events(), [Recovered(token_id, surplus)])
        self.assertEqual(self.fixture.token_balance(stake_id), QTY)
        self.assertEqual(self.fixture.token_balance(self.owner), owner_tokens + surplus)

        with self.assertRaises(ReserveProtected):
            self.fixture.recover(token_id, 1)

    def test_recover_does_not_reserve_unrealized_rewards(self):
        self.fixture.stake(self.user, QTY)
        surplus = self.fixture.token_balance(self.fixture.stake_id) - QTY
        self.fixture.recover(self.fixture.token_id, surplus)

        self.fast_forward_to(self.now + MONTH)
        self.assertGreater(self.fixture.rewards_of(self.user), 0)
        with self.assertRaises(InsufficientBalance):
            self.fixture.withdraw_all(self.user)
        front = self.fixture.view("front_end_api")
        self.assertEqual(front.recoverable, 0)

    def test_recover_other_token(self):
        other_token = self.gen_random_contract_id()
        self.runner.create_contract(
            other_token,
            self.fixture.token_blueprint_id,
            self.create_context(caller_id=self.user),
            "Other",
            "OTH",
            1000,
        )
        self.runner.call_public_method(
            other_token, "transfer", self.create_context(caller_id=self.user), self.fixture.stake_id, 1000
        )
        self.fixture.stake(self.user, QTY)

        with self.assertRaises(InsufficientBalance):
            self.fixture.recover(other_token, 1001)

        self.fixture.recover(other_token, 1000)
        self.assertEqual(self.fixture.stake_events(), [Recovered(other_token, 1000)])
        self.assertEqual(self.runner.call_view_method(other_token, "balance_of", self.owner), 1000)
        self.assertEqual(self.fixture.total_supply(), QTY)

    def test_recover_requires_owner(self):
        with self.assertRaises(Unauthorized):
            self.fixture.recover(self.fixture.token_id, 1, caller=self.user)
        with self.assertRaises(InvalidAmount):
            self.fixture.recover(self.fixture.token_id, 0)

    def test_renounce_ownership(self):
        self.fixture.stake_call(self.owner, "renounce_ownership")
        self.assertEqual(self.fixture.stake_events(), [OwnershipTransferred(self.owner, None)])
        self.assertIsNone(self.fixture.view("get_owner"))

        with self.assertRaises(Unauthorized):
            self.fixture.set_finish(self.now + YEAR)
        with self.assertRaises(Unauthorized):
            self.fixture.recover(self.fixture.token_id, 1)
        with self.assertRaises(Unauthorized):
            self.fixture.stake_call(self.owner, "transfer_ownership", self.owner)

    def test_transfer_ownership_validation(self):
        with self.assertRaises(Unauthorized):
            self.fixture.stake_call(self.user, "transfer_ownership", self.user)
        with self.assertRaises(InvalidInput):
            self.fixture.stake_call(self.owner, "transfer_ownership", b"")
        self.assertEqual(self.fixture.view("get_owner"), self.owner)

    def test_front_end_api(self):
        self.fixture.stake(self.user, QTY)
        self.fixture.set_finish(self.now + YEAR)
        front = self.fixture.view("front_end_api")
        self.assertEqual(front, StakeFrontEndInfo(
            token_uid=self.fixture.token_id.hex(),
            total_principal=QTY,
            held_balance=StakeConstants.REWARD_POOL + QTY,
            recoverable=StakeConstants.REWARD_POOL,
            finish_time=self.now + YEAR,
            is_open=True,
            annual_rate_bps=2000,
            seconds_per_year=YEAR,
        ))

    def test_token_is_independent_of_ledger(self):
        token = self.get_readonly_contract(self.fixture.token_id)
        assert isinstance(token, FungibleToken)
        self.fixture.stake(self.user, QTY)
        self.assertEqual(token.balances[self.fixture.stake_id], StakeConstants.REWARD_POOL + QTY)
        self.assertEqual(self.fixture.contract.principals[self.user], QTY)
