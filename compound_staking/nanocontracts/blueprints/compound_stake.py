# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from typing import NamedTuple, Optional

from compound_staking.conf import get_global_settings
from compound_staking.nanocontracts.blueprints.ownable import InvalidInput, Ownable, Unauthorized
from compound_staking.nanocontracts.context import Context
from compound_staking.nanocontracts.exception import NCFail
from compound_staking.nanocontracts.rewards import accrued_reward
from compound_staking.nanocontracts.types import Address, Amount, ContractId, Timestamp, public, view
from compound_staking.utils.fixed_point import checked_add, checked_sub

logger = logging.getLogger(__name__)

__all__ = [
    "CompoundStake",
    "InsufficientClaimable",
    "InvalidAmount",
    "InvalidInput",
    "Recovered",
    "ReserveProtected",
    "StakeFrontEndInfo",
    "StakeUserInfo",
    "Staked",
    "StakingClosed",
    "StakingEnds",
    "Unauthorized",
    "Withdrawn",
]


class Staked(NamedTuple):
    """Amount newly added to an account's principal."""
    account: Address
    amount: int


class Withdrawn(NamedTuple):
    account: Address
    amount: int


class StakingEnds(NamedTuple):
    finish_time: int


class Recovered(NamedTuple):
    token_uid: ContractId
    amount: int


class StakeUserInfo(NamedTuple):
    principal: int
    rewards: int
    claimable: int
    start_time: Optional[int]


class StakeFrontEndInfo(NamedTuple):
    token_uid: str  # hex-encoded token contract id
    total_principal: int
    held_balance: int
    recoverable: int
    finish_time: Optional[int]
    is_open: bool
    annual_rate_bps: int
    seconds_per_year: int


class CompoundStake(Ownable):
    """Staking with continuously compounded interest until a finish time.

    Each account has a single position: a principal and the timestamp from
    which it has been compounding. Rewards are never stored; they are
    computed from the position and the clock whenever needed, and folded
    into the principal whenever the account stakes or withdraws.

    The life cycle of contracts using this blueprint is the following:

    1. [Owner] Create the contract for a token and fund it with rewards.
    2. [User] `stake(...)`, after approving the contract on the token.
    3. [Owner] `set_finish(...)` to close deposits and stop accrual.
    4. [User] `withdraw(...)` or `withdraw_all()`.
    5. [Owner] `recover_token(...)` for anything above the staked principal.
    """

    # Pool
    token_uid: ContractId
    annual_rate_bps: int
    seconds_per_year: int
    finish_time: Optional[Timestamp]
    total_principal: Amount

    # User
    principals: dict[Address, Amount]
    start_times: dict[Address, Timestamp]

    def _validate_state(self) -> None:
        """Validate contract state invariants"""
        assert self.total_principal >= 0, "Invalid total principal"

    def _validate_amount(self, amount: int, message: str) -> None:
        if not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(message)

    def _is_open(self, now: int) -> bool:
        return self.finish_time is None or now < self.finish_time

    def _accrued(self, address: Address, now: int) -> int:
        principal = self.principals.get(address, 0)
        if principal == 0:
            return 0
        return accrued_reward(
            principal,
            self.start_times[address],
            now,
            self.finish_time,
            self.annual_rate_bps,
            self.seconds_per_year,
        )

    def _claimable(self, address: Address, now: int) -> int:
        return self.principals.get(address, 0) + self._accrued(address, now)

    def _set_principal(self, address: Address, principal: int, now: int) -> None:
        """Replace a position, keeping `total_principal` equal to the sum of principals.

        A non-zero principal starts compounding again from `now`.
        """
        old_principal = self.principals.get(address, 0)
        self.total_principal = Amount(
            checked_sub(checked_add(self.total_principal, principal), old_principal)
        )
        if principal == 0:
            self.principals.pop(address, None)
            self.start_times.pop(address, None)
        else:
            self.principals[address] = Amount(principal)
            self.start_times[address] = Timestamp(now)
        self._validate_state()

    def _held_balance(self) -> int:
        return self.syscall.call_view_method(self.token_uid, "balance_of", self.syscall.get_contract_id())

    def _recoverable_surplus(self) -> int:
        """Tokens held above the live principal; zero when under-funded."""
        return max(0, self._held_balance() - self.total_principal)

    def _withdraw(self, ctx: Context, amount: int) -> None:
        address = Address(ctx.caller_id)
        now = ctx.timestamp
        claimable = self._claimable(address, now)
        if amount > claimable:
            raise InsufficientClaimable("Withdrawal exceeds claimable balance")

        remainder = claimable - amount
        self._set_principal(address, remainder, now)
        logger.debug("withdraw %d by %s, %d restaked", amount, address.hex(), remainder)

        self.syscall.emit_event(Withdrawn(address, amount))
        if remainder > 0:
            self.syscall.emit_event(Staked(address, remainder))
        self.syscall.call_public_method(self.token_uid, "transfer", address, amount)

    @public
    def initialize(self, ctx: Context, token_uid: ContractId) -> None:
        settings = get_global_settings()
        self._init_owner(ctx)
        self.token_uid = token_uid
        self.annual_rate_bps = settings.ANNUAL_RATE_BPS
        self.seconds_per_year = settings.SECONDS_PER_YEAR
        self.finish_time = None
        self.total_principal = Amount(0)
        # fails if the token contract does not exist
        self._held_balance()

    @public
    def stake(self, ctx: Context, amount: int) -> None:
        self._validate_amount(amount, "Cannot stake 0")
        now = ctx.timestamp
        if not self._is_open(now):
            raise StakingClosed("Staking period has ended")

        address = Address(ctx.caller_id)
        pending = self._accrued(address, now)
        principal = checked_add(self.principals.get(address, 0), pending, amount)
        self._set_principal(address, principal, now)
        logger.debug("stake %d by %s, %d compounded", amount, address.hex(), pending)

        self.syscall.emit_event(Staked(address, amount))
        self.syscall.call_public_method(
            self.token_uid, "transfer_from", address, self.syscall.get_contract_id(), amount
        )

    @public
    def withdraw(self, ctx: Context, amount: int) -> None:
        """Withdraw part of principal plus rewards; the rest is restaked."""
        self._validate_amount(amount, "Cannot withdraw 0")
        self._withdraw(ctx, amount)

    @public
    def withdraw_all(self, ctx: Context) -> None:
        claimable = self._claimable(Address(ctx.caller_id), ctx.timestamp)
        self._validate_amount(claimable, "Nothing to withdraw")
        self._withdraw(ctx, claimable)

    @public
    def set_finish(self, ctx: Context, finish_time: int) -> None:
        """Set the instant after which deposits stop and rewards freeze.

        Can be called again to move the finish time.
        """
        self._only_owner(ctx)
        if not isinstance(finish_time, int) or finish_time < 0:
            raise InvalidInput("Invalid finish time")
        self.finish_time = Timestamp(finish_time)
        logger.info("staking finish time set to %d", finish_time)
        self.syscall.emit_event(StakingEnds(finish_time))

    @public
    def recover_token(self, ctx: Context, token_uid: ContractId, amount: int) -> None:
        """Send tokens held by the contract to the owner.

        For the staking token only the surplus above the live principal can
        be recovered. Rewards accrued but not yet compounded are not
        reserved.
        """
        self._only_owner(ctx)
        self._validate_amount(amount, "Cannot recover 0")
        if token_uid == self.token_uid and amount > self._recoverable_surplus():
            raise ReserveProtected("Cannot withdraw the staked tokens")

        logger.info("recovering %d of token %s", amount, token_uid.hex())
        self.syscall.emit_event(Recovered(token_uid, amount))
        self.syscall.call_public_method(token_uid, "transfer", self.owner, amount)

    @view
    def balance_of(self, address: Address) -> int:
        return self.principals.get(address, 0)

    @view
    def rewards_of(self, address: Address) -> int:
        return self._accrued(address, self.syscall.get_block_timestamp())

    @view
    def total_supply(self) -> int:
        return self.total_principal

    @view
    def get_finish_time(self) -> Optional[int]:
        return self.finish_time

    @view
    def is_open(self) -> bool:
        return self._is_open(self.syscall.get_block_timestamp())

    @view
    def get_user_info(self, address: Address) -> StakeUserInfo:
        now = self.syscall.get_block_timestamp()
        principal = self.principals.get(address, 0)
        rewards = self._accrued(address, now)
        return StakeUserInfo(
            principal=principal,
            rewards=rewards,
            claimable=principal + rewards,
            start_time=self.start_times.get(address),
        )

    @view
    def front_end_api(self) -> StakeFrontEndInfo:
        return StakeFrontEndInfo(
            token_uid=self.token_uid.hex(),
            total_principal=self.total_principal,
            held_balance=self._held_balance(),
            recoverable=self._recoverable_surplus(),
            finish_time=self.finish_time,
            is_open=self._is_open(self.syscall.get_block_timestamp()),
            annual_rate_bps=self.annual_rate_bps,
            seconds_per_year=self.seconds_per_year,
        )


class StakingClosed(NCFail):
    pass


class InsufficientClaimable(NCFail):
    pass


class ReserveProtected(NCFail):
    pass


class InvalidAmount(NCFail):
    pass
