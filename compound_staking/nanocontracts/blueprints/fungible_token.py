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

from typing import NamedTuple

from compound_staking.nanocontracts.blueprint import Blueprint
from compound_staking.nanocontracts.context import Context
from compound_staking.nanocontracts.exception import NCFail
from compound_staking.nanocontracts.types import Amount, CallerId, public, view
from compound_staking.utils.fixed_point import checked_add, checked_sub


class Transfer(NamedTuple):
    sender: CallerId
    recipient: CallerId
    amount: int


class Approval(NamedTuple):
    owner: CallerId
    spender: CallerId
    amount: int


class InsufficientBalance(NCFail):
    pass


class InsufficientAllowance(NCFail):
    pass


class InvalidAmount(NCFail):
    pass


class FungibleToken(Blueprint):
    """A standard fungible token.

    Balances are kept per holder, where a holder is either a wallet address
    or a contract id. `transfer_from` lets a spender (usually a contract)
    move funds it was previously approved for.
    """

    name: str
    symbol: str
    total_supply: Amount
    balances: dict[bytes, Amount]
    allowances: dict[bytes, dict[bytes, Amount]]

    def _validate_amount(self, amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise InvalidAmount("amount must be a non-negative integer")

    def _move(self, sender: CallerId, recipient: CallerId, amount: int) -> None:
        balance = self.balances.get(sender, 0)
        if amount > balance:
            raise InsufficientBalance("transfer amount exceeds balance")
        self.balances[sender] = Amount(checked_sub(balance, amount))
        self.balances[recipient] = Amount(checked_add(self.balances.get(recipient, 0), amount))
        self.syscall.emit_event(Transfer(sender, recipient, amount))

    @public
    def initialize(self, ctx: Context, name: str, symbol: str, initial_supply: int) -> None:
        self._validate_amount(initial_supply)
        self.name = name
        self.symbol = symbol
        self.total_supply = Amount(checked_add(initial_supply))
        self.balances[ctx.caller_id] = self.total_supply

    @public
    def transfer(self, ctx: Context, recipient: CallerId, amount: int) -> bool:
        self._validate_amount(amount)
        self._move(ctx.caller_id, recipient, amount)
        return True

    @public
    def approve(self, ctx: Context, spender: CallerId, amount: int) -> bool:
        self._validate_amount(amount)
        self.allowances.setdefault(ctx.caller_id, {})[spender] = Amount(amount)
        self.syscall.emit_event(Approval(ctx.caller_id, spender, amount))
        return True

    @public
    def transfer_from(self, ctx: Context, sender: CallerId, recipient: CallerId, amount: int) -> bool:
        self._validate_amount(amount)
        allowed = self.allowances.get(sender, {}).get(ctx.caller_id, 0)
        if amount > allowed:
            raise InsufficientAllowance("transfer amount exceeds allowance")
        self.allowances.setdefault(sender, {})[ctx.caller_id] = Amount(allowed - amount)
        self._move(sender, recipient, amount)
        return True

    @view
    def balance_of(self, holder: CallerId) -> int:
        return self.balances.get(holder, 0)

    @view
    def allowance(self, holder: CallerId, spender: CallerId) -> int:
        return self.allowances.get(holder, {}).get(spender, 0)

    @view
    def get_total_supply(self) -> int:
        return self.total_supply
