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

import copy
import logging
from typing import Any, Callable, NamedTuple, Optional

from twisted.internet.interfaces import IReactorTime

from compound_staking.nanocontracts.blueprint import Blueprint
from compound_staking.nanocontracts.blueprint_env import BlueprintEnvironment
from compound_staking.nanocontracts.context import Context
from compound_staking.nanocontracts.exception import (
    NCAlreadyInitializedError,
    NCContractDoesNotExist,
    NCFail,
    NCForbiddenAction,
    NCMethodNotFound,
    NCReentrancyError,
    NCViewMethodError,
)
from compound_staking.nanocontracts.types import (
    NC_ALLOW_DEPOSIT_ATTR,
    NC_ALLOW_REENTRANCY_ATTR,
    NC_ALLOW_WITHDRAWAL_ATTR,
    BlueprintId,
    ContractId,
    NCDepositAction,
    NCEvent,
    NCWithdrawalAction,
    is_fallback,
    is_public,
    is_view,
)

logger = logging.getLogger(__name__)

INITIALIZE_METHOD = "initialize"


class _CallFrame(NamedTuple):
    contract_id: ContractId
    method_name: str
    is_view: bool


class _Snapshot(NamedTuple):
    states: dict[ContractId, dict[str, Any]]
    native_balances: dict[ContractId, int]


class Runner:
    """Executes calls on contracts.

    Each top-level call (`create_contract`, `call_public_method`,
    `send_value`) is atomic: the state of every contract is snapshotted
    before the call and restored if anything in the call tree fails, and
    the events emitted by the call are only published when it succeeds.

    Contracts may call each other through their `syscall`. A public method
    cannot re-enter a contract that is already executing unless it was
    declared with `allow_reentrancy=True`; views can always be called and
    see the state as updated so far.
    """

    def __init__(self, clock: IReactorTime) -> None:
        self.clock = clock
        self._blueprints: dict[BlueprintId, type[Blueprint]] = {}
        self._contracts: dict[ContractId, Blueprint] = {}
        self._contract_blueprints: dict[ContractId, BlueprintId] = {}
        self._native_balances: dict[ContractId, int] = {}
        self._call_stack: list[_CallFrame] = []
        self._ctx: Optional[Context] = None
        self._pending_events: list[NCEvent] = []
        self.events: list[NCEvent] = []
        self.last_events: list[NCEvent] = []

    def register_blueprint_class(self, blueprint_id: BlueprintId, blueprint_class: type[Blueprint]) -> None:
        if not issubclass(blueprint_class, Blueprint):
            raise TypeError(f"{blueprint_class!r} is not a Blueprint")
        self._blueprints[blueprint_id] = blueprint_class

    def has_contract(self, contract_id: ContractId) -> bool:
        return contract_id in self._contracts

    def get_blueprint_id(self, contract_id: ContractId) -> BlueprintId:
        self._get_contract(contract_id)
        return self._contract_blueprints[contract_id]

    def get_readonly_contract(self, contract_id: ContractId) -> Blueprint:
        """Return the contract instance for inspection in tests and tools."""
        return self._get_contract(contract_id)

    def get_native_balance(self, contract_id: ContractId) -> int:
        self._get_contract(contract_id)
        return self._native_balances.get(contract_id, 0)

    def get_current_timestamp(self) -> int:
        if self._ctx is not None:
            return self._ctx.timestamp
        return int(self.clock.seconds())

    def create_contract(
        self,
        contract_id: ContractId,
        blueprint_id: BlueprintId,
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        self._check_top_level()
        if contract_id in self._contracts:
            raise NCAlreadyInitializedError(f"contract {contract_id.hex()} already exists")
        blueprint_class = self._blueprints.get(blueprint_id)
        if blueprint_class is None:
            raise NCFail(f"blueprint {blueprint_id.hex()} is not registered")

        contract = blueprint_class._new_instance(BlueprintEnvironment(self, contract_id))
        snapshot = self._snapshot()
        self._contracts[contract_id] = contract
        self._contract_blueprints[contract_id] = blueprint_id
        logger.info("creating contract %s from blueprint %s", contract_id.hex(), blueprint_class.__name__)
        return self._run_top_level(
            snapshot,
            lambda: self._execute_public(contract_id, INITIALIZE_METHOD, ctx, args, kwargs, is_initialize=True),
            contract_id,
            INITIALIZE_METHOD,
        )

    def call_public_method(
        self,
        contract_id: ContractId,
        method_name: str,
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        snapshot = self._snapshot()
        return self._run_top_level(
            snapshot,
            lambda: self._execute_public(contract_id, method_name, ctx, args, kwargs),
            contract_id,
            method_name,
        )

    def send_value(self, contract_id: ContractId, ctx: Context) -> Any:
        """Send the actions in `ctx` straight to a contract, with no method call.

        Only contracts that declare a `@fallback` method accepting the
        actions can receive value this way.
        """
        contract = self._get_contract(contract_id)
        method_name = self._find_fallback(type(contract))
        if method_name is None:
            raise NCForbiddenAction(f"contract {contract_id.hex()} does not accept direct transfers")
        snapshot = self._snapshot()
        return self._run_top_level(
            snapshot,
            lambda: self._execute_public(contract_id, method_name, ctx, (), {}, is_fallback_call=True),
            contract_id,
            method_name,
        )

    def call_view_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        if self._call_stack:
            raise NCFail("contracts must call views through their syscall")
        return self._execute_view(contract_id, method_name, args, kwargs)

    def syscall_emit_event(self, contract_id: ContractId, data: Any) -> None:
        self._check_not_in_view("emit events")
        self._pending_events.append(NCEvent(contract_id, data))

    def syscall_call_another_contract_public_method(
        self,
        caller_contract_id: ContractId,
        contract_id: ContractId,
        method_name: str,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        self._check_not_in_view("call public methods")
        assert self._ctx is not None
        ctx = self._ctx.copy_for_nested_call(caller_contract_id)
        return self._execute_public(contract_id, method_name, ctx, args, kwargs)

    def syscall_call_another_contract_view_method(
        self,
        caller_contract_id: ContractId,
        contract_id: ContractId,
        method_name: str,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        return self._execute_view(contract_id, method_name, args, kwargs)

    def _run_top_level(
        self,
        snapshot: _Snapshot,
        call: Callable[[], Any],
        contract_id: ContractId,
        method_name: str,
    ) -> Any:
        self._check_top_level()
        self._pending_events = []
        try:
            ret = call()
        except Exception as e:
            self._restore(snapshot)
            self._pending_events = []
            logger.info(
                "call to %s.%s failed and was rolled back: %s: %s",
                contract_id.hex(), method_name, type(e).__name__, e,
            )
            if isinstance(e, NCFail):
                raise
            raise NCFail(f"{type(e).__name__}: {e}") from e
        finally:
            self._ctx = None
            self._call_stack.clear()

        self.last_events = self._pending_events
        self.events.extend(self._pending_events)
        self._pending_events = []
        return ret

    def _execute_public(
        self,
        contract_id: ContractId,
        method_name: str,
        ctx: Context,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        *,
        is_initialize: bool = False,
        is_fallback_call: bool = False,
    ) -> Any:
        contract = self._get_contract(contract_id)
        method = self._get_method(contract, method_name)

        if is_fallback_call:
            if not is_fallback(method):
                raise NCMethodNotFound(f"{method_name} is not a fallback method")
        else:
            if not is_public(method):
                raise NCMethodNotFound(f"{method_name} is not a public method")
            if (method_name == INITIALIZE_METHOD) != is_initialize:
                raise NCFail("initialize can only be called when the contract is created")

        if any(frame.contract_id == contract_id for frame in self._call_stack):
            if not getattr(method, NC_ALLOW_REENTRANCY_ATTR, False):
                raise NCReentrancyError(f"reentrant call to {contract_id.hex()}.{method_name}")

        if not self._call_stack:
            self._ctx = ctx
        self._apply_actions(contract_id, method, ctx)

        self._call_stack.append(_CallFrame(contract_id, method_name, is_view=False))
        try:
            logger.debug("%s.%s called by %s", contract_id.hex(), method_name, ctx.caller_id.hex())
            return method(ctx, *args, **kwargs)
        finally:
            self._call_stack.pop()

    def _execute_view(
        self,
        contract_id: ContractId,
        method_name: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        contract = self._get_contract(contract_id)
        method = self._get_method(contract, method_name)
        if not is_view(method):
            raise NCMethodNotFound(f"{method_name} is not a view method")

        before = copy.deepcopy(contract._get_state())
        self._call_stack.append(_CallFrame(contract_id, method_name, is_view=True))
        try:
            ret = method(*args, **kwargs)
        finally:
            self._call_stack.pop()
        if contract._get_state() != before:
            contract._set_state(before)
            raise NCViewMethodError(f"view {method_name} tried to change the contract state")
        return ret

    def _apply_actions(self, contract_id: ContractId, method: Any, ctx: Context) -> None:
        for action in ctx.actions_list:
            if action.amount <= 0:
                raise NCForbiddenAction("action amounts must be positive")
            if isinstance(action, NCDepositAction):
                if not getattr(method, NC_ALLOW_DEPOSIT_ATTR, False):
                    raise NCForbiddenAction("method does not accept deposits")
                self._native_balances[contract_id] = self._native_balances.get(contract_id, 0) + action.amount
            elif isinstance(action, NCWithdrawalAction):
                if not getattr(method, NC_ALLOW_WITHDRAWAL_ATTR, False):
                    raise NCForbiddenAction("method does not accept withdrawals")
                balance = self._native_balances.get(contract_id, 0)
                if action.amount > balance:
                    raise NCForbiddenAction("not enough native balance in the contract")
                self._native_balances[contract_id] = balance - action.amount
            else:
                raise NCForbiddenAction(f"unknown action {action!r}")

    def _check_top_level(self) -> None:
        if self._call_stack:
            raise NCFail("contracts must call other contracts through their syscall")

    def _check_not_in_view(self, what: str) -> None:
        if any(frame.is_view for frame in self._call_stack):
            raise NCViewMethodError(f"views cannot {what}")

    def _get_contract(self, contract_id: ContractId) -> Blueprint:
        contract = self._contracts.get(contract_id)
        if contract is None:
            raise NCContractDoesNotExist(f"contract {contract_id.hex()} does not exist")
        return contract

    def _get_method(self, contract: Blueprint, method_name: str) -> Any:
        if method_name.startswith("_"):
            raise NCMethodNotFound(f"{method_name} is private")
        method = getattr(contract, method_name, None)
        if method is None or not callable(method):
            raise NCMethodNotFound(f"{type(contract).__name__} has no method {method_name}")
        return method

    @staticmethod
    def _find_fallback(blueprint_class: type[Blueprint]) -> Optional[str]:
        for name in dir(blueprint_class):
            if not name.startswith("_") and is_fallback(getattr(blueprint_class, name)):
                return name
        return None

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            states={
                contract_id: copy.deepcopy(contract._get_state())
                for contract_id, contract in self._contracts.items()
            },
            native_balances=dict(self._native_balances),
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        for contract_id in list(self._contracts):
            state = snapshot.states.get(contract_id)
            if state is None:
                del self._contracts[contract_id]
                del self._contract_blueprints[contract_id]
            else:
                self._contracts[contract_id]._set_state(state)
        self._native_balances = dict(snapshot.native_balances)
