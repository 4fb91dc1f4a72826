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

from typing import TYPE_CHECKING, Any

from compound_staking.nanocontracts.types import ContractId

if TYPE_CHECKING:
    from compound_staking.nanocontracts.runner import Runner


class BlueprintEnvironment:
    """The syscalls available to a running contract.

    A blueprint reaches the outside world only through `self.syscall`:
    reading the chain clock, emitting events and calling other contracts.
    """

    __slots__ = ("__runner", "__contract_id")

    def __init__(self, runner: "Runner", contract_id: ContractId) -> None:
        self.__runner = runner
        self.__contract_id = contract_id

    def get_contract_id(self) -> ContractId:
        return self.__contract_id

    def get_block_timestamp(self) -> int:
        """Chain clock for the current call, or the runner clock inside a view."""
        return self.__runner.get_current_timestamp()

    def emit_event(self, data: Any) -> None:
        self.__runner.syscall_emit_event(self.__contract_id, data)

    def call_public_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        return self.__runner.syscall_call_another_contract_public_method(
            self.__contract_id, contract_id, method_name, *args, **kwargs
        )

    def call_view_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        return self.__runner.syscall_call_another_contract_view_method(
            self.__contract_id, contract_id, method_name, *args, **kwargs
        )
