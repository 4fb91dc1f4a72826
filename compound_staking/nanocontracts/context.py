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

from collections import defaultdict
from types import MappingProxyType
from typing import Sequence

from compound_staking.nanocontracts.exception import NCFail, NCInvalidContext
from compound_staking.nanocontracts.types import CallerId, NCAction, TokenUid


class Context:
    """Information about the call being executed.

    `caller_id` is the identity that invoked the method: a wallet address for
    top-level calls, or the calling contract's id for nested calls.
    `timestamp` is the chain clock at the moment of the call; every contract
    touched by one call tree observes the same value.
    """

    __slots__ = ("__actions", "caller_id", "timestamp")

    def __init__(
        self,
        actions: Sequence[NCAction] = (),
        *,
        caller_id: CallerId,
        timestamp: int | float,
    ) -> None:
        if not caller_id:
            raise NCInvalidContext("caller_id is required")
        if timestamp < 0:
            raise NCInvalidContext("timestamp must not be negative")

        grouped: defaultdict[TokenUid, list[NCAction]] = defaultdict(list)
        for action in actions:
            grouped[action.token_uid].append(action)

        self.__actions = MappingProxyType({
            token_uid: tuple(token_actions) for token_uid, token_actions in grouped.items()
        })
        self.caller_id = caller_id
        self.timestamp = int(timestamp)

    @property
    def actions(self) -> MappingProxyType[TokenUid, tuple[NCAction, ...]]:
        return self.__actions

    @property
    def actions_list(self) -> list[NCAction]:
        return [action for token_actions in self.__actions.values() for action in token_actions]

    def get_single_action(self, token_uid: TokenUid) -> NCAction:
        """Return the only action for `token_uid`, failing otherwise."""
        token_actions = self.__actions.get(token_uid, ())
        if len(token_actions) != 1:
            raise NCFail(f"expected exactly 1 action for token {token_uid.hex()}")
        return token_actions[0]

    def copy_for_nested_call(self, caller_id: CallerId) -> "Context":
        """Context used when a contract calls into another contract."""
        return Context((), caller_id=caller_id, timestamp=self.timestamp)

    def __repr__(self) -> str:
        return (
            f"Context(caller_id={self.caller_id.hex()}, timestamp={self.timestamp}, "
            f"actions={self.actions_list!r})"
        )
