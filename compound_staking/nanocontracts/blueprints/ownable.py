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

from compound_staking.nanocontracts.blueprint import Blueprint
from compound_staking.nanocontracts.context import Context
from compound_staking.nanocontracts.exception import NCFail
from compound_staking.nanocontracts.types import CallerId, public, view

logger = logging.getLogger(__name__)


class OwnershipTransferred(NamedTuple):
    previous_owner: Optional[CallerId]
    new_owner: Optional[CallerId]


class Unauthorized(NCFail):
    pass


class InvalidInput(NCFail):
    pass


class Ownable(Blueprint):
    """Base blueprint for contracts with a single administrator.

    Subclasses call `_init_owner(ctx)` from their `initialize` and guard
    administrative methods with `_only_owner(ctx)`.
    """

    owner: Optional[bytes]

    def _init_owner(self, ctx: Context) -> None:
        self.owner = None
        self._set_owner(ctx.caller_id)

    def _only_owner(self, ctx: Context) -> None:
        if self.owner is None or ctx.caller_id != self.owner:
            raise Unauthorized("caller is not the owner")

    def _set_owner(self, new_owner: Optional[CallerId]) -> None:
        previous_owner = self.owner
        self.owner = new_owner
        self.syscall.emit_event(OwnershipTransferred(previous_owner, new_owner))

    @public
    def transfer_ownership(self, ctx: Context, new_owner: CallerId) -> None:
        self._only_owner(ctx)
        if not isinstance(new_owner, bytes) or not new_owner:
            raise InvalidInput("new owner is the empty identity")
        logger.info("ownership transferred from %s to %s", ctx.caller_id.hex(), new_owner.hex())
        self._set_owner(new_owner)

    @public
    def renounce_ownership(self, ctx: Context) -> None:
        """Leave the contract without owner; administrative calls fail afterwards."""
        self._only_owner(ctx)
        logger.info("ownership renounced by %s", ctx.caller_id.hex())
        self._set_owner(None)

    @view
    def get_owner(self) -> Optional[bytes]:
        return self.owner
