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

from compound_staking.nanocontracts.types import (
    Address,
    Amount,
    BlueprintId,
    ContractId,
    NCDepositAction,
    NCWithdrawalAction,
    Timestamp,
    TokenUid,
    fallback,
    public,
    view,
)
from compound_staking.nanocontracts.blueprint import Blueprint
from compound_staking.nanocontracts.context import Context
from compound_staking.nanocontracts.exception import NCFail

__version__ = "0.1.0"

__all__ = [
    "Address",
    "Amount",
    "Blueprint",
    "BlueprintId",
    "Context",
    "ContractId",
    "NCDepositAction",
    "NCFail",
    "NCWithdrawalAction",
    "Timestamp",
    "TokenUid",
    "fallback",
    "public",
    "view",
]
