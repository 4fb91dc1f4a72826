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

from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, NewType, Optional, TypeVar

Address = NewType("Address", bytes)
ContractId = NewType("ContractId", bytes)
BlueprintId = NewType("BlueprintId", bytes)
TokenUid = NewType("TokenUid", bytes)
Amount = NewType("Amount", int)
Timestamp = NewType("Timestamp", int)

# Anything that can appear as `ctx.caller_id`: a wallet address or another contract.
CallerId = bytes

T = TypeVar("T", bound=Callable[..., Any])

NC_PUBLIC_ATTR = "_nc_is_public"
NC_VIEW_ATTR = "_nc_is_view"
NC_FALLBACK_ATTR = "_nc_is_fallback"
NC_ALLOW_DEPOSIT_ATTR = "_nc_allow_deposit"
NC_ALLOW_WITHDRAWAL_ATTR = "_nc_allow_withdrawal"
NC_ALLOW_REENTRANCY_ATTR = "_nc_allow_reentrancy"


@dataclass(frozen=True, slots=True)
class NCDepositAction:
    """Native currency sent along with a call."""
    token_uid: TokenUid
    amount: int


@dataclass(frozen=True, slots=True)
class NCWithdrawalAction:
    """Native currency requested out of a contract along with a call."""
    token_uid: TokenUid
    amount: int


NCAction = NCDepositAction | NCWithdrawalAction


class NCEvent(NamedTuple):
    """An event emitted by a contract during a successful call."""
    contract_id: ContractId
    data: Any


def _mark(
    fn: T,
    marker: str,
    *,
    allow_deposit: bool,
    allow_withdrawal: bool,
    allow_reentrancy: bool,
) -> T:
    setattr(fn, marker, True)
    setattr(fn, NC_ALLOW_DEPOSIT_ATTR, allow_deposit)
    setattr(fn, NC_ALLOW_WITHDRAWAL_ATTR, allow_withdrawal)
    setattr(fn, NC_ALLOW_REENTRANCY_ATTR, allow_reentrancy)
    return fn


def public(
    fn: Optional[T] = None,
    *,
    allow_deposit: bool = False,
    allow_withdrawal: bool = False,
    allow_reentrancy: bool = False,
) -> Any:
    """Mark a blueprint method as callable by transactions.

    Can be used bare (`@public`) or with options
    (`@public(allow_deposit=True)`). A public method receives the call
    `Context` as its first argument after `self`.
    """
    def decorator(inner: T) -> T:
        return _mark(
            inner,
            NC_PUBLIC_ATTR,
            allow_deposit=allow_deposit,
            allow_withdrawal=allow_withdrawal,
            allow_reentrancy=allow_reentrancy,
        )

    if fn is not None:
        return decorator(fn)
    return decorator


def view(fn: T) -> T:
    """Mark a blueprint method as a read-only query."""
    setattr(fn, NC_VIEW_ATTR, True)
    return fn


def fallback(
    fn: Optional[T] = None,
    *,
    allow_deposit: bool = False,
) -> Any:
    """Mark the method that handles value sent directly to the contract."""
    def decorator(inner: T) -> T:
        return _mark(
            inner,
            NC_FALLBACK_ATTR,
            allow_deposit=allow_deposit,
            allow_withdrawal=False,
            allow_reentrancy=False,
        )

    if fn is not None:
        return decorator(fn)
    return decorator


def is_public(method: Any) -> bool:
    return getattr(method, NC_PUBLIC_ATTR, False)


def is_view(method: Any) -> bool:
    return getattr(method, NC_VIEW_ATTR, False)


def is_fallback(method: Any) -> bool:
    return getattr(method, NC_FALLBACK_ATTR, False)
