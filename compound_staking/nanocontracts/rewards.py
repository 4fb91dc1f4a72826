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

from typing import Optional

from compound_staking.utils.fixed_point import PRECISION, exp, mul_div_down

BASIS_POINTS: int = 10_000


def capped_elapsed(start_time: int, now: int, finish_time: Optional[int]) -> int:
    """Seconds of accrual between `start_time` and now, never past `finish_time`."""
    cap = now if finish_time is None else min(now, finish_time)
    return max(0, cap - start_time)


def growth_exponent(elapsed: int, annual_rate_bps: int, seconds_per_year: int) -> int:
    """rate * elapsed / year as a fixed-point value, rounded down."""
    return mul_div_down(annual_rate_bps * elapsed, PRECISION, BASIS_POINTS * seconds_per_year)


def accrued_reward(
    principal: int,
    start_time: int,
    now: int,
    finish_time: Optional[int],
    annual_rate_bps: int,
    seconds_per_year: int,
) -> int:
    """Reward earned by `principal` compounding continuously since `start_time`.

    The reward is `principal * (e**(rate * elapsed / year) - 1)`, rounded
    down, where `elapsed` stops growing at `finish_time`. Every rounding step
    goes down, so repeated compounding can only under-credit.
    """
    if principal == 0:
        return 0
    elapsed = capped_elapsed(start_time, now, finish_time)
    if elapsed == 0:
        return 0
    growth = exp(growth_exponent(elapsed, annual_rate_bps, seconds_per_year))
    return mul_div_down(principal, growth - PRECISION, PRECISION)
