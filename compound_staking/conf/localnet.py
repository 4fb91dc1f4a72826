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

from compound_staking.conf.settings import StakingSettings

SETTINGS = StakingSettings(
    NETWORK_NAME="localnet",
    NATIVE_TOKEN_UID=b"\x00",
    # 20% per year, compounded continuously
    ANNUAL_RATE_BPS=2000,
    SECONDS_PER_YEAR=31_536_000,
    GENESIS_TIMESTAMP=1_672_531_200,
)
