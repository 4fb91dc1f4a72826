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

from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, field_validator


class StakingSettings(BaseModel):
    """Network-wide parameters for the staking contracts.

    Values are fixed when a contract is created: changing the settings later
    never alters the rate of a contract that already exists.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Name of the network, only used for display.
    NETWORK_NAME: str

    # Uid of the chain native currency, which the staking contract refuses.
    NATIVE_TOKEN_UID: bytes = b"\x00"

    # Annual continuously-compounded rate, in basis points (2000 = 20%).
    ANNUAL_RATE_BPS: int = 2000

    # Length of the year used by the reward formula.
    SECONDS_PER_YEAR: int = 365 * 24 * 60 * 60

    # Timestamp of the first block; local clocks start here.
    GENESIS_TIMESTAMP: int = 0

    @field_validator("NATIVE_TOKEN_UID", mode="before")
    @classmethod
    def _parse_hex_str(cls, value: Any) -> Any:
        if isinstance(value, str):
            return bytes.fromhex(value)
        return value

    @field_validator("ANNUAL_RATE_BPS", "SECONDS_PER_YEAR")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("GENESIS_TIMESTAMP")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @classmethod
    def from_yaml(cls, *, filepath: str, base: Optional["StakingSettings"] = None) -> "StakingSettings":
        """Load settings from a YAML file, on top of `base` when given."""
        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{filepath} must contain a mapping")
        if base is not None:
            data = {**base.model_dump(), **data}
        return cls.model_validate(data)
