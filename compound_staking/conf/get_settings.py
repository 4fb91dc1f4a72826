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
import os
from typing import NamedTuple, Optional

from compound_staking.conf.settings import StakingSettings

logger = logging.getLogger(__name__)

STAKING_CONFIG_YAML_ENV_VAR = "STAKING_CONFIG_YAML"


class _SettingsMetadata(NamedTuple):
    source: Optional[str]
    settings: StakingSettings


_settings_singleton: Optional[_SettingsMetadata] = None


def get_global_settings() -> StakingSettings:
    """Return the settings selected by the environment.

    `STAKING_CONFIG_YAML` may point to a YAML file whose values override the
    built-in localnet settings. The result is cached for as long as the
    variable keeps the same value.
    """
    global _settings_singleton

    source = os.environ.get(STAKING_CONFIG_YAML_ENV_VAR) or None
    if _settings_singleton is not None and _settings_singleton.source == source:
        return _settings_singleton.settings

    from compound_staking.conf.localnet import SETTINGS as default_settings

    if source is None:
        settings = default_settings
    else:
        logger.info("loading staking settings from %s", source)
        settings = StakingSettings.from_yaml(filepath=source, base=default_settings)

    _settings_singleton = _SettingsMetadata(source, settings)
    return settings
