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

import typing
from typing import Any

from compound_staking.nanocontracts.blueprint_env import BlueprintEnvironment

SYSCALL_ATTR = "syscall"


class Blueprint:
    """Base class for contract blueprints.

    Contract state is declared with class-level annotations. Fields annotated
    with a `dict` type start out empty; every other field must be set in
    `initialize`. Instances are created and driven by the `Runner`, never
    directly:

        class Counter(Blueprint):
            count: int
            seen: dict[Address, int]

            @public
            def initialize(self, ctx: Context) -> None:
                self.count = 0
    """

    syscall: BlueprintEnvironment

    @classmethod
    def get_fields(cls) -> dict[str, Any]:
        """Return the state fields declared by this blueprint and its bases."""
        fields: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            for name, annotation in getattr(klass, "__annotations__", {}).items():
                if name == SYSCALL_ATTR or name.startswith("_"):
                    continue
                fields[name] = annotation
        return fields

    @classmethod
    def _new_instance(cls, syscall: BlueprintEnvironment) -> "Blueprint":
        instance = cls.__new__(cls)
        instance.__dict__[SYSCALL_ATTR] = syscall
        for name, annotation in cls.get_fields().items():
            origin = typing.get_origin(annotation) or annotation
            if origin is dict:
                instance.__dict__[name] = {}
        return instance

    def _get_state(self) -> dict[str, Any]:
        return {name: value for name, value in self.__dict__.items() if name != SYSCALL_ATTR}

    def _set_state(self, state: dict[str, Any]) -> None:
        syscall = self.__dict__[SYSCALL_ATTR]
        self.__dict__.clear()
        self.__dict__.update(state)
        self.__dict__[SYSCALL_ATTR] = syscall
