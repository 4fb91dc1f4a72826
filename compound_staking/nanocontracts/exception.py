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

class NCFail(Exception):
    """Raised by a contract to abort the current call.

    Every failure inside a call, whether raised by a blueprint or by the
    runtime, derives from this class so callers can handle them uniformly.
    The runner rolls back all state touched by the call before re-raising.
    """
    pass


class NCContractDoesNotExist(NCFail):
    pass


class NCAlreadyInitializedError(NCFail):
    pass


class NCMethodNotFound(NCFail):
    pass


class NCForbiddenAction(NCFail):
    """The call carried native currency actions the method does not accept."""
    pass


class NCReentrancyError(NCFail):
    """A public method re-entered a contract that is still executing."""
    pass


class NCViewMethodError(NCFail):
    """A view tried to mutate state, emit events or call a public method."""
    pass


class NCArithmeticError(NCFail):
    """An amount or time computation left the representable range."""
    pass


class NCInvalidContext(NCFail):
    pass
