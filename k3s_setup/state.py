# /*
# Copyright 2026 The setup-k3s Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Cross-invocation state store shared by the setup and post phases."""

from __future__ import annotations

from typing import Protocol

from k3s_setup.runtime import ActionsRuntime


class StateStore(Protocol):
    """Key-value store that outlives a single process invocation."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class ActionsStateStore:
    """State kept by the Actions runner between the main and post steps.

    Values written during the main step are only visible to the post step,
    as ``STATE_<key>`` environment variables.
    """

    def __init__(self, runtime: ActionsRuntime) -> None:
        self._runtime = runtime

    def get(self, key: str) -> str | None:
        return self._runtime.get_state(key) or None

    def set(self, key: str, value: str) -> None:
        self._runtime.save_state(key, value)


class MemoryStateStore:
    """In-process state store, used when running outside the Actions runner."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value
