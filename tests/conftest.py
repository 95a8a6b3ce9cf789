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


"""Shared fakes for the setup-k3s tests."""

from __future__ import annotations

import pytest

from k3s_setup.errors import CommandError
from k3s_setup.runner import CommandResult
from k3s_setup.runtime import ActionsRuntime


def _contains(command: tuple[str, ...], tokens: tuple[str, ...]) -> bool:
    n = len(tokens)
    return any(command[i:i + n] == tokens for i in range(len(command) - n + 1))


class FakeRunner:
    """Scriptable stand-in for CommandRunner.

    Responses are registered against a run of consecutive command tokens; the
    most recently registered match wins. A response list is consumed one entry
    per call, repeating the last entry once exhausted. Unmatched commands
    succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.missing: set[str] = set()
        self._responses: list[tuple[tuple[str, ...], list]] = []

    def on(self, *tokens: str, exit_code: int = 0, stdout: str = "", raises: Exception | None = None) -> None:
        self.sequence(*tokens, responses=[raises or CommandResult(exit_code, stdout)])

    def sequence(self, *tokens: str, responses: list) -> None:
        self._responses.append((tokens, list(responses)))

    def run(self, program: str, *args: str, ignore_return_code: bool = False, silent: bool = False) -> CommandResult:
        command = (program, *args)
        self.calls.append(command)
        response: object = CommandResult(0)
        for tokens, queue in reversed(self._responses):
            if _contains(command, tokens):
                response = queue.pop(0) if len(queue) > 1 else queue[0]
                break
        if isinstance(response, Exception):
            raise response
        assert isinstance(response, CommandResult)
        if not response.ok and not ignore_return_code:
            raise CommandError(f"Command failed ({response.exit_code}): {' '.join(command)}",
                               exit_code=response.exit_code)
        return response

    def require(self, program: str) -> None:
        if program in self.missing:
            raise CommandError(f"Required command '{program}' not found. Please install it first.")

    def ran(self, *tokens: str) -> bool:
        return any(_contains(call, tokens) for call in self.calls)

    def count(self, *tokens: str) -> int:
        return sum(1 for call in self.calls if _contains(call, tokens))

    def index(self, *tokens: str) -> int:
        """Index of the last call containing ``tokens``."""
        matches = [i for i, call in enumerate(self.calls) if _contains(call, tokens)]
        assert matches, f"no call contained {tokens}"
        return matches[-1]


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runtime(tmp_path) -> ActionsRuntime:
    environ = {}
    for name in ("GITHUB_OUTPUT", "GITHUB_ENV", "GITHUB_STATE"):
        path = tmp_path / name.lower()
        path.touch()
        environ[name] = str(path)
    return ActionsRuntime(environ=environ)


@pytest.fixture
def clean_inputs(monkeypatch):
    """Remove every INPUT_* variable so defaults apply."""
    import os

    for name in list(os.environ):
        if name.upper().startswith("INPUT_"):
            monkeypatch.delenv(name)
    return monkeypatch
