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


from __future__ import annotations

import pytest
from typer.testing import CliRunner

from k3s_setup import cli, teardown
from k3s_setup.errors import CommandError, ServiceNotActive
from k3s_setup.orchestrator import Phase
from k3s_setup.runtime import ActionsRuntime
from k3s_setup.state import ActionsStateStore, MemoryStateStore


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


def test_no_subcommand_dispatches_on_phase(cli_runner, monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "run", lambda store, runner, runtime: calls.append(store) or Phase.SETUP)

    result = cli_runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    assert len(calls) == 1


def test_setup_failure_exits_non_zero_with_error_annotation(cli_runner, monkeypatch):
    def fail(store, runner, runtime):
        raise ServiceNotActive("Failed to install k3s: k3s service failed to start")

    monkeypatch.setattr(cli, "run", fail)

    result = cli_runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "::error::Failed to install k3s: k3s service failed to start" in result.output


def test_setup_subcommand_ignores_phase(cli_runner, monkeypatch):
    seen = []
    monkeypatch.setattr(cli, "load_config", lambda: "cfg")
    monkeypatch.setattr(cli, "run_setup", lambda cfg, runner, runtime: seen.append(cfg))

    result = cli_runner.invoke(cli.app, ["setup"])

    assert result.exit_code == 0, result.output
    assert seen == ["cfg"]


def test_teardown_subcommand(cli_runner, monkeypatch):
    seen = []
    monkeypatch.setattr(cli, "run_teardown", lambda runner, runtime: seen.append("teardown"))

    result = cli_runner.invoke(cli.app, ["teardown"])

    assert result.exit_code == 0, result.output
    assert seen == ["teardown"]


def test_diagnostics_subcommand(cli_runner, monkeypatch):
    seen = []
    monkeypatch.setattr(cli, "collect", lambda runner, runtime: seen.append("collect"))

    result = cli_runner.invoke(cli.app, ["diagnostics"])

    assert result.exit_code == 0, result.output
    assert seen == ["collect"]


def test_state_store_depends_on_runner_environment():
    assert isinstance(cli._state_store(ActionsRuntime(environ={"GITHUB_ACTIONS": "true"})), ActionsStateStore)
    assert isinstance(cli._state_store(ActionsRuntime(environ={})), MemoryStateStore)


def test_teardown_exits_zero_when_every_step_fails(cli_runner, monkeypatch, runner, tmp_path):
    uninstall_script = tmp_path / "k3s-uninstall.sh"
    uninstall_script.touch()
    runner.on("sudo", raises=CommandError("sudo: a terminal is required"))
    monkeypatch.setattr(cli, "CommandRunner", lambda: runner)
    monkeypatch.setattr(teardown, "DIR_REMOVE_RETRY_WAIT_SECONDS", 0)
    monkeypatch.setattr(teardown, "K3S_UNINSTALL_SCRIPT", uninstall_script)

    result = cli_runner.invoke(cli.app, ["teardown"])

    assert result.exit_code == 0, result.output
    assert result.output.count("::warning::k3s cleanup step") == 3
    assert runner.count("rm", "-rf") == 3
