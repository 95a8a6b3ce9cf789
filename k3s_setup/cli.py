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


"""
cli.py - Entry point for the setup-k3s action.

Without a subcommand the phase is chosen from the action state: the main
step installs k3s and waits for it, the post step removes it again.

Subcommands:
    setup        Install k3s and wait for it, ignoring the action state
    teardown     Remove k3s and restore the host
    diagnostics  Print service, host and container diagnostics

Environment Variables:
    Inputs are read from the INPUT_* variables set by the Actions runner:
    - INPUT_VERSION (default: stable)
    - INPUT_K3S-ARGS (default: --write-kubeconfig-mode 644)
    - INPUT_WAIT-FOR-READY (default: true)
    - INPUT_TIMEOUT (default: 120)
    - INPUT_DNS-READINESS (default: true)
    - INPUT_SYSTEM-PODS (default: essential)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable

import typer

from k3s_setup import console
from k3s_setup.config import load_config
from k3s_setup.diagnostics import collect
from k3s_setup.errors import K3sSetupError
from k3s_setup.orchestrator import run, run_setup, run_teardown
from k3s_setup.runner import CommandRunner
from k3s_setup.runtime import ActionsRuntime
from k3s_setup.state import ActionsStateStore, MemoryStateStore, StateStore

app = typer.Typer(
    help="Provision an ephemeral k3s cluster for CI and remove it afterwards.",
    add_completion=False,
)


def _state_store(runtime: ActionsRuntime) -> StateStore:
    if runtime.environ.get("GITHUB_ACTIONS") == "true":
        return ActionsStateStore(runtime)
    return MemoryStateStore()


def _run_or_exit(runtime: ActionsRuntime, fn: Callable[[], object]) -> None:
    try:
        fn()
    except K3sSetupError as e:
        runtime.error(str(e))
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log executed commands"),
) -> None:
    """Run setup or teardown depending on the action phase."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    if ctx.invoked_subcommand is not None:
        return
    runtime = ActionsRuntime()
    _run_or_exit(runtime, lambda: run(_state_store(runtime), CommandRunner(), runtime))


@app.command()
def setup() -> None:
    """Install k3s and wait for the cluster, ignoring the action state."""
    runtime = ActionsRuntime()
    _run_or_exit(runtime, lambda: run_setup(load_config(), CommandRunner(), runtime))


@app.command()
def teardown() -> None:
    """Stop and uninstall k3s; always exits 0."""
    run_teardown(CommandRunner(), ActionsRuntime())


@app.command()
def diagnostics() -> None:
    """Print k3s service, host network and container diagnostics."""
    collect(CommandRunner(), ActionsRuntime())


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
