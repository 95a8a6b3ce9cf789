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


"""Best-effort removal of everything the installer put on the host."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.panel import Panel
from tenacity import Retrying, stop_after_attempt, wait_fixed

from k3s_setup import console
from k3s_setup.constants import (
    DIR_REMOVE_MAX_RETRIES,
    DIR_REMOVE_RETRY_WAIT_SECONDS,
    K3S_CONFIG_DIR,
    K3S_DATA_DIR,
    K3S_SERVICE,
    K3S_UNINSTALL_SCRIPT,
)
from k3s_setup.installer import service_active
from k3s_setup.runner import CommandRunner
from k3s_setup.runtime import ActionsRuntime


@dataclass(frozen=True)
class TeardownStep:
    """Outcome of one teardown step.

    Attributes:
        name: Step name.
        ok: Whether the step completed; skipped steps count as completed.
        detail: What happened, for the log.
    """

    name: str
    ok: bool
    detail: str = ""


@dataclass(frozen=True)
class TeardownReport:
    """Per-step outcome of a teardown. Teardown itself never fails."""

    steps: tuple[TeardownStep, ...]

    @property
    def clean(self) -> bool:
        return all(step.ok for step in self.steps)


def _stop_service(runner: CommandRunner) -> str:
    if not service_active(runner):
        return "service not active"
    runner.run("sudo", "systemctl", "stop", K3S_SERVICE)
    return "service stopped"


def _run_uninstall_script(runner: CommandRunner, path_exists: Callable[[Path], bool]) -> str:
    if not path_exists(K3S_UNINSTALL_SCRIPT):
        return f"{K3S_UNINSTALL_SCRIPT} not found"
    runner.run("sudo", str(K3S_UNINSTALL_SCRIPT))
    return "uninstall script completed"


def _remove_directories(runner: CommandRunner) -> str:
    """Force-remove the k3s config and data directories.

    Retried because kubelet mounts under the data directory can stay busy
    briefly after the service stops.
    """
    for attempt in Retrying(
        stop=stop_after_attempt(DIR_REMOVE_MAX_RETRIES),
        wait=wait_fixed(DIR_REMOVE_RETRY_WAIT_SECONDS),
        reraise=True,
    ):
        with attempt:
            runner.run("sudo", "rm", "-rf", str(K3S_CONFIG_DIR), str(K3S_DATA_DIR))
    return f"removed {K3S_CONFIG_DIR} and {K3S_DATA_DIR}"


def uninstall(
    runner: CommandRunner,
    runtime: ActionsRuntime,
    path_exists: Callable[[Path], bool] = Path.exists,
) -> TeardownReport:
    """Stop k3s, run its uninstall script and remove its directories.

    Every step runs even if an earlier one failed; failures are logged as
    warnings and recorded in the report.

    Args:
        runner: Command runner.
        runtime: Runtime providing the log group and warnings.
        path_exists: Existence probe for the uninstall script.

    Returns:
        The per-step report.
    """
    steps: list[tuple[str, Callable[[], str]]] = [
        ("stop-service", lambda: _stop_service(runner)),
        ("uninstall-script", lambda: _run_uninstall_script(runner, path_exists)),
        ("remove-directories", lambda: _remove_directories(runner)),
    ]
    results: list[TeardownStep] = []
    with runtime.group("Cleaning up k3s"):
        console.print(Panel.fit("Restoring host state", style="bold blue"))
        for name, step in steps:
            try:
                detail = step()
                console.print(f"[green]✓ {name}: {detail}[/green]")
                results.append(TeardownStep(name, True, detail))
            except Exception as e:
                runtime.warning(f"k3s cleanup step {name} failed: {e}")
                results.append(TeardownStep(name, False, str(e)))

        report = TeardownReport(tuple(results))
        if report.clean:
            console.print("[green]✅ k3s removed, host restored[/green]")
        else:
            console.print("[yellow]⚠️  k3s cleanup finished with warnings[/yellow]")
    return report
