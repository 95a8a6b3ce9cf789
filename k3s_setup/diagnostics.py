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


"""Host and service diagnostics captured when setup fails."""

from __future__ import annotations

from dataclasses import dataclass

from k3s_setup import console
from k3s_setup.constants import JOURNAL_TAIL_LINES, K3S_CONFIG_DIR, K3S_SERVICE
from k3s_setup.runner import CommandRunner
from k3s_setup.runtime import ActionsRuntime

DIAGNOSTIC_STEPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("k3s Service Status", ("sudo", "systemctl", "status", K3S_SERVICE)),
    (f"k3s Logs (last {JOURNAL_TAIL_LINES} lines)",
     ("sudo", "journalctl", "-u", K3S_SERVICE, "-n", str(JOURNAL_TAIL_LINES), "--no-pager")),
    ("Kubeconfig Directory", ("ls", "-laR", f"{K3S_CONFIG_DIR}/")),
    ("Listening Ports", ("sudo", "ss", "-tlnp")),
    ("Network Interfaces", ("ip", "addr")),
    ("Running Containers", ("sudo", "k3s", "crictl", "ps")),
)


@dataclass(frozen=True)
class DiagnosticStep:
    """Outcome of one diagnostic command.

    Attributes:
        title: Section heading printed before the output.
        command: Command that was run.
        exit_code: Exit code, or None if the command could not run at all.
        error: Reason the command could not run, if any.
    """

    title: str
    command: tuple[str, ...]
    exit_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class DiagnosticsBundle:
    """Every diagnostic step in the order it ran."""

    steps: tuple[DiagnosticStep, ...]

    @property
    def failed_steps(self) -> tuple[DiagnosticStep, ...]:
        return tuple(step for step in self.steps if step.error is not None)


def collect(runner: CommandRunner, runtime: ActionsRuntime) -> DiagnosticsBundle:
    """Print service, host and container diagnostics to the job log.

    Every step runs regardless of how earlier steps went. A step that cannot
    run is reported as a warning; this function never raises.

    Args:
        runner: Command runner used for every diagnostic command.
        runtime: Runtime providing the log group and warnings.

    Returns:
        The per-step record of what was collected.
    """
    steps: list[DiagnosticStep] = []
    with runtime.group("Diagnostic Information"):
        for title, command in DIAGNOSTIC_STEPS:
            console.print(f"=== {title} ===")
            try:
                result = runner.run(*command, ignore_return_code=True)
                steps.append(DiagnosticStep(title, command, exit_code=result.exit_code))
            except Exception as e:
                runtime.warning(f"Failed to gather diagnostics ({title}): {e}")
                steps.append(DiagnosticStep(title, command, error=str(e)))
    return DiagnosticsBundle(tuple(steps))
