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


"""k3s installation through the upstream install script."""

from __future__ import annotations

import shlex
import time
from collections.abc import Callable
from dataclasses import dataclass

from rich.panel import Panel

from k3s_setup import console
from k3s_setup.constants import (
    CHANNEL_LATEST,
    CHANNEL_STABLE,
    ENV_INSTALL_CHANNEL,
    ENV_INSTALL_VERSION,
    K3S_INSTALL_URL,
    K3S_SERVICE,
    SERVICE_WARMUP_SECONDS,
)
from k3s_setup.errors import CommandError, InstallScriptFailed, ServiceNotActive
from k3s_setup.runner import CommandRunner
from k3s_setup.runtime import ActionsRuntime


@dataclass(frozen=True)
class InstallTarget:
    """What the install script should install: a release channel or a pinned version.

    Exactly one of ``channel`` and ``version`` is set.
    """

    channel: str | None = None
    version: str | None = None

    @property
    def env_assignment(self) -> str:
        if self.version is not None:
            return f"{ENV_INSTALL_VERSION}={shlex.quote(self.version)}"
        return f"{ENV_INSTALL_CHANNEL}={shlex.quote(self.channel or CHANNEL_STABLE)}"

    def describe(self) -> str:
        return self.version if self.version is not None else f"{self.channel} channel"


def resolve_install_target(selector: str | None) -> InstallTarget:
    """Map a version selector to a channel or a pinned version.

    ``latest`` selects the latest channel; ``stable``, empty or None select the
    stable channel; anything else is pinned as an exact version tag.
    """
    selector = (selector or "").strip()
    if selector == CHANNEL_LATEST:
        return InstallTarget(channel=CHANNEL_LATEST)
    if selector in ("", CHANNEL_STABLE):
        return InstallTarget(channel=CHANNEL_STABLE)
    return InstallTarget(version=selector)


def build_install_command(target: InstallTarget, install_args: str) -> str:
    """Build the shell pipeline that fetches and runs the install script.

    Args:
        target: Resolved channel or version.
        install_args: Installer arguments, passed through verbatim.

    Returns:
        A command line suitable for ``bash -c``.
    """
    command = f"curl -sfL {K3S_INSTALL_URL} | {target.env_assignment} sh -s -"
    if install_args.strip():
        command = f"{command} {install_args}"
    return command


def service_active(runner: CommandRunner) -> bool:
    """Ask systemd whether k3s is active; a non-zero answer means it is not."""
    return runner.run("sudo", "systemctl", "is-active", K3S_SERVICE, ignore_return_code=True, silent=True).ok


class Installer:
    """Installs k3s and checks that its service came up.

    Args:
        runner: Command runner.
        runtime: Runtime providing log groups.
        on_failure: Called once before ``ServiceNotActive`` is raised, normally
            the diagnostics collector.
        sleep: Sleep function used for the service warm-up.
        warmup_seconds: Time given to the service to register after install.
    """

    def __init__(
        self,
        runner: CommandRunner,
        runtime: ActionsRuntime,
        on_failure: Callable[[], object],
        sleep: Callable[[float], None] = time.sleep,
        warmup_seconds: float = SERVICE_WARMUP_SECONDS,
    ) -> None:
        self.runner = runner
        self.runtime = runtime
        self.on_failure = on_failure
        self.sleep = sleep
        self.warmup_seconds = warmup_seconds

    def install(self, version_selector: str | None, install_args: str) -> InstallTarget:
        """Install k3s and check that its service is active after the warm-up.

        Args:
            version_selector: Version tag, ``stable``, ``latest`` or empty.
            install_args: Arguments for the install script, passed verbatim.

        Returns:
            The resolved install target.

        Raises:
            InstallScriptFailed: If the install script exits non-zero.
            ServiceNotActive: If the service is not active after the warm-up.
        """
        target = resolve_install_target(version_selector)
        with self.runtime.group("Installing k3s"):
            console.print(Panel.fit(f"Installing k3s ({target.describe()})", style="bold blue"))
            command = build_install_command(target, install_args)
            console.print(f"  Install command: {command}", markup=False)
            try:
                self.runner.run("bash", "-c", command)
            except CommandError as err:
                raise InstallScriptFailed(f"Failed to install k3s: {err}") from err

            console.print("[yellow]ℹ️  Waiting for k3s service to start...[/yellow]")
            self.sleep(self.warmup_seconds)

            active = service_active(self.runner)
            if active:
                console.print("[green]✅ k3s installed successfully[/green]")

        # Diagnostics open their own log group, so they run after this one closes.
        if not active:
            self.on_failure()
            raise ServiceNotActive("Failed to install k3s: k3s service failed to start")
        return target
