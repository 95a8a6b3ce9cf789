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


"""Phase dispatch and the setup/teardown workflows."""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import yaml
from rich.panel import Panel

from k3s_setup import console, logger
from k3s_setup.config import RunConfiguration, SystemPodsPolicy, display_config, load_config
from k3s_setup.constants import (
    ENV_KUBECONFIG,
    KUBECONFIG_PATH,
    OUTPUT_KUBECONFIG,
    STATE_KEY_IS_POST,
)
from k3s_setup.diagnostics import collect
from k3s_setup.installer import Installer
from k3s_setup.readiness import wait_ready
from k3s_setup.runner import CommandRunner, is_readable
from k3s_setup.runtime import ActionsRuntime
from k3s_setup.state import StateStore
from k3s_setup.teardown import TeardownReport, uninstall

SETUP_PREREQUISITES = ("bash", "curl", "sudo")


class Phase(str, Enum):
    SETUP = "setup"
    TEARDOWN = "teardown"


# ============================================================================
# Phase dispatch
# ============================================================================

def resolve_phase(store: StateStore) -> Phase:
    """Teardown once setup has recorded that it started, setup otherwise."""
    if (store.get(STATE_KEY_IS_POST) or "").strip().lower() == "true":
        return Phase.TEARDOWN
    return Phase.SETUP


def dispatch(store: StateStore, setup: Callable[[], object], teardown: Callable[[], object]) -> Phase:
    """Run setup or teardown depending on the persisted phase flag.

    Setup records the flag before doing anything else, so the next
    invocation tears down even if setup dies halfway.

    Args:
        store: Cross-invocation state store.
        setup: Setup workflow.
        teardown: Teardown workflow.

    Returns:
        The phase that ran.
    """
    phase = resolve_phase(store)
    if phase is Phase.TEARDOWN:
        teardown()
        return phase

    store.set(STATE_KEY_IS_POST, "true")
    setup()
    return phase


# ============================================================================
# Setup helpers
# ============================================================================

def _check_prerequisites(runner: CommandRunner) -> None:
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in SETUP_PREREQUISITES:
        runner.require(cmd)
    console.print("[green]✅ All required tools are available[/green]")


def export_credentials(runtime: ActionsRuntime, kubeconfig: Path = KUBECONFIG_PATH) -> None:
    """Publish the kubeconfig path as the step output and as KUBECONFIG."""
    runtime.set_output(OUTPUT_KUBECONFIG, str(kubeconfig))
    runtime.export_variable(ENV_KUBECONFIG, str(kubeconfig))
    console.print(f"  KUBECONFIG exported: {kubeconfig}")


def read_api_server(kubeconfig: Path) -> str | None:
    """Return the API server URL of the first cluster in a kubeconfig, if any."""
    try:
        with open(kubeconfig) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.debug("Could not read %s: %s", kubeconfig, e)
        return None
    if not isinstance(data, dict):
        return None
    for entry in data.get("clusters") or []:
        server = ((entry or {}).get("cluster") or {}).get("server")
        if server:
            return server
    return None


def show_cluster_summary(runner: CommandRunner, runtime: ActionsRuntime, kubeconfig: Path,
                         policy: SystemPodsPolicy) -> None:
    """Print nodes, the API server, and pods or the version, depending on policy."""
    with runtime.group("Cluster summary"):
        server = read_api_server(kubeconfig)
        if server:
            console.print(f"  API server: {server}")
        kubectl = ("kubectl", "--kubeconfig", str(kubeconfig))
        runner.run(*kubectl, "get", "nodes", ignore_return_code=True)
        if policy is SystemPodsPolicy.ESSENTIAL:
            runner.run(*kubectl, "get", "pods", "-A", ignore_return_code=True)
            console.print("Note: Helm install jobs may still be running in the background "
                          "to install optional components like Traefik")
        else:
            runner.run(*kubectl, "version", ignore_return_code=True)


# ============================================================================
# Workflows
# ============================================================================

def run_setup(
    cfg: RunConfiguration,
    runner: CommandRunner,
    runtime: ActionsRuntime,
    *,
    sleep: Callable[[float], None] = time.sleep,
    path_readable: Callable[[Path], bool] = is_readable,
) -> None:
    """Install k3s, optionally wait for it to be ready, and export credentials.

    Args:
        cfg: Run configuration.
        runner: Command runner.
        runtime: Actions runtime.
        sleep: Sleep function for the warm-up and poll intervals.
        path_readable: File readability probe for the credentials.

    Raises:
        K3sSetupError: If any step fails.
    """
    console.print("Starting k3s setup...")
    display_config(cfg)
    _check_prerequisites(runner)

    def diagnose() -> None:
        collect(runner, runtime)

    Installer(runner, runtime, on_failure=diagnose, sleep=sleep).install(cfg.version, cfg.k3s_args)

    if cfg.wait_for_ready:
        wait_ready(
            KUBECONFIG_PATH, cfg.timeout,
            runner=runner,
            runtime=runtime,
            policy=cfg.system_pods,
            dns_readiness=cfg.dns_readiness,
            on_timeout=diagnose,
            sleep=sleep,
            path_readable=path_readable,
        )
        export_credentials(runtime)
        show_cluster_summary(runner, runtime, KUBECONFIG_PATH, cfg.system_pods)
    else:
        export_credentials(runtime)

    console.print("[green]✅ k3s setup completed successfully![/green]")


def run_teardown(runner: CommandRunner, runtime: ActionsRuntime) -> TeardownReport:
    """Restore the host; never raises."""
    console.print("Starting k3s cleanup...")
    return uninstall(runner, runtime)


def run(
    store: StateStore,
    runner: CommandRunner,
    runtime: ActionsRuntime,
    load: Callable[[], RunConfiguration] = load_config,
) -> Phase:
    """Dispatch this invocation to setup or teardown.

    Configuration is loaded only after the phase flag has been recorded.
    """
    return dispatch(
        store,
        setup=lambda: run_setup(load(), runner, runtime),
        teardown=lambda: run_teardown(runner, runtime),
    )
