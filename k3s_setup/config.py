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


"""Run configuration loaded from the action inputs."""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from k3s_setup import console
from k3s_setup.constants import (
    DEFAULT_DNS_READINESS,
    DEFAULT_K3S_ARGS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_VERSION,
    DEFAULT_WAIT_FOR_READY,
    INPUT_ENV_PREFIX,
)
from k3s_setup.errors import ConfigurationError


class SystemPodsPolicy(str, Enum):
    """How the system-components readiness check judges ``kube-system``.

    ``essential`` requires CoreDNS to be running and no pod outside the
    ``helm-install-*`` jobs to be crashing. ``all`` requires every pod to be
    Running or Completed.
    """

    ESSENTIAL = "essential"
    ALL = "all"


def _input(name: str) -> AliasChoices:
    """Accept both the runner's hyphenated input variable and an underscored one."""
    upper = name.upper()
    return AliasChoices(f"{INPUT_ENV_PREFIX}{upper}", f"{INPUT_ENV_PREFIX}{upper.replace('-', '_')}")


class RunConfiguration(BaseSettings):
    """Action inputs, auto-loaded from INPUT_* env vars.

    Attributes:
        version: k3s version tag, or the ``stable``/``latest`` channel.
        k3s_args: Arguments passed verbatim to the k3s installer.
        wait_for_ready: Whether to wait for the cluster to become ready.
        timeout: Readiness deadline in seconds.
        dns_readiness: Whether to verify in-cluster DNS resolution.
        system_pods: Policy for the system components readiness check.
    """

    model_config = SettingsConfigDict(
        env_prefix=INPUT_ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    version: str = DEFAULT_VERSION
    k3s_args: str = Field(default=DEFAULT_K3S_ARGS, validation_alias=_input("k3s-args"))
    wait_for_ready: bool = Field(default=DEFAULT_WAIT_FOR_READY, validation_alias=_input("wait-for-ready"))
    timeout: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    dns_readiness: bool = Field(default=DEFAULT_DNS_READINESS, validation_alias=_input("dns-readiness"))
    system_pods: SystemPodsPolicy = Field(
        default=SystemPodsPolicy.ESSENTIAL, validation_alias=_input("system-pods"))


def load_config() -> RunConfiguration:
    """Build the run configuration from the environment.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If any input is malformed, e.g. a non-positive timeout.
    """
    try:
        return RunConfiguration()
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in e['loc']) or 'input'}: {e['msg']}" for e in err.errors()
        )
        raise ConfigurationError(f"Invalid action inputs: {problems}") from err


def display_config(cfg: RunConfiguration) -> None:
    """Print the resolved configuration."""
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print(f"  version        : {cfg.version or DEFAULT_VERSION}")
    console.print(f"  k3s-args       : \"{cfg.k3s_args}\"", markup=False)
    console.print(f"  wait-for-ready : {str(cfg.wait_for_ready).lower()}")
    console.print(f"  timeout        : {cfg.timeout}s")
    console.print(f"  dns-readiness  : {str(cfg.dns_readiness).lower()}")
    console.print(f"  system-pods    : {cfg.system_pods.value}")
