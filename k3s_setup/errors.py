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


"""Error taxonomy for the setup and teardown phases."""

from __future__ import annotations


class K3sSetupError(Exception):
    """Base class for every fatal setup failure."""


class ConfigurationError(K3sSetupError):
    """Action inputs could not be turned into a valid configuration."""


class CommandError(K3sSetupError):
    """An external command failed to start or exited non-zero."""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class InstallError(K3sSetupError):
    """k3s could not be installed."""


class InstallScriptFailed(InstallError):
    """The install script itself exited non-zero."""


class ServiceNotActive(InstallError):
    """The k3s service never reported active after installation."""


class ReadinessError(K3sSetupError):
    """The cluster did not become ready."""


class ReadinessTimeout(ReadinessError):
    """The readiness deadline elapsed before every check passed."""

    def __init__(self, elapsed: float, timeout: float, blocked_on: str | None = None) -> None:
        message = f"Timeout waiting for cluster to be ready after {elapsed:.0f}s (timeout: {timeout:.0f}s)"
        if blocked_on:
            message = f"{message}; last blocked on {blocked_on}"
        super().__init__(message)
        self.elapsed = elapsed
        self.timeout = timeout
        self.blocked_on = blocked_on


class DNSProbeFailure(ReadinessError):
    """The in-cluster DNS probe could not be scheduled or failed to resolve."""
