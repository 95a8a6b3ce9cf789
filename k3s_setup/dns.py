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


"""In-cluster DNS verification with a disposable probe pod."""

from __future__ import annotations

from pathlib import Path

from k3s_setup import console, logger
from k3s_setup.constants import (
    COREDNS_READY_TIMEOUT,
    DNS_LOOKUP_TARGET,
    DNS_PROBE_IMAGE,
    DNS_PROBE_POD,
    DNS_PROBE_READY_TIMEOUT,
    DNS_PROBE_SLEEP_SECONDS,
    LABEL_KUBE_DNS,
    NS_KUBE_SYSTEM,
)
from k3s_setup.errors import CommandError, DNSProbeFailure
from k3s_setup.runner import CommandRunner


class DnsProbe:
    """Resolves a cluster service name from inside a throwaway busybox pod.

    Args:
        runner: Command runner used for kubectl.
        kubeconfig: Path to the cluster credentials.
    """

    def __init__(self, runner: CommandRunner, kubeconfig: Path) -> None:
        self.runner = runner
        self.kubeconfig = kubeconfig

    def _kubectl(self, *args: str, ignore_return_code: bool = False, silent: bool = False):
        return self.runner.run(
            "kubectl", "--kubeconfig", str(self.kubeconfig), *args,
            ignore_return_code=ignore_return_code, silent=silent,
        )

    def verify(self) -> None:
        """Wait for CoreDNS, then resolve the API service from a probe pod.

        The probe pod is deleted afterwards whether or not the lookup worked.

        Raises:
            DNSProbeFailure: If CoreDNS is not ready, the probe pod cannot be
                scheduled, or the lookup fails.
        """
        console.print("[yellow]ℹ️  Verifying CoreDNS and DNS resolution...[/yellow]")
        try:
            self._kubectl(
                "wait", "--for=condition=ready", f"--timeout={COREDNS_READY_TIMEOUT}",
                "pod", "-l", LABEL_KUBE_DNS, "-n", NS_KUBE_SYSTEM,
            )
        except CommandError as err:
            raise DNSProbeFailure(f"CoreDNS did not become ready: {err}") from err
        console.print("[green]✓ CoreDNS is ready[/green]")

        self._delete_probe_pod()
        try:
            self._resolve_in_probe_pod()
        finally:
            self._delete_probe_pod()

    def _resolve_in_probe_pod(self) -> None:
        try:
            self._kubectl(
                "run", DNS_PROBE_POD, f"--image={DNS_PROBE_IMAGE}", "--restart=Never",
                "--", "sleep", str(DNS_PROBE_SLEEP_SECONDS),
            )
            self._kubectl("wait", "--for=condition=ready", f"--timeout={DNS_PROBE_READY_TIMEOUT}", f"pod/{DNS_PROBE_POD}")
        except CommandError as err:
            raise DNSProbeFailure(f"DNS probe pod could not be started: {err}") from err

        result = self._kubectl("exec", DNS_PROBE_POD, "--", "nslookup", DNS_LOOKUP_TARGET, ignore_return_code=True)
        if not result.ok:
            raise DNSProbeFailure(f"DNS resolution failed: nslookup {DNS_LOOKUP_TARGET} exited {result.exit_code}")
        console.print("[green]✓ DNS resolution is working[/green]")

    def _delete_probe_pod(self) -> None:
        try:
            self._kubectl("delete", "pod", DNS_PROBE_POD, "--ignore-not-found", ignore_return_code=True, silent=True)
        except CommandError as err:
            logger.warning("Failed to delete DNS probe pod %s: %s", DNS_PROBE_POD, err)
