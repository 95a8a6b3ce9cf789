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


"""Cluster readiness checks and the bounded polling loop that drives them.

Each poll cycle evaluates the checks in a fixed order and stops at the first
one that is false; the next cycle starts again from the first check. A check
that raises counts as false, except for the DNS probe whose failures end the
wait immediately.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from k3s_setup import console, logger
from k3s_setup.config import SystemPodsPolicy
from k3s_setup.constants import (
    HELM_INSTALL_POD_PREFIX,
    LABEL_KUBE_DNS,
    NODE_STATUS_READY,
    NS_KUBE_SYSTEM,
    POD_PHASES_SETTLED,
    POD_STATUS_CRASHLOOP,
    POD_STATUS_ERROR_MARKER,
    POD_STATUS_RUNNING,
    POLL_INTERVAL_SECONDS,
)
from k3s_setup.dns import DnsProbe
from k3s_setup.errors import DNSProbeFailure, ReadinessTimeout
from k3s_setup.installer import service_active
from k3s_setup.runner import CommandResult, CommandRunner, is_readable
from k3s_setup.runtime import ActionsRuntime


class ReadinessCheck(str, Enum):
    """Readiness facts, in evaluation order."""

    SERVICE_ACTIVE = "service-active"
    CREDENTIALS_ACCESSIBLE = "credentials-accessible"
    API_REACHABLE = "api-reachable"
    NODE_READY = "node-ready"
    SYSTEM_COMPONENTS_READY = "system-components-ready"
    DNS_VERIFIED = "dns-verified"


BASE_CHECKS: tuple[ReadinessCheck, ...] = (
    ReadinessCheck.SERVICE_ACTIVE,
    ReadinessCheck.CREDENTIALS_ACCESSIBLE,
    ReadinessCheck.API_REACHABLE,
    ReadinessCheck.NODE_READY,
    ReadinessCheck.SYSTEM_COMPONENTS_READY,
)


def checks_for(dns_readiness: bool) -> tuple[ReadinessCheck, ...]:
    if dns_readiness:
        return (*BASE_CHECKS, ReadinessCheck.DNS_VERIFIED)
    return BASE_CHECKS


@dataclass(frozen=True)
class ReadinessSnapshot:
    """Facts observed during one poll cycle.

    Attributes:
        expected: Checks the cycle had to pass.
        facts: ``(check, passed)`` pairs actually evaluated; evaluation stops
            at the first failed check.
    """

    expected: tuple[ReadinessCheck, ...]
    facts: tuple[tuple[ReadinessCheck, bool], ...]

    @property
    def ready(self) -> bool:
        return len(self.facts) == len(self.expected) and all(passed for _, passed in self.facts)

    @property
    def blocked_on(self) -> ReadinessCheck | None:
        for check, passed in self.facts:
            if not passed:
                return check
        return None


def evaluate(checks: Iterable[ReadinessCheck], observe: Callable[[ReadinessCheck], bool]) -> ReadinessSnapshot:
    """Evaluate ``checks`` in order, stopping at the first false one.

    Args:
        checks: Checks to evaluate, in order.
        observe: Returns whether a single check currently holds.

    Returns:
        The snapshot for this cycle.

    Raises:
        DNSProbeFailure: If the DNS probe fails; every other exception is
            treated as the check being false.
    """
    expected = tuple(checks)
    facts: list[tuple[ReadinessCheck, bool]] = []
    for check in expected:
        try:
            passed = bool(observe(check))
        except DNSProbeFailure:
            raise
        except Exception as e:
            logger.debug("Readiness check %s raised: %s", check.value, e)
            passed = False
        facts.append((check, passed))
        if not passed:
            break
    return ReadinessSnapshot(expected, tuple(facts))


# ============================================================================
# kubectl output parsing
# ============================================================================

@dataclass(frozen=True)
class PodStatus:
    """One row of ``kubectl get pods --no-headers``."""

    name: str
    ready: str
    status: str


def parse_node_statuses(output: str) -> list[str]:
    """Return the STATUS column of ``kubectl get nodes --no-headers``."""
    statuses = []
    for line in output.splitlines():
        columns = line.split()
        if len(columns) >= 2:
            statuses.append(columns[1])
    return statuses


def parse_pods(output: str) -> list[PodStatus]:
    """Parse ``kubectl get pods -n <ns> --no-headers`` rows."""
    pods = []
    for line in output.splitlines():
        columns = line.split()
        if len(columns) >= 3:
            pods.append(PodStatus(name=columns[0], ready=columns[1], status=columns[2]))
    return pods


def _is_failing(status: str) -> bool:
    return status == POD_STATUS_CRASHLOOP or POD_STATUS_ERROR_MARKER in status


def essential_components_ready(dns_pods: list[PodStatus], system_pods: list[PodStatus]) -> bool:
    """CoreDNS is running and nothing but helm install jobs is crashing."""
    if not any(pod.status == POD_STATUS_RUNNING for pod in dns_pods):
        return False
    return not any(
        _is_failing(pod.status) for pod in system_pods if not pod.name.startswith(HELM_INSTALL_POD_PREFIX)
    )


def all_system_pods_settled(dns_pods: list[PodStatus], system_pods: list[PodStatus]) -> bool:
    """CoreDNS is running and every system pod is Running or Completed.

    An empty namespace belongs to a cluster that is still starting.
    """
    if not system_pods or not any(pod.status == POD_STATUS_RUNNING for pod in dns_pods):
        return False
    return all(pod.status in POD_PHASES_SETTLED for pod in system_pods)


# ============================================================================
# Live cluster observations
# ============================================================================

class ClusterProbe:
    """Observes one readiness check at a time against the live cluster.

    Args:
        runner: Command runner used for systemctl and kubectl.
        kubeconfig: Path to the cluster credentials.
        policy: System components policy.
        dns_probe: DNS probe, required when the DNS check is evaluated.
        path_readable: File readability probe.
    """

    def __init__(
        self,
        runner: CommandRunner,
        kubeconfig: Path,
        policy: SystemPodsPolicy = SystemPodsPolicy.ESSENTIAL,
        dns_probe: DnsProbe | None = None,
        path_readable: Callable[[Path], bool] = is_readable,
    ) -> None:
        self.runner = runner
        self.kubeconfig = kubeconfig
        self.policy = policy
        self.dns_probe = dns_probe
        self.path_readable = path_readable
        self._observers: dict[ReadinessCheck, Callable[[], bool]] = {
            ReadinessCheck.SERVICE_ACTIVE: self.service_active,
            ReadinessCheck.CREDENTIALS_ACCESSIBLE: self.credentials_accessible,
            ReadinessCheck.API_REACHABLE: self.api_reachable,
            ReadinessCheck.NODE_READY: self.node_ready,
            ReadinessCheck.SYSTEM_COMPONENTS_READY: self.system_components_ready,
            ReadinessCheck.DNS_VERIFIED: self.dns_verified,
        }

    def observe(self, check: ReadinessCheck) -> bool:
        return self._observers[check]()

    def _kubectl(self, *args: str) -> CommandResult:
        return self.runner.run(
            "kubectl", "--kubeconfig", str(self.kubeconfig), *args, ignore_return_code=True, silent=True,
        )

    def service_active(self) -> bool:
        return service_active(self.runner)

    def credentials_accessible(self) -> bool:
        return self.path_readable(self.kubeconfig)

    def api_reachable(self) -> bool:
        return self._kubectl("get", "nodes", "--no-headers").ok

    def node_ready(self) -> bool:
        result = self._kubectl("get", "nodes", "--no-headers")
        ready = result.ok and NODE_STATUS_READY in parse_node_statuses(result.stdout)
        if ready:
            console.print("  Node is Ready")
        return ready

    def system_components_ready(self) -> bool:
        system = self._kubectl("get", "pods", "-n", NS_KUBE_SYSTEM, "--no-headers")
        if not system.ok:
            return False
        system_pods = parse_pods(system.stdout)
        if not system_pods:
            return False

        dns = self._kubectl("get", "pods", "-n", NS_KUBE_SYSTEM, "-l", LABEL_KUBE_DNS, "--no-headers")
        if not dns.ok:
            return False
        dns_pods = parse_pods(dns.stdout)

        if self.policy is SystemPodsPolicy.ALL:
            ready = all_system_pods_settled(dns_pods, system_pods)
            message = "  All system pods are running"
        else:
            ready = essential_components_ready(dns_pods, system_pods)
            message = "  CoreDNS is running, no critical pods failing"
        if ready:
            console.print(message)
        return ready

    def dns_verified(self) -> bool:
        if self.dns_probe is None:
            raise DNSProbeFailure("DNS verification requested without a DNS probe")
        self.dns_probe.verify()
        return True


# ============================================================================
# Polling loop
# ============================================================================

class ReadinessProber:
    """Polls readiness checks until they all pass or the deadline elapses.

    Args:
        runtime: Runtime providing log groups.
        observe: Observes a single readiness check.
        checks: Checks every cycle must pass, in order.
        on_timeout: Called once before ``ReadinessTimeout`` is raised,
            normally the diagnostics collector.
        sleep: Sleep function used between cycles.
        clock: Monotonic clock in seconds.
        poll_interval: Seconds between the start of consecutive cycles.
    """

    def __init__(
        self,
        runtime: ActionsRuntime,
        observe: Callable[[ReadinessCheck], bool],
        checks: tuple[ReadinessCheck, ...] = BASE_CHECKS,
        on_timeout: Callable[[], object] = lambda: None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.runtime = runtime
        self.observe = observe
        self.checks = checks
        self.on_timeout = on_timeout
        self.sleep = sleep
        self.clock = clock
        self.poll_interval = poll_interval

    def wait_ready(self, timeout: float) -> ReadinessSnapshot:
        """Poll until every check passes within one cycle.

        Args:
            timeout: Deadline in seconds, measured from this call.

        Returns:
            The snapshot of the cycle in which every check passed.

        Raises:
            ReadinessTimeout: If the deadline elapses first.
            DNSProbeFailure: If the DNS probe fails.
        """
        started = self.clock()
        blocked_on: ReadinessCheck | None = None
        with self.runtime.group("Waiting for cluster ready"):
            console.print(f"Waiting for k3s cluster to be ready (timeout: {timeout}s)...")
            while True:
                elapsed = self.clock() - started
                if elapsed > timeout:
                    break

                cycle_started = self.clock()
                snapshot = evaluate(self.checks, self.observe)
                if snapshot.ready:
                    console.print("[green]✅ k3s cluster is fully ready![/green]")
                    return snapshot

                blocked_on = snapshot.blocked_on
                waiting_on = blocked_on.value if blocked_on else "unknown"
                console.print(
                    f"  Cluster not ready yet ({waiting_on}), waiting... ({elapsed:.0f}/{timeout}s)"
                )
                self.sleep(max(0.0, self.poll_interval - (self.clock() - cycle_started)))

        self.on_timeout()
        raise ReadinessTimeout(elapsed, timeout, blocked_on.value if blocked_on else None)


def wait_ready(
    endpoint: Path,
    timeout: float,
    *,
    runner: CommandRunner,
    runtime: ActionsRuntime,
    policy: SystemPodsPolicy = SystemPodsPolicy.ESSENTIAL,
    dns_readiness: bool = False,
    on_timeout: Callable[[], object] = lambda: None,
    sleep: Callable[[float], None] = time.sleep,
    path_readable: Callable[[Path], bool] = is_readable,
) -> ReadinessSnapshot:
    """Wait for the cluster behind ``endpoint`` to become ready.

    Args:
        endpoint: Path to the cluster credentials.
        timeout: Deadline in seconds.
        runner: Command runner.
        runtime: Runtime providing log groups.
        policy: System components policy.
        dns_readiness: Whether to finish with the DNS probe.
        on_timeout: Called once before the timeout is raised.
        sleep: Sleep function used between cycles.
        path_readable: File readability probe for the credentials.

    Returns:
        The snapshot of the successful cycle.
    """
    dns_probe = DnsProbe(runner, endpoint) if dns_readiness else None
    probe = ClusterProbe(runner, endpoint, policy=policy, dns_probe=dns_probe, path_readable=path_readable)
    prober = ReadinessProber(runtime, probe.observe, checks=checks_for(dns_readiness),
                             on_timeout=on_timeout, sleep=sleep)
    return prober.wait_ready(timeout)
