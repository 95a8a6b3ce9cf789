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

from pathlib import Path

import pytest

from k3s_setup.dns import DnsProbe
from k3s_setup.errors import CommandError, DNSProbeFailure

KUBECONFIG = Path("/etc/rancher/k3s/k3s.yaml")


def _probe(runner) -> DnsProbe:
    return DnsProbe(runner, KUBECONFIG)


def test_verify_resolves_and_deletes_probe_pod(runner):
    _probe(runner).verify()

    assert runner.ran("wait", "--for=condition=ready", "--timeout=120s", "pod", "-l", "k8s-app=kube-dns")
    assert runner.ran("run", "dns-test", "--image=busybox:stable", "--restart=Never")
    assert runner.ran("wait", "--for=condition=ready", "--timeout=60s", "pod/dns-test")
    assert runner.ran("exec", "dns-test", "--", "nslookup", "kubernetes.default.svc.cluster.local")
    assert runner.calls[-1][3:] == ("delete", "pod", "dns-test", "--ignore-not-found")
    # A leftover pod from an earlier attempt is cleared before the run.
    assert runner.count("delete", "pod", "dns-test") == 2
    assert runner.index("delete", "pod", "dns-test") > runner.index("exec", "dns-test")


def test_lookup_failure_still_deletes_probe_pod(runner):
    runner.on("exec", "dns-test", exit_code=1)

    with pytest.raises(DNSProbeFailure, match="DNS resolution failed"):
        _probe(runner).verify()

    assert runner.calls[-1][3:5] == ("delete", "pod")


def test_probe_pod_that_never_starts_fails_and_is_deleted(runner):
    runner.on("pod/dns-test", exit_code=1)

    with pytest.raises(DNSProbeFailure, match="could not be started"):
        _probe(runner).verify()

    assert not runner.ran("exec", "dns-test")
    assert runner.calls[-1][3:5] == ("delete", "pod")


def test_coredns_not_ready_never_schedules_probe_pod(runner):
    runner.on("-l", "k8s-app=kube-dns", exit_code=1)

    with pytest.raises(DNSProbeFailure, match="CoreDNS did not become ready"):
        _probe(runner).verify()

    assert not runner.ran("run", "dns-test")
    assert not runner.ran("delete", "pod", "dns-test")


def test_delete_failure_does_not_mask_lookup_result(runner):
    runner.on("delete", "pod", "dns-test", raises=CommandError("kubectl not found"))

    _probe(runner).verify()

    assert runner.ran("exec", "dns-test")
