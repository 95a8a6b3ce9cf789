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


"""Well-known paths, names, defaults and timings."""

from __future__ import annotations

from pathlib import Path

# -- Install script --
K3S_INSTALL_URL = "https://get.k3s.io"
ENV_INSTALL_CHANNEL = "INSTALL_K3S_CHANNEL"
ENV_INSTALL_VERSION = "INSTALL_K3S_VERSION"
CHANNEL_STABLE = "stable"
CHANNEL_LATEST = "latest"

# -- Host layout --
K3S_SERVICE = "k3s"
KUBECONFIG_PATH = Path("/etc/rancher/k3s/k3s.yaml")
K3S_CONFIG_DIR = Path("/etc/rancher/k3s")
K3S_DATA_DIR = Path("/var/lib/rancher/k3s")
K3S_UNINSTALL_SCRIPT = Path("/usr/local/bin/k3s-uninstall.sh")

# -- Timings --
SERVICE_WARMUP_SECONDS = 10
POLL_INTERVAL_SECONDS = 5
JOURNAL_TAIL_LINES = 100
DIR_REMOVE_MAX_RETRIES = 3
DIR_REMOVE_RETRY_WAIT_SECONDS = 2

# -- Cluster --
NS_KUBE_SYSTEM = "kube-system"
LABEL_KUBE_DNS = "k8s-app=kube-dns"
HELM_INSTALL_POD_PREFIX = "helm-install-"
NODE_STATUS_READY = "Ready"
POD_PHASES_SETTLED = ("Running", "Completed")
POD_STATUS_RUNNING = "Running"
POD_STATUS_CRASHLOOP = "CrashLoopBackOff"
POD_STATUS_ERROR_MARKER = "Error"

# -- DNS probe --
DNS_PROBE_POD = "dns-test"
DNS_PROBE_IMAGE = "busybox:stable"
DNS_PROBE_SLEEP_SECONDS = 300
DNS_LOOKUP_TARGET = "kubernetes.default.svc.cluster.local"
COREDNS_READY_TIMEOUT = "120s"
DNS_PROBE_READY_TIMEOUT = "60s"

# -- Runtime interface --
STATE_KEY_IS_POST = "isPost"
OUTPUT_KUBECONFIG = "kubeconfig"
ENV_KUBECONFIG = "KUBECONFIG"
INPUT_ENV_PREFIX = "INPUT_"

# -- Input defaults --
DEFAULT_VERSION = CHANNEL_STABLE
DEFAULT_K3S_ARGS = "--write-kubeconfig-mode 644"
DEFAULT_WAIT_FOR_READY = True
DEFAULT_TIMEOUT_SECONDS = 120
DEFAULT_DNS_READINESS = True
