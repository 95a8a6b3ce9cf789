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

import pytest
from pydantic import ValidationError

from k3s_setup.config import RunConfiguration, SystemPodsPolicy, display_config, load_config
from k3s_setup.errors import ConfigurationError


def test_defaults(clean_inputs):
    cfg = load_config()

    assert cfg.version == "stable"
    assert cfg.k3s_args == "--write-kubeconfig-mode 644"
    assert cfg.wait_for_ready is True
    assert cfg.timeout == 120
    assert cfg.dns_readiness is True
    assert cfg.system_pods is SystemPodsPolicy.ESSENTIAL


def test_hyphenated_runner_inputs(clean_inputs):
    clean_inputs.setenv("INPUT_VERSION", "v1.30.4+k3s1")
    clean_inputs.setenv("INPUT_K3S-ARGS", "--disable traefik")
    clean_inputs.setenv("INPUT_WAIT-FOR-READY", "false")
    clean_inputs.setenv("INPUT_TIMEOUT", "300")
    clean_inputs.setenv("INPUT_DNS-READINESS", "false")
    clean_inputs.setenv("INPUT_SYSTEM-PODS", "all")

    cfg = load_config()

    assert cfg.version == "v1.30.4+k3s1"
    assert cfg.k3s_args == "--disable traefik"
    assert cfg.wait_for_ready is False
    assert cfg.timeout == 300
    assert cfg.dns_readiness is False
    assert cfg.system_pods is SystemPodsPolicy.ALL


def test_underscored_inputs_are_accepted(clean_inputs):
    clean_inputs.setenv("INPUT_K3S_ARGS", "--disable servicelb")

    assert load_config().k3s_args == "--disable servicelb"


def test_empty_inputs_fall_back_to_defaults(clean_inputs):
    clean_inputs.setenv("INPUT_VERSION", "")
    clean_inputs.setenv("INPUT_TIMEOUT", "")

    cfg = load_config()

    assert cfg.version == "stable"
    assert cfg.timeout == 120


@pytest.mark.parametrize("value", ["0", "-5", "abc", "1.5"])
def test_invalid_timeout_is_a_configuration_error(clean_inputs, value):
    clean_inputs.setenv("INPUT_TIMEOUT", value)

    with pytest.raises(ConfigurationError, match="timeout"):
        load_config()


def test_unknown_system_pods_policy(clean_inputs):
    clean_inputs.setenv("INPUT_SYSTEM-PODS", "some")

    with pytest.raises(ConfigurationError, match="Invalid action inputs"):
        load_config()


def test_configuration_is_frozen(clean_inputs):
    cfg = load_config()

    with pytest.raises(ValidationError):
        cfg.timeout = 5


def test_display_config(clean_inputs, capsys):
    display_config(RunConfiguration(k3s_args="--disable [traefik]"))

    out = capsys.readouterr().out
    assert '"--disable [traefik]"' in out
    assert "system-pods    : essential" in out
