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

from k3s_setup.runtime import ActionsRuntime
from k3s_setup.state import ActionsStateStore, MemoryStateStore


def test_memory_store():
    store = MemoryStateStore({"isPost": "true"})

    assert store.get("isPost") == "true"
    assert store.get("missing") is None
    store.set("other", "1")
    assert store.values == {"isPost": "true", "other": "1"}


def test_actions_store_writes_state_file(runtime):
    ActionsStateStore(runtime).set("isPost", "true")

    text = open(runtime.environ["GITHUB_STATE"], encoding="utf-8").read()
    assert text.startswith("isPost<<ghadelimiter_")
    assert "\ntrue\n" in text


def test_actions_store_reads_state_variables():
    store = ActionsStateStore(ActionsRuntime(environ={"STATE_isPost": "true", "STATE_empty": ""}))

    assert store.get("isPost") == "true"
    assert store.get("empty") is None
    assert store.get("missing") is None
