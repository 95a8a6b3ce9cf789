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


"""GitHub Actions runtime: log commands, outputs, exported variables and state.

Workflow commands are written with ``Console.out`` so they reach the runner
verbatim at the start of a line. Outputs, variables and state use the file
commands (``GITHUB_OUTPUT``, ``GITHUB_ENV``, ``GITHUB_STATE``) in their
heredoc form, which is safe for any value.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from pathlib import Path

from k3s_setup import console, logger

FILE_COMMAND_OUTPUT = "GITHUB_OUTPUT"
FILE_COMMAND_ENV = "GITHUB_ENV"
FILE_COMMAND_STATE = "GITHUB_STATE"
STATE_ENV_PREFIX = "STATE_"


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def format_file_command(name: str, value: str, delimiter: str) -> str:
    """Render one ``name<<delimiter`` entry for a runner file command.

    Raises:
        ValueError: If the delimiter occurs in the name or the value.
    """
    if delimiter in name or delimiter in value:
        raise ValueError(f"Unexpected input: name and value must not contain the delimiter {delimiter!r}")
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


class ActionsRuntime:
    """Host automation runtime bound to an environment mapping.

    Args:
        environ: Environment to read runner paths and state from. Defaults to
            ``os.environ``; exported variables are also written back into it.
    """

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    # ------------------------------------------------------------------
    # Log sink
    # ------------------------------------------------------------------

    def info(self, message: str) -> None:
        console.print(message)

    def debug(self, message: str) -> None:
        logger.debug(message)
        self._command("debug", message)

    def warning(self, message: str) -> None:
        logger.warning(message)
        self._command("warning", message)

    def error(self, message: str) -> None:
        self._command("error", message)

    @contextmanager
    def group(self, title: str) -> Iterator[None]:
        """Bracket everything logged inside the block in a collapsible group."""
        self._command("group", title)
        try:
            yield
        finally:
            self._command("endgroup", "")

    def _command(self, command: str, message: str) -> None:
        console.out(f"::{command}::{_escape_data(message)}", highlight=False)

    # ------------------------------------------------------------------
    # Outputs, exported variables, state
    # ------------------------------------------------------------------

    def set_output(self, name: str, value: str) -> None:
        if not self._append_file_command(FILE_COMMAND_OUTPUT, name, value):
            logger.info("%s is not set; output %s=%s not recorded", FILE_COMMAND_OUTPUT, name, value)

    def export_variable(self, name: str, value: str) -> None:
        self.environ[name] = value
        if not self._append_file_command(FILE_COMMAND_ENV, name, value):
            logger.info("%s is not set; %s exported to this process only", FILE_COMMAND_ENV, name)

    def save_state(self, name: str, value: str) -> None:
        if not self._append_file_command(FILE_COMMAND_STATE, name, value):
            logger.warning("%s is not set; state %s will not reach the post phase", FILE_COMMAND_STATE, name)

    def get_state(self, name: str) -> str:
        return self.environ.get(f"{STATE_ENV_PREFIX}{name}", "")

    def _append_file_command(self, command: str, name: str, value: str) -> bool:
        path = self.environ.get(command)
        if not path:
            return False
        entry = format_file_command(name, value, f"ghadelimiter_{uuid.uuid4()}")
        with open(Path(path), "a", encoding="utf-8") as f:
            f.write(entry)
        return True
