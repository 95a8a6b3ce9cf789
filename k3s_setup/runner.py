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


"""External command execution and host file probes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import sh

from k3s_setup import console, logger
from k3s_setup.errors import CommandError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished external command.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class CommandRunner:
    """Runs external commands through ``sh`` with uniform result handling.

    Output is always captured. Unless ``silent`` is set, the captured output is
    echoed to the console once the command finishes, so it lands in the job
    log next to the step that produced it.
    """

    def run(
        self,
        program: str,
        *args: str,
        ignore_return_code: bool = False,
        silent: bool = False,
    ) -> CommandResult:
        """Run ``program`` with ``args`` and wait for it to finish.

        Args:
            program: Executable name or path.
            *args: Command arguments.
            ignore_return_code: Return a result for non-zero exits instead of raising.
            silent: Do not echo the captured output.

        Returns:
            The command result.

        Raises:
            CommandError: If the program cannot be started, or exits non-zero
                while ``ignore_return_code`` is false.
        """
        cmd_str = " ".join((program, *args))
        logger.debug("Executing: %s", cmd_str)
        try:
            proc = sh.Command(program)(*args, _return_cmd=True, _tty_out=False)
            result = CommandResult(proc.exit_code, _decode(proc.stdout), _decode(proc.stderr))
        except sh.ErrorReturnCode as err:
            result = CommandResult(err.exit_code, _decode(err.stdout), _decode(err.stderr))
        except sh.CommandNotFound as err:
            raise CommandError(f"Required command '{program}' not found") from err
        except OSError as err:
            raise CommandError(f"Failed to execute command: {cmd_str}: {err}") from err

        if not silent:
            _echo(result)

        if not result.ok and not ignore_return_code:
            message = f"Command failed ({result.exit_code}): {cmd_str}"
            if result.stderr.strip():
                message = f"{message}\n{result.stderr.strip()}"
            raise CommandError(message, exit_code=result.exit_code, stderr=result.stderr)
        return result

    def require(self, program: str) -> None:
        """Check that ``program`` exists on the PATH.

        Raises:
            CommandError: If the command is not found.
        """
        try:
            sh.Command(program)
        except sh.CommandNotFound as err:
            raise CommandError(f"Required command '{program}' not found. Please install it first.") from err


def _echo(result: CommandResult) -> None:
    for stream in (result.stdout, result.stderr):
        text = stream.rstrip("\n")
        if text:
            console.out(text, highlight=False)


def is_readable(path: Path) -> bool:
    """Return True if ``path`` is an existing file the current user can read."""
    return path.is_file() and os.access(path, os.R_OK)
