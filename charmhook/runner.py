# Copyright 2026 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Running hook tools on behalf of the hook context."""

from __future__ import annotations

import abc
import os
import shutil
import subprocess

from .errors import ContractViolation


class HookToolError(Exception):
    """Raised when a hook tool can't be run or exits with a non-zero code."""

    returncode: int
    """Exit status of the child process, or -1 if it couldn't be started."""

    cmd: list[str]
    """The full command that was run."""

    stdout: bytes = b''
    """Stdout output of the child process."""

    stderr: bytes = b''
    """Stderr output of the child process."""

    def __init__(
        self, *, returncode: int, cmd: list[str], stdout: bytes = b'', stderr: bytes = b''
    ):
        self.returncode = returncode
        self.cmd = cmd
        self.stdout = stdout
        self.stderr = stderr
        message = f'command {cmd!r} exited with status {returncode}'
        if stderr:
            message += f': {stderr.decode("utf-8", "replace").strip()}'
        super().__init__(message)


class ToolRunner(abc.ABC):
    """Interface to the hook tools provided by the agent.

    A runner is used for exactly one hook invocation. The dispatcher closes it
    once all handlers have run, whether they succeeded or not.
    """

    @abc.abstractmethod
    def run(self, cmd: str, *args: str) -> bytes:
        """Run the hook tool ``cmd`` with the given arguments and return its output.

        Raises:
            HookToolError: if the tool itself failed.
        """

    @abc.abstractmethod
    def close(self) -> None:
        """Flush any outstanding communication with the agent.

        Raises:
            ContractViolation: if the runner has already been closed.
        """


class ExecRunner(ToolRunner):
    """Run hook tools as child processes.

    Args:
        tools_dir: directory holding the hook tools. If not given, the tools
            are looked up on ``PATH``, which is where the agent puts them.
    """

    def __init__(self, tools_dir: str | os.PathLike[str] | None = None):
        self._tools_dir = None if tools_dir is None else os.fspath(tools_dir)
        self._closed = False

    def _which(self, cmd: str) -> str | None:
        if self._tools_dir is not None:
            return shutil.which(cmd, path=self._tools_dir)
        return shutil.which(cmd)

    def run(self, cmd: str, *args: str) -> bytes:
        if self._closed:
            raise ContractViolation(f'hook tool {cmd!r} run after the runner was closed')
        path = self._which(cmd)
        if path is None:
            raise HookToolError(returncode=-1, cmd=[cmd, *args], stderr=b'command not found')
        try:
            result = subprocess.run([path, *args], capture_output=True, check=True)
        except subprocess.CalledProcessError as e:
            raise HookToolError(
                returncode=e.returncode, cmd=[cmd, *args], stdout=e.stdout, stderr=e.stderr
            ) from None
        return result.stdout

    def close(self) -> None:
        if self._closed:
            raise ContractViolation('runner closed twice')
        self._closed = True
