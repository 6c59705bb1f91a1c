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

from __future__ import annotations

import logging
import os
import pathlib
import shutil
import sys
import tempfile
import typing
import warnings

import pytest


class FakeScript:
    """Fake hook tools, written as shell scripts in a directory on ``PATH``.

    Each script appends its name and arguments to ``calls.txt`` before running
    the given content.
    """

    def __init__(self, request: pytest.FixtureRequest, path: pathlib.Path | None = None):
        if path is None:
            fake_script_path = tempfile.mkdtemp('-fake_script')
            self.path = pathlib.Path(fake_script_path)
            old_path = os.environ['PATH']
            os.environ['PATH'] = os.pathsep.join([fake_script_path, os.environ['PATH']])

            def cleanup():
                shutil.rmtree(self.path)
                os.environ['PATH'] = old_path

            request.addfinalizer(cleanup)
        else:
            self.path = path

    def write(self, name: str, content: str):
        template_args: dict[str, str] = {
            'name': name,
            'path': self.path.as_posix(),
            'content': content,
        }

        path = self.path / name
        with path.open('wt') as f:
            # Before executing the provided script, dump the provided arguments in calls.txt.
            # RS 'record separator' (octal 036 in ASCII), FS 'file separator' (octal 034 in ASCII).
            f.write(
                """#!/bin/sh
{{ printf {name}; printf "\\036%s" "$@"; printf "\\034"; }} >> {path}/calls.txt
{content}""".format_map(template_args)
            )
        path.chmod(0o755)

    def calls(self, clear: bool = False) -> list[list[str]]:
        calls_file = self.path / 'calls.txt'
        if not calls_file.exists():
            return []

        with calls_file.open('r+t', newline='\n', encoding='utf8') as f:
            calls = [line.split('\036') for line in f.read().split('\034')[:-1]]
            if clear:
                f.truncate(0)
        return calls


@pytest.fixture
def fake_script(request: pytest.FixtureRequest):
    return FakeScript(request)


@pytest.fixture
def root_logger() -> typing.Generator[logging.Logger, None, None]:
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    level = logger.level
    showwarning = warnings.showwarning
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    sys.excepthook = sys.__excepthook__
    warnings.showwarning = showwarning
