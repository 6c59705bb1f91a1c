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

"""Low-level wrappers for the hook tools used by the hook context.

Each function is a 1:1 mapping to one hook tool and fixes the exact argument
vector passed to the :class:`~charmhook.runner.ToolRunner`. Test doubles rely
on these shapes (for example, ``config-get --format json -- key``), so they
must not change.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Literal

from .runner import ToolRunner


def config_get(runner: ToolRunner, key: str | None = None) -> Any:
    """Retrieve the whole application configuration, or a single option.

    Missing config keys are reported as ``None``, and do not raise an error.
    """
    args = ['--format', 'json']
    if key is not None:
        # The '--' allows keys that start with a hyphen.
        args.extend(['--', key])
    return json.loads(runner.run('config-get', *args) or b'null')


def unit_get(runner: ToolRunner, which: Literal['public-address', 'private-address']) -> str:
    """Get one of the local unit's addresses."""
    return runner.run('unit-get', which).decode('utf-8').strip()


def juju_log(runner: ToolRunner, message: str):
    """Write a message to the agent's log."""
    runner.run('juju-log', message)


def relation_ids(runner: ToolRunner, name: str) -> list[str]:
    """List all relation ids for the given relation name."""
    stdout = runner.run('relation-ids', '--format', 'json', name)
    result: list[str] = json.loads(stdout or b'[]') or []
    return result


def relation_list(runner: ToolRunner, relation_id: str) -> list[str]:
    """List the remote units that are members of the given relation."""
    stdout = runner.run('relation-list', '--format', 'json', '-r', relation_id)
    result: list[str] = json.loads(stdout or b'[]') or []
    return result


def relation_get(runner: ToolRunner, relation_id: str, unit: str) -> dict[str, str]:
    """Get all the settings published by ``unit`` in the given relation."""
    # '-' asks for all keys.
    stdout = runner.run('relation-get', '--format', 'json', '-r', relation_id, '-', unit)
    result: dict[str, str] = json.loads(stdout or b'{}') or {}
    return result


def relation_set(runner: ToolRunner, relation_id: str, settings: Mapping[str, str]):
    """Set the local unit's settings in the given relation.

    An empty value removes the key.
    """
    if not settings:
        return
    args = ['-r', relation_id]
    args.extend(f'{key}={value}' for key, value in settings.items())
    runner.run('relation-set', *args)


def open_port(runner: ToolRunner, port: int, protocol: str = 'tcp'):
    """Open a port on the unit."""
    runner.run('open-port', f'{port}/{protocol}')


def close_port(runner: ToolRunner, port: int, protocol: str = 'tcp'):
    """Close a port on the unit."""
    runner.run('close-port', f'{port}/{protocol}')
