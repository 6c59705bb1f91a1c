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

"""Utilities for unit testing hook handlers without an agent.

The :class:`Runner` plays the part of the agent: it holds the relations and
configuration the hook should see, answers hook tools from them, records
the rest, and runs hooks through the real dispatcher::

    runner = Runner(
        register_hooks=register_hooks,
        relation_ids={'db': ['db:0']},
        relations={'db:0': {'mysql/0': {'host': 'example.com'}}},
    )
    runner.run_hook('db-relation-changed', 'db:0', 'mysql/0')
    assert runner.record == [['relation-set', '-r', 'db:0', 'ready=yes']]
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Callable, Optional

from .context import Context
from .errors import ContractViolation
from .main import dispatch
from .registry import Registry, register_main_hooks
from .relation import RelationSnapshot
from .runner import ToolRunner
from .storage import PersistentState

UUID = '373b309b-4a86-4f13-88e2-c213d97075b8'
"""An arbitrary model UUID for testing purposes."""

UNIT = 'someunit/0'
"""The name of the local unit in hooks run by :class:`Runner`."""

CHARM_DIR = '/nowhere'


class MemState(dict[str, bytes]):
    """A :class:`~charmhook.storage.PersistentState` kept in memory.

    Each item maps a state name to the data saved under it.
    """

    def save(self, name: str, data: bytes) -> None:
        self[name] = data

    def load(self, name: str) -> bytes | None:
        return self.get(name)


class Runner(ToolRunner):
    """A :class:`~charmhook.runner.ToolRunner` suitable for use in tests.

    Every hook tool run goes to ``run_func`` and is appended to :attr:`record`,
    except for:

    - ``juju-log``, which is sent to :attr:`logger` and otherwise ignored;
    - ``config-get``, which is answered from :attr:`config`;
    - ``unit-get``, which is answered from :attr:`public_address` and
      :attr:`private_address`.

    Args:
        register_hooks: called with the registry for each hook that is run.
        relations: the settings of each remote unit, by relation id.
        relation_ids: the relation ids of each relation name.
        config: the charm configuration.
        public_address: the value of ``unit-get public-address``.
        private_address: the value of ``unit-get private-address``.
        state: the persistent state; a new :class:`MemState` if not given.
        run_func: called for each recorded hook tool. If not given, tools
            succeed with no output.
    """

    def __init__(
        self,
        register_hooks: Callable[[Registry], None] | None = None,
        *,
        relations: dict[str, dict[str, dict[str, str]]] | None = None,
        relation_ids: dict[str, list[str]] | None = None,
        config: dict[str, Any] | None = None,
        public_address: str = '',
        private_address: str = '',
        state: PersistentState | None = None,
        run_func: Optional[Callable[..., bytes]] = None,
        logger: logging.Logger | None = None,
    ):
        self.register_hooks = register_hooks
        self.relations = relations if relations is not None else {}
        self.relation_ids = relation_ids if relation_ids is not None else {}
        self.config = config if config is not None else {}
        self.public_address = public_address
        self.private_address = private_address
        self.state: PersistentState = state if state is not None else MemState()
        self.run_func = run_func
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.record: list[list[str]] = []
        self.closed = False
        self.ctx: Context | None = None
        """The context of the last hook run, for inspection after the fact."""

    def run_hook(self, hook_name: str, relation_id: str = '', relation_unit: str = ''):
        """Run a hook as the agent would.

        For a relation hook, ``relation_id`` holds the current relation id and
        ``relation_unit`` the remote unit the hook runs for. Hook tools run
        by the handlers are stored in :attr:`record`.

        Each call stands for a new hook process, so the runner may be closed
        again; :attr:`record` keeps accumulating.

        Raises:
            ContractViolation: if ``relation_id`` is not listed in
                :attr:`relation_ids`, or the hook name is invalid.
        """
        self.closed = False
        registry = Registry()
        if self.register_hooks is not None:
            self.register_hooks(registry)
        register_main_hooks(registry)
        ctx = Context(
            uuid=UUID,
            unit=UNIT,
            charm_dir=pathlib.Path(CHARM_DIR),
            hook_name=hook_name,
            runner=self,
            relations=RelationSnapshot(self.relations, self.relation_ids, local_unit=UNIT),
            relation_id=relation_id,
            remote_unit=relation_unit,
        )
        self.ctx = ctx
        dispatch(registry, ctx, self.state)

    def run(self, cmd: str, *args: str) -> bytes:
        if cmd == 'juju-log':
            if len(args) != 1:
                raise ContractViolation('expected exactly one argument to juju-log')
            self.logger.info('%s', args[0])
            return b''
        if cmd == 'config-get':
            # config-get --format json [-- key]
            value = self.config if len(args) < 4 else self.config.get(args[3])
            return json.dumps(value).encode('utf-8')
        if cmd == 'unit-get':
            if len(args) != 1:
                raise ContractViolation('expected exactly one argument to unit-get')
            if args[0] == 'public-address':
                return self.public_address.encode('utf-8')
            if args[0] == 'private-address':
                return self.private_address.encode('utf-8')
            raise ContractViolation(f'unexpected argument to unit-get: {args[0]!r}')
        self.record.append([cmd, *args])
        if self.run_func is not None:
            return self.run_func(cmd, *args)
        return b''

    def close(self) -> None:
        if self.closed:
            raise ContractViolation('runner closed twice')
        self.closed = True
