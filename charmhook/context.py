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

"""The hook context handed to every handler."""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import typing
from collections.abc import Mapping
from typing import Any

from . import hookcmds
from .environ import HookEnviron
from .errors import ContractViolation
from .metadata import CharmMeta
from .relation import RelationId, RelationSettings, RelationSnapshot, UnitId
from .runner import ToolRunner

if typing.TYPE_CHECKING:
    from .registry import Registry

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Context:
    """Everything a handler knows about the current hook invocation.

    The relation queries (:meth:`relation_ids`, :meth:`relation_units` and
    :meth:`all_relation_units`) are answered from :attr:`relations`, which is
    filled in before the handlers run. Other accessors run hook tools through
    :attr:`runner`.
    """

    uuid: str
    """The uuid of the model the unit is deployed in."""

    unit: UnitId
    """The name of the local unit."""

    charm_dir: pathlib.Path
    """The directory the charm is running from."""

    hook_name: str
    """The name of the hook that is running."""

    runner: ToolRunner
    """Used to run hook tools."""

    relations: RelationSnapshot = dataclasses.field(default_factory=RelationSnapshot)
    """The relations known during this hook."""

    relation_id: RelationId = ''
    """The id of the current relation, for relation hooks."""

    relation_name: str = ''
    """The name of the current relation, for relation hooks.

    This is always worked out from :attr:`relation_id`.
    """

    remote_unit: UnitId = ''
    """The remote unit that caused a relation hook, if any."""

    def __post_init__(self):
        self.charm_dir = pathlib.Path(self.charm_dir)
        if not self.relations.local_unit:
            self.relations.bind_local_unit(self.unit)
        if self.relation_id:
            self.relation_name = self.relations.name_for_id(self.relation_id)
        elif self.relation_name or self.remote_unit:
            raise ContractViolation(
                f'hook {self.hook_name!r} has relation details but no relation id'
            )

    def is_relation_hook(self) -> bool:
        """Report whether the current hook is about a relation."""
        return bool(self.relation_id)

    def _relation_id(self, relation_id: RelationId | None) -> RelationId:
        if relation_id is None:
            if not self.relation_id:
                raise ContractViolation(f'hook {self.hook_name!r} is not a relation hook')
            return self.relation_id
        return relation_id

    def relation_ids(self, relation_name: str | None = None) -> list[RelationId]:
        """Return the ids of all relations with the given name.

        With no argument, the name of the current relation is used.
        """
        if relation_name is None:
            relation_name = self.relation_name
        return self.relations.ids(relation_name)

    def relation_units(self, relation_id: RelationId | None = None) -> list[UnitId]:
        """Return the remote units in a relation (the current one by default)."""
        return self.relations.units(self._relation_id(relation_id))

    def all_relation_units(
        self, relation_id: RelationId | None = None
    ) -> dict[UnitId, RelationSettings]:
        """Return the settings of every remote unit in a relation (the current one by default)."""
        return self.relations.unit_settings(self._relation_id(relation_id))

    def get_relation(self, key: str) -> str:
        """Return the value of ``key`` published by the remote unit of the current relation."""
        if not self.remote_unit:
            raise ContractViolation(f'hook {self.hook_name!r} has no remote unit')
        return self.get_relation_unit(self._relation_id(None), self.remote_unit, key)

    def get_relation_unit(self, relation_id: RelationId, unit: UnitId, key: str) -> str:
        """Return the value of ``key`` published by ``unit`` in a relation.

        Reading the local unit's own settings returns what was last written with
        :meth:`set_relation` during this hook. Missing keys read as ``''``.
        """
        if unit == self.unit:
            return self.relations.local_settings(relation_id).get(key, '')
        return self.relations.settings(relation_id, unit).get(key, '')

    def local_relation_settings(self, relation_id: RelationId | None = None) -> RelationSettings:
        """Return the settings the local unit has published in a relation."""
        return self.relations.local_settings(self._relation_id(relation_id))

    def set_relation(self, **settings: str):
        """Publish settings for the local unit in the current relation.

        An empty value deletes the key.
        """
        self.set_relation_id(self._relation_id(None), settings)

    def set_relation_id(self, relation_id: RelationId, settings: Mapping[str, str]):
        """Publish settings for the local unit in the given relation."""
        # Update our own view first, so reads within this hook see the new values.
        self.relations.update_local(relation_id, settings)
        hookcmds.relation_set(self.runner, relation_id, settings)

    def get_config(self, key: str) -> Any:
        """Return the value of a configuration option, or ``None`` if it's unset."""
        return hookcmds.config_get(self.runner, key)

    def get_all_config(self) -> dict[str, Any]:
        """Return all configuration options that have a value."""
        return hookcmds.config_get(self.runner) or {}

    def public_address(self) -> str:
        """Return the public address of the local unit."""
        return hookcmds.unit_get(self.runner, 'public-address')

    def private_address(self) -> str:
        """Return the private address of the local unit."""
        return hookcmds.unit_get(self.runner, 'private-address')

    def open_port(self, port: int, protocol: str = 'tcp'):
        hookcmds.open_port(self.runner, port, protocol)

    def close_port(self, port: int, protocol: str = 'tcp'):
        hookcmds.close_port(self.runner, port, protocol)

    def log(self, message: str):
        """Send a message to the agent's log."""
        hookcmds.juju_log(self.runner, message)

    def logf(self, fmt: str, *args: Any):
        """Like :meth:`log`, with %-style formatting."""
        self.log(fmt % args if args else fmt)

    @classmethod
    def from_environ(
        cls, registry: Registry, runner: ToolRunner, environ: HookEnviron
    ) -> Context:
        """Build the context for the hook described by ``environ``.

        The relation snapshot covers every relation registered in ``registry``,
        every relation declared in the charm's metadata.yaml, and the relation
        of the current hook.
        """
        names = [
            *registry.relation_names(),
            *CharmMeta.from_charm_root(environ.charm_dir).relation_names,
        ]
        if environ.relation_name:
            names.append(environ.relation_name)
        relations = RelationSnapshot.fetch(runner, names, environ.unit_name)
        if environ.hook_name.endswith('-relation-broken') and environ.relation_id:
            # The agent no longer lists a relation that is being broken, but the
            # hook is still about it.
            relations.add_relation(environ.relation_name, environ.relation_id)
        return cls(
            uuid=environ.model_uuid,
            unit=environ.unit_name,
            charm_dir=environ.charm_dir,
            hook_name=environ.hook_name,
            runner=runner,
            relations=relations,
            relation_id=environ.relation_id,
            remote_unit=environ.remote_unit_name,
        )
