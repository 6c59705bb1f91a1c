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

"""The relations visible to the unit during one hook invocation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from . import hookcmds
from .errors import ContractViolation
from .runner import ToolRunner

logger = logging.getLogger(__name__)

RelationId = str
UnitId = str
RelationSettings = dict[str, str]


class RelationSnapshot:
    """Relation ids, member units and unit settings as seen by this invocation.

    Args:
        relations: mapping from relation id to the settings published by each
            remote unit in that relation.
        relation_ids: mapping from relation name to the ids of the relations
            with that name.
        local: the settings the local unit has published, by relation id.
        local_unit: the name of the local unit. Where ``relations`` lists it
            (as in a peer relation), its settings there seed the local
            settings, and later writes are reflected there too.
    """

    def __init__(
        self,
        relations: Mapping[RelationId, Mapping[UnitId, Mapping[str, str]]] | None = None,
        relation_ids: Mapping[str, Iterable[RelationId]] | None = None,
        local: Mapping[RelationId, Mapping[str, str]] | None = None,
        local_unit: UnitId = '',
    ):
        self.relations: dict[RelationId, dict[UnitId, RelationSettings]] = {
            rel_id: {unit: dict(settings) for unit, settings in units.items()}
            for rel_id, units in (relations or {}).items()
        }
        self.relation_ids: dict[str, list[RelationId]] = {
            name: list(ids) for name, ids in (relation_ids or {}).items()
        }
        self.local: dict[RelationId, RelationSettings] = {
            rel_id: dict(settings) for rel_id, settings in (local or {}).items()
        }
        self.local_unit = ''
        if local_unit:
            self.bind_local_unit(local_unit)
        self._names: dict[RelationId, str] = {}
        for name, ids in self.relation_ids.items():
            for rel_id in ids:
                self._names.setdefault(rel_id, name)

    def __repr__(self):
        return f'<{type(self).__name__} relation_ids={self.relation_ids!r}>'

    def bind_local_unit(self, unit: UnitId):
        """Set the local unit, taking its settings from any relation that lists it."""
        self.local_unit = unit
        for rel_id, units in self.relations.items():
            if unit in units:
                self.local.setdefault(rel_id, dict(units[unit]))

    def name_for_id(self, relation_id: RelationId) -> str:
        """Return the name of the relation with the given id.

        Raises:
            ContractViolation: if no relation name lists ``relation_id``. The agent
                only runs relation hooks for relations it established, so this
                means the invocation itself is broken.
        """
        try:
            return self._names[relation_id]
        except KeyError:
            raise ContractViolation(f'relation id {relation_id!r} not found') from None

    def ids(self, relation_name: str) -> list[RelationId]:
        """Return the ids of all relations named ``relation_name``."""
        return list(self.relation_ids.get(relation_name, ()))

    def units(self, relation_id: RelationId) -> list[UnitId]:
        """Return the remote units in the relation, sorted by name."""
        return sorted(self.relations.get(relation_id, {}))

    def unit_settings(self, relation_id: RelationId) -> dict[UnitId, RelationSettings]:
        """Return a copy of every remote unit's settings in the relation."""
        return {
            unit: dict(settings) for unit, settings in self.relations.get(relation_id, {}).items()
        }

    def settings(self, relation_id: RelationId, unit: UnitId) -> RelationSettings:
        """Return a copy of one remote unit's settings; empty if the unit is unknown."""
        return dict(self.relations.get(relation_id, {}).get(unit, {}))

    def add_relation(self, relation_name: str, relation_id: RelationId):
        """Make sure ``relation_id`` is known as a relation named ``relation_name``."""
        ids = self.relation_ids.setdefault(relation_name, [])
        if relation_id not in ids:
            ids.append(relation_id)
        self.relations.setdefault(relation_id, {})
        self._names.setdefault(relation_id, relation_name)

    def local_settings(self, relation_id: RelationId) -> RelationSettings:
        """Return a copy of the local unit's own settings in the relation."""
        return dict(self.local.get(relation_id, {}))

    def update_local(self, relation_id: RelationId, settings: Mapping[str, str]):
        """Record settings written by the local unit.

        An empty value removes the key, matching what ``relation-set`` does.
        """
        targets = [self.local.setdefault(relation_id, {})]
        units = self.relations.get(relation_id, {})
        if self.local_unit and self.local_unit in units:
            targets.append(units[self.local_unit])
        for target in targets:
            for key, value in settings.items():
                if value == '':
                    target.pop(key, None)
                else:
                    target[key] = value

    @classmethod
    def fetch(
        cls, runner: ToolRunner, relation_names: Iterable[str], local_unit: UnitId
    ) -> RelationSnapshot:
        """Build a snapshot of the named relations by running the relation hook tools."""
        relations: dict[RelationId, dict[UnitId, RelationSettings]] = {}
        ids: dict[str, list[RelationId]] = {}
        local: dict[RelationId, RelationSettings] = {}
        for name in relation_names:
            if name in ids:
                continue
            ids[name] = hookcmds.relation_ids(runner, name)
            for rel_id in ids[name]:
                relations[rel_id] = {
                    unit: hookcmds.relation_get(runner, rel_id, unit)
                    for unit in hookcmds.relation_list(runner, rel_id)
                }
                local[rel_id] = hookcmds.relation_get(runner, rel_id, local_unit)
        logger.debug('Fetched relations: %s', ids)
        return cls(relations, ids, local, local_unit)
