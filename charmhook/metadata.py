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

"""The parts of the charm's metadata.yaml that the hook runner needs."""

from __future__ import annotations

import pathlib
from typing import Any

from ._private import yaml


class CharmMeta:
    """Relations declared by a charm.

    Args:
        raw: the parsed contents of metadata.yaml. ``None`` means the charm
            declares nothing.
    """

    name: str
    """Name of this charm."""

    requires: dict[str, str]
    """Relations this charm requires, mapped to their interface names."""

    provides: dict[str, str]
    """Relations this charm provides, mapped to their interface names."""

    peers: dict[str, str]
    """Peer relations, mapped to their interface names."""

    def __init__(self, raw: dict[str, Any] | None = None):
        raw_: dict[str, Any] = raw or {}
        self.name = raw_.get('name', '')
        self.requires = self._interfaces(raw_.get('requires'))
        self.provides = self._interfaces(raw_.get('provides'))
        self.peers = self._interfaces(raw_.get('peers'))

    @staticmethod
    def _interfaces(section: dict[str, Any] | None) -> dict[str, str]:
        result: dict[str, str] = {}
        for name, rel in (section or {}).items():
            # A relation may be written as just its interface name.
            result[name] = rel if isinstance(rel, str) else (rel or {}).get('interface', '')
        return result

    @property
    def relation_names(self) -> list[str]:
        """Every declared relation name: requires, then provides, then peers."""
        return [*self.requires, *self.provides, *self.peers]

    @staticmethod
    def from_charm_root(charm_root: pathlib.Path | str) -> CharmMeta:
        """Initialise CharmMeta from the charm directory.

        A charm without a metadata.yaml declares no relations.
        """
        metadata_path = pathlib.Path(charm_root) / 'metadata.yaml'
        if not metadata_path.exists():
            return CharmMeta()
        with metadata_path.open() as f:
            return CharmMeta(yaml.safe_load(f.read()))
