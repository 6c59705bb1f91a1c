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

"""A helper to read the hook environment set up by the agent."""

from __future__ import annotations

import dataclasses
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Literal


@dataclasses.dataclass(frozen=True, kw_only=True)
class HookEnviron:
    """The context the agent provides for a hook, in the form of environment variables.

    Use :meth:`HookEnviron.from_environ` rather than building this directly.
    """

    hook_name: str
    """The name of the hook, for example 'install' or 'db-relation-joined'.

    Taken from ``JUJU_HOOK_NAME`` when set, otherwise from the last element of
    ``JUJU_DISPATCH_PATH`` (or of ``argv[0]`` for hooks run as symlinks).
    """

    unit_name: str
    """The name of the unit, for example 'myapp/0' (from ``JUJU_UNIT_NAME``)."""

    model_uuid: str = ''
    """The uuid of the model (from ``JUJU_MODEL_UUID`` or ``JUJU_ENV_UUID``)."""

    charm_dir: Path = dataclasses.field(default_factory=Path.cwd)
    """The directory where the charm is running (from ``JUJU_CHARM_DIR`` or ``CHARM_DIR``)."""

    relation_id: str = ''
    """The id of the relation, for relation hooks, for example 'db:3'."""

    relation_name: str = ''
    """The name of the relation, for relation hooks (from ``JUJU_RELATION``)."""

    remote_unit_name: str = ''
    """The remote unit, for relation hooks (from ``JUJU_REMOTE_UNIT``)."""

    debug: bool = False
    """If true, logs are written to stderr as well as to juju-log (from ``JUJU_DEBUG``)."""

    state_dir: Path | None = None
    """Where component state is kept (from ``CHARMHOOK_STATE_DIR``).

    Defaults to ``.hook-state`` inside the charm directory.
    """

    storage: Literal['dir', 'sqlite'] = 'dir'
    """The state storage backend (from ``CHARMHOOK_STORAGE``)."""

    tools_dir: Path | None = None
    """A directory holding the hook tools, if not on ``PATH`` (from ``CHARMHOOK_TOOLS_DIR``)."""

    @property
    def state_path(self) -> Path:
        """The resolved location of the component state."""
        if self.state_dir is not None:
            return self.state_dir
        return self.charm_dir / '.hook-state'

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> HookEnviron:
        """Create a ``HookEnviron`` object from the environment.

        If environ is ``None``, ``os.environ`` will be used.

        Raises:
            ValueError: If a required variable is missing or has a bad value.
        """
        if environ is None:
            environ = os.environ

        if not environ.get('JUJU_UNIT_NAME'):
            raise ValueError('Missing required environment variable: JUJU_UNIT_NAME')

        hook_name = environ.get('JUJU_HOOK_NAME')
        if not hook_name:
            dispatch_path = environ.get('JUJU_DISPATCH_PATH') or sys.argv[0]
            hook_name = Path(dispatch_path).name

        charm_dir = environ.get('JUJU_CHARM_DIR') or environ.get('CHARM_DIR')

        storage = environ.get('CHARMHOOK_STORAGE') or 'dir'
        if storage not in ('dir', 'sqlite'):
            raise ValueError(f'Invalid CHARMHOOK_STORAGE value: {storage!r}')

        return cls(
            hook_name=hook_name,
            unit_name=environ['JUJU_UNIT_NAME'],
            model_uuid=environ.get('JUJU_MODEL_UUID') or environ.get('JUJU_ENV_UUID', ''),
            charm_dir=Path(charm_dir).resolve() if charm_dir else Path.cwd(),
            relation_id=environ.get('JUJU_RELATION_ID', ''),
            relation_name=environ.get('JUJU_RELATION', ''),
            remote_unit_name=environ.get('JUJU_REMOTE_UNIT', ''),
            debug='JUJU_DEBUG' in environ,
            state_dir=(
                Path(environ['CHARMHOOK_STATE_DIR'])
                if environ.get('CHARMHOOK_STATE_DIR')
                else None
            ),
            storage=storage,  # type: ignore
            tools_dir=(
                Path(environ['CHARMHOOK_TOOLS_DIR'])
                if environ.get('CHARMHOOK_TOOLS_DIR')
                else None
            ),
        )
