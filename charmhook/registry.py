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

"""The table of hooks that components want to handle.

Components declare their interest while the process sets up, before any hook
is dispatched::

    def register_hooks(r: Registry):
        web = r.component('website')
        web.register_hook('config-changed', on_config_changed)
        web.register_relation('website', on_website)

Each handler is called as ``handler(ctx, state)`` where ``state`` is the
component's last saved bytes (``None`` if nothing was saved yet). It returns
the new state, or ``None`` to leave the saved state untouched.
"""

from __future__ import annotations

import dataclasses
import re
import typing
from typing import Callable, Optional

from .errors import ContractViolation

if typing.TYPE_CHECKING:
    from .context import Context

Handler = Callable[['Context', Optional[bytes]], Optional[bytes]]

MAIN_HOOKS = (
    'install',
    'start',
    'stop',
    'remove',
    'upgrade-charm',
    'config-changed',
    'update-status',
    'leader-elected',
    'leader-settings-changed',
)
"""Lifecycle hooks that every unit can receive, whatever its relations."""

RELATION_HOOK_SUFFIXES = (
    '-relation-joined',
    '-relation-changed',
    '-relation-departed',
    '-relation-broken',
)

_HOOK_NAME_RE = re.compile(r'[a-z][a-z0-9]*(-[a-z0-9]+)*')


def valid_hook_name(name: str) -> bool:
    """Report whether ``name`` may be used as a hook (or relation) name."""
    return _HOOK_NAME_RE.fullmatch(name) is not None


def _check_name(kind: str, name: str):
    if not valid_hook_name(name):
        raise ContractViolation(f'invalid {kind} name {name!r}')


@dataclasses.dataclass(frozen=True)
class _Entry:
    hook_name: str
    handler: Handler
    state_name: str | None = None
    relation_name: str | None = None


class _Table:
    """The state shared by a registry and all its component registries."""

    def __init__(self):
        self.entries: list[_Entry] = []
        self.hooks: dict[str, None] = {}
        self.relation_names: dict[str, None] = {}
        self.components: set[str] = set()
        self.frozen = False


class Registry:
    """Records which handlers run for each hook, in registration order.

    A new ``Registry`` is the root registry. Handlers registered directly on it
    have no persisted state: they are always passed ``None`` and must return
    ``None``. Use :meth:`component` to get a registry whose handlers own a
    state namespace.
    """

    def __init__(self):
        self._table = _Table()
        self._state_name: str | None = None

    def __repr__(self):
        return f'<{type(self).__name__} state_name={self._state_name!r}>'

    @property
    def state_name(self) -> str | None:
        """The name this registry's handlers save their state under."""
        return self._state_name

    def component(self, name: str) -> Registry:
        """Return a registry for the component ``name`` nested in this one.

        The component's state is saved as ``<parent>.<name>``, or just ``name``
        when called on the root registry.

        Raises:
            ContractViolation: if the name is invalid or already taken.
        """
        _check_name('component', name)
        state_name = name if self._state_name is None else f'{self._state_name}.{name}'
        if state_name in self._table.components:
            raise ContractViolation(f'component {state_name!r} registered twice')
        self._table.components.add(state_name)
        child = Registry.__new__(Registry)
        child._table = self._table
        child._state_name = state_name
        return child

    def _add(self, hook_name: str, handler: Handler, relation_name: str | None = None):
        if self._table.frozen:
            raise ContractViolation(f'cannot register {hook_name!r}: hooks already dispatched')
        self._table.entries.append(_Entry(hook_name, handler, self._state_name, relation_name))
        self._table.hooks[hook_name] = None

    def register_hook(self, hook_name: str, handler: Handler):
        """Run ``handler`` whenever the hook ``hook_name`` fires.

        Raises:
            ContractViolation: if the hook name is invalid.
        """
        _check_name('hook', hook_name)
        self._add(hook_name, handler)

    def register_relation(self, relation_name: str, handler: Handler):
        """Run ``handler`` for every hook of the relation ``relation_name``.

        That is the joined, changed, departed and broken hooks, in that order.
        """
        _check_name('relation', relation_name)
        for suffix in RELATION_HOOK_SUFFIXES:
            self._add(relation_name + suffix, handler, relation_name)
        self._table.relation_names[relation_name] = None

    def _ensure_hook(self, hook_name: str):
        """Make sure a trigger exists for ``hook_name`` without adding a handler."""
        _check_name('hook', hook_name)
        if self._table.frozen:
            raise ContractViolation(f'cannot register {hook_name!r}: hooks already dispatched')
        self._table.hooks[hook_name] = None

    def hook_names(self) -> list[str]:
        """Return the sorted names of every hook anything is interested in."""
        return sorted(self._table.hooks)

    def relation_names(self) -> list[str]:
        """Return the relation names registered with :meth:`register_relation`."""
        return list(self._table.relation_names)

    def handlers(self, hook_name: str) -> list[_Entry]:
        """Return the entries for ``hook_name`` in the order they were registered."""
        return [e for e in self._table.entries if e.hook_name == hook_name]

    def freeze(self):
        """Refuse any further registration."""
        self._table.frozen = True

    @property
    def frozen(self) -> bool:
        return self._table.frozen


def register_main_hooks(registry: Registry):
    """Make sure every unit lifecycle hook has a trigger point.

    Calling this more than once is harmless.
    """
    for hook_name in MAIN_HOOKS:
        registry._ensure_hook(hook_name)
