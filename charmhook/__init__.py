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

"""The charmhook package: run a unit's hooks as a set of independent components.

Every hook is a new process. A charm's entry point builds a :class:`Registry`
of handlers and calls :func:`main`, which works out which hook is running,
builds the :class:`Context`, runs the interested handlers in the order they
were registered, and saves the state each component returns::

    import charmhook

    def on_config_changed(ctx: charmhook.Context, state: bytes | None) -> bytes | None:
        ctx.log(f'port is now {ctx.get_config("port")}')
        return None

    def register_hooks(r: charmhook.Registry):
        r.component('web').register_hook('config-changed', on_config_changed)

    if __name__ == '__main__':
        charmhook.main(register_hooks)

The :mod:`charmhook.testing` module provides an in-memory agent for unit tests.
"""

from __future__ import annotations

# The "from .X import Y" imports below don't explicitly tell Pyright (or MyPy)
# that those symbols are part of the public API, so we have to add __all__.
__all__ = [  # noqa: RUF022 `__all__` is not sorted
    '__version__',
    'main',
    'dispatch',
    # From charmhook.context
    'Context',
    # From charmhook.environ
    'HookEnviron',
    # From charmhook.errors
    'ContractViolation',
    # From charmhook.registry
    'MAIN_HOOKS',
    'Handler',
    'Registry',
    'register_main_hooks',
    'valid_hook_name',
    # From charmhook.relation
    'RelationSnapshot',
    # From charmhook.runner
    'ExecRunner',
    'HookToolError',
    'ToolRunner',
    # From charmhook.storage
    'DirectoryStorage',
    'PersistentState',
    'SQLiteStorage',
]

from .context import Context
from .environ import HookEnviron
from .errors import ContractViolation
from .main import dispatch, main
from .registry import MAIN_HOOKS, Handler, Registry, register_main_hooks, valid_hook_name
from .relation import RelationSnapshot
from .runner import ExecRunner, HookToolError, ToolRunner
from .storage import DirectoryStorage, PersistentState, SQLiteStorage
from .version import version as _version

__version__: str = _version
