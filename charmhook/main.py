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

"""Implement the main entry point to the hook runner."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import Callable

from . import hookdir
from . import storage as _storage
from .context import Context
from .environ import HookEnviron
from .errors import ContractViolation
from .log import setup_root_logging
from .registry import Registry, register_main_hooks, valid_hook_name
from .runner import ExecRunner, ToolRunner
from .version import version

logger = logging.getLogger(__name__)

SQLITE_STATE_FILE = 'state.db'

# Hooks during which the hook triggers are (re)installed.
_SETUP_HOOKS = ('install', 'upgrade-charm')


def dispatch(registry: Registry, ctx: Context, state: _storage.PersistentState):
    """Run every handler interested in ``ctx.hook_name``, in registration order.

    Each handler gets the state its component last saved. A handler that
    returns new state has it saved straight away, before the next handler
    runs. If a handler raises, no further handlers run and the exception
    propagates; state saved by earlier handlers is kept.

    The context's runner is closed exactly once, whatever happens.

    Raises:
        ContractViolation: if the hook name is invalid, or a handler without a
            state namespace returns state. Nothing has been loaded or saved.
    """
    try:
        if not valid_hook_name(ctx.hook_name):
            raise ContractViolation(f'invalid hook name {ctx.hook_name!r}')
        registry.freeze()
        entries = registry.handlers(ctx.hook_name)
        if not entries:
            logger.debug('No handlers registered for hook %s.', ctx.hook_name)
        for entry in entries:
            name = entry.state_name
            data = state.load(name) if name is not None else None
            logger.debug('Running handler %s for hook %s.', entry.handler, ctx.hook_name)
            try:
                new_data = entry.handler(ctx, data)
            except Exception:
                logger.exception('Handler %s failed in hook %s.', entry.handler, ctx.hook_name)
                raise
            if new_data is None:
                continue
            if not isinstance(new_data, bytes):
                raise TypeError(
                    f'handler {entry.handler!r} returned {type(new_data).__name__}, not bytes'
                )
            if name is None:
                raise ContractViolation(
                    f'handler {entry.handler!r} has no state namespace but returned state'
                )
            state.save(name, new_data)
    finally:
        ctx.runner.close()


class _Abort(Exception):  # noqa: N818
    """Raised when something happens that should interrupt hook execution."""

    def __init__(self, exit_code: int):
        super().__init__()
        self.exit_code = exit_code


def _make_storage(environ: HookEnviron) -> _storage.PersistentState:
    state_path = environ.state_path
    if environ.storage == 'sqlite':
        state_path.mkdir(mode=0o700, parents=True, exist_ok=True)
        return _storage.SQLiteStorage(state_path / SQLITE_STATE_FILE)
    return _storage.DirectoryStorage(state_path)


def _prepare(
    register_hooks: Callable[[Registry], None],
    environ: HookEnviron,
    runner: ToolRunner,
) -> tuple[Registry, Context]:
    # Check the hook name before running any hook tools.
    if not valid_hook_name(environ.hook_name):
        raise ContractViolation(f'invalid hook name {environ.hook_name!r}')

    registry = Registry()
    register_hooks(registry)
    register_main_hooks(registry)

    if environ.hook_name in _SETUP_HOOKS:
        hookdir.setup_hooks(environ.charm_dir, registry.hook_names())

    return registry, Context.from_environ(registry, runner, environ)


def _run(
    register_hooks: Callable[[Registry], None],
    environ: HookEnviron,
    runner: ToolRunner,
    state: _storage.PersistentState | None,
):
    log_handler = setup_root_logging(runner, debug=environ.debug)
    own_state = state is None
    try:
        logger.debug('charmhook %s running hook %s.', version, environ.hook_name)
        try:
            registry, ctx = _prepare(register_hooks, environ, runner)
            if state is None:
                state = _make_storage(environ)
        except Exception:
            logger.exception('Unable to set up hook %s.', environ.hook_name)
            # dispatch never ran, so the runner is still ours to close.
            logging.getLogger().removeHandler(log_handler)
            runner.close()
            raise
        dispatch(registry, ctx, state)
    finally:
        logging.getLogger().removeHandler(log_handler)
        if own_state and isinstance(state, _storage.SQLiteStorage):
            state.close()


def main(
    register_hooks: Callable[[Registry], None],
    *,
    environ: Mapping[str, str] | None = None,
    runner: ToolRunner | None = None,
    state: _storage.PersistentState | None = None,
):
    """Run the hook the agent invoked this process for, then exit.

    Args:
        register_hooks: called with the root :class:`Registry` to register all
            the components' handlers.
        environ: the hook environment; defaults to ``os.environ``.
        runner: the hook tool runner; defaults to an :class:`ExecRunner`.
        state: the component state store; defaults to one chosen by the
            ``CHARMHOOK_STORAGE`` and ``CHARMHOOK_STATE_DIR`` variables.

    If ``CHARMHOOK_DISPATCH`` is set in ``environ``, the process was started by
    a hook tool or handler of another invocation, and ``main`` exits at once.
    The variable is always set in ``os.environ``, never in ``environ``: it is
    the process environment that child processes inherit, and it is what
    they read back when run with the default ``environ``.
    """
    if environ is None:
        environ = os.environ
    try:
        if 'CHARMHOOK_DISPATCH' in environ:
            # A hook tool or handler ran the charm again; there is nothing to do.
            raise _Abort(0)
        os.environ['CHARMHOOK_DISPATCH'] = '1'

        hook_environ = HookEnviron.from_environ(environ)
        if runner is None:
            runner = ExecRunner(hook_environ.tools_dir)
        _run(register_hooks, hook_environ, runner, state)
    except _Abort as e:
        sys.exit(e.exit_code)
