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

import json
import logging
import os
import pathlib
import typing

import pytest

from charmhook import Context, ContractViolation, Registry, dispatch
from charmhook.log import HookLogHandler
from charmhook.main import main
from charmhook.storage import DirectoryStorage, SQLiteStorage
from charmhook.testing import MemState, Runner


class RecordingState(MemState):
    """A MemState that remembers every load and save."""

    def __init__(self, *args: typing.Any, **kwargs: typing.Any):
        super().__init__(*args, **kwargs)
        self.loads: list[str] = []
        self.saves: list[tuple[str, bytes]] = []

    def save(self, name: str, data: bytes) -> None:
        self.saves.append((name, data))
        super().save(name, data)

    def load(self, name: str) -> bytes | None:
        self.loads.append(name)
        return super().load(name)


def make_context(runner: Runner, hook_name: str) -> Context:
    return Context(
        uuid='uuid',
        unit='someunit/0',
        charm_dir=pathlib.Path('/nowhere'),
        hook_name=hook_name,
        runner=runner,
    )


def count_seen(ctx: Context, state: bytes | None) -> bytes | None:
    data = json.loads(state) if state else {'seen': 0}
    data['seen'] += 1
    return json.dumps(data, separators=(',', ':')).encode()


class TestDispatch:
    def test_no_handlers(self):
        runner = Runner()
        state = RecordingState()
        dispatch(Registry(), make_context(runner, 'install'), state)
        assert state.loads == []
        assert state.saves == []
        assert runner.closed

    def test_invalid_hook_name(self):
        called: list[str] = []
        registry = Registry()
        registry.component('a').register_hook('install', lambda ctx, state: called.append('a'))
        runner = Runner()
        state = RecordingState()
        with pytest.raises(ContractViolation):
            dispatch(registry, make_context(runner, 'In$tall'), state)
        assert called == []
        assert state.loads == []
        assert state.saves == []
        assert runner.closed

    def test_hook_name_with_newline(self):
        called: list[str] = []
        registry = Registry()
        registry.register_hook('start', lambda ctx, state: called.append('start'))
        runner = Runner()
        with pytest.raises(ContractViolation):
            dispatch(registry, make_context(runner, 'start\n'), MemState())
        assert called == []
        assert runner.closed

    def test_registration_order(self):
        order: list[int] = []
        registry = Registry()
        for i in range(10):
            comp = registry.component(f'c{i}')
            comp.register_hook('start', lambda ctx, state, i=i: order.append(i))
        dispatch(registry, make_context(Runner(), 'start'), MemState())
        assert order == list(range(10))

    def test_only_interested_handlers_run(self):
        called: list[str] = []
        registry = Registry()
        registry.register_hook('start', lambda ctx, state: called.append('start'))
        registry.register_hook('stop', lambda ctx, state: called.append('stop'))
        dispatch(registry, make_context(Runner(), 'stop'), MemState())
        assert called == ['stop']

    def test_unchanged_state_is_not_saved(self):
        registry = Registry()
        registry.component('a').register_hook('start', lambda ctx, state: None)
        state = RecordingState({'a': b'old'})
        dispatch(registry, make_context(Runner(), 'start'), state)
        assert state.loads == ['a']
        assert state.saves == []
        assert state['a'] == b'old'

    def test_changed_state_saved_once(self):
        registry = Registry()
        registry.component('a').register_hook('start', lambda ctx, state: b'new')
        state = RecordingState()
        dispatch(registry, make_context(Runner(), 'start'), state)
        assert state.saves == [('a', b'new')]

    def test_handler_gets_saved_state(self):
        seen: list[bytes | None] = []

        def handler(ctx: Context, state: bytes | None):
            seen.append(state)

        registry = Registry()
        registry.component('a').register_hook('start', handler)
        registry.component('b').register_hook('start', handler)
        dispatch(registry, make_context(Runner(), 'start'), MemState({'a': b'saved'}))
        assert seen == [b'saved', None]

    def test_root_handlers_have_no_state(self):
        seen: list[bytes | None] = []
        registry = Registry()
        registry.register_hook('start', lambda ctx, state: seen.append(state))
        state = RecordingState()
        dispatch(registry, make_context(Runner(), 'start'), state)
        assert seen == [None]
        assert state.loads == []

    def test_root_handler_returning_state(self):
        registry = Registry()
        registry.register_hook('start', lambda ctx, state: b'x')
        runner = Runner()
        with pytest.raises(ContractViolation):
            dispatch(registry, make_context(runner, 'start'), MemState())
        assert runner.closed

    def test_handler_returning_wrong_type(self):
        registry = Registry()
        registry.component('a').register_hook('start', lambda ctx, state: 'text')
        state = RecordingState()
        with pytest.raises(TypeError):
            dispatch(registry, make_context(Runner(), 'start'), state)
        assert state.saves == []

    def test_same_component_sees_own_update(self):
        seen: list[bytes | None] = []

        def first(ctx: Context, state: bytes | None):
            return b'1'

        def second(ctx: Context, state: bytes | None):
            seen.append(state)

        registry = Registry()
        comp = registry.component('a')
        comp.register_hook('start', first)
        comp.register_hook('start', second)
        dispatch(registry, make_context(Runner(), 'start'), MemState())
        assert seen == [b'1']

    def test_failure_stops_dispatch_and_keeps_earlier_state(self):
        called: list[str] = []

        def fail(ctx: Context, state: bytes | None):
            called.append('b')
            raise ValueError('b failed')

        registry = Registry()
        registry.component('a').register_hook('start', lambda ctx, state: b'a-state')
        registry.component('b').register_hook('start', fail)
        registry.component('c').register_hook('start', lambda ctx, state: called.append('c'))
        runner = Runner()
        state = RecordingState()
        with pytest.raises(ValueError, match='b failed'):
            dispatch(registry, make_context(runner, 'start'), state)
        assert called == ['b']
        assert state.saves == [('a', b'a-state')]
        assert runner.closed

    def test_storage_failure_propagates(self):
        class BrokenState(MemState):
            def load(self, name: str) -> bytes | None:
                raise OSError('no disk')

        called: list[str] = []
        registry = Registry()
        registry.component('a').register_hook('start', lambda ctx, state: called.append('a'))
        runner = Runner()
        with pytest.raises(OSError, match='no disk'):
            dispatch(registry, make_context(runner, 'start'), BrokenState())
        assert called == []
        assert runner.closed

    def test_registry_frozen(self):
        registry = Registry()

        def register_more(ctx: Context, state: bytes | None):
            registry.register_hook('stop', lambda ctx, state: None)

        registry.register_hook('start', register_more)
        with pytest.raises(ContractViolation):
            dispatch(registry, make_context(Runner(), 'start'), MemState())

    def test_runner_closed_once(self):
        runner = Runner()
        dispatch(Registry(), make_context(runner, 'install'), MemState())
        with pytest.raises(ContractViolation):
            runner.close()

    def test_seen_counter_across_invocations(self):
        def register_hooks(r: Registry):
            r.component('a').register_hook('config-changed', count_seen)

        state = MemState()
        Runner(register_hooks, state=state).run_hook('config-changed')
        assert state.load('a') == b'{"seen":1}'
        Runner(register_hooks, state=state).run_hook('config-changed')
        assert state.load('a') == b'{"seen":2}'


@pytest.fixture
def hook_env(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    # Make sure the variable main() sets is removed again afterwards.
    monkeypatch.setenv('CHARMHOOK_DISPATCH', '')
    monkeypatch.delenv('CHARMHOOK_DISPATCH')
    charm_dir = tmp_path / 'charm'
    charm_dir.mkdir()
    return {
        'JUJU_UNIT_NAME': 'app/0',
        'JUJU_MODEL_UUID': 'uuid',
        'JUJU_CHARM_DIR': str(charm_dir),
        'JUJU_DISPATCH_PATH': 'hooks/config-changed',
    }


def register_counter(r: Registry):
    r.component('a').register_hook('config-changed', count_seen)
    r.component('web').register_relation('website', lambda ctx, state: None)


@pytest.mark.usefixtures('root_logger')
class TestMain:
    def test_main_runs_hook(self, hook_env: dict[str, str]):
        runner = Runner()
        main(register_counter, environ=hook_env, runner=runner)
        main(register_counter, environ=hook_env, runner=Runner())
        store = DirectoryStorage(pathlib.Path(hook_env['JUJU_CHARM_DIR']) / '.hook-state')
        assert store.load('a') == b'{"seen":2}'
        assert runner.closed
        assert ['relation-ids', '--format', 'json', 'website'] in runner.record

    def test_main_logs_to_runner(self, hook_env: dict[str, str], caplog: pytest.LogCaptureFixture):
        runner = Runner()
        with caplog.at_level(logging.DEBUG, logger='charmhook.testing'):
            main(register_counter, environ=hook_env, runner=runner)
        messages = [r.getMessage() for r in caplog.records if r.name == 'charmhook.testing']
        assert any('running hook config-changed' in m for m in messages)
        assert not any(isinstance(h, HookLogHandler) for h in logging.getLogger().handlers)

    def test_main_sqlite(self, hook_env: dict[str, str], tmp_path: pathlib.Path):
        hook_env['CHARMHOOK_STORAGE'] = 'sqlite'
        hook_env['CHARMHOOK_STATE_DIR'] = str(tmp_path / 'state')
        main(register_counter, environ=hook_env, runner=Runner())
        store = SQLiteStorage(tmp_path / 'state' / 'state.db')
        assert store.load('a') == b'{"seen":1}'
        store.close()

    def test_main_given_state(self, hook_env: dict[str, str]):
        state = MemState()
        main(register_counter, environ=hook_env, runner=Runner(), state=state)
        assert state == {'a': b'{"seen":1}'}

    def test_main_invalid_hook(self, hook_env: dict[str, str]):
        hook_env['JUJU_HOOK_NAME'] = 'bad_hook'
        runner = Runner()
        state = RecordingState()
        with pytest.raises(ContractViolation):
            main(register_counter, environ=hook_env, runner=runner, state=state)
        assert runner.record == []
        assert state.loads == []
        assert runner.closed

    def test_main_handler_failure(self, hook_env: dict[str, str]):
        def register_hooks(r: Registry):
            r.component('a').register_hook('config-changed', count_seen)
            r.component('b').register_hook('config-changed', lambda ctx, state: 1 / 0)

        runner = Runner()
        state = MemState()
        with pytest.raises(ZeroDivisionError):
            main(register_hooks, environ=hook_env, runner=runner, state=state)
        assert state == {'a': b'{"seen":1}'}
        assert runner.closed

    def test_main_unknown_relation(self, hook_env: dict[str, str]):
        hook_env['JUJU_DISPATCH_PATH'] = 'hooks/db-relation-changed'
        hook_env['JUJU_RELATION'] = 'db'
        hook_env['JUJU_RELATION_ID'] = 'db:7'
        hook_env['JUJU_REMOTE_UNIT'] = 'mysql/0'
        runner = Runner(run_func=lambda cmd, *args: b'[]' if cmd == 'relation-ids' else b'')
        state = RecordingState()
        with pytest.raises(ContractViolation):
            main(register_counter, environ=hook_env, runner=runner, state=state)
        assert state.loads == []
        assert runner.closed

    def test_main_install_sets_up_hooks(self, hook_env: dict[str, str]):
        hook_env['JUJU_DISPATCH_PATH'] = 'hooks/install'
        main(register_counter, environ=hook_env, runner=Runner(), state=MemState())
        hooks_dir = pathlib.Path(hook_env['JUJU_CHARM_DIR']) / 'hooks'
        assert os.readlink(hooks_dir / 'config-changed') == 'install'
        assert os.readlink(hooks_dir / 'website-relation-joined') == 'install'
        assert not (hooks_dir / 'install').exists()

    def test_main_reentrant(self, hook_env: dict[str, str]):
        hook_env['CHARMHOOK_DISPATCH'] = '1'
        runner = Runner()
        with pytest.raises(SystemExit) as excinfo:
            main(register_counter, environ=hook_env, runner=runner)
        assert excinfo.value.code == 0
        assert not runner.closed

    def test_main_marks_process_environment(self, hook_env: dict[str, str]):
        main(register_counter, environ=hook_env, runner=Runner(), state=MemState())
        assert os.environ['CHARMHOOK_DISPATCH'] == '1'
        assert 'CHARMHOOK_DISPATCH' not in hook_env

    def test_main_reentrant_from_process_environment(self, hook_env: dict[str, str]):
        main(register_counter, environ=hook_env, runner=Runner(), state=MemState())
        # A child process reads its own os.environ, which now carries the marker.
        runner = Runner()
        with pytest.raises(SystemExit) as excinfo:
            main(register_counter, environ=dict(os.environ), runner=runner)
        assert excinfo.value.code == 0
        assert not runner.closed
