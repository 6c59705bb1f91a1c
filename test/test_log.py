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

import io
import logging
import sys
import warnings
from unittest.mock import patch

import pytest

from charmhook import ContractViolation
from charmhook.log import HookLogHandler, setup_root_logging
from charmhook.runner import ToolRunner


class FakeRunner(ToolRunner):
    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail = False

    def run(self, cmd: str, *args: str) -> bytes:
        if self.fail:
            raise ContractViolation('closed')
        self.calls.append([cmd, *args])
        return b''

    def close(self) -> None:
        pass


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


class TestLogging:
    @pytest.mark.parametrize(
        'level,prefix',
        [
            ('critical', 'CRITICAL'),
            ('error', 'ERROR'),
            ('warning', 'WARNING'),
            ('info', 'INFO'),
            ('debug', 'DEBUG'),
        ],
    )
    def test_default_logging(
        self, runner: FakeRunner, root_logger: logging.Logger, level: str, prefix: str
    ):
        setup_root_logging(runner)
        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[-1], HookLogHandler)

        getattr(logging.getLogger('some.module'), level)('a %s', 'message')
        assert runner.calls == [['juju-log', f'{prefix} some.module: a message']]

    def test_handler_filtering(self, runner: FakeRunner, root_logger: logging.Logger):
        root_logger.setLevel(logging.INFO)
        root_logger.addHandler(HookLogHandler(runner, logging.WARNING))
        root_logger.info('foo')
        assert runner.calls == []
        root_logger.warning('bar')
        assert runner.calls == [['juju-log', 'WARNING root: bar']]

    def test_returns_handler(self, runner: FakeRunner, root_logger: logging.Logger):
        handler = setup_root_logging(runner)
        root_logger.removeHandler(handler)
        root_logger.info('dropped')
        assert runner.calls == []

    def test_no_stderr_without_debug(self, runner: FakeRunner, root_logger: logging.Logger):
        buffer = io.StringIO()
        with patch('sys.stderr', buffer):
            setup_root_logging(runner, debug=False)
            root_logger.info('info message')
        assert runner.calls == [['juju-log', 'INFO root: info message']]
        assert buffer.getvalue() == ''

    def test_debug_logging(self, runner: FakeRunner, root_logger: logging.Logger):
        buffer = io.StringIO()
        with patch('sys.stderr', buffer):
            setup_root_logging(runner, debug=True)
            root_logger.info('info message')
        assert runner.calls == [['juju-log', 'INFO root: info message']]
        assert 'INFO     info message' in buffer.getvalue()

    def test_warnings_are_logged(self, runner: FakeRunner, root_logger: logging.Logger):
        setup_root_logging(runner)
        warnings.warn('careful', UserWarning, stacklevel=1)
        assert len(runner.calls) == 1
        cmd, message = runner.calls[0]
        assert cmd == 'juju-log'
        assert message.startswith('WARNING root: ')
        assert message.endswith('UserWarning: careful')

    def test_except_hook(self, runner: FakeRunner, root_logger: logging.Logger):
        setup_root_logging(runner)
        buffer = io.StringIO()
        try:
            raise RuntimeError('boom')
        except RuntimeError:
            exc_info = sys.exc_info()
        with patch('sys.stderr', buffer):
            sys.excepthook(*exc_info)
        assert runner.calls[0][1].startswith('ERROR root: Uncaught exception while in hook code:')
        assert 'RuntimeError: boom' in runner.calls[0][1]
        assert buffer.getvalue() == 'Uncaught RuntimeError in hook code: boom\n'

    def test_failed_emit_is_reported(self, runner: FakeRunner, root_logger: logging.Logger):
        handler = setup_root_logging(runner)
        runner.fail = True
        with patch.object(handler, 'handleError') as handle_error:
            root_logger.info('lost')
        handle_error.assert_called_once()

    def test_runner_logging_does_not_recurse(self, root_logger: logging.Logger):
        class LoggingRunner(FakeRunner):
            def run(self, cmd: str, *args: str) -> bytes:
                logging.getLogger('runner').info('running %s', cmd)
                return super().run(cmd, *args)

        runner = LoggingRunner()
        setup_root_logging(runner)
        root_logger.info('once')
        assert runner.calls == [['juju-log', 'INFO root: once']]
