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

"""Interface to emit messages to the agent's logging system."""

from __future__ import annotations

import logging
import sys
import types
import typing
import warnings

from . import hookcmds

if typing.TYPE_CHECKING:
    from .runner import ToolRunner


class HookLogHandler(logging.Handler):
    """A handler for sending logs and warnings to the agent via juju-log."""

    def __init__(self, runner: ToolRunner, level: int = logging.DEBUG):
        super().__init__(level)
        self.runner = runner
        self.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
        self._emitting = False

    def emit(self, record: logging.LogRecord):
        """Send the specified logging record to the agent.

        This method is not used directly by charmhook, but by
        :class:`logging.Handler` itself as part of the logging machinery.
        Records logged by the runner while it forwards a record are dropped.
        """
        if self._emitting:
            return
        self._emitting = True
        try:
            hookcmds.juju_log(self.runner, self.format(record))
        except Exception:
            self.handleError(record)
        finally:
            self._emitting = False


def setup_root_logging(runner: ToolRunner, debug: bool = False) -> HookLogHandler:
    """Setup Python logging to forward messages to juju-log.

    By default, logging is set to DEBUG level, and messages will be filtered by
    the agent. Warnings issued by the warnings module are redirected to the
    logging system and forwarded to juju-log, too.

    Args:
        runner: the ToolRunner to use for juju-log.
        debug: if True, write logs to stderr as well as to juju-log.

    Returns:
        The installed handler, so it can be removed before the runner is closed.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)
    handler = HookLogHandler(runner)
    logger.addHandler(handler)

    def custom_showwarning(
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: typing.TextIO | None = None,
        line: str | None = None,
    ):
        """Direct the warning to the agent's log, and don't include the code."""
        logger.warning('%s:%s: %s: %s', filename, lineno, category.__name__, message)

    warnings.showwarning = custom_showwarning

    if debug:
        stream_handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s %(levelname)-8s %(message)s')
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    def except_hook(etype: type[BaseException], value: BaseException, tb: types.TracebackType):
        logger.error('Uncaught exception while in hook code:', exc_info=(etype, value, tb))
        print(f'Uncaught {etype.__name__} in hook code: {value}', file=sys.stderr)

    sys.excepthook = except_hook
    return handler
