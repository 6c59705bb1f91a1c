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

"""Expose hooks and hook tools to the agent as symlinks."""

from __future__ import annotations

import logging
import os
import pathlib
from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _ensure_link(path: pathlib.Path, target: str) -> bool:
    """Make ``path`` a symlink to ``target``; return whether it had to be (re)created."""
    if path.is_symlink():
        if os.readlink(path) == target:
            return False
        logger.debug('Removing %s as it does not point to %s.', path, target)
        path.unlink()
    elif path.exists():
        logger.debug('Entry at %s is not a symlink: attempting to remove it.', path)
        # May raise IsADirectoryError, which is left to the operator to handle.
        path.unlink()
    logger.debug('Creating a new relative symlink at %s pointing to %s.', path, target)
    path.symlink_to(target)
    return True


def setup_hooks(
    charm_dir: pathlib.Path | str, hook_names: Iterable[str], target: str = 'install'
) -> list[str]:
    """Link every hook in ``hook_names`` to the ``target`` hook.

    Hooks are created as relative symlinks in the charm's ``hooks`` directory.
    The target itself is skipped: it is already in place, otherwise the agent
    would never have run us.

    Returns:
        The names of the hooks whose links were created or replaced.
    """
    hooks_dir = pathlib.Path(charm_dir) / 'hooks'
    hooks_dir.mkdir(exist_ok=True)
    changed: list[str] = []
    for name in hook_names:
        if name == target:
            continue
        if _ensure_link(hooks_dir / name, target):
            changed.append(name)
    return changed


def setup_tool_links(
    tools_dir: pathlib.Path | str, commands: Iterable[str], target: pathlib.Path | str
) -> list[str]:
    """Expose each hook tool in ``commands`` as a symlink to ``target`` in ``tools_dir``.

    This is how a single dispatching executable provides the whole hook tool
    vocabulary to an :class:`~charmhook.runner.ExecRunner` pointed at ``tools_dir``.

    Returns:
        The names of the tools whose links were created or replaced.
    """
    tools_path = pathlib.Path(tools_dir)
    tools_path.mkdir(parents=True, exist_ok=True)
    changed: list[str] = []
    for cmd in commands:
        if _ensure_link(tools_path / cmd, os.fspath(target)):
            changed.append(cmd)
    return changed
