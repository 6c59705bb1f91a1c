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

"""Structures that keep component state between hook invocations."""

from __future__ import annotations

import logging
import os
import sqlite3
import stat
import tempfile
import urllib.parse
from datetime import timedelta
from pathlib import Path
from typing import Protocol, Union

logger = logging.getLogger(__name__)


class PersistentState(Protocol):
    """The interface of a component state store.

    Each component stores one opaque value under a name of its own choosing.
    Keeping names apart is up to the components; the store doesn't check.
    """

    def save(self, name: str, data: bytes) -> None:
        """Durably associate ``data`` with ``name``, replacing any previous value."""
        ...

    def load(self, name: str) -> bytes | None:
        """Return the data last saved under ``name``, or ``None`` if there is none."""
        ...


def _ensure_permissions(filename: str):
    """Make sure that the file exists and has appropriately secure permissions."""
    mode = stat.S_IRUSR | stat.S_IWUSR
    if os.path.exists(filename):
        try:
            os.chmod(filename, mode)
        except OSError as e:
            raise RuntimeError(f'Unable to adjust access permission of {filename!r}') from e
        return

    try:
        fd = os.open(filename, os.O_CREAT | os.O_EXCL, mode=mode)
    except OSError as e:
        raise RuntimeError(f'Unable to adjust access permission of {filename!r}') from e
    os.close(fd)


class DirectoryStorage:
    """Storage keeping each name in its own file under a directory.

    Writes go to a temporary file that then replaces the old one, so a hook
    killed halfway through a save leaves the previous value in place.
    """

    def __init__(self, path: Union[Path, str]):
        self._path = Path(path)
        if not self._path.exists():
            logger.debug('Initializing local state directory: %s.', self._path)
        self._path.mkdir(mode=0o700, parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _filename(self, name: str) -> Path:
        # Quote everything that isn't safe in a file name, including '/'.
        return self._path / urllib.parse.quote(name, safe='')

    def save(self, name: str, data: bytes) -> None:
        target = self._filename(name)
        fd, tmp = tempfile.mkstemp(prefix='.tmp-', dir=self._path)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except BaseException:
            os.unlink(tmp)
            raise

    def load(self, name: str) -> bytes | None:
        try:
            return self._filename(name).read_bytes()
        except FileNotFoundError:
            return None

    def names(self) -> list[str]:
        """Return the names of all saved values."""
        return sorted(
            urllib.parse.unquote(p.name)
            for p in self._path.iterdir()
            if not p.name.startswith('.')
        )


class SQLiteStorage:
    """Storage using SQLite backend."""

    DB_LOCK_TIMEOUT = timedelta(hours=1)

    def __init__(self, filename: Union[Path, str]):
        # The isolation_level argument is set to None such that the implicit
        # transaction management behavior of the sqlite3 module is disabled.

        if not os.path.exists(str(filename)):
            # sqlite3.connect creates the file silently if it does not exist
            logger.debug('Initializing SQLite local storage: %s.', filename)

        if filename != ':memory:':
            _ensure_permissions(str(filename))
        self._db = sqlite3.connect(
            str(filename), isolation_level=None, timeout=self.DB_LOCK_TIMEOUT.total_seconds()
        )
        self._setup()

    def _setup(self):
        """Make the database ready to be used as storage."""
        # Make sure that the database is locked until the connection is closed,
        # not until the transaction ends.
        self._db.execute('PRAGMA locking_mode=EXCLUSIVE')
        self._db.execute('CREATE TABLE IF NOT EXISTS state (name TEXT PRIMARY KEY, data BLOB)')

    def close(self) -> None:
        """Close the storage backend."""
        self._db.close()

    def save(self, name: str, data: bytes) -> None:
        with self._db:
            self._db.execute('BEGIN')
            self._db.execute('REPLACE INTO state VALUES (?, ?)', (name, sqlite3.Binary(data)))

    def load(self, name: str) -> bytes | None:
        c = self._db.cursor()
        c.execute('SELECT data FROM state WHERE name=?', (name,))
        row = c.fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def names(self) -> list[str]:
        """Return the names of all saved values."""
        c = self._db.execute('SELECT name FROM state ORDER BY name')
        return [row[0] for row in c.fetchall()]
