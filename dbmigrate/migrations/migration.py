"""
Migration data models.

This module defines the core data structures used by the loader,
validator, ledger and executor:
- InlineSql / FileSql: the two forms a migration script can take
- Migration: one versioned schema change from the migration source
- LedgerEntry: one applied migration as recorded in the database
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from dbmigrate.interfaces import FileSystem

UP = 'up'
DOWN = 'down'


@dataclass(frozen=True)
class InlineSql:
    """
    SQL text written directly in the migration source.

    Example:
        >>> script = InlineSql('CREATE TABLE t (id INTEGER);')
        >>> await script.resolve(fs)
        'CREATE TABLE t (id INTEGER);'
    """

    sql: str

    async def resolve(self, fs: FileSystem) -> str:
        return self.sql

    async def precheck(self, fs: FileSystem) -> bool:
        return True

    def describe(self) -> str:
        return 'inline SQL'


@dataclass(frozen=True)
class FileSql:
    """
    SQL stored in a separate file, referenced as `{file: path}`.

    The file is only checked for existence when the migration set is
    validated; its content is read when the step is applied.
    """

    path: str

    async def resolve(self, fs: FileSystem) -> str:
        return await fs.read_text_file(self.path)

    async def precheck(self, fs: FileSystem) -> bool:
        return await fs.exists(self.path)

    def describe(self) -> str:
        return f'file {self.path}'


SqlScript = Union[InlineSql, FileSql]


@dataclass(frozen=True)
class Migration:
    """
    Represents a single versioned schema change.

    Attributes:
        version: Migration version number (1, 2, 3, ...)
        name: Short human label (e.g. 'create_users')
        up: Script applying the migration (forward)
        down: Script reverting the migration (backward), or None
        description: Free-text description
        reversible: If False, the migration can never be rolled back,
            even when a down script is present

    Example:
        >>> migration = Migration(
        ...     version=1,
        ...     name='create_users',
        ...     up=InlineSql('CREATE TABLE users (id INTEGER PRIMARY KEY);'),
        ...     down=InlineSql('DROP TABLE users;'),
        ...     reversible=True,
        ... )
        >>> print(migration)
        <Migration(v1, create_users)>
    """

    version: int
    name: str
    up: SqlScript
    down: Optional[SqlScript] = None
    description: str = ''
    reversible: bool = False

    def script(self, direction: str) -> Optional[SqlScript]:
        """Return the script for 'up' or 'down'."""
        if direction == UP:
            return self.up
        if direction == DOWN:
            return self.down
        raise ValueError(f"Unknown migration direction: {direction!r}")

    def file_references(self):
        """Yield (direction, FileSql) for every externally stored script."""
        for direction, script in ((UP, self.up), (DOWN, self.down)):
            if isinstance(script, FileSql):
                yield direction, script

    def __repr__(self) -> str:
        return f"<Migration(v{self.version}, {self.name})>"


@dataclass(frozen=True)
class LedgerEntry:
    """
    Represents a migration that has been applied to the database.

    This corresponds to a row in the migrations table.

    Attributes:
        version: Migration version number
        name: Migration name at the time it was applied
        description: Migration description at the time it was applied
        applied_at: Epoch milliseconds as a decimal string
    """

    version: int
    name: str
    description: Optional[str]
    applied_at: str

    @property
    def applied_datetime(self) -> datetime:
        """applied_at as an aware UTC datetime."""
        return datetime.fromtimestamp(int(self.applied_at) / 1000, tz=timezone.utc)

    def __repr__(self) -> str:
        return f"<LedgerEntry(v{self.version}, {self.name})>"


def now_millis() -> str:
    """Current time as epoch milliseconds, formatted for applied_at."""
    return str(int(time.time() * 1000))
