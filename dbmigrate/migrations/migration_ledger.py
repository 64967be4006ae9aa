"""
Version ledger stored inside the target database.

The migrations table holds one row per applied migration. Rows are
inserted when a forward step commits and deleted when the matching
backward step commits; they are never updated in place. The current
version is MAX(version), or 0 when nothing has been applied.
"""

import logging
from typing import List, Optional

from dbmigrate.errors import DuplicateVersionError
from dbmigrate.interfaces import Database

from .migration import LedgerEntry

logger = logging.getLogger(__name__)

LEDGER_TABLE = 'migrations'

CREATE_LEDGER_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
        version INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        applied_at TEXT NOT NULL
    )
"""


class VersionLedger:
    """
    Reads and writes the migrations table.

    Writes do not open their own transaction when called inside one;
    the executor wraps record()/remove() together with the migration
    SQL in a single atomic unit.

    Example:
        >>> ledger = VersionLedger(db)
        >>> await ledger.ensure_table()
        >>> await ledger.current_version()
        0
    """

    def __init__(self, db: Database):
        self.db = db

    async def ensure_table(self) -> None:
        """Create the migrations table if it does not exist."""
        await self.db.exec(CREATE_LEDGER_TABLE_SQL)
        logger.debug('Ensured %s table exists', LEDGER_TABLE)

    async def table_exists(self) -> bool:
        """Check for the migrations table without creating it."""
        row = await self.db.prepare(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :name"
        ).get(name=LEDGER_TABLE)
        return row is not None

    async def current_version(self) -> int:
        """
        Return the highest applied version.

        Returns:
            0 if the table is empty or does not exist yet
        """
        if not await self.table_exists():
            return 0
        row = await self.db.prepare(
            f"SELECT MAX(version) AS version FROM {LEDGER_TABLE}"
        ).get()
        if row is None or row['version'] is None:
            return 0
        return int(row['version'])

    async def record(self, version: int, name: str,
                     description: Optional[str], applied_at: str) -> None:
        """
        Insert a ledger entry.

        Raises:
            DuplicateVersionError: If the version is already recorded
        """
        existing = await self.db.prepare(
            f"SELECT version FROM {LEDGER_TABLE} WHERE version = :version"
        ).get(version=version)
        if existing is not None:
            raise DuplicateVersionError(version)

        await self.db.prepare(
            f"INSERT INTO {LEDGER_TABLE} (version, name, description, applied_at) "
            f"VALUES (:version, :name, :description, :applied_at)"
        ).run(
            version=version,
            name=name,
            description=description,
            applied_at=applied_at,
        )
        logger.debug('Recorded migration %d (%s)', version, name)

    async def remove(self, version: int) -> None:
        """Delete a ledger entry. Removing an absent version is a no-op."""
        await self.db.prepare(
            f"DELETE FROM {LEDGER_TABLE} WHERE version = :version"
        ).run(version=version)
        logger.debug('Removed migration %d from ledger', version)

    async def list_applied(self) -> List[LedgerEntry]:
        """Return applied migrations ascending by version."""
        if not await self.table_exists():
            return []
        rows = await self.db.prepare(
            f"SELECT version, name, description, applied_at "
            f"FROM {LEDGER_TABLE} ORDER BY version"
        ).all()
        return [
            LedgerEntry(
                version=int(row['version']),
                name=row['name'],
                description=row['description'],
                applied_at=str(row['applied_at']),
            )
            for row in rows
        ]
