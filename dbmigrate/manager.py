"""
Database manager facade.

Bundles a Database with schema helpers and an optional MigrationExecutor
so applications have a single object to hold on to.
"""
import logging
from typing import Optional

from dbmigrate.interfaces import Database, FileSystem
from dbmigrate.migrations import (
    LATEST,
    MigrationExecutor,
    MigrationPlan,
    MigrationResult,
    MigrationStatus,
)
from dbmigrate.migrations.migration_executor import Target
from dbmigrate.migrations.migration_loader import Parser
from dbmigrate.schema import apply_schema, ensure_migrations_table


class DatabaseManager:
    """
    Unified entry point for schema management and migrations.

    Example:
        manager = DatabaseManager(SQLiteDatabase('app.db'))
        manager.initialize_migrations(LocalFileSystem(), 'migrations.yaml')
        await manager.migrate_to('latest')
        await manager.close()
    """

    def __init__(self, db: Database):
        self.db = db
        self.migration_executor: Optional[MigrationExecutor] = None
        self.logger = logging.getLogger(__name__)

    def initialize_migrations(
        self,
        fs: FileSystem,
        migrations_path: str = './migrations.yaml',
        parser: Optional[Parser] = None,
    ) -> MigrationExecutor:
        """
        Create the migration executor for this database.

        Args:
            fs: File system adapter for the migration source
            migrations_path: Path to the migration source
            parser: Source parser (default yaml.safe_load)

        Returns:
            The executor, also kept on the manager
        """
        self.migration_executor = MigrationExecutor(
            self.db, fs, migrations_path, parser=parser
        )
        return self.migration_executor

    def _executor(self) -> MigrationExecutor:
        if self.migration_executor is None:
            raise RuntimeError(
                'Migration executor not initialized. '
                'Call initialize_migrations() first.'
            )
        return self.migration_executor

    async def apply_schema(self, schema_sql: str) -> None:
        await apply_schema(self.db, schema_sql)

    async def ensure_migrations_table(self) -> None:
        await ensure_migrations_table(self.db)

    async def get_current_version(self) -> int:
        return await self._executor().ledger.current_version()

    async def get_latest_version(self) -> int:
        return await self._executor().get_latest_version()

    async def migrate_to(self, target: Target = LATEST) -> MigrationResult:
        return await self._executor().migrate_to(target)

    async def plan(self, target: Target = LATEST) -> MigrationPlan:
        return await self._executor().plan(target)

    async def status(self) -> MigrationStatus:
        return await self._executor().status()

    def transaction(self):
        """Open a transaction on the underlying database."""
        return self.db.transaction()

    @property
    def database(self) -> Database:
        return self.db

    async def close(self) -> None:
        await self.db.close()
