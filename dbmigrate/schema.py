"""
Schema helpers.

Utilities for applying a plain schema definition to a database outside
of the versioned migration flow, e.g. for fixtures or throwaway
databases.
"""
import logging
from typing import List

from dbmigrate.interfaces import Database
from dbmigrate.migrations.migration_ledger import VersionLedger

logger = logging.getLogger(__name__)


async def apply_schema(db: Database, schema_sql: str) -> None:
    """
    Execute a schema definition in one transaction.

    Args:
        db: Target database
        schema_sql: One or more statements separated by semicolons

    Raises:
        Exception: Driver error; nothing from schema_sql is kept
    """
    try:
        async with db.transaction():
            await db.exec(schema_sql)
    except Exception as e:
        logger.error('Error applying database schema: %s', e)
        raise


async def ensure_migrations_table(db: Database) -> None:
    """Create the migrations ledger table if it does not exist."""
    await VersionLedger(db).ensure_table()


class SchemaBuilder:
    """
    Fluent builder for schema definitions.

    Example:
        >>> schema = (create_schema()
        ...     .table('CREATE TABLE users (id INTEGER PRIMARY KEY)')
        ...     .index('CREATE INDEX idx_users_id ON users(id)'))
        >>> schema.build()
        'CREATE TABLE users (id INTEGER PRIMARY KEY);\\nCREATE INDEX idx_users_id ON users(id);'
        >>> await schema.apply(db)
    """

    def __init__(self):
        self.statements: List[str] = []

    def _add(self, sql: str) -> 'SchemaBuilder':
        sql = sql.strip().rstrip(';').strip()
        if sql:
            self.statements.append(sql)
        return self

    def table(self, sql: str) -> 'SchemaBuilder':
        """Add a CREATE TABLE statement."""
        return self._add(sql)

    def index(self, sql: str) -> 'SchemaBuilder':
        """Add a CREATE INDEX statement."""
        return self._add(sql)

    def raw(self, sql: str) -> 'SchemaBuilder':
        """Add any other statement."""
        return self._add(sql)

    def build(self) -> str:
        """Return the schema as one semicolon-terminated script."""
        return '\n'.join(f'{stmt};' for stmt in self.statements)

    async def apply(self, db: Database) -> None:
        await apply_schema(db, self.build())


def create_schema() -> SchemaBuilder:
    return SchemaBuilder()
