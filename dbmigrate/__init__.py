"""
dbmigrate - versioned schema migrations for SQLite.

Typical use:
    db = SQLiteDatabase('app.db')
    executor = MigrationExecutor(db, LocalFileSystem(), 'migrations.yaml')
    await executor.migrate_to('latest')
"""

from .database import SQLiteDatabase, create_database, create_test_database
from .errors import (
    ConfigError,
    DuplicateVersionError,
    EmptyScriptError,
    ExecutionError,
    LoadError,
    MigrationError,
    MissingFileError,
    NoRollbackScriptError,
    NotReversibleError,
    PlanningError,
    SequenceError,
    StepNotFoundError,
    ValidationError,
)
from .filesystem import LocalFileSystem, create_file_system
from .interfaces import Database, FileSystem, Statement
from .manager import DatabaseManager
from .migrations import (
    LATEST,
    Migration,
    MigrationExecutor,
    MigrationStatus,
    VersionLedger,
)
from .schema import SchemaBuilder, apply_schema, create_schema, ensure_migrations_table

__version__ = '1.0.0'

__all__ = [
    'Database',
    'Statement',
    'FileSystem',
    'SQLiteDatabase',
    'LocalFileSystem',
    'create_database',
    'create_test_database',
    'create_file_system',
    'DatabaseManager',
    'LATEST',
    'Migration',
    'MigrationExecutor',
    'MigrationStatus',
    'VersionLedger',
    'SchemaBuilder',
    'apply_schema',
    'create_schema',
    'ensure_migrations_table',
    'MigrationError',
    'ConfigError',
    'PlanningError',
    'LoadError',
    'ValidationError',
    'SequenceError',
    'MissingFileError',
    'StepNotFoundError',
    'NotReversibleError',
    'NoRollbackScriptError',
    'EmptyScriptError',
    'ExecutionError',
    'DuplicateVersionError',
]
