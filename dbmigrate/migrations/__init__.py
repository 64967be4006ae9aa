"""
Versioned schema migrations.

This package provides:
- Migration, InlineSql, FileSql: Data model for the migration source
- LedgerEntry: Data model for applied migrations
- MigrationLoader: Reading and sorting the migration source
- MigrationValidator: Sequence and file-reference checks
- VersionLedger: The migrations table inside the target database
- MigrationExecutor: Planning and per-step transactional execution
- MigrationPlan, MigrationResult, MigrationStatus: Results of the above
"""

from .migration import DOWN, UP, FileSql, InlineSql, LedgerEntry, Migration
from .migration_loader import MigrationLoader
from .migration_validator import MigrationValidator
from .migration_ledger import VersionLedger
from .migration_executor import (
    LATEST,
    ExecutorState,
    MigrationExecutor,
    MigrationPlan,
    MigrationResult,
    MigrationStatus,
    MigrationStep,
    compute_steps,
    format_status,
)

__all__ = [
    'UP',
    'DOWN',
    'LATEST',
    'Migration',
    'InlineSql',
    'FileSql',
    'LedgerEntry',
    'MigrationLoader',
    'MigrationValidator',
    'VersionLedger',
    'MigrationExecutor',
    'ExecutorState',
    'MigrationPlan',
    'MigrationResult',
    'MigrationStatus',
    'MigrationStep',
    'compute_steps',
    'format_status',
]
