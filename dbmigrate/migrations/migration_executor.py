#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration planner and executor.

Moves a database from its current version to a target version one step
at a time. Each step runs the migration SQL and the ledger write inside
its own transaction, so a failing step leaves no trace while earlier
steps of the same run stay committed. There is no outer
transaction around the whole run: after a failure, the ledger shows how
far the run got and a fresh migrate_to() call replans from there.
"""
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from dbmigrate.errors import (
    EmptyScriptError,
    ExecutionError,
    NoRollbackScriptError,
    NotReversibleError,
    PlanningError,
    StepNotFoundError,
)
from dbmigrate.interfaces import Database, FileSystem

from .migration import DOWN, UP, LedgerEntry, Migration, now_millis
from .migration_ledger import VersionLedger
from .migration_loader import MigrationLoader, Parser
from .migration_validator import MigrationValidator

LATEST = 'latest'

Target = Union[int, str]


class ExecutorState(enum.Enum):
    """Lifecycle of a single migrate_to() call."""
    IDLE = 'idle'
    LOADING = 'loading'
    PLANNING = 'planning'
    STEPPING = 'stepping'
    DONE = 'done'
    ABORTED = 'aborted'


@dataclass(frozen=True)
class MigrationStep:
    """One version to apply ('up') or revert ('down')."""
    version: int
    direction: str


@dataclass(frozen=True)
class MigrationPlan:
    """
    Ordered steps between the current and target version.

    Attributes:
        current: Version recorded in the ledger when planning
        target: Resolved target version
        steps: Steps in execution order (ascending for up, descending for down)
    """
    current: int
    target: int
    steps: Tuple[MigrationStep, ...] = ()

    @property
    def direction(self) -> Optional[str]:
        if self.current < self.target:
            return UP
        if self.current > self.target:
            return DOWN
        return None

    @property
    def versions(self) -> List[int]:
        return [step.version for step in self.steps]


@dataclass
class MigrationResult:
    """
    Result of a completed migrate_to() call.

    Attributes:
        start_version: Version before the run
        target_version: Version after the run
        direction: 'up', 'down' or None if nothing ran
        applied: Versions stepped through, in execution order
        execution_time_ms: Wall time of the whole run
    """
    start_version: int
    target_version: int
    direction: Optional[str] = None
    applied: List[int] = field(default_factory=list)
    execution_time_ms: int = 0


@dataclass(frozen=True)
class MigrationStatus:
    """
    Read-only snapshot of the migration state.

    Attributes:
        current: Highest applied version (0 if none)
        latest: Highest version in the migration source (0 if empty)
        applied: Ledger entries ascending by version
    """
    current: int
    latest: int
    applied: Tuple[LedgerEntry, ...] = ()

    @property
    def is_up_to_date(self) -> bool:
        return self.current == self.latest

    @property
    def is_behind(self) -> bool:
        return self.current < self.latest

    @property
    def is_ahead(self) -> bool:
        return self.current > self.latest

    @property
    def pending(self) -> int:
        return max(self.latest - self.current, 0)


def compute_steps(current: int, target: int) -> Tuple[MigrationStep, ...]:
    """
    Compute the step sequence between two versions.

    Forward runs current+1..target ascending; backward runs
    current..target+1 descending.

    Example:
        >>> [s.version for s in compute_steps(2, 5)]
        [3, 4, 5]
        >>> [s.version for s in compute_steps(5, 2)]
        [5, 4, 3]
    """
    if current < target:
        return tuple(MigrationStep(v, UP) for v in range(current + 1, target + 1))
    if current > target:
        return tuple(MigrationStep(v, DOWN) for v in range(current, target, -1))
    return ()


class MigrationExecutor:
    """
    Plans and executes migrations against one database.

    Holds no persistent state of its own; the migration source is re-read
    and re-validated on every call, and the current version always comes
    from the ledger.

    Attributes:
        db: Target database
        fs: File system for the migration source and SQL files
        migrations_path: Path to the migration source
        ledger: Version ledger inside db
        state: ExecutorState of the most recent call

    Example:
        executor = MigrationExecutor(db, LocalFileSystem(), 'migrations.yaml')
        result = await executor.migrate_to('latest')
        status = await executor.status()
    """

    def __init__(
        self,
        db: Database,
        fs: FileSystem,
        migrations_path: str = './migrations.yaml',
        parser: Optional[Parser] = None,
        ledger: Optional[VersionLedger] = None,
        clock: Callable[[], str] = now_millis,
    ):
        """
        Initialize migration executor.

        Args:
            db: Database the migrations are applied to
            fs: File system adapter
            migrations_path: Path to the migration source
            parser: Source parser (default yaml.safe_load)
            ledger: Ledger override (default VersionLedger(db))
            clock: Returns applied_at values (default epoch milliseconds)
        """
        self.db = db
        self.fs = fs
        self.migrations_path = migrations_path
        self.loader = MigrationLoader(fs, migrations_path, parser)
        self.validator = MigrationValidator(fs)
        self.ledger = ledger or VersionLedger(db)
        self.clock = clock
        self.state = ExecutorState.IDLE
        self.logger = logging.getLogger(__name__)

    async def load_migrations(self) -> List[Migration]:
        """
        Load and validate the migration set.

        Raises:
            LoadError, SequenceError, MissingFileError
        """
        migrations = await self.loader.load()
        await self.validator.validate(migrations)
        return migrations

    async def get_latest_version(self) -> int:
        """Highest version in the validated migration set (0 if empty)."""
        return self._latest(await self.load_migrations())

    @staticmethod
    def _latest(migrations: Sequence[Migration]) -> int:
        return max((m.version for m in migrations), default=0)

    def _resolve_target(self, target: Target, migrations: Sequence[Migration]) -> int:
        if target == LATEST:
            return self._latest(migrations)
        if isinstance(target, bool) or not isinstance(target, int):
            raise PlanningError(
                f"Invalid target version {target!r}: expected an integer or '{LATEST}'"
            )
        if target < 0:
            raise PlanningError(f"Target version cannot be negative: {target}")
        return target

    async def plan(self, target: Target = LATEST) -> MigrationPlan:
        """
        Compute the steps migrate_to(target) would take, without running them.

        Loads and validates the source and reads the ledger. The database
        is not modified.
        """
        migrations = await self.load_migrations()
        current = await self.ledger.current_version()
        actual_target = self._resolve_target(target, migrations)
        return MigrationPlan(current, actual_target, compute_steps(current, actual_target))

    async def migrate_to(self, target: Target = LATEST) -> MigrationResult:
        """
        Migrate the database to a target version.

        The target is not checked against the known versions up front:
        an out-of-range target fails when the first missing step is
        looked up, after any earlier steps have been committed.

        Args:
            target: Version number or 'latest'

        Returns:
            MigrationResult describing what ran

        Raises:
            PlanningError: Load, validation or step-precondition failure
                (LoadError, SequenceError, MissingFileError,
                StepNotFoundError, NotReversibleError,
                NoRollbackScriptError, EmptyScriptError)
            ExecutionError: The store rejected a step; that step was
                rolled back
        """
        start_time = time.time()
        self.state = ExecutorState.LOADING
        try:
            migrations = await self.load_migrations()

            self.state = ExecutorState.PLANNING
            await self.ledger.ensure_table()
            current = await self.ledger.current_version()
            actual_target = self._resolve_target(target, migrations)

            self.logger.info('Current database version: %d', current)
            self.logger.info('Target version: %d', actual_target)

            result = MigrationResult(start_version=current, target_version=actual_target)

            if current == actual_target:
                self.logger.info('Database is already at target version')
                self.state = ExecutorState.DONE
                return result

            steps = compute_steps(current, actual_target)
            result.direction = steps[0].direction
            by_version: Dict[int, Migration] = {m.version: m for m in migrations}

            self.state = ExecutorState.STEPPING
            self.logger.info(
                'Running %s migrations from version %d to %d',
                'forward' if result.direction == UP else 'rollback',
                current,
                actual_target,
            )
            for step in steps:
                migration = by_version.get(step.version)
                if migration is None:
                    raise StepNotFoundError(step.version)

                if step.direction == UP:
                    await self.apply_migration(migration)
                else:
                    await self.rollback_migration(migration)
                result.applied.append(step.version)

            result.execution_time_ms = int((time.time() - start_time) * 1000)
            self.state = ExecutorState.DONE
            self.logger.info(
                'Migration completed. Database is now at version %d (%dms)',
                actual_target,
                result.execution_time_ms,
            )
            return result

        except Exception:
            self.state = ExecutorState.ABORTED
            raise

    async def apply_migration(self, migration: Migration) -> None:
        """
        Apply one migration's up script and record it, atomically.

        Raises:
            EmptyScriptError: If the resolved script is blank
            ExecutionError: If the SQL or the ledger write fails
        """
        sql = await self._resolve(migration, UP)
        self.logger.info('Applying migration %d: %s', migration.version, migration.name)

        step_start = time.time()
        try:
            async with self.db.transaction():
                await self.db.exec(sql)
                await self.ledger.record(
                    migration.version,
                    migration.name,
                    migration.description,
                    self.clock(),
                )
        except Exception as e:
            self.logger.error(
                'Failed to apply migration %d (%s): %s',
                migration.version,
                migration.name,
                e,
            )
            raise ExecutionError(migration.version, UP, e) from e

        self.logger.info(
            'Applied migration %d: %s (%dms)',
            migration.version,
            migration.name,
            int((time.time() - step_start) * 1000),
        )

    async def rollback_migration(self, migration: Migration) -> None:
        """
        Run one migration's down script and remove its ledger entry, atomically.

        Raises:
            NotReversibleError: If the migration is marked irreversible
            NoRollbackScriptError: If no down script is defined
            EmptyScriptError: If the resolved script is blank
            ExecutionError: If the SQL or the ledger delete fails
        """
        if not migration.reversible:
            raise NotReversibleError(migration.version, migration.name)
        if migration.down is None:
            raise NoRollbackScriptError(migration.version, migration.name)

        sql = await self._resolve(migration, DOWN)
        self.logger.info('Rolling back migration %d: %s', migration.version, migration.name)

        step_start = time.time()
        try:
            async with self.db.transaction():
                await self.db.exec(sql)
                await self.ledger.remove(migration.version)
        except Exception as e:
            self.logger.error(
                'Failed to rollback migration %d (%s): %s',
                migration.version,
                migration.name,
                e,
            )
            raise ExecutionError(migration.version, DOWN, e) from e

        self.logger.info(
            'Rolled back migration %d: %s (%dms)',
            migration.version,
            migration.name,
            int((time.time() - step_start) * 1000),
        )

    async def _resolve(self, migration: Migration, direction: str) -> str:
        """
        Read a step's script now, at apply time.

        A file that disappeared since validation, or that cannot be
        decoded, is reported as an ExecutionError for the step; nothing
        has run yet.
        """
        script = migration.script(direction)
        try:
            sql = await script.resolve(self.fs)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(
                'Failed to read %s script for migration %d from %s: %s',
                direction,
                migration.version,
                script.describe(),
                e,
            )
            raise ExecutionError(migration.version, direction, e) from e

        if sql is None or not sql.strip():
            raise EmptyScriptError(migration.version, direction)
        return sql

    async def status(self) -> MigrationStatus:
        """
        Report current, latest and applied versions.

        Pure read: the ledger table is not created if missing.
        """
        current = await self.ledger.current_version()
        applied = await self.ledger.list_applied()
        latest = await self.get_latest_version()
        return MigrationStatus(current=current, latest=latest, applied=tuple(applied))


def format_status(status: MigrationStatus) -> str:
    """
    Render a status report for display.

    Example:
        Migration Status:
        Current version: 1
        Latest available: 2
        Database is behind. Run migrations to upgrade.

        Applied migrations:
          1: create_users (2026-01-05T10:00:00.000+00:00)
    """
    lines = [
        'Migration Status:',
        f'Current version: {status.current}',
        f'Latest available: {status.latest}',
    ]
    if status.is_behind:
        lines.append(
            f'Database is behind by {status.pending} migration(s). '
            f'Run migrations to upgrade.'
        )
    elif status.is_up_to_date:
        lines.append('Database is up to date.')
    else:
        lines.append('Database is ahead of the migration source.')

    if status.applied:
        lines.append('')
        lines.append('Applied migrations:')
        for entry in status.applied:
            applied = entry.applied_datetime.isoformat(timespec='milliseconds')
            lines.append(f'  {entry.version}: {entry.name} ({applied})')

    return '\n'.join(lines)
