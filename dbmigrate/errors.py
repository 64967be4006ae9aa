"""
Migration-specific exceptions.

This module defines the exception hierarchy for loading, planning and
executing migrations, enabling precise error handling at the CLI and in
callers of MigrationExecutor.
"""
from typing import Optional


class MigrationError(Exception):
    """
    Base exception for migration errors.

    All migration-related exceptions inherit from this base class,
    allowing catch-all error handling when needed.
    """
    pass


class ConfigError(MigrationError):
    """
    Configuration is invalid.

    Raised when:
    - Config file cannot be read or parsed
    - Migration target is neither 'latest', 'skip' nor an integer
    """
    pass


class PlanningError(MigrationError):
    """
    Migration run could not be planned or a step was blocked before execution.

    Nothing inside the blocked step has touched the database. Steps
    committed earlier in the same run stay committed.
    """
    pass


class LoadError(PlanningError):
    """
    Migration source is unreadable or unparseable.

    Raised when:
    - Source file cannot be read
    - YAML/JSON parsing fails
    - A migration record is malformed (missing or mistyped fields)

    The underlying exception is chained as __cause__.
    """
    pass


class ValidationError(PlanningError):
    """Base class for migration set consistency failures."""
    pass


class SequenceError(ValidationError):
    """
    Version sequence is not dense or does not start at 1.

    Also covers duplicate versions, which show up as a repeated
    version where the next one was expected.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Migration version sequence error: expected version {expected}, "
            f"got {actual}"
        )


class MissingFileError(ValidationError):
    """Externally referenced SQL file does not exist."""

    def __init__(self, version: int, direction: str, path: str) -> None:
        self.version = version
        self.direction = direction
        self.path = path
        super().__init__(
            f"Migration {version} {direction} script file not found: {path}"
        )


class StepNotFoundError(PlanningError):
    """A version required by the step sequence is not in the migration set."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Migration version {version} not found")


class NotReversibleError(PlanningError):
    """Backward step requested through a migration marked irreversible."""

    def __init__(self, version: int, name: str) -> None:
        self.version = version
        self.name = name
        super().__init__(
            f"Migration {version} ({name}) is not reversible. Cannot rollback."
        )


class NoRollbackScriptError(PlanningError):
    """Backward step requested but the migration defines no down script."""

    def __init__(self, version: int, name: str) -> None:
        self.version = version
        self.name = name
        super().__init__(
            f"Migration {version} ({name}) has no rollback script defined"
        )


class EmptyScriptError(PlanningError):
    """Resolved SQL for the required direction is empty."""

    def __init__(self, version: int, direction: str) -> None:
        self.version = version
        self.direction = direction
        super().__init__(f"Migration {version} has an empty {direction} script")


class ExecutionError(MigrationError):
    """
    The store rejected a step's SQL or its ledger write.

    The atomic unit for that step has been rolled back in full. The
    underlying store error is available as `cause` and __cause__.
    """

    def __init__(
        self,
        version: int,
        direction: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.version = version
        self.direction = direction
        self.cause = cause
        action = 'apply' if direction == 'up' else 'rollback'
        super().__init__(f"Failed to {action} migration {version}: {cause}")


class DuplicateVersionError(MigrationError):
    """Ledger already holds an entry for this version."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Migration version {version} is already recorded")
