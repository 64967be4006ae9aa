"""
Abstract database and file system interfaces.

This module defines the abstract base classes the migration core depends
on. Concrete implementations live in dbmigrate.database (SQLite through
SQLAlchemy) and dbmigrate.filesystem (local disk); tests supply in-memory
fakes.

All I/O methods are async so that asynchronous drivers can sit behind
them without blocking the event loop.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Dict, List, Optional


class Statement(ABC):
    """
    A prepared, parameterized SQL statement.

    Parameters are passed by name and bound to `:name` placeholders.

    Example:
        >>> stmt = db.prepare("SELECT name FROM migrations WHERE version = :version")
        >>> row = await stmt.get(version=3)
        >>> row['name']
        'add_index'
    """

    @abstractmethod
    async def get(self, **params: Any) -> Optional[Dict[str, Any]]:
        """
        Execute the statement and return the first row.

        Returns:
            Row as a dict, or None if the statement produced no rows
        """
        pass

    @abstractmethod
    async def all(self, **params: Any) -> List[Dict[str, Any]]:
        """
        Execute the statement and return all rows.

        Returns:
            List of rows as dicts (empty if no results)
        """
        pass

    @abstractmethod
    async def run(self, **params: Any) -> None:
        """Execute the statement without returning results."""
        pass

    def finalize(self) -> None:
        """Release statement resources. No-op unless the driver needs it."""
        pass


class Database(ABC):
    """
    Abstract interface for a SQL database connection.

    The migration core only needs four capabilities: run a raw script,
    prepare a parameterized statement, open a scoped transaction and
    close the connection.

    Transactions are re-entrant: requesting a transaction while one is
    already open must not start a second physical transaction. The
    function body runs inside the outer unit, which decides commit or
    rollback. Implementations track this with an explicit depth counter
    exposed as `transaction_depth`.

    Example:
        >>> async with db.transaction():
        ...     await db.exec("CREATE TABLE t (id INTEGER)")
        ...     await db.prepare("INSERT INTO t VALUES (:id)").run(id=1)
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize database adapter.

        Args:
            logger: Optional logger instance. If None, creates default logger.
        """
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._transaction_depth = 0

    @abstractmethod
    async def exec(self, sql: str, **params: Any) -> None:
        """
        Execute SQL without returning results.

        Without params, `sql` may contain several statements separated by
        semicolons. With params, `sql` must be a single statement.

        Raises:
            Exception: Driver error if the store rejects the SQL
        """
        pass

    @abstractmethod
    def prepare(self, sql: str) -> Statement:
        """
        Prepare a SQL statement for execution.

        Args:
            sql: Single statement using :name placeholders

        Returns:
            Statement bound to this database
        """
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """
        Open a scoped atomic unit.

        Commits when the block exits normally, rolls back and re-raises
        when it exits with an exception. Nested calls join the outer
        unit.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass

    @property
    def transaction_depth(self) -> int:
        """Number of currently open (logical) transaction scopes."""
        return self._transaction_depth

    @property
    def in_transaction(self) -> bool:
        """True while inside at least one transaction scope."""
        return self._transaction_depth > 0


class FileSystem(ABC):
    """Abstract interface for reading migration sources and SQL files."""

    @abstractmethod
    async def read_text_file(self, path: str) -> str:
        """
        Read a text file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the content is not valid text in the
                expected encoding
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a file exists. Never raises for missing files."""
        pass
