#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQLite database backend for migrations.

Uses SQLAlchemy's asyncio engine with the aiosqlite driver. A single
connection is held for the lifetime of the object so that a migration
run owns the store exclusively.

SQLite's Python driver normally opens transactions lazily and commits
before DDL, which would let CREATE/DROP statements escape a rollback.
The engine is configured to leave transaction control to SQLAlchemy and
to emit an explicit BEGIN, so every statement inside transaction() is
covered by the same commit or rollback.
"""
import logging
import pathlib
import urllib.parse
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import sqlparse
from sqlalchemy import event, make_url, text
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from dbmigrate.interfaces import Database, Statement


def to_database_url(database_url: str) -> str:
    """
    Convert a file path to a SQLAlchemy aiosqlite URL.

    Args:
        database_url: SQLAlchemy URL, file path or ':memory:'

    Returns:
        URL usable with create_async_engine

    Example:
        >>> to_database_url(':memory:')
        'sqlite+aiosqlite:///:memory:'
    """
    if database_url.startswith('sqlite+'):
        return database_url
    if database_url == ':memory:':
        return 'sqlite+aiosqlite:///:memory:'

    path_obj = pathlib.Path(database_url)
    if not path_obj.is_absolute():
        path_obj = path_obj.resolve()
    encoded_path = urllib.parse.quote(path_obj.as_posix(), safe='/:')
    return f'sqlite+aiosqlite:///{encoded_path}'


def database_file(database_url: str) -> Optional[pathlib.Path]:
    """
    Return the file behind a SQLite URL or path.

    Returns:
        Path of the database file, or None for in-memory databases
    """
    database = make_url(to_database_url(database_url)).database
    if not database or database == ':memory:':
        return None
    return pathlib.Path(database)


def split_sql_statements(sql: str) -> List[str]:
    """
    Split a SQL script into individual statements.

    SQLite executes one statement per call, so migration scripts are
    split before execution. Statements that contain nothing but comments
    are dropped.

    Args:
        sql: SQL string with one or more statements

    Returns:
        List of statements in script order
    """
    statements = []
    for stmt in sqlparse.split(sql):
        body = sqlparse.format(stmt, strip_comments=True).strip().rstrip(';')
        if body.strip():
            statements.append(stmt.strip())
    return statements


class SQLiteStatement(Statement):
    """
    Prepared statement bound to a SQLiteDatabase.

    Each call runs inside the database's transaction scope: it joins an
    open transaction, or runs in its own short one otherwise.
    """

    def __init__(self, database: 'SQLiteDatabase', sql: str):
        self.database = database
        self.sql = sql
        self._clause = text(sql)

    async def _execute(self, params: Dict[str, Any]):
        async with self.database.transaction():
            conn = await self.database.get_connection()
            return await conn.execute(self._clause, params)

    async def get(self, **params: Any) -> Optional[Dict[str, Any]]:
        result = await self._execute(params)
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def all(self, **params: Any) -> List[Dict[str, Any]]:
        result = await self._execute(params)
        return [dict(row) for row in result.mappings().all()]

    async def run(self, **params: Any) -> None:
        await self._execute(params)

    def __repr__(self) -> str:
        return f"<SQLiteStatement({self.sql!r})>"


class SQLiteDatabase(Database):
    """
    SQLite implementation of the Database interface.

    Attributes:
        database_url: SQLAlchemy database URL
        engine: SQLAlchemy async engine

    Example:
        db = SQLiteDatabase('app.db')
        await db.connect()
        async with db.transaction():
            await db.exec('CREATE TABLE t (id INTEGER);')
        await db.close()
    """

    def __init__(self, database_url: str = 'app.db',
                 logger: Optional[logging.Logger] = None):
        """
        Initialize database engine.

        Args:
            database_url: SQLAlchemy URL or file path
                SQLite URL: 'sqlite+aiosqlite:///path/to/app.db'
                SQLite path: '/path/to/app.db'
                In-memory: ':memory:'
            logger: Optional logger instance
        """
        super().__init__(logger or logging.getLogger(__name__))
        self.database_url = to_database_url(database_url)
        self.engine = create_async_engine(self.database_url, echo=False)
        self._install_transaction_hooks()
        self._connection: Optional[AsyncConnection] = None

        self.logger.debug('Database engine initialized: %s', self.database_url)

    def _install_transaction_hooks(self) -> None:
        """Hand transaction control from the sqlite driver to SQLAlchemy."""

        @event.listens_for(self.engine.sync_engine, 'connect')
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(self.engine.sync_engine, 'begin')
        def _emit_begin(conn):
            conn.exec_driver_sql('BEGIN')

    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            RuntimeError: If already connected
        """
        if self._connection is not None:
            raise RuntimeError(f"Database already connected: {self.database_url}")

        self._connection = await self.engine.connect()
        self.logger.info('Connected to database: %s', self.database_url)

    async def close(self) -> None:
        """
        Close the connection and dispose of the engine.

        Safe to call multiple times - subsequent calls are no-ops.
        """
        if self._connection is None:
            self.logger.debug('Database already closed or never connected')
            return

        try:
            await self._connection.close()
            await self.engine.dispose()
            self.logger.info('Database connection closed')
        finally:
            self._connection = None
            self._transaction_depth = 0

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def get_connection(self) -> AsyncConnection:
        """Return the owned connection, connecting on first use."""
        if self._connection is None:
            await self.connect()
        return self._connection

    @asynccontextmanager
    async def transaction(self):
        """
        Scoped atomic unit (context manager).

        Commits on normal exit, rolls back and re-raises on exception.
        When a transaction is already open, the block joins it and no
        BEGIN/COMMIT is issued.

        Usage:
            async with db.transaction():
                await db.exec(script)
                await db.prepare(insert_sql).run(version=1)
        """
        if self._transaction_depth > 0:
            self._transaction_depth += 1
            try:
                yield self
            finally:
                self._transaction_depth -= 1
            return

        conn = await self.get_connection()
        self._transaction_depth = 1
        try:
            async with conn.begin():
                yield self
        finally:
            self._transaction_depth = 0

    async def exec(self, sql: str, **params: Any) -> None:
        """
        Execute SQL without returning results.

        Without params the script is split into statements and each one is
        sent to the driver verbatim. With params, sql is one statement
        bound through SQLAlchemy text().
        """
        async with self.transaction():
            conn = await self.get_connection()
            if params:
                await conn.execute(text(sql), params)
                return
            for stmt in split_sql_statements(sql):
                await conn.exec_driver_sql(stmt)

    def prepare(self, sql: str) -> SQLiteStatement:
        return SQLiteStatement(self, sql)


def create_database(path: str) -> SQLiteDatabase:
    """Create a database for a file path or URL."""
    return SQLiteDatabase(path)


def create_test_database() -> SQLiteDatabase:
    """Create an in-memory database for tests."""
    return SQLiteDatabase(':memory:')
