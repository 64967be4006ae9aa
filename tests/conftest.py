"""
Global pytest configuration and fixtures for dbmigrate tests

Provides:
- In-memory database, ledger and file system doubles
- Executor factory over the doubles
- Real SQLite database and migration sources on temporary files
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import pytest

from dbmigrate.database import SQLiteDatabase
from dbmigrate.migrations import MigrationExecutor
from tests.fixtures.migration_sources import migrations_yaml
from tests.fixtures.mock_database import MockDatabase, MockLedger
from tests.fixtures.mock_filesystem import MockFileSystem


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Doubles
# ============================================================================

@pytest.fixture
def mock_fs():
    """Empty in-memory file system"""
    return MockFileSystem()


@pytest.fixture
def mock_db():
    """In-memory database double"""
    return MockDatabase()


@pytest.fixture
def mock_ledger(mock_db):
    """Ledger double stored on mock_db"""
    return MockLedger(mock_db)


@pytest.fixture
def make_executor(mock_db, mock_fs, mock_ledger):
    """
    Factory writing a migration source and returning an executor over the doubles.

    Example:
        executor = make_executor([migration(1), migration(2)])
        await executor.migrate_to('latest')
    """

    def _make(records: List[Dict[str, Any]]) -> MigrationExecutor:
        mock_fs.add('migrations.yaml', migrations_yaml(records))
        return MigrationExecutor(
            mock_db,
            mock_fs,
            'migrations.yaml',
            ledger=mock_ledger,
            clock=lambda: '1700000000000',
        )

    return _make


# ============================================================================
# Real SQLite
# ============================================================================

@pytest.fixture
async def sqlite_db(tmp_path):
    """
    Connected SQLiteDatabase on a temporary file.

    Yields:
        SQLiteDatabase: Connected database, closed after the test
    """
    db = SQLiteDatabase(str(tmp_path / 'test.db'))
    await db.connect()

    yield db

    try:
        await db.close()
    except Exception as e:
        logging.warning('Error closing test database: %s', e)


@pytest.fixture
def write_source(tmp_path):
    """
    Write a migration source (and optional SQL files) under tmp_path.

    Returns:
        Callable(records, files=None) -> Path of the YAML source
    """

    def _write(records: List[Dict[str, Any]], files: Dict[str, str] = None) -> Path:
        for relative, content in (files or {}).items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        source = tmp_path / 'migrations.yaml'
        source.write_text(migrations_yaml(records))
        return source

    return _write
