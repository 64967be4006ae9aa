"""
Integration tests for VersionLedger on SQLite.

Tests cover:
- Idempotent table creation
- Current version on empty, missing and populated tables
- record/remove/list_applied
- DuplicateVersionError
"""

import pytest

from dbmigrate.errors import DuplicateVersionError
from dbmigrate.migrations import LedgerEntry, VersionLedger


@pytest.fixture
async def ledger(sqlite_db):
    ledger = VersionLedger(sqlite_db)
    await ledger.ensure_table()
    return ledger


class TestLedgerTable:
    """Test table management."""

    async def test_ensure_table_idempotent(self, sqlite_db):
        ledger = VersionLedger(sqlite_db)

        await ledger.ensure_table()
        await ledger.record(1, 'first', None, '1')
        await ledger.ensure_table()

        assert await ledger.current_version() == 1

    async def test_missing_table_reads_as_version_zero(self, sqlite_db):
        """Test reads do not create the table."""
        ledger = VersionLedger(sqlite_db)

        assert await ledger.current_version() == 0
        assert await ledger.list_applied() == []
        assert await ledger.table_exists() is False

    async def test_table_columns(self, ledger, sqlite_db):
        rows = await sqlite_db.prepare("PRAGMA table_info('migrations')").all()

        columns = {row['name']: row for row in rows}
        assert set(columns) == {'version', 'name', 'description', 'applied_at'}
        assert columns['version']['pk'] == 1
        assert columns['applied_at']['type'] == 'TEXT'
        assert columns['applied_at']['notnull'] == 1


class TestLedgerEntries:
    """Test recording and removing versions."""

    async def test_empty_ledger_is_version_zero(self, ledger):
        assert await ledger.current_version() == 0

    async def test_current_version_is_max(self, ledger):
        await ledger.record(1, 'one', 'First', '1000')
        await ledger.record(2, 'two', 'Second', '2000')

        assert await ledger.current_version() == 2

    async def test_list_applied_ascending(self, ledger):
        await ledger.record(2, 'two', None, '2000')
        await ledger.record(1, 'one', 'First', '1000')

        entries = await ledger.list_applied()

        assert entries == [
            LedgerEntry(1, 'one', 'First', '1000'),
            LedgerEntry(2, 'two', None, '2000'),
        ]

    async def test_applied_at_stored_as_text(self, ledger, sqlite_db):
        await ledger.record(1, 'one', None, '1767607200000')

        row = await sqlite_db.prepare(
            'SELECT typeof(applied_at) AS kind FROM migrations'
        ).get()

        assert row['kind'] == 'text'

    async def test_duplicate_version_rejected(self, ledger):
        await ledger.record(1, 'one', None, '1000')

        with pytest.raises(DuplicateVersionError) as exc_info:
            await ledger.record(1, 'again', None, '2000')

        assert exc_info.value.version == 1
        entries = await ledger.list_applied()
        assert entries[0].name == 'one'

    async def test_remove(self, ledger):
        await ledger.record(1, 'one', None, '1000')
        await ledger.record(2, 'two', None, '2000')

        await ledger.remove(2)

        assert await ledger.current_version() == 1

    async def test_remove_absent_is_noop(self, ledger):
        await ledger.remove(42)

        assert await ledger.current_version() == 0

    async def test_writes_join_open_transaction(self, ledger, sqlite_db):
        """Test a rolled-back unit also discards the ledger write."""
        with pytest.raises(RuntimeError):
            async with sqlite_db.transaction():
                await ledger.record(1, 'one', None, '1000')
                raise RuntimeError('abort')

        assert await ledger.current_version() == 0
