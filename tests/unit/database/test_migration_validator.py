"""
Unit tests for MigrationValidator.

Tests cover:
- Dense 1..N sequence check (gaps, duplicates, wrong start)
- Pre-flight existence check for {file: path} scripts
- Check ordering (sequence before files)
"""

import pytest

from dbmigrate.errors import MissingFileError, SequenceError
from dbmigrate.migrations import FileSql, InlineSql, Migration, MigrationValidator
from tests.fixtures.mock_filesystem import MockFileSystem


def make(version, up=None, down=None):
    return Migration(
        version=version,
        name=f'm{version}',
        up=up or InlineSql('SELECT 1;'),
        down=down,
        reversible=True,
    )


class TestSequenceValidation:
    """Test version sequence rules."""

    @pytest.mark.parametrize('versions', [[], [1], [1, 2], [1, 2, 3, 4, 5]])
    def test_dense_sequences_pass(self, versions):
        """Test 1..N validates."""
        validator = MigrationValidator(MockFileSystem())

        validator.validate_sequence([make(v) for v in versions])

    def test_gap_reports_expected_version(self):
        """Test [1, 3] fails expecting 2."""
        validator = MigrationValidator(MockFileSystem())

        with pytest.raises(SequenceError) as exc_info:
            validator.validate_sequence([make(1), make(3)])

        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 3
        assert 'expected version 2, got 3' in str(exc_info.value)

    def test_must_start_at_one(self):
        """Test [2, 3] fails expecting 1."""
        validator = MigrationValidator(MockFileSystem())

        with pytest.raises(SequenceError) as exc_info:
            validator.validate_sequence([make(2), make(3)])

        assert exc_info.value.expected == 1

    def test_duplicate_version(self):
        """Test [1, 1, 2] fails at the repeated version."""
        validator = MigrationValidator(MockFileSystem())

        with pytest.raises(SequenceError) as exc_info:
            validator.validate_sequence([make(1), make(1), make(2)])

        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1

    def test_zero_version(self):
        """Test version 0 is never valid."""
        validator = MigrationValidator(MockFileSystem())

        with pytest.raises(SequenceError):
            validator.validate_sequence([make(0), make(1)])


class TestFileChecks:
    """Test pre-flight file existence checks."""

    async def test_existing_files_pass(self):
        """Test referenced files that exist validate without being read."""
        fs = MockFileSystem({'up.sql': 'SELECT 1;', 'down.sql': 'SELECT 2;'})
        validator = MigrationValidator(fs)

        await validator.validate([make(1, FileSql('up.sql'), FileSql('down.sql'))])

        assert fs.exists_checks == ['up.sql', 'down.sql']
        assert fs.reads == []

    async def test_missing_up_file(self):
        """Test missing up file raises MissingFileError."""
        validator = MigrationValidator(MockFileSystem())

        with pytest.raises(MissingFileError) as exc_info:
            await validator.validate([make(1, FileSql('missing.sql'))])

        assert exc_info.value.version == 1
        assert exc_info.value.direction == 'up'
        assert exc_info.value.path == 'missing.sql'

    async def test_missing_down_file(self):
        """Test missing down file is caught even though down may never run."""
        fs = MockFileSystem({'up.sql': 'SELECT 1;'})
        validator = MigrationValidator(fs)

        with pytest.raises(MissingFileError) as exc_info:
            await validator.validate([make(1, FileSql('up.sql'), FileSql('gone.sql'))])

        assert exc_info.value.direction == 'down'

    async def test_inline_scripts_need_no_files(self):
        """Test inline SQL never touches the file system."""
        fs = MockFileSystem()

        await MigrationValidator(fs).validate([make(1), make(2, down=InlineSql('SELECT 2;'))])

        assert fs.exists_checks == []

    async def test_sequence_checked_before_files(self):
        """Test a gap is reported before any file is checked."""
        fs = MockFileSystem()
        validator = MigrationValidator(fs)

        with pytest.raises(SequenceError):
            await validator.validate([make(1, FileSql('missing.sql')), make(3)])

        assert fs.exists_checks == []
