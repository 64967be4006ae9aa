#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration set validation.

Checks a sorted migration set for structural consistency before anything
is executed:
- Versions form the dense sequence 1..N (no gaps, no duplicates)
- Every SQL file referenced with {file: path} exists

File references are only checked for existence here. Their content is
read later, when the step that needs it is applied.
"""
import logging
from typing import Sequence

from dbmigrate.errors import MissingFileError, SequenceError
from dbmigrate.interfaces import FileSystem

from .migration import Migration

logger = logging.getLogger(__name__)


class MigrationValidator:
    """
    Validates a migration set, failing fast on the first violation.

    Attributes:
        fs: File system used for existence checks

    Example:
        >>> validator = MigrationValidator(LocalFileSystem())
        >>> await validator.validate(migrations)
    """

    def __init__(self, fs: FileSystem):
        self.fs = fs

    async def validate(self, migrations: Sequence[Migration]) -> None:
        """
        Run all checks in order.

        Args:
            migrations: Migrations sorted ascending by version

        Raises:
            SequenceError: On the first gap or duplicate
            MissingFileError: On the first unresolvable file reference
        """
        self.validate_sequence(migrations)
        await self.check_files(migrations)
        logger.debug('Validated %d migrations', len(migrations))

    def validate_sequence(self, migrations: Sequence[Migration]) -> None:
        """
        Check that versions are exactly 1, 2, ..., N.

        Raises:
            SequenceError: Reporting the expected and actual version
        """
        for index, migration in enumerate(migrations):
            expected = index + 1
            if migration.version != expected:
                raise SequenceError(expected, migration.version)

    async def check_files(self, migrations: Sequence[Migration]) -> None:
        """
        Check every externally referenced script exists.

        Raises:
            MissingFileError: Naming version, direction and path
        """
        for migration in migrations:
            for direction, script in migration.file_references():
                if not await script.precheck(self.fs):
                    raise MissingFileError(migration.version, direction, script.path)
