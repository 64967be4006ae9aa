"""
Migration source loader.

Reads a migration set from a declarative document (YAML by default,
JSON when a JSON parser is supplied) and turns each record into a
Migration.

Source format:
    migrations:
      - version: 1
        name: create_users
        description: Users table
        reversible: true
        up: CREATE TABLE users (id INTEGER PRIMARY KEY);
        down: DROP TABLE users;
      - version: 2
        name: add_email
        reversible: false
        up: {file: sql/002_add_email.sql}

A bare top-level list of records is accepted as well. Relative file
paths are resolved against the directory holding the source.
"""

import logging
import os
from typing import Any, Callable, List, Optional

import yaml

from dbmigrate.errors import LoadError
from dbmigrate.interfaces import FileSystem

from .migration import FileSql, InlineSql, Migration, SqlScript

logger = logging.getLogger(__name__)

Parser = Callable[[str], Any]


class MigrationLoader:
    """
    Loads and sorts the migration set.

    Responsibilities:
    - Read the migration source through a FileSystem
    - Parse it into records
    - Build Migration objects and sort them by version

    Does NOT check the version sequence or file references (see
    MigrationValidator). Duplicate versions are kept so that validation
    can report them.

    Example:
        >>> loader = MigrationLoader(LocalFileSystem(), 'migrations.yaml')
        >>> migrations = await loader.load()
        >>> print(migrations)
        [<Migration(v1, create_users)>, <Migration(v2, add_email)>]
    """

    def __init__(self, fs: FileSystem, path: str,
                 parser: Optional[Parser] = None):
        """
        Initialize migration loader.

        Args:
            fs: File system used to read the source
            path: Path to the migration source
            parser: Callable turning text into data (default yaml.safe_load)
        """
        self.fs = fs
        self.path = path
        self.parser = parser or yaml.safe_load
        self.base_dir = os.path.dirname(path)

    async def load(self) -> List[Migration]:
        """
        Load the migration set, sorted ascending by version.

        Returns:
            List of Migration objects

        Raises:
            LoadError: If the source cannot be read, parsed or interpreted
        """
        try:
            content = await self.fs.read_text_file(self.path)
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Failed to load migrations: {e}") from e

        try:
            document = self.parser(content)
        except Exception as e:
            raise LoadError(f"Failed to load migrations: {e}") from e

        records = self._extract_records(document)
        migrations = [
            self._build_migration(record, index)
            for index, record in enumerate(records)
        ]
        migrations.sort(key=lambda m: m.version)

        logger.debug('Loaded %d migrations from %s', len(migrations), self.path)
        return migrations

    def _extract_records(self, document: Any) -> List[Any]:
        if isinstance(document, dict):
            if 'migrations' not in document:
                raise LoadError(
                    f"Failed to load migrations: {self.path} has no 'migrations' key"
                )
            records = document['migrations']
        else:
            records = document

        if records is None and isinstance(document, dict):
            return []
        if not isinstance(records, list):
            raise LoadError(
                f"Failed to load migrations: expected a list of migrations in "
                f"{self.path}, got {type(records).__name__}"
            )
        return records

    def _build_migration(self, record: Any, index: int) -> Migration:
        """
        Convert one parsed record into a Migration.

        Raises:
            LoadError: If required fields are missing or mistyped
        """
        if not isinstance(record, dict):
            raise LoadError(
                f"Failed to load migrations: entry {index} is not a mapping"
            )

        version = record.get('version')
        if isinstance(version, bool) or not isinstance(version, int):
            raise LoadError(
                f"Failed to load migrations: entry {index} has invalid "
                f"version {version!r}"
            )

        name = record.get('name')
        if not isinstance(name, str) or not name:
            raise LoadError(
                f"Failed to load migrations: migration {version} has no name"
            )

        description = record.get('description')
        if description is None:
            description = ''
        elif not isinstance(description, str):
            description = str(description)

        reversible = record.get('reversible', False)
        if not isinstance(reversible, bool):
            raise LoadError(
                f"Failed to load migrations: migration {version} has "
                f"non-boolean reversible {reversible!r}"
            )

        if record.get('up') is None:
            raise LoadError(
                f"Failed to load migrations: migration {version} has no 'up' script"
            )
        up = self._parse_script(record['up'], version, 'up')
        down = None
        if record.get('down') is not None:
            down = self._parse_script(record['down'], version, 'down')

        return Migration(
            version=version,
            name=name,
            up=up,
            down=down,
            description=description,
            reversible=reversible,
        )

    def _parse_script(self, value: Any, version: int, direction: str) -> SqlScript:
        if isinstance(value, str):
            return InlineSql(value)

        if isinstance(value, dict) and set(value) == {'file'} \
                and isinstance(value['file'], str) and value['file']:
            return FileSql(self._resolve_path(value['file']))

        raise LoadError(
            f"Failed to load migrations: migration {version} '{direction}' must "
            f"be SQL text or {{file: path}}, got {value!r}"
        )

    def _resolve_path(self, path: str) -> str:
        if os.path.isabs(path) or not self.base_dir:
            return path
        return os.path.join(self.base_dir, path)
