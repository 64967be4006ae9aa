"""
Local file system adapter.

Reads run in a worker thread so that the event loop is not blocked while
migration sources and SQL files are loaded.
"""
import asyncio
from pathlib import Path

from dbmigrate.interfaces import FileSystem


class LocalFileSystem(FileSystem):
    """FileSystem implementation backed by the local disk."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    async def read_text_file(self, path: str) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding=self.encoding)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).is_file)


def create_file_system() -> LocalFileSystem:
    """Create a local file system adapter."""
    return LocalFileSystem()
