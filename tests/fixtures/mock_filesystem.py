"""
In-memory file system for loader, validator and executor tests
"""
from typing import Dict, List, Optional

from dbmigrate.interfaces import FileSystem


class MockFileSystem(FileSystem):
    """FileSystem backed by a dict of path -> content"""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = dict(files or {})
        self.reads: List[str] = []
        self.exists_checks: List[str] = []

    def add(self, path: str, content: str) -> None:
        self.files[path] = content

    async def read_text_file(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.files:
            raise FileNotFoundError(f"No such file or directory: '{path}'")
        return self.files[path]

    async def exists(self, path: str) -> bool:
        self.exists_checks.append(path)
        return path in self.files
