"""File identities and directory enumeration."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterator, List, Optional, Sequence

from .errors import ContentReadError, EnumerationError, MetadataError

logger = logging.getLogger("treesync.sync.entries")


@dataclass(eq=False)
class FileEntry:
    """A file under a root, identified by its relative path only.

    Two entries with the same relative path compare equal even when they come
    from different roots or hold different bytes. The size is resolved on
    first access and cached for the lifetime of the entry.
    """

    relative_path: str  # "/"-separated, relative to root
    root: Path
    _size: Optional[int] = field(default=None, init=False, repr=False)

    @classmethod
    def with_size(cls, relative_path: str, root: Path, size: int) -> "FileEntry":
        """Build an entry whose size is already known; no stat is made."""
        entry = cls(relative_path, root)
        entry._size = size
        return entry

    @property
    def name(self) -> str:
        return PurePosixPath(self.relative_path).name

    @property
    def full_path(self) -> Path:
        return self.root.joinpath(*PurePosixPath(self.relative_path).parts)

    @property
    def size(self) -> int:
        if self._size is None:
            try:
                self._size = self.full_path.stat().st_size
            except OSError as exc:
                raise MetadataError(
                    f"Unable to read size of '{self.full_path}': {exc}",
                    path=self.full_path,
                ) from exc
        return self._size

    def open(self) -> BinaryIO:
        """Open the file for binary reading. The caller closes the stream."""
        try:
            return open(self.full_path, "rb")
        except OSError as exc:
            raise ContentReadError(
                f"Unable to open '{self.full_path}': {exc}",
                path=self.full_path,
            ) from exc

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileEntry):
            return NotImplemented
        return self.relative_path == other.relative_path

    def __hash__(self) -> int:
        return hash(self.relative_path)

    def __str__(self) -> str:
        return self.relative_path


class TreeScanner:
    """Enumerates the regular files below a root directory."""

    def __init__(self, root: Path, exclude_patterns: Optional[Sequence[str]] = None):
        self.root = Path(root)
        self.exclude_patterns = list(exclude_patterns) if exclude_patterns else []

    def scan(self) -> Iterator[FileEntry]:
        """Yield one entry per file, sorted by relative path."""
        if not self.root.exists():
            raise EnumerationError(f"Root '{self.root}' does not exist.", path=self.root)
        if not self.root.is_dir():
            raise EnumerationError(f"Root '{self.root}' is not a directory.", path=self.root)

        try:
            paths = sorted(self._iter_files())
        except OSError as exc:
            raise EnumerationError(f"Unable to list '{self.root}': {exc}", path=self.root) from exc

        logger.debug("Enumerated %d files under %s", len(paths), self.root)
        for rel_path in paths:
            yield FileEntry(relative_path=rel_path, root=self.root)

    def _iter_files(self) -> Iterator[str]:
        for file_path in self.root.rglob("*"):
            if not file_path.is_file():
                continue

            rel_path = file_path.relative_to(self.root).as_posix()
            if self._is_excluded(rel_path):
                continue

            yield rel_path

    def _is_excluded(self, rel_path: str) -> bool:
        """Check if a path matches any exclude pattern."""
        for pattern in self.exclude_patterns:
            if fnmatch.fnmatch(rel_path, pattern):
                return True
            # Also check just the filename
            if fnmatch.fnmatch(PurePosixPath(rel_path).name, pattern):
                return True
        return False


def scan_tree(root: Path, exclude_patterns: Optional[Sequence[str]] = None) -> List[FileEntry]:
    """Return every file entry under ``root``."""
    return list(TreeScanner(root, exclude_patterns).scan())


__all__ = ["FileEntry", "TreeScanner", "scan_tree"]
