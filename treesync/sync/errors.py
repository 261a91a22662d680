"""Error kinds raised while reconciling two trees."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class SyncError(Exception):
    """Base class for treesync errors. Carries the paths involved."""

    def __init__(
        self,
        message: str,
        path: Optional[PathLike] = None,
        other_path: Optional[PathLike] = None,
    ) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.other_path = Path(other_path) if other_path is not None else None


class EnumerationError(SyncError):
    """A root could not be listed."""


class MetadataError(SyncError):
    """A file's size or attributes could not be read."""


class ContentReadError(SyncError):
    """A file could not be opened or read during byte comparison."""


class ExecutionError(SyncError):
    """A delete, copy or move failed while applying a plan."""


__all__ = [
    "SyncError",
    "EnumerationError",
    "MetadataError",
    "ContentReadError",
    "ExecutionError",
]
