"""Equality policy for pairs of file entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .entries import FileEntry
from .errors import ContentReadError, MetadataError

logger = logging.getLogger("treesync.sync.compare")

# Files whose sizes differ by exactly this many bytes still qualify for
# content comparison. Origin unconfirmed; observed as a constant-size trailer.
SIZE_TOLERANCE = 38
CHUNK_SIZE = 64 * 1024
DEFAULT_PARTIAL_LENGTH = 1024 * 1024


@dataclass(frozen=True)
class ComparisonOptions:
    """How two entries sharing an identity are judged equal."""

    check_length: bool = False
    check_full_content: bool = False
    check_partial_content: bool = False
    partial_content_max_length: int = DEFAULT_PARTIAL_LENGTH

    def __post_init__(self) -> None:
        if (self.check_full_content or self.check_partial_content) and not self.check_length:
            object.__setattr__(self, "check_length", True)
        if self.partial_content_max_length < 0:
            raise ValueError("partial_content_max_length must not be negative")

    @classmethod
    def none(cls) -> "ComparisonOptions":
        return cls()

    @classmethod
    def file_length(cls) -> "ComparisonOptions":
        return cls(check_length=True)

    @classmethod
    def full_content(cls) -> "ComparisonOptions":
        return cls(check_length=True, check_full_content=True)

    @classmethod
    def partial_content(cls, max_length: int = DEFAULT_PARTIAL_LENGTH) -> "ComparisonOptions":
        return cls(
            check_length=True,
            check_partial_content=True,
            partial_content_max_length=max_length,
        )

    @classmethod
    def from_config(cls, section: Optional[Mapping[str, Any]]) -> "ComparisonOptions":
        raw = section or {}
        return cls(
            check_length=bool(raw.get("check_length", False)),
            check_full_content=bool(raw.get("check_full_content", False)),
            check_partial_content=bool(raw.get("check_partial_content", False)),
            partial_content_max_length=int(
                raw.get("partial_content_max_length", DEFAULT_PARTIAL_LENGTH)
            ),
        )

    @property
    def checks_content(self) -> bool:
        return self.check_full_content or self.check_partial_content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check_length": self.check_length,
            "check_full_content": self.check_full_content,
            "check_partial_content": self.check_partial_content,
            "partial_content_max_length": self.partial_content_max_length,
        }


@dataclass
class ComparisonFailure:
    """A pair whose verdict was forced to "not equal" by an I/O error."""

    stage: str  # "classify" or "rename"
    first: str
    second: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "first": self.first,
            "second": self.second,
            "message": self.message,
        }


def files_equal(
    a: FileEntry,
    b: FileEntry,
    options: ComparisonOptions,
    tolerance: int = SIZE_TOLERANCE,
) -> bool:
    """Decide whether two entries hold the same file under ``options``.

    Raises MetadataError when a size cannot be read and ContentReadError when
    a stream cannot be opened or read. A negative ``tolerance`` is a
    ValueError.
    """
    if tolerance < 0:
        raise ValueError("tolerance must not be negative")
    if not options.check_length:
        return True

    ordered = _size_compatible(a, b, tolerance)
    if ordered is None:
        return False
    if not options.checks_content:
        return True

    first, second = ordered
    length = second.size
    if options.check_partial_content and not options.check_full_content:
        length = min(length, options.partial_content_max_length)
    return _same_prefix(first, second, length)


def safe_equal(
    a: FileEntry,
    b: FileEntry,
    options: ComparisonOptions,
    failures: Optional[List[ComparisonFailure]],
    stage: str,
    tolerance: int = SIZE_TOLERANCE,
) -> bool:
    """files_equal() that records I/O errors and reports the pair as unequal."""
    try:
        return files_equal(a, b, options, tolerance)
    except (MetadataError, ContentReadError) as exc:
        logger.warning(
            "Comparison of %s and %s failed during %s: %s",
            a.full_path,
            b.full_path,
            stage,
            exc,
        )
        if failures is not None:
            failures.append(
                ComparisonFailure(
                    stage=stage,
                    first=a.relative_path,
                    second=b.relative_path,
                    message=str(exc),
                )
            )
        return False


def _size_compatible(
    a: FileEntry, b: FileEntry, tolerance: int
) -> Optional[Tuple[FileEntry, FileEntry]]:
    """Return (larger, smaller) when the sizes qualify for content comparison."""
    size_a, size_b = a.size, b.size
    if size_a == size_b:
        return a, b
    if tolerance and size_a == size_b + tolerance:
        return a, b
    if tolerance and size_b == size_a + tolerance:
        return b, a
    return None


def _same_prefix(first: FileEntry, second: FileEntry, length: int) -> bool:
    remaining = length
    with first.open() as f1, second.open() as f2:
        while remaining > 0:
            size = min(CHUNK_SIZE, remaining)
            chunk1 = _read(f1, size, first)
            chunk2 = _read(f2, size, second)
            if chunk1 != chunk2:
                return False
            if len(chunk1) < size:
                # Truncated since its size was read
                return False
            remaining -= size
    return True


def _read(stream, size: int, entry: FileEntry) -> bytes:
    try:
        return stream.read(size)
    except OSError as exc:
        raise ContentReadError(
            f"Unable to read '{entry.full_path}': {exc}",
            path=entry.full_path,
        ) from exc


__all__ = [
    "SIZE_TOLERANCE",
    "ComparisonOptions",
    "ComparisonFailure",
    "files_equal",
    "safe_equal",
]
