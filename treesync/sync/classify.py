"""Partition two enumerated trees into identical/different/missing/extra."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from .compare import SIZE_TOLERANCE, ComparisonFailure, ComparisonOptions, safe_equal
from .entries import FileEntry
from .errors import EnumerationError

logger = logging.getLogger("treesync.sync.classify")

# Called as (stage, done, total) while a run walks its entries.
ProgressCallback = Callable[[str, int, int], None]


@dataclass
class Partition:
    """Per-run classification of source and target entries."""

    identical: Set[FileEntry] = field(default_factory=set)
    different: Set[FileEntry] = field(default_factory=set)
    missing: Set[FileEntry] = field(default_factory=set)
    extra: Set[FileEntry] = field(default_factory=set)
    source_index: Dict[str, FileEntry] = field(default_factory=dict)
    target_index: Dict[str, FileEntry] = field(default_factory=dict)
    failures: List[ComparisonFailure] = field(default_factory=list)


def classify(
    source_entries: Iterable[FileEntry],
    target_entries: Iterable[FileEntry],
    options: ComparisonOptions,
    tolerance: int = SIZE_TOLERANCE,
    progress: Optional[ProgressCallback] = None,
) -> Partition:
    """Classify every source entry against the target tree.

    ``identical``, ``different`` and ``missing`` hold source entries; ``extra``
    holds target entries with no source counterpart. ``progress`` is told
    about every source entry as it is classified.
    """
    partition = Partition()
    sources = list(source_entries)
    if progress is not None:
        progress("classify", 0, len(sources))

    for target_entry in target_entries:
        _index(partition.target_index, target_entry, "target")
    partition.extra = set(partition.target_index.values())

    for done, source_entry in enumerate(sources, start=1):
        _index(partition.source_index, source_entry, "source")

        target_entry = partition.target_index.get(source_entry.relative_path)
        if target_entry is None:
            partition.missing.add(source_entry)
        else:
            if safe_equal(source_entry, target_entry, options, partition.failures, "classify", tolerance):
                partition.identical.add(source_entry)
            else:
                partition.different.add(source_entry)
            partition.extra.discard(target_entry)

        if progress is not None:
            progress("classify", done, len(sources))

    logger.info(
        "Classified %d source / %d target files: %d identical, %d different, %d missing, %d extra",
        len(partition.source_index),
        len(partition.target_index),
        len(partition.identical),
        len(partition.different),
        len(partition.missing),
        len(partition.extra),
    )
    return partition


def _index(index: Dict[str, FileEntry], entry: FileEntry, side: str) -> None:
    if entry.relative_path in index:
        raise EnumerationError(
            f"Duplicate {side} path '{entry.relative_path}'.",
            path=entry.full_path,
        )
    index[entry.relative_path] = entry


__all__ = ["Partition", "ProgressCallback", "classify"]
