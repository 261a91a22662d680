"""Cross-match missing and extra files to find relocated ones."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from .classify import ProgressCallback
from .compare import SIZE_TOLERANCE, ComparisonFailure, ComparisonOptions, safe_equal
from .entries import FileEntry

logger = logging.getLogger("treesync.sync.rename")

CandidatePair = Tuple[FileEntry, FileEntry]


def find_similar_files(
    missing: Iterable[FileEntry],
    extra: Iterable[FileEntry],
    options: Optional[ComparisonOptions] = None,
    failures: Optional[List[ComparisonFailure]] = None,
    tolerance: int = SIZE_TOLERANCE,
    progress: Optional[ProgressCallback] = None,
) -> List[CandidatePair]:
    """Return every (missing, extra) pair sharing a file name and passing ``options``.

    A missing entry may appear in zero, one or several pairs. Pairs are
    ordered by missing path, then extra path. ``progress`` is told about
    every missing entry once its candidates are collected.
    """
    if options is None:
        options = ComparisonOptions.file_length()

    by_name: Dict[str, List[FileEntry]] = defaultdict(list)
    for extra_entry in extra:
        by_name[extra_entry.name].append(extra_entry)

    ordered_missing = sorted(missing, key=lambda e: e.relative_path)
    if progress is not None:
        progress("rename", 0, len(ordered_missing))

    candidates: List[CandidatePair] = []
    for done, missing_entry in enumerate(ordered_missing, start=1):
        for extra_entry in sorted(by_name.get(missing_entry.name, ()), key=lambda e: e.relative_path):
            if safe_equal(missing_entry, extra_entry, options, failures, "rename", tolerance):
                candidates.append((missing_entry, extra_entry))
        if progress is not None:
            progress("rename", done, len(ordered_missing))

    logger.info("Found %d similar file candidate(s)", len(candidates))
    return candidates


__all__ = ["CandidatePair", "find_similar_files"]
