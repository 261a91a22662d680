"""Run orchestration: classify, match renames, resolve conflicts."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .classify import ProgressCallback, classify
from .compare import SIZE_TOLERANCE, ComparisonFailure, ComparisonOptions
from .conflict import ConflictResolver
from .entries import FileEntry, scan_tree
from .executor import OperationKind, PlannedOperation
from .rename import find_similar_files

logger = logging.getLogger("treesync.sync.synchronizer")

Scanner = Callable[[Path, Sequence[str]], Iterable[FileEntry]]


@dataclass
class SyncResult:
    """Outcome of one run. All paths are relative and sorted."""

    source_root: Path
    target_root: Path
    options: ComparisonOptions
    source_files: List[str] = field(default_factory=list)
    target_files: List[str] = field(default_factory=list)
    identical: List[str] = field(default_factory=list)
    different: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)
    similar: List[Tuple[str, str]] = field(default_factory=list)
    conflicted: List[str] = field(default_factory=list)
    failures: List[ComparisonFailure] = field(default_factory=list)
    duration: float = 0.0

    @property
    def has_blockers(self) -> bool:
        """Conflicted or different files need an operator before applying."""
        return bool(self.conflicted or self.different)

    @property
    def has_changes(self) -> bool:
        return bool(self.missing or self.extra or self.similar)

    def plan(self) -> List[PlannedOperation]:
        """Deletes for extras, copies for missing files, moves for similar pairs."""
        operations: List[PlannedOperation] = []
        for rel_path in self.extra:
            operations.append(
                PlannedOperation(OperationKind.DELETE, target=_join(self.target_root, rel_path))
            )
        for rel_path in self.missing:
            operations.append(
                PlannedOperation(
                    OperationKind.COPY,
                    source=_join(self.source_root, rel_path),
                    target=_join(self.target_root, rel_path),
                )
            )
        for missing_path, extra_path in self.similar:
            operations.append(
                PlannedOperation(
                    OperationKind.MOVE,
                    source=_join(self.target_root, extra_path),
                    target=_join(self.target_root, missing_path),
                )
            )
        return operations

    def summary(self) -> str:
        lines = [
            "Process summary:",
            f"  - {len(self.source_files)} source files.",
            f"  - {len(self.target_files)} target files.",
            f"  - {len(self.identical)} identical files.",
            f"  - {len(self.different)} different files.",
            f"  - {len(self.missing)} missing files.",
            f"  - {len(self.extra)} extra files.",
            f"  - {len(self.similar)} similar files.",
            f"  - {len(self.conflicted)} conflicted files.",
        ]
        if self.failures:
            lines.append(f"  - {len(self.failures)} comparison failures.")
        lines.append(f"Process ran in {int(self.duration * 1000)} ms.")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_root": str(self.source_root),
            "target_root": str(self.target_root),
            "options": self.options.to_dict(),
            "source_files": list(self.source_files),
            "target_files": list(self.target_files),
            "identical": list(self.identical),
            "different": list(self.different),
            "missing": list(self.missing),
            "extra": list(self.extra),
            "similar": [list(pair) for pair in self.similar],
            "conflicted": list(self.conflicted),
            "failures": [failure.to_dict() for failure in self.failures],
            "duration": self.duration,
        }


class Synchronizer:
    """Reconciles a source tree with a target tree.

    One instance may be run repeatedly; every run enumerates both roots again
    and returns a fresh SyncResult. Concurrent runs on the same instance are
    serialized.
    """

    def __init__(
        self,
        source_path: Path,
        target_path: Path,
        exclude_patterns: Optional[Sequence[str]] = None,
        scanner: Optional[Scanner] = None,
        size_tolerance: int = SIZE_TOLERANCE,
    ):
        self.source_path = Path(source_path)
        self.target_path = Path(target_path)
        self.exclude_patterns = list(exclude_patterns) if exclude_patterns else []
        self.scanner = scanner or scan_tree
        if size_tolerance < 0:
            raise ValueError("size_tolerance must not be negative")
        self.size_tolerance = size_tolerance
        self.resolver = ConflictResolver()
        self.last_result: Optional[SyncResult] = None
        self._lock = threading.Lock()

    def run(
        self,
        options: Optional[ComparisonOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """Classify, match and resolve. EnumerationError propagates.

        ``progress`` receives ("classify", done, total) and then
        ("rename", done, total) updates.
        """
        if options is None:
            options = ComparisonOptions.none()

        with self._lock:
            started = time.perf_counter()
            logger.info("Comparing %s with %s", self.source_path, self.target_path)

            source_entries = self.scanner(self.source_path, self.exclude_patterns)
            target_entries = self.scanner(self.target_path, self.exclude_patterns)

            partition = classify(
                source_entries, target_entries, options, self.size_tolerance, progress
            )
            candidates = find_similar_files(
                partition.missing,
                partition.extra,
                ComparisonOptions.file_length(),
                partition.failures,
                self.size_tolerance,
                progress,
            )
            resolution = self.resolver.resolve(candidates, partition.missing, partition.extra)

            result = SyncResult(
                source_root=self.source_path,
                target_root=self.target_path,
                options=options,
                source_files=sorted(partition.source_index),
                target_files=sorted(partition.target_index),
                identical=_paths(partition.identical),
                different=_paths(partition.different),
                missing=_paths(partition.missing),
                extra=_paths(partition.extra),
                similar=[(m.relative_path, e.relative_path) for m, e in resolution.similar],
                conflicted=_paths(resolution.conflicted),
                failures=list(partition.failures),
                duration=time.perf_counter() - started,
            )
            self.last_result = result

        logger.info("Run finished in %.3fs\n%s", result.duration, result.summary())
        return result


def _paths(entries: Iterable[FileEntry]) -> List[str]:
    return sorted(entry.relative_path for entry in entries)


def _join(root: Path, rel_path: str) -> Path:
    return root.joinpath(*PurePosixPath(rel_path).parts)


__all__ = ["SyncResult", "Synchronizer"]
