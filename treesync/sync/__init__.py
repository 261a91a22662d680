"""Tree reconciliation module for treesync."""

from __future__ import annotations

from .errors import ContentReadError, EnumerationError, ExecutionError, MetadataError, SyncError
from .entries import FileEntry, TreeScanner, scan_tree
from .compare import SIZE_TOLERANCE, ComparisonFailure, ComparisonOptions, files_equal, safe_equal
from .classify import Partition, ProgressCallback, classify
from .rename import CandidatePair, find_similar_files
from .conflict import ConflictResolver, Resolution
from .executor import ExecutionReport, OperationKind, PlanExecutor, PlannedOperation
from .synchronizer import SyncResult, Synchronizer

__all__ = [
    # Errors
    "SyncError",
    "EnumerationError",
    "MetadataError",
    "ContentReadError",
    "ExecutionError",
    # Entries
    "FileEntry",
    "TreeScanner",
    "scan_tree",
    # Comparison
    "SIZE_TOLERANCE",
    "ComparisonOptions",
    "ComparisonFailure",
    "files_equal",
    "safe_equal",
    # Classification
    "Partition",
    "ProgressCallback",
    "classify",
    # Renames
    "CandidatePair",
    "find_similar_files",
    # Conflicts
    "ConflictResolver",
    "Resolution",
    # Execution
    "OperationKind",
    "PlannedOperation",
    "ExecutionReport",
    "PlanExecutor",
    # Orchestration
    "SyncResult",
    "Synchronizer",
]
