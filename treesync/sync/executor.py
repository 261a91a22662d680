"""Application of a reconciliation plan to the target tree."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import ExecutionError

logger = logging.getLogger("treesync.sync.executor")


class OperationKind(str, Enum):
    """Operations a plan can contain."""
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"


@dataclass(frozen=True)
class PlannedOperation:
    """One filesystem change. ``source`` is unset for deletes."""

    kind: OperationKind
    target: Path
    source: Optional[Path] = None

    def describe(self) -> str:
        if self.kind is OperationKind.DELETE:
            return f"Deleting {self.target}"
        if self.kind is OperationKind.COPY:
            return f"Copying {self.source} to {self.target}"
        return f"Moving {self.source} to {self.target}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source": str(self.source) if self.source is not None else None,
            "target": str(self.target),
        }


@dataclass
class ExecutionReport:
    """What happened to each planned operation."""

    applied: List[PlannedOperation] = field(default_factory=list)
    skipped: List[PlannedOperation] = field(default_factory=list)
    failed: List[ExecutionError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        parts = [f"{len(self.applied)} applied", f"{len(self.skipped)} skipped"]
        if self.failed:
            parts.append(f"{len(self.failed)} failed")
        if self.dry_run:
            parts.append("dry run")
        return ", ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": [op.to_dict() for op in self.applied],
            "skipped": [op.to_dict() for op in self.skipped],
            "failed": [str(err) for err in self.failed],
            "dry_run": self.dry_run,
        }


ConfirmCallback = Callable[[PlannedOperation], bool]


class PlanExecutor:
    """Performs planned operations one by one, asking ``confirm`` for each."""

    def __init__(self, confirm: Optional[ConfirmCallback] = None, dry_run: bool = False):
        self.confirm = confirm
        self.dry_run = dry_run

    def execute(self, operations: Iterable[PlannedOperation]) -> ExecutionReport:
        report = ExecutionReport(dry_run=self.dry_run)

        for operation in operations:
            if self.confirm is not None and not self.confirm(operation):
                logger.info("Skipped: %s", operation.describe())
                report.skipped.append(operation)
                continue

            if self.dry_run:
                logger.info("Dry run: %s", operation.describe())
                report.applied.append(operation)
                continue

            try:
                self._perform(operation)
            except ExecutionError as exc:
                logger.error("%s", exc)
                report.failed.append(exc)
                continue

            logger.info("%s", operation.describe())
            report.applied.append(operation)

        return report

    def _perform(self, operation: PlannedOperation) -> None:
        if operation.source is not None and operation.target.exists():
            raise ExecutionError(
                f"{operation.describe()} failed: target already exists",
                path=operation.source,
                other_path=operation.target,
            )
        try:
            if operation.kind is OperationKind.DELETE:
                operation.target.unlink()
            elif operation.kind is OperationKind.COPY:
                operation.target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(operation.source, operation.target)
            else:
                operation.target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(operation.source), str(operation.target))
        except OSError as exc:
            raise ExecutionError(
                f"{operation.describe()} failed: {exc}",
                path=operation.source or operation.target,
                other_path=operation.target if operation.source else None,
            ) from exc


__all__ = [
    "OperationKind",
    "PlannedOperation",
    "ExecutionReport",
    "PlanExecutor",
]
