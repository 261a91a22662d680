# treesync/app.py
"""
Command line entry point: reconcile every configured job in turn.

Each job is compared, its summary printed, and, when nothing needs an
operator's judgement, its plan applied with confirmation.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.prompt import Confirm

from .configuration import (
    ConfigurationBundle,
    Diagnostic,
    SyncJob,
    load_configuration,
)
from .logging_utils import setup_logging
from .report import render_execution_report, render_result
from .sync import ComparisonOptions, PlanExecutor, PlannedOperation, SIZE_TOLERANCE, Synchronizer

logger = logging.getLogger("treesync")

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_CONFIG = 2

STAGE_LABELS = {
    "classify": "Comparing files",
    "rename": "Searching for similar files",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treesync",
        description="Bring target trees into agreement with their source trees.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every job from a configuration file
  treesync --config jobs.yml

  # Compare one ad-hoc pair without touching anything
  treesync --source ./master --target ./backup --dry-run
""",
    )
    parser.add_argument("--config", "-c", type=Path, help="YAML file or directory of YAML files")
    parser.add_argument("--job", "-j", action="append", default=[], help="Only run this job (repeatable)")
    parser.add_argument("--source", type=Path, help="Source root for an ad-hoc job")
    parser.add_argument("--target", type=Path, help="Target root for an ad-hoc job")
    parser.add_argument("--yes", "-y", action="store_true", help="Approve every operation")
    parser.add_argument("--dry-run", "-d", action="store_true", help="Report operations without applying them")
    parser.add_argument("--log-level", type=str, help="Override logging.level")
    return parser


def emit_configuration_report(console: Console, config: ConfigurationBundle) -> None:
    """Print diagnostics so operators can correct issues quickly."""

    if not config.diagnostics:
        console.print(f"[config] Loaded {len(config.files_loaded)} file(s).", markup=False)
        return

    console.print("[config] Diagnostics:", markup=False)
    for diag in config.diagnostics:
        prefix = diag.source or config.config_path or "defaults"
        console.print(f"  - ({diag.level.upper()}) {diag.message} [{prefix}]", markup=False)


def select_jobs(config: ConfigurationBundle, args: argparse.Namespace) -> List[SyncJob]:
    jobs = config.jobs()
    if args.job:
        wanted = set(args.job)
        unknown = wanted - {job.name for job in jobs}
        for name in sorted(unknown):
            logger.warning("Job '%s' is not configured", name)
        jobs = [job for job in jobs if job.name in wanted]
    if args.source is not None and args.target is not None:
        jobs.append(SyncJob(name="cli", source_path=args.source, target_path=args.target))
    return jobs


def run_job(
    job: SyncJob,
    config: ConfigurationBundle,
    console: Console,
    *,
    assume_yes: bool = False,
    dry_run: bool = False,
) -> bool:
    """Compare one job and apply its plan. Returns False when any operation failed."""

    comparison = config.section("comparison")
    synchronizer = Synchronizer(
        job.source_path,
        job.target_path,
        exclude_patterns=config.section("scan").get("exclude_patterns", []),
        size_tolerance=int(comparison.get("size_tolerance", SIZE_TOLERANCE)),
    )
    options: ComparisonOptions = config.comparison_options()
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        tasks: Dict[str, TaskID] = {}

        def _advance(stage: str, done: int, total: int) -> None:
            if stage not in tasks:
                label = f"{escape(job.name)}: {STAGE_LABELS.get(stage, stage)}"
                tasks[stage] = progress.add_task(label, total=total)
            progress.update(tasks[stage], completed=done)

        result = synchronizer.run(options, progress=_advance)
    print(render_result(result, job.name), end="")

    if result.has_blockers:
        logger.warning(
            "Job %s has %d conflicted and %d different file(s); plan not applied",
            job.name,
            len(result.conflicted),
            len(result.different),
        )
        return True

    operations = result.plan()
    if not operations:
        console.print(f"[{job.name}] Nothing to do.", markup=False)
        return True

    if not assume_yes and not Confirm.ask("Proceed?", console=console, default=False):
        logger.info("Job %s cancelled by operator", job.name)
        return True

    confirm_each = bool(config.section("execution").get("confirm_each", True))

    def _confirm(operation: PlannedOperation) -> bool:
        return Confirm.ask(operation.describe(), console=console, default=False)

    executor = PlanExecutor(
        confirm=None if assume_yes or not confirm_each else _confirm,
        dry_run=dry_run or bool(config.section("execution").get("dry_run", False)),
    )
    report = executor.execute(operations)
    print(render_execution_report(report), end="")
    return report.success


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for `python -m treesync`."""

    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.source is None) != (args.target is None):
        parser.error("--source and --target must be given together")
    console = Console()
    config = load_configuration(args.config)

    logging_cfg = config.section("logging")
    log_level_name = (
        args.log_level
        or os.environ.get("TREESYNC_LOG_LEVEL")
        or logging_cfg.get("level")
        or "WARNING"
    ).upper()
    log_path = setup_logging(
        Path(logging_cfg.get("directory", ".treesync")).expanduser(),
        log_level_name,
        structured=bool(logging_cfg.get("structured", False)),
    )
    config.log_path = log_path
    logger.info("Logging initialized at %s", log_path)

    if config.status != "ready":
        config.diagnostics.append(
            Diagnostic(level="error", message=f"Configuration is {config.status}; no job was run.")
        )
    emit_configuration_report(console, config)
    if config.status != "ready":
        return EXIT_CONFIG

    jobs = select_jobs(config, args)
    if not jobs:
        console.print("[treesync] No jobs to run.", markup=False)
        return EXIT_OK

    exit_code = EXIT_OK
    for job in jobs:
        try:
            if not run_job(job, config, console, assume_yes=args.yes, dry_run=args.dry_run):
                exit_code = EXIT_JOB_FAILED
        except Exception as exc:
            logger.exception("Job %s failed", job.name)
            console.print(f"[{job.name}] Unhandled exception occurred: {exc}", markup=False)
            exit_code = EXIT_JOB_FAILED

    return exit_code


__all__ = ["build_parser", "main", "run_job", "select_jobs"]
