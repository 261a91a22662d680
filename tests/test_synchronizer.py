"""End-to-end tests for the reconciliation pipeline."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Dict

import pytest

from treesync.sync import (
    ComparisonOptions,
    EnumerationError,
    OperationKind,
    Synchronizer,
    scan_tree,
)


def _tree(root: Path, files: Dict[str, bytes]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, data in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


def test_renamed_file_is_resolved_as_similar(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"0123456789", "b.txt": b"x" * 20})
    target = _tree(tmp_path / "dst", {"a.txt": b"0123456789", "old/b.txt": b"x" * 20})

    result = Synchronizer(source, target).run(ComparisonOptions.full_content())

    assert result.identical == ["a.txt"]
    assert result.different == []
    assert result.missing == []
    assert result.extra == []
    assert result.similar == [("b.txt", "old/b.txt")]
    assert result.conflicted == []
    assert result.source_files == ["a.txt", "b.txt"]
    assert result.target_files == ["a.txt", "old/b.txt"]


def test_ambiguous_rename_is_reported_as_conflict(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"abc"})
    target = _tree(tmp_path / "dst", {"x/a.txt": b"abc", "y/a.txt": b"abc"})

    result = Synchronizer(source, target).run()

    assert result.conflicted == ["a.txt"]
    assert result.similar == []
    assert result.extra == ["x/a.txt", "y/a.txt"]
    assert result.missing == []
    assert result.has_blockers


def test_unique_rename_leaves_missing_and_extra(tmp_path: Path):
    source = _tree(tmp_path / "src", {"report.csv": b"1,2,3", "new.txt": b"n"})
    target = _tree(tmp_path / "dst", {"archive/report.csv": b"1,2,3", "stale.log": b"s"})

    result = Synchronizer(source, target).run()

    assert result.similar == [("report.csv", "archive/report.csv")]
    assert result.missing == ["new.txt"]
    assert result.extra == ["stale.log"]
    assert not result.has_blockers


def test_repeated_runs_are_idempotent(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a", "b.txt": b"bb", "c/d.txt": b"d"})
    target = _tree(tmp_path / "dst", {"a.txt": b"z", "moved/b.txt": b"bb", "e.txt": b"e"})
    synchronizer = Synchronizer(source, target)

    first = synchronizer.run(ComparisonOptions.full_content())
    second = synchronizer.run(ComparisonOptions.full_content())

    assert first is not second
    assert synchronizer.last_result is second
    first_dict, second_dict = first.to_dict(), second.to_dict()
    first_dict.pop("duration")
    second_dict.pop("duration")
    assert first_dict == second_dict


def test_run_picks_up_changes_between_runs(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a"})
    target = _tree(tmp_path / "dst", {})
    synchronizer = Synchronizer(source, target)

    assert synchronizer.run().missing == ["a.txt"]
    (target / "a.txt").write_bytes(b"a")
    assert synchronizer.run().identical == ["a.txt"]


def test_missing_root_raises_enumeration_error(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a"})

    with pytest.raises(EnumerationError):
        Synchronizer(source, tmp_path / "nowhere").run()


def test_exclude_patterns_apply_to_both_roots(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a", "a.tmp": b"t"})
    target = _tree(tmp_path / "dst", {"b.tmp": b"t"})

    result = Synchronizer(source, target, exclude_patterns=["*.tmp"]).run()

    assert result.source_files == ["a.txt"]
    assert result.target_files == []


def test_comparison_failures_are_surfaced(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a"})
    target = _tree(tmp_path / "dst", {"a.txt": b"a"})

    def scanner(root, exclude_patterns):
        entries = scan_tree(root, exclude_patterns)
        if root == target:
            (target / "a.txt").unlink()
        return entries

    result = Synchronizer(source, target, scanner=scanner).run(ComparisonOptions.file_length())

    assert result.different == ["a.txt"]
    assert len(result.failures) == 1
    assert "comparison failures" in result.summary()


def test_progress_is_reported_for_each_stage(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a", "b.txt": b"bb", "c.txt": b"c"})
    target = _tree(tmp_path / "dst", {"a.txt": b"a", "moved/b.txt": b"bb"})
    updates = []

    Synchronizer(source, target).run(progress=lambda *update: updates.append(update))

    classify_updates = [u for u in updates if u[0] == "classify"]
    rename_updates = [u for u in updates if u[0] == "rename"]
    assert classify_updates == [("classify", n, 3) for n in range(4)]
    # b.txt and c.txt are missing after classification.
    assert rename_updates == [("rename", n, 2) for n in range(3)]
    assert updates.index(classify_updates[-1]) < updates.index(rename_updates[0])


def test_negative_tolerance_is_rejected(tmp_path: Path):
    with pytest.raises(ValueError):
        Synchronizer(tmp_path, tmp_path, size_tolerance=-1)


def test_plan_lists_deletes_copies_then_moves(tmp_path: Path):
    source = _tree(tmp_path / "src", {"new.txt": b"n", "docs/b.txt": b"bb"})
    target = _tree(tmp_path / "dst", {"stale.txt": b"s", "old/b.txt": b"bb"})

    result = Synchronizer(source, target).run()
    plan = result.plan()

    assert [op.kind for op in plan] == [OperationKind.DELETE, OperationKind.COPY, OperationKind.MOVE]
    assert plan[0].target == target / "stale.txt"
    assert plan[1].source == source / "new.txt"
    assert plan[1].target == target / "new.txt"
    assert plan[2].source == target / "old" / "b.txt"
    assert plan[2].target == target / "docs" / "b.txt"


def test_summary_lists_every_category(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a"})
    target = _tree(tmp_path / "dst", {"a.txt": b"a"})

    summary = Synchronizer(source, target).run().summary()

    for label in ("source", "target", "identical", "different", "missing", "extra", "similar", "conflicted"):
        assert f"{label} files." in summary


def test_concurrent_runs_are_serialized(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"a"})
    target = _tree(tmp_path / "dst", {"a.txt": b"a"})
    active = []
    peak = []
    guard = threading.Lock()

    def slow_scanner(root, exclude_patterns):
        with guard:
            active.append(root)
            peak.append(len(active))
        time.sleep(0.05)
        entries = scan_tree(root, exclude_patterns)
        with guard:
            active.remove(root)
        return entries

    synchronizer = Synchronizer(source, target, scanner=slow_scanner)
    threads = [threading.Thread(target=synchronizer.run) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(peak) == 6
    assert max(peak) == 1
