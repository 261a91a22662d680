"""Tests for the identical/different/missing/extra partition."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from treesync.sync import ComparisonOptions, EnumerationError, FileEntry, classify, scan_tree


def _tree(root: Path, files: Dict[str, bytes]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, data in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


def _paths(entries) -> set:
    return {entry.relative_path for entry in entries}


def test_partition_is_complete_and_disjoint(tmp_path: Path):
    source = _tree(tmp_path / "src", {
        "same.txt": b"same",
        "changed.txt": b"old",
        "only-src.txt": b"src",
        "dir/nested.txt": b"nested",
    })
    target = _tree(tmp_path / "dst", {
        "same.txt": b"same",
        "changed.txt": b"newer",
        "only-dst.txt": b"dst",
        "dir/nested.txt": b"nested",
    })

    partition = classify(scan_tree(source), scan_tree(target), ComparisonOptions.full_content())

    source_paths = set(partition.source_index)
    target_paths = set(partition.target_index)
    identical = _paths(partition.identical)
    different = _paths(partition.different)
    missing = _paths(partition.missing)
    extra = _paths(partition.extra)

    assert identical | different | missing == source_paths
    assert identical | different | extra == target_paths
    assert not identical & different
    assert not identical & missing
    assert not different & missing
    assert not (identical | different) & extra

    assert identical == {"same.txt", "dir/nested.txt"}
    assert different == {"changed.txt"}
    assert missing == {"only-src.txt"}
    assert extra == {"only-dst.txt"}


def test_without_checks_same_path_is_identical(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"one"})
    target = _tree(tmp_path / "dst", {"a.txt": b"completely different"})

    partition = classify(scan_tree(source), scan_tree(target), ComparisonOptions.none())

    assert _paths(partition.identical) == {"a.txt"}
    assert not partition.different


def test_identical_entries_come_from_the_source_tree(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"one"})
    target = _tree(tmp_path / "dst", {"a.txt": b"one"})

    partition = classify(scan_tree(source), scan_tree(target), ComparisonOptions.full_content())

    (entry,) = partition.identical
    assert entry.root == source


def test_duplicate_relative_paths_are_rejected(tmp_path: Path):
    entries = [FileEntry("a.txt", tmp_path), FileEntry("a.txt", tmp_path)]

    with pytest.raises(EnumerationError):
        classify(entries, [], ComparisonOptions.none())


def test_unreadable_pair_is_different_and_recorded(tmp_path: Path):
    source = _tree(tmp_path / "src", {"a.txt": b"one", "b.txt": b"two"})
    target = _tree(tmp_path / "dst", {"b.txt": b"two"})
    # Target entry that vanished after enumeration
    target_entries = scan_tree(target) + [FileEntry("a.txt", target)]

    partition = classify(scan_tree(source), target_entries, ComparisonOptions.file_length())

    assert _paths(partition.different) == {"a.txt"}
    assert _paths(partition.identical) == {"b.txt"}
    assert len(partition.failures) == 1
    assert partition.failures[0].first == "a.txt"


def test_empty_trees(tmp_path: Path):
    partition = classify([], [], ComparisonOptions.full_content())

    assert not (partition.identical or partition.different or partition.missing or partition.extra)
