"""Tests for rename candidate conflict detection and resolution."""

from __future__ import annotations

from pathlib import Path

from treesync.sync import ConflictResolver, FileEntry

SRC = Path("/src")
DST = Path("/dst")


def _m(rel_path: str) -> FileEntry:
    return FileEntry.with_size(rel_path, SRC, 1)


def _e(rel_path: str) -> FileEntry:
    return FileEntry.with_size(rel_path, DST, 1)


def test_detect_flags_missing_files_with_several_candidates():
    candidates = [
        (_m("a.txt"), _e("x/a.txt")),
        (_m("a.txt"), _e("y/a.txt")),
        (_m("b.txt"), _e("x/b.txt")),
    ]

    assert ConflictResolver().detect(candidates) == {_m("a.txt")}


def test_conflicted_pairs_are_discarded():
    missing = {_m("a.txt")}
    extra = {_e("x/a.txt"), _e("y/a.txt")}
    candidates = [(_m("a.txt"), _e("x/a.txt")), (_m("a.txt"), _e("y/a.txt"))]

    resolution = ConflictResolver().resolve(candidates, missing, extra)

    assert resolution.conflicted == {_m("a.txt")}
    assert resolution.similar == []
    assert extra == {_e("x/a.txt"), _e("y/a.txt")}
    assert missing == set()


def test_unique_match_is_accepted():
    missing = {_m("report.csv")}
    extra = {_e("archive/report.csv")}
    candidates = [(_m("report.csv"), _e("archive/report.csv"))]

    resolution = ConflictResolver().resolve(candidates, missing, extra)

    assert [(m.relative_path, e.relative_path) for m, e in resolution.similar] == [
        ("report.csv", "archive/report.csv")
    ]
    assert resolution.conflicted == set()
    assert missing == set()
    assert extra == set()


def test_every_missing_file_ends_in_exactly_one_place():
    originally_missing = {_m("a.txt"), _m("b.txt"), _m("c.txt")}
    missing = set(originally_missing)
    extra = {_e("x/a.txt"), _e("y/a.txt"), _e("old/b.txt"), _e("unrelated.bin")}
    candidates = [
        (_m("a.txt"), _e("x/a.txt")),
        (_m("a.txt"), _e("y/a.txt")),
        (_m("b.txt"), _e("old/b.txt")),
    ]

    resolution = ConflictResolver().resolve(candidates, missing, extra)

    similar_sources = {m for m, _ in resolution.similar}
    for entry in originally_missing:
        places = [entry in missing, entry in similar_sources, entry in resolution.conflicted]
        assert places.count(True) == 1, entry

    assert missing == {_m("c.txt")}
    assert extra == {_e("x/a.txt"), _e("y/a.txt"), _e("unrelated.bin")}


def test_resolution_preserves_candidate_order():
    missing = {_m("a.txt"), _m("b.txt")}
    extra = {_e("1/b.txt"), _e("2/a.txt")}
    candidates = [(_m("b.txt"), _e("1/b.txt")), (_m("a.txt"), _e("2/a.txt"))]

    resolution = ConflictResolver().resolve(candidates, missing, extra)

    assert [m.relative_path for m, _ in resolution.similar] == ["b.txt", "a.txt"]


def test_no_candidates_changes_nothing():
    missing = {_m("a.txt")}
    extra = {_e("b.txt")}

    resolution = ConflictResolver().resolve([], missing, extra)

    assert resolution.similar == [] and resolution.conflicted == set()
    assert missing == {_m("a.txt")}
    assert extra == {_e("b.txt")}
