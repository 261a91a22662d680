"""Detection and resolution of ambiguous rename candidates."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from .entries import FileEntry
from .rename import CandidatePair

logger = logging.getLogger("treesync.sync.conflict")


@dataclass
class Resolution:
    """Outcome of collapsing candidate pairs into an unambiguous mapping."""

    similar: List[CandidatePair] = field(default_factory=list)
    conflicted: Set[FileEntry] = field(default_factory=set)


class ConflictResolver:
    """Resolves one-missing-to-many-extra ambiguities among rename candidates.

    A missing file with a single candidate is treated as moved. A missing file
    with several candidates is conflicted: all of its pairs are dropped and it
    is reported for the operator. No tie-break is attempted.
    """

    def detect(self, candidates: Sequence[CandidatePair]) -> Set[FileEntry]:
        """Return the missing entries that head more than one candidate pair."""
        counts = Counter(missing_entry for missing_entry, _ in candidates)
        return {entry for entry, count in counts.items() if count > 1}

    def resolve(
        self,
        candidates: Sequence[CandidatePair],
        missing: Set[FileEntry],
        extra: Set[FileEntry],
    ) -> Resolution:
        """Accept unique pairs and discard conflicted ones.

        ``missing`` and ``extra`` are updated in place: every missing entry
        with at least one candidate leaves ``missing``, and the extra entry of
        each accepted pair leaves ``extra``.
        """
        conflicted = self.detect(candidates)
        resolution = Resolution(conflicted=conflicted)

        for missing_entry, extra_entry in candidates:
            if missing_entry not in conflicted:
                extra.discard(extra_entry)
                resolution.similar.append((missing_entry, extra_entry))
            missing.discard(missing_entry)

        if conflicted:
            self._log_conflicts(candidates, conflicted)
        logger.info(
            "Resolved %d similar file(s), %d conflicted",
            len(resolution.similar),
            len(conflicted),
        )
        return resolution

    def _log_conflicts(
        self, candidates: Sequence[CandidatePair], conflicted: Set[FileEntry]
    ) -> None:
        grouped: Dict[FileEntry, List[str]] = defaultdict(list)
        for missing_entry, extra_entry in candidates:
            if missing_entry in conflicted:
                grouped[missing_entry].append(extra_entry.relative_path)
        for missing_entry in sorted(grouped, key=lambda e: e.relative_path):
            logger.warning(
                "Conflicted file %s matches %d candidates: %s",
                missing_entry.relative_path,
                len(grouped[missing_entry]),
                ", ".join(grouped[missing_entry]),
            )


__all__ = ["ConflictResolver", "Resolution"]
