"""Audit totals and progress.

Provides:
- AuditSummary: Totals by match type and status
- summarize: Compute an AuditSummary from a store
"""

from dataclasses import dataclass

from .models import FileStatus, derive_status
from .store import ScanDataStore


@dataclass
class AuditSummary:
    """Totals over every scanned path.

    Attributes:
        total_files: Distinct scanned paths
        file_matches: Paths whose first valid match is a whole-file match
        snippet_matches: Paths whose first valid match is a snippet
        no_match: Paths without any valid match
        pending: Valid paths not yet decided
        identified: Valid paths whose latest decision is identified
        ignored: Valid paths whose latest decision is ignored
    """

    total_files: int = 0
    file_matches: int = 0
    snippet_matches: int = 0
    no_match: int = 0
    pending: int = 0
    identified: int = 0
    ignored: int = 0

    @property
    def matched(self) -> int:
        return self.file_matches + self.snippet_matches

    @property
    def audited(self) -> int:
        return self.identified + self.ignored

    @property
    def progress(self) -> float:
        """Percentage of matched paths that carry a decision."""
        if self.matched == 0:
            return 0.0
        return self.audited / self.matched * 100


def summarize(store: ScanDataStore) -> AuditSummary:
    summary = AuditSummary(total_files=len(store))

    for path in store:
        match = store.first_valid_match(path)
        if match is None:
            summary.no_match += 1
            continue

        if match.match_type == "file":
            summary.file_matches += 1
        else:
            summary.snippet_matches += 1

        status = derive_status(match)
        if status is FileStatus.IDENTIFIED:
            summary.identified += 1
        elif status is FileStatus.IGNORED:
            summary.ignored += 1
        else:
            summary.pending += 1

    return summary
