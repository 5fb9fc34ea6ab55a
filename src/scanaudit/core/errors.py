"""Error taxonomy for the audit workflow.

Provides:
- ScanAuditError: Base class for every error raised by the package
- LoadError: Scan result could not be read or is structurally invalid (fatal)
- NoAuditableMatchError: Audit action on a path without a valid match
- PersistenceError: Decision applied in memory but not written to disk
- ExportError: CSV report could not be created or written
- ExportInProgressError: Second export requested while one is running
- ExportCancelledError: Export stopped through its cancellation token
- FetchError: Remote content fetch failed
- BranchLookupError: Remote default-branch lookup failed
"""


class ScanAuditError(Exception):
    """Base class for scanaudit errors."""


class LoadError(ScanAuditError):
    """Scan result file is unreadable or not a path -> match-list mapping."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load scan data from {source}: {reason}")


class NoAuditableMatchError(ScanAuditError):
    """No file/snippet match exists for the selected path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"No auditable match for {path!r}: select a file with matches to audit"
        )


class PersistenceError(ScanAuditError):
    """Writing the scan result back to disk failed.

    The decision that triggered the save stays applied in memory, so the
    caller can retry the save or warn that data is unsaved.
    """

    def __init__(self, destination: str, cause: Exception):
        self.destination = destination
        self.cause = cause
        super().__init__(f"Error saving audit decision to {destination}: {cause}")


class ExportError(ScanAuditError):
    """CSV export failed while creating or writing the report."""

    def __init__(self, destination: str, cause: Exception | str):
        self.destination = destination
        self.cause = cause
        super().__init__(f"Export failed for {destination}: {cause}")


class ExportInProgressError(ScanAuditError):
    """An export is already running."""

    def __init__(self):
        super().__init__("An export is already in progress")


class ExportCancelledError(ScanAuditError):
    """Export was cancelled before completion."""

    def __init__(self, processed: int, total: int):
        self.processed = processed
        self.total = total
        super().__init__(f"Export cancelled after {processed} of {total} files")


class FetchError(ScanAuditError):
    """Remote content fetch failed."""


class BranchLookupError(ScanAuditError):
    """Default-branch lookup failed or timed out."""
