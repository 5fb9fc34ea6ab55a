"""Core audit workflow.

Provides:
- Scan result models and the first-valid-match rule
- Scan data store with atomic full-overwrite persistence
- Directory tree and component ranking views
- Filter state machine with filtered counts and visibility
- Append-only audit ledger
- Audit summary and preferences
"""

from .errors import (
    ExportCancelledError,
    ExportError,
    ExportInProgressError,
    LoadError,
    NoAuditableMatchError,
    PersistenceError,
    ScanAuditError,
)
from .filters import FilterMode, FilterState, ViewContext, ViewMode
from .ledger import AuditAck, AuditLedger
from .models import AuditDecision, FileStatus, Match, Outcome, derive_status, first_valid_match
from .store import ScanDataStore
from .summary import AuditSummary, summarize
from .views import ComponentRankEntry, DirectoryNode, build_component_ranking, build_directory_tree

__all__ = [
    "ExportCancelledError",
    "ExportError",
    "ExportInProgressError",
    "LoadError",
    "NoAuditableMatchError",
    "PersistenceError",
    "ScanAuditError",
    "FilterMode",
    "FilterState",
    "ViewContext",
    "ViewMode",
    "AuditAck",
    "AuditLedger",
    "AuditDecision",
    "FileStatus",
    "Match",
    "Outcome",
    "derive_status",
    "first_valid_match",
    "ScanDataStore",
    "AuditSummary",
    "summarize",
    "ComponentRankEntry",
    "DirectoryNode",
    "build_component_ranking",
    "build_directory_tree",
]
