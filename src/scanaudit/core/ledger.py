"""Append-only audit ledger.

Validates an accept/ignore action, appends the decision to the history of the
path's first valid match and persists the whole store. Calls are serialized
by a lock so that two decisions can never interleave their saves.

Provides:
- AuditAck: Acknowledgement of a recorded decision
- AuditLedger: record_decision plus accept/ignore/quick variants
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from .errors import NoAuditableMatchError, PersistenceError
from .models import AuditDecision, FileStatus, Outcome, derive_status
from .store import ScanDataStore

logger = structlog.get_logger()


@dataclass
class AuditAck:
    """Result of a successful record_decision call."""

    path: str
    decision: AuditDecision
    status: FileStatus
    history_length: int


class AuditLedger:
    """Records audit decisions against a ScanDataStore."""

    def __init__(self, store: ScanDataStore):
        self.store = store
        self.unsaved = False
        self._lock = threading.Lock()

    def record_decision(
        self, path: str, outcome: Outcome | str, comment: str | None = None
    ) -> AuditAck:
        """Append a decision to a path's first valid match and save.

        Args:
            path: Scanned file path
            outcome: identified or ignored (case and surrounding space ignored)
            comment: Optional assessment; trimmed, omitted when empty

        Returns:
            AuditAck with the appended decision and the new status

        Raises:
            NoAuditableMatchError: Path has no valid match (nothing appended)
            ValueError: Unknown outcome
            PersistenceError: Decision applied in memory but the save failed
        """
        if not isinstance(outcome, Outcome):
            outcome = Outcome(outcome.strip().lower())
        log = logger.bind(path=path, decision=outcome.value)

        with self._lock:
            match = self.store.first_valid_match(path)
            if match is None:
                log.info("audit_rejected_no_match")
                raise NoAuditableMatchError(path)

            fields = {"decision": outcome.value, "timestamp": datetime.now(timezone.utc)}
            assessment = comment.strip() if comment else ""
            if assessment:
                fields["assessment"] = assessment
            decision = AuditDecision(**fields)
            match.append_decision(decision)

            self.unsaved = True
            self._save(log)

            log.info("audit_recorded", history=len(match.audit))
            return AuditAck(
                path=path,
                decision=decision,
                status=derive_status(match),
                history_length=len(match.audit),
            )

    def _save(self, log) -> None:
        try:
            self.store.save()
        except PersistenceError:
            log.error("audit_unsaved")
            raise
        self.unsaved = False

    def accept(self, path: str, comment: str | None = None) -> AuditAck:
        return self.record_decision(path, Outcome.IDENTIFIED, comment)

    def ignore(self, path: str, comment: str | None = None) -> AuditAck:
        return self.record_decision(path, Outcome.IGNORED, comment)

    def quick_accept(self, path: str) -> AuditAck:
        """Accept without a comment."""
        return self.record_decision(path, Outcome.IDENTIFIED)

    def quick_ignore(self, path: str) -> AuditAck:
        """Ignore without a comment."""
        return self.record_decision(path, Outcome.IGNORED)

    def retry_save(self) -> bool:
        """Retry persisting decisions left unsaved by a failed write.

        Returns:
            True if nothing was pending or the save succeeded

        Raises:
            PersistenceError: Save failed again
        """
        with self._lock:
            if not self.unsaved:
                return True
            self._save(logger.bind(source=str(self.store.source)))
            logger.info("audit_save_retried")
            return True
