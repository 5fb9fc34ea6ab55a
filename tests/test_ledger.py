"""Tests for the append-only audit ledger and its persistence."""

import json
from datetime import timedelta

import pytest

from scanaudit.core.errors import NoAuditableMatchError, PersistenceError
from scanaudit.core.ledger import AuditLedger
from scanaudit.core.models import FileStatus, Outcome
from scanaudit.core.store import ScanDataStore


def test_accept_appends_and_saves(store, scan_file):
    ledger = AuditLedger(store)

    ack = ledger.accept("src/util.c", "  matches upstream  ")

    assert ack.status is FileStatus.IDENTIFIED
    assert ack.history_length == 1
    assert ack.decision.assessment == "matches upstream"
    assert ack.decision.timestamp.endswith("Z")
    assert ack.decision.recorded_at.utcoffset() == timedelta(0)

    saved = json.loads(scan_file.read_text())
    entry = saved["src/util.c"][0]["audit"][0]
    assert entry["decision"] == "identified"
    assert entry["assessment"] == "matches upstream"
    assert "timestamp" in entry


def test_empty_comment_is_omitted(store, scan_file):
    AuditLedger(store).ignore("src/net/socket.c", "   ")

    entry = json.loads(scan_file.read_text())["src/net/socket.c"][0]["audit"][0]
    assert entry["decision"] == "ignored"
    assert "assessment" not in entry


def test_history_is_append_only(store):
    ledger = AuditLedger(store)
    match = store.first_valid_match("vendor/zlib/inflate.c")
    before = [d.model_dump() for d in match.audit]

    ledger.quick_ignore("vendor/zlib/inflate.c")
    ledger.quick_accept("vendor/zlib/inflate.c")

    assert len(match.audit) == len(before) + 2
    assert [d.model_dump() for d in match.audit[: len(before)]] == before
    assert [d.decision for d in match.audit[-2:]] == ["ignored", "identified"]


def test_decision_targets_first_valid_match(store):
    AuditLedger(store).quick_accept("vendor/zlib/inflate.c")

    matches = store.matches("vendor/zlib/inflate.c")
    assert matches[0].audit == []
    assert len(matches[1].audit) == 2


def test_no_auditable_match(store, scan_file):
    original = scan_file.read_text()
    ledger = AuditLedger(store)

    with pytest.raises(NoAuditableMatchError):
        ledger.quick_accept("docs/guide.md")
    with pytest.raises(NoAuditableMatchError):
        ledger.quick_accept("not/scanned.c")

    assert scan_file.read_text() == original
    assert store.matches("docs/guide.md")[0].audit == []


def test_record_decision_accepts_strings(store):
    ack = AuditLedger(store).record_decision("README.md", "ignored")
    assert ack.decision.outcome is Outcome.IGNORED
    assert ack.status is FileStatus.IGNORED


@pytest.mark.parametrize(
    "outcome,expected",
    [("Identified", FileStatus.IDENTIFIED), (" ignored ", FileStatus.IGNORED)],
)
def test_record_decision_normalizes_outcome(store, scan_file, outcome, expected):
    ack = AuditLedger(store).record_decision("src/util.c", outcome)

    assert ack.status is expected
    saved = json.loads(scan_file.read_text())
    assert saved["src/util.c"][0]["audit"][-1]["decision"] == expected.value


def test_record_decision_rejects_unknown_outcome(store, scan_file):
    original = scan_file.read_text()
    with pytest.raises(ValueError):
        AuditLedger(store).record_decision("src/util.c", "maybe")
    assert scan_file.read_text() == original


def test_save_keeps_untouched_timestamps_verbatim(make_store):
    stamp = "2025-01-02T03:04:05.123456789+02:00"
    store = make_store(
        {
            "a/b.c": [{"id": "file"}],
            "x/old.c": [{"id": "file", "audit": [{"decision": "ignored", "timestamp": stamp}]}],
        }
    )

    AuditLedger(store).quick_accept("a/b.c")

    saved = json.loads(store.source.read_text())
    assert saved["x/old.c"][0]["audit"] == [{"decision": "ignored", "timestamp": stamp}]
    assert f'"timestamp": "{stamp}"' in store.source.read_text()


def test_persist_then_reload_yields_same_history(store, scan_file):
    ledger = AuditLedger(store)
    ledger.accept("src/util.c", "first")
    ledger.ignore("src/util.c", "second thoughts")

    reloaded = ScanDataStore.load(scan_file)

    original = store.first_valid_match("src/util.c").audit
    restored = reloaded.first_valid_match("src/util.c").audit
    assert [(d.decision, d.assessment, d.timestamp) for d in restored] == [
        (d.decision, d.assessment, d.timestamp) for d in original
    ]


def test_persistence_failure_keeps_decision_and_retries(tmp_path, scan_document):
    target_dir = tmp_path / "later"
    store = ScanDataStore.load(_write(tmp_path, scan_document))
    store.source = target_dir / "results.json"
    ledger = AuditLedger(store)

    with pytest.raises(PersistenceError):
        ledger.quick_accept("src/util.c")

    assert ledger.unsaved
    assert len(store.first_valid_match("src/util.c").audit) == 1

    target_dir.mkdir()
    assert ledger.retry_save()
    assert not ledger.unsaved

    saved = json.loads((target_dir / "results.json").read_text())
    assert saved["src/util.c"][0]["audit"][0]["decision"] == "identified"


def test_retry_save_without_pending_changes(store):
    assert AuditLedger(store).retry_save()


def _write(tmp_path, document):
    path = tmp_path / "input.json"
    path.write_text(json.dumps(document))
    return path
