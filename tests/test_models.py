"""Tests for scan result models, line-range parsing and status derivation."""

from datetime import datetime, timezone

import pytest

from scanaudit.core.lines import Ranges, Single, Unbounded, parse_line_spec
from scanaudit.core.models import (
    AuditDecision,
    FileStatus,
    Match,
    Outcome,
    derive_status,
    first_valid_match,
)


# Line-range specifiers


def test_parse_line_spec_all():
    spec = parse_line_spec("all")
    assert isinstance(spec, Unbounded)
    assert spec.ranges == []
    assert spec.render() == "all"


def test_parse_line_spec_single_string_and_number():
    assert parse_line_spec("42") == Single(42)
    assert parse_line_spec(42) == Single(42)
    assert parse_line_spec(7.0) == Single(7)


def test_parse_line_spec_ranges():
    spec = parse_line_spec("10-12, 40")
    assert isinstance(spec, Ranges)
    assert spec.ranges == [(10, 12), (40, 40)]
    assert spec.render() == "10-12,40"
    assert spec.contains(11)
    assert spec.contains(40)
    assert not spec.contains(13)


def test_parse_line_spec_single_range():
    assert parse_line_spec("3-9").ranges == [(3, 9)]


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "10-", "12-3", "1,x", True])
def test_parse_line_spec_absent_or_malformed(raw):
    assert parse_line_spec(raw) is None


# Match model


def test_match_preserves_unknown_fields_and_alias():
    match = Match.model_validate({"id": "file", "file": "a.c", "component": "zlib"})
    assert match.match_type == "file"
    dumped = match.model_dump(mode="json", by_alias=True, exclude_unset=True)
    assert dumped == {"id": "file", "file": "a.c", "component": "zlib"}


def test_match_null_lists_become_empty():
    match = Match.model_validate({"id": "file", "purl": None, "licenses": None, "audit": None})
    assert match.purl == []
    assert match.licenses == []
    assert match.audit == []
    assert match.primary_purl is None
    assert match.latest_decision is None


def test_match_validity():
    assert Match.model_validate({"id": "file"}).is_valid
    assert Match.model_validate({"id": "snippet"}).is_valid
    assert not Match.model_validate({"id": "none"}).is_valid
    assert not Match.model_validate({}).is_valid


def test_concrete_ranges_only_for_snippets():
    snippet = Match.model_validate({"id": "snippet", "oss_lines": "1-3"})
    whole = Match.model_validate({"id": "file", "oss_lines": "1-3"})
    assert snippet.concrete_ranges == [(1, 3)]
    assert whole.concrete_ranges == []


def test_malformed_line_spec_kept_raw():
    match = Match.model_validate({"id": "snippet", "oss_lines": " 5-x "})
    assert match.lines is None
    assert match.concrete_ranges == []
    assert match.line_ranges_text == "5-x"
    dumped = match.model_dump(mode="json", by_alias=True, exclude_unset=True)
    assert dumped["oss_lines"] == " 5-x "


def test_decision_timestamp_with_nanoseconds():
    decision = AuditDecision.model_validate(
        {"decision": "identified", "timestamp": "2025-01-02T03:04:05.123456789Z"}
    )
    assert decision.timestamp == "2025-01-02T03:04:05.123456789Z"
    assert decision.recorded_at.microsecond == 123456
    assert decision.recorded_at.tzinfo is not None


def test_decision_timestamp_unparsable_kept_raw():
    decision = AuditDecision.model_validate({"decision": "ignored", "timestamp": "yesterday"})
    assert decision.timestamp == "yesterday"
    assert decision.recorded_at is None


def test_decision_outcome_normalized():
    decision = AuditDecision(decision="  IGNORED ", timestamp=datetime.now(timezone.utc))
    assert decision.outcome is Outcome.IGNORED
    unknown = AuditDecision(decision="maybe", timestamp=datetime.now(timezone.utc))
    assert unknown.outcome is None


# First valid match and status


def test_first_valid_match_skips_invalid():
    matches = [
        Match.model_validate({"id": "none", "file": "x"}),
        Match.model_validate({"id": "snippet", "file": "y"}),
        Match.model_validate({"id": "file", "file": "z"}),
    ]
    assert first_valid_match(matches).file == "y"
    assert first_valid_match([matches[0]]) is None
    assert first_valid_match(None) is None


def _decided(*decisions):
    return Match.model_validate(
        {
            "id": "file",
            "audit": [
                {"decision": d, "timestamp": "2025-01-01T00:00:00Z"} for d in decisions
            ],
        }
    )


def test_derive_status_uses_latest_decision_only():
    assert derive_status(None) is FileStatus.NO_MATCH
    assert derive_status(_decided()) is FileStatus.PENDING
    assert derive_status(_decided("identified")) is FileStatus.IDENTIFIED
    assert derive_status(_decided("identified", "ignored")) is FileStatus.IGNORED
    assert derive_status(_decided("ignored", "Identified")) is FileStatus.IDENTIFIED
    assert derive_status(_decided("identified", "unknown")) is FileStatus.PENDING


def test_status_labels():
    assert FileStatus.IDENTIFIED.label == "Accepted"
    assert FileStatus.IGNORED.label == "Ignored"
    assert FileStatus.PENDING.label == "Pending"
    assert FileStatus.NO_MATCH.label == "Pending"
