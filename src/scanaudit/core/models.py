"""Pydantic models for scan results and audit decisions.

A scan result is a JSON object mapping each scanned file path to an ordered
list of matches. Only the first ``file`` or ``snippet`` match of a path is
authoritative for display, counting, export and auditing; every component
goes through ``first_valid_match`` to honor that rule.

Provides:
- Outcome: Decision an auditor can record (identified/ignored)
- FileStatus: Derived status of a path (no-match/pending/identified/ignored)
- License: License attached to a match
- AuditDecision: One entry of a match's append-only decision history
- Match: One scanner finding for a file
- ScanResult: Type alias for the path -> matches mapping
- first_valid_match: The first-valid-match rule
- derive_status: Status from the most recent decision
- format_timestamp, parse_timestamp: RFC 3339 timestamp text helpers
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from .lines import LineSpec, parse_line_spec

VALID_MATCH_TYPES = frozenset({"file", "snippet"})

# RFC 3339 timestamps may carry nanoseconds; datetime holds microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")

_DATETIME_ADAPTER = TypeAdapter(datetime)


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 text of a moment in UTC, e.g. ``2025-01-02T03:04:05.123456Z``."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp, truncating sub-microsecond digits.

    Returns None for missing or unparsable values.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    try:
        return _DATETIME_ADAPTER.validate_python(_FRACTION_RE.sub(r"\1", value.strip()))
    except ValidationError:
        return None


class Outcome(str, Enum):
    """Decision recorded by an auditor."""

    IDENTIFIED = "identified"
    IGNORED = "ignored"


class FileStatus(str, Enum):
    """Audit status of a path, derived from its first valid match."""

    NO_MATCH = "no-match"
    PENDING = "pending"
    IDENTIFIED = "identified"
    IGNORED = "ignored"

    @property
    def label(self) -> str:
        """Status label used in reports (Pending/Accepted/Ignored)."""
        if self is FileStatus.IDENTIFIED:
            return "Accepted"
        if self is FileStatus.IGNORED:
            return "Ignored"
        return "Pending"

    @property
    def is_decided(self) -> bool:
        return self in (FileStatus.IDENTIFIED, FileStatus.IGNORED)


class License(BaseModel):
    """License reported for a match. Extra scanner fields are preserved."""

    model_config = ConfigDict(extra="allow")

    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _null_to_empty_string(cls, value: Any) -> Any:
        return "" if value is None else value


class AuditDecision(BaseModel):
    """Single audit decision.

    The timestamp is kept exactly as stored so that saving a result never
    rewrites entries it did not append; ``recorded_at`` parses it on demand.

    Attributes:
        decision: Outcome value as stored ("identified" or "ignored")
        assessment: Optional free-text comment
        timestamp: RFC 3339 text of when the decision was made
    """

    model_config = ConfigDict(extra="allow")

    decision: str = ""
    assessment: str | None = None
    timestamp: Any = None

    @field_validator("decision", mode="before")
    @classmethod
    def _null_to_empty_string(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _format_datetime(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return format_timestamp(value)
        return value

    @property
    def recorded_at(self) -> datetime | None:
        """Parsed timestamp, or None when missing or unparsable."""
        return parse_timestamp(self.timestamp)

    @property
    def outcome(self) -> Outcome | None:
        """Normalized outcome, or None for an unrecognized decision string."""
        try:
            return Outcome(self.decision.strip().lower())
        except ValueError:
            return None


class Match(BaseModel):
    """One scanner finding for a file.

    Only the fields the audit workflow reads are declared; every other field
    of the scanner output is kept as an extra so that saving the result back
    to disk does not lose data.

    Attributes:
        match_type: Classification, serialized as ``id`` (file/snippet/none)
        file: Path of the matched file inside the matched component
        file_url: Remote content locator (requires an API key to fetch)
        purl: Package identifiers, first one is the primary component
        licenses: Licenses attached to the match
        oss_lines: Raw line-range specifier as found in the scan result
        audit: Append-only decision history, oldest first
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    match_type: str = Field(default="", alias="id")
    file: str = ""
    file_url: str | None = None
    purl: list[str] = Field(default_factory=list)
    licenses: list[License] = Field(default_factory=list)
    oss_lines: Any = None
    audit: list[AuditDecision] = Field(default_factory=list)

    _lines: LineSpec | None = PrivateAttr(default=None)

    @field_validator("match_type", "file", mode="before")
    @classmethod
    def _null_to_empty_string(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("purl", "licenses", "audit", mode="before")
    @classmethod
    def _null_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def model_post_init(self, __context: Any) -> None:
        self._lines = parse_line_spec(self.oss_lines)

    @property
    def is_valid(self) -> bool:
        """True for file and snippet matches."""
        return self.match_type in VALID_MATCH_TYPES

    @property
    def lines(self) -> LineSpec | None:
        """Normalized line-range specifier (None when absent or malformed)."""
        return self._lines

    @property
    def line_ranges_text(self) -> str:
        """Normalized line-range string for display and export."""
        if self._lines is not None:
            return self._lines.render()
        if isinstance(self.oss_lines, str):
            return self.oss_lines.strip()
        return ""

    @property
    def concrete_ranges(self) -> list[tuple[int, int]]:
        """Concrete line ranges of a snippet match; empty for file matches."""
        if self.match_type != "snippet" or self._lines is None:
            return []
        return self._lines.ranges

    @property
    def primary_purl(self) -> str | None:
        return self.purl[0] if self.purl else None

    @property
    def license_names(self) -> list[str]:
        return [license.name for license in self.licenses]

    @property
    def latest_decision(self) -> AuditDecision | None:
        return self.audit[-1] if self.audit else None

    def append_decision(self, decision: AuditDecision) -> None:
        """Append to the decision history, never replacing prior entries."""
        self.audit.append(decision)
        self.model_fields_set.add("audit")


ScanResult = dict[str, list[Match]]

SCAN_RESULT_ADAPTER = TypeAdapter(ScanResult)


def first_valid_match(matches: list[Match] | None) -> Match | None:
    """Return the first file/snippet match of a path, if any.

    Args:
        matches: Ordered match list for one path

    Returns:
        The authoritative match, or None if the path has no valid match
    """
    for match in matches or ():
        if match.is_valid:
            return match
    return None


def derive_status(match: Match | None) -> FileStatus:
    """Derive a path's status from the most recent decision only.

    Earlier decisions stay in the history but never influence the status.
    An unrecognized decision string counts as pending.
    """
    if match is None:
        return FileStatus.NO_MATCH

    latest = match.latest_decision
    if latest is None:
        return FileStatus.PENDING

    outcome = latest.outcome
    if outcome is Outcome.IDENTIFIED:
        return FileStatus.IDENTIFIED
    if outcome is Outcome.IGNORED:
        return FileStatus.IGNORED
    return FileStatus.PENDING
