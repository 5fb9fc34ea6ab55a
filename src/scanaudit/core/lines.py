"""Line-range specifiers for snippet matches.

Scanners report matched lines as ``"all"``, a single line (string or number)
or comma-separated ranges such as ``"10-12,40"``. Every shape is normalized
once, at load time, into a tagged representation.

Provides:
- Unbounded: The whole file matched
- Single: One matched line
- Ranges: One or more (start, end) line ranges
- LineSpec: Union of the three shapes
- parse_line_spec: Normalize a raw ``oss_lines`` value
"""

from dataclasses import dataclass
from typing import Any, Union

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class Unbounded:
    """Whole-file match, rendered as ``all``. Carries no concrete ranges."""

    @property
    def ranges(self) -> list[tuple[int, int]]:
        return []

    def render(self) -> str:
        return "all"

    def contains(self, line: int) -> bool:
        return True


@dataclass(frozen=True)
class Single:
    """One matched line."""

    line: int

    @property
    def ranges(self) -> list[tuple[int, int]]:
        return [(self.line, self.line)]

    def render(self) -> str:
        return str(self.line)

    def contains(self, line: int) -> bool:
        return line == self.line


@dataclass(frozen=True)
class Ranges:
    """Ordered list of inclusive (start, end) ranges; single lines have start == end."""

    spans: tuple[tuple[int, int], ...]

    @property
    def ranges(self) -> list[tuple[int, int]]:
        return list(self.spans)

    def render(self) -> str:
        return ",".join(
            str(start) if start == end else f"{start}-{end}"
            for start, end in self.spans
        )

    def contains(self, line: int) -> bool:
        return any(start <= line <= end for start, end in self.spans)


LineSpec = Union[Unbounded, Single, Ranges]


def _parse_span(part: str) -> tuple[int, int]:
    if "-" in part:
        start_text, end_text = part.split("-", 1)
        start, end = int(start_text.strip()), int(end_text.strip())
    else:
        start = end = int(part)
    if start < 0 or end < start:
        raise ValueError(f"invalid line range {part!r}")
    return start, end


def parse_line_spec(raw: Any) -> LineSpec | None:
    """Normalize a raw ``oss_lines`` value.

    Args:
        raw: Value as found in the scan result (None, str, int or float)

    Returns:
        Unbounded, Single or Ranges; None when the value is absent or
        malformed. Malformed values are tolerated here and left to consumers.

    Example:
        >>> parse_line_spec("10-12,40").render()
        '10-12,40'
        >>> parse_line_spec(7)
        Single(line=7)
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        return Single(int(raw))

    if not isinstance(raw, str):
        logger.debug("line_spec_unsupported_type", type=type(raw).__name__)
        return None

    text = raw.strip()
    if not text:
        return None
    if text.lower() == "all":
        return Unbounded()

    parts = [part.strip() for part in text.split(",") if part.strip()]
    try:
        spans = [_parse_span(part) for part in parts]
    except ValueError:
        logger.debug("line_spec_malformed", raw=raw)
        return None

    if not spans:
        return None
    if len(spans) == 1 and "-" not in parts[0]:
        return Single(spans[0][0])
    return Ranges(tuple(spans))
