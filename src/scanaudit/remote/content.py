"""Authenticated fetch of matched file contents.

Scans run with an API key carry a ``file_url`` per match pointing at the
matched file on the scanning service. Fetching it requires the same key.
Without a key the workflow runs in metadata-only mode and never calls out.

Provides:
- ContentLine: One numbered line with its highlight flag
- ContentView: Fetched content or an explanatory message
- is_valid_file_url: https URL with a host
- scan_has_content_urls: Whether the scan was produced with an API key
- fetch_file_content: GET a file_url with the X-API-Key header
- load_match_content: Content view for a path's first valid match
"""

import asyncio
from dataclasses import dataclass, field
from urllib.parse import urlparse

import aiohttp
import structlog

from ..core.errors import FetchError
from ..core.models import Match
from ..core.store import ScanDataStore

logger = structlog.get_logger()

NO_MATCH_MESSAGE = "No valid matches found for this file"
NO_URL_MESSAGE = "No file_url available for this file. This requires scanning with an API key."
NO_KEY_MESSAGE = (
    "File content not available: an API key is required to fetch {url}. "
    "Set one with 'scanaudit api-key set' to view file contents; "
    "files can still be reviewed and audited from their metadata."
)
FETCH_FAILED_MESSAGE = (
    "Error fetching file content: {error}. "
    "This may indicate an invalid API key, network issues or an unavailable service."
)


@dataclass
class ContentLine:
    number: int
    text: str
    highlighted: bool = False


@dataclass
class ContentView:
    """Result of loading a match's content.

    Exactly one of ``lines`` (content fetched) or ``message`` (why not) is
    meaningful.
    """

    path: str
    lines: list[ContentLine] = field(default_factory=list)
    message: str | None = None

    @property
    def available(self) -> bool:
        return self.message is None

    @property
    def highlighted_lines(self) -> list[int]:
        return [line.number for line in self.lines if line.highlighted]

    def render(self) -> str:
        if self.message is not None:
            return self.message
        return "\n".join(
            f"{'>' if line.highlighted else ' '}{line.number:4d}: {line.text}"
            for line in self.lines
        )


def is_valid_file_url(url: str | None) -> bool:
    """True for a trimmed ``https`` URL with a host."""
    if not url or not url.strip():
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme == "https" and bool(parsed.netloc)


def scan_has_content_urls(store: ScanDataStore) -> bool:
    """Whether every valid match carries a fetchable ``file_url``.

    Matches that are not file/snippet are ignored. A scan without any valid
    match is not considered API-key generated.
    """
    seen_valid = False
    for path in store:
        for match in store.matches(path):
            if not match.is_valid:
                continue
            seen_valid = True
            if not is_valid_file_url(match.file_url):
                return False
    return seen_valid


async def fetch_file_content(url: str, api_key: str, timeout: float = 30.0) -> str:
    """Fetch a matched file from the scanning service.

    Args:
        url: Match ``file_url``
        api_key: Scanning service API key
        timeout: Seconds allowed for the request

    Returns:
        Response body as text

    Raises:
        FetchError: Network failure or non-200 response
    """
    headers = {"X-API-Key": api_key, "Content-Type": "application/json"}
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers=headers) as response:
                body = await response.text()
                if response.status != 200:
                    raise FetchError(f"API error {response.status}: {body}")
                return body
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise FetchError(f"HTTP request failed: {e}") from e


def _highlight(match: Match, number: int) -> bool:
    if match.match_type == "file":
        return True
    if match.match_type == "snippet" and match.concrete_ranges:
        return any(start <= number <= end for start, end in match.concrete_ranges)
    return False


async def load_match_content(
    store: ScanDataStore, path: str, api_key: str, timeout: float = 30.0
) -> ContentView:
    """Load the content of a path's first valid match.

    Whole-file matches highlight every line, snippets only their concrete
    ranges. Missing match, URL or key and fetch failures degrade to a message.
    """
    match = store.first_valid_match(path)
    if match is None:
        return ContentView(path=path, message=NO_MATCH_MESSAGE)

    if not match.file_url or not match.file_url.strip():
        return ContentView(path=path, message=NO_URL_MESSAGE)

    if not api_key:
        return ContentView(path=path, message=NO_KEY_MESSAGE.format(url=match.file_url))

    try:
        content = await fetch_file_content(match.file_url.strip(), api_key, timeout)
    except FetchError as e:
        logger.warning("content_fetch_failed", path=path, error=str(e))
        return ContentView(path=path, message=FETCH_FAILED_MESSAGE.format(error=e))

    lines = [
        ContentLine(number=i, text=text, highlighted=_highlight(match, i))
        for i, text in enumerate(content.split("\n"), start=1)
    ]
    logger.debug("content_loaded", path=path, lines=len(lines))
    return ContentView(path=path, lines=lines)
