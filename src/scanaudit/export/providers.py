"""Source hosting provider adapters.

Each provider knows how to build a blob URL with line anchors for a
repository and how to look up its default branch. Lookups are a single
aiohttp GET with a short timeout and no retries; every failure surfaces as
BranchLookupError so the caller can fall back to a fixed revision.

Provides:
- HostingProvider: Protocol implemented by provider adapters
- GitHubProvider: github.com blob links and REST default-branch lookup
- GitLabProvider: gitlab.com blob links and API v4 default-branch lookup
- default_providers: Registry of built-in adapters keyed by package type
"""

import asyncio
from typing import Protocol
from urllib.parse import quote

import aiohttp
import structlog

from ..core.errors import BranchLookupError

logger = structlog.get_logger()


class HostingProvider(Protocol):
    """Capability interface for a source hosting service."""

    name: str

    def blob_url(self, owner: str, repo: str, revision: str, path: str) -> str: ...

    def line_anchor(self, start: int, end: int) -> str: ...

    async def default_branch(
        self, session: aiohttp.ClientSession, owner: str, repo: str, timeout: float
    ) -> str: ...


async def _fetch_default_branch(
    session: aiohttp.ClientSession,
    url: str,
    timeout: float,
    headers: dict[str, str] | None = None,
) -> str:
    """GET a repository metadata document and return its ``default_branch``.

    Raises:
        BranchLookupError: Network error, timeout, non-200 status, invalid
            body or empty branch name
    """
    try:
        async with session.get(
            url, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            if response.status != 200:
                raise BranchLookupError(f"{url} returned HTTP {response.status}")
            payload = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise BranchLookupError(f"{url}: {e}") from e

    branch = payload.get("default_branch") if isinstance(payload, dict) else None
    if not isinstance(branch, str) or not branch.strip():
        raise BranchLookupError(f"{url} returned no default branch")

    logger.debug("default_branch_fetched", url=url, branch=branch.strip())
    return branch.strip()


class GitHubProvider:
    """github.com adapter.

    Links take the form ``https://github.com/{owner}/{repo}/blob/{rev}/{path}``
    with ``#L10-L12`` or ``#L40`` anchors.
    """

    name = "github"
    web_base = "https://github.com"
    api_base = "https://api.github.com"

    def __init__(self, token: str = ""):
        self.token = token

    def blob_url(self, owner: str, repo: str, revision: str, path: str) -> str:
        return f"{self.web_base}/{owner}/{repo}/blob/{revision}/{path.lstrip('/')}"

    def line_anchor(self, start: int, end: int) -> str:
        if start == end:
            return f"#L{start}"
        return f"#L{start}-L{end}"

    async def default_branch(
        self, session: aiohttp.ClientSession, owner: str, repo: str, timeout: float
    ) -> str:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        url = f"{self.api_base}/repos/{owner}/{repo}"
        return await _fetch_default_branch(session, url, timeout, headers)


class GitLabProvider:
    """gitlab.com adapter.

    Links take the form ``https://gitlab.com/{owner}/{repo}/-/blob/{rev}/{path}``
    with ``#L10-12`` or ``#L40`` anchors. Owners may be nested groups.
    """

    name = "gitlab"
    web_base = "https://gitlab.com"
    api_base = "https://gitlab.com/api/v4"

    def blob_url(self, owner: str, repo: str, revision: str, path: str) -> str:
        return f"{self.web_base}/{owner}/{repo}/-/blob/{revision}/{path.lstrip('/')}"

    def line_anchor(self, start: int, end: int) -> str:
        if start == end:
            return f"#L{start}"
        return f"#L{start}-{end}"

    async def default_branch(
        self, session: aiohttp.ClientSession, owner: str, repo: str, timeout: float
    ) -> str:
        project = quote(f"{owner}/{repo}", safe="")
        url = f"{self.api_base}/projects/{project}"
        return await _fetch_default_branch(session, url, timeout)


def default_providers(github_token: str = "") -> dict[str, HostingProvider]:
    """Registry of the built-in providers keyed by package type."""
    return {
        GitHubProvider.name: GitHubProvider(token=github_token),
        GitLabProvider.name: GitLabProvider(),
    }

