"""Default-branch resolution with a per-export cache.

Provides:
- BranchResolver: Resolves the revision of a package reference, caching
  default-branch lookups per provider/owner/repo and falling back to a
  fixed revision on any lookup failure
"""

from typing import Callable

import aiohttp
import structlog

from ..core.errors import BranchLookupError
from .providers import HostingProvider
from .purl import PackageRef

logger = structlog.get_logger()


class BranchResolver:
    """Revision lookup scoped to one export run.

    A failed lookup is cached like a successful one, so a repository that is
    unreachable costs at most one request per export.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: float = 2.0,
        fallback: str = "master",
        on_lookup: Callable[[str], None] | None = None,
    ):
        """Initialize resolver.

        Args:
            session: HTTP session used for lookups
            timeout: Seconds allowed per lookup
            fallback: Revision used when a lookup fails
            on_lookup: Called with "owner/repo" before each remote lookup
        """
        self.session = session
        self.timeout = timeout
        self.fallback = fallback
        self.on_lookup = on_lookup
        self.cache: dict[tuple[str, str, str], str] = {}
        self.lookups = 0

    async def resolve(self, provider: HostingProvider, ref: PackageRef) -> str:
        """Return the pinned revision, or the cached/looked-up default branch."""
        if ref.revision:
            return ref.revision

        cached = self.cache.get(ref.key)
        if cached is not None:
            return cached

        repository = f"{ref.owner}/{ref.repo}"
        if self.on_lookup is not None:
            self.on_lookup(repository)

        self.lookups += 1
        try:
            branch = await provider.default_branch(
                self.session, ref.owner, ref.repo, self.timeout
            )
        except BranchLookupError as e:
            logger.info(
                "default_branch_fallback",
                provider=ref.provider,
                repository=repository,
                fallback=self.fallback,
                error=str(e),
            )
            branch = self.fallback

        self.cache[ref.key] = branch
        return branch
