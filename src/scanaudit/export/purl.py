"""Package identifier parsing.

Package URLs take the form ``pkg:type/namespace/name@version?qualifiers#subpath``.
Only the parts needed to locate a source repository are extracted.

Provides:
- PackageRef: Provider, owner, repository and optional pinned revision
- parse_package_ref: Structured parser for package URLs
"""

from dataclasses import dataclass
from urllib.parse import unquote

PURL_SCHEME = "pkg:"


@dataclass(frozen=True)
class PackageRef:
    """Repository coordinates taken from a package identifier.

    Attributes:
        provider: Package type, lowercased (github, gitlab, npm, ...)
        owner: Namespace; may contain "/" for nested groups
        repo: Package name
        revision: Pinned version, None when unpinned
    """

    provider: str
    owner: str
    repo: str
    revision: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.provider, self.owner, self.repo)


def parse_package_ref(purl: str) -> PackageRef | None:
    """Parse a package URL into repository coordinates.

    Args:
        purl: Package identifier, e.g. ``pkg:github/scanoss/engine@v5.0``

    Returns:
        PackageRef, or None when the identifier is not a package URL or has
        no namespace

    Example:
        >>> parse_package_ref("pkg:github/scanoss/engine@v5.0")
        PackageRef(provider='github', owner='scanoss', repo='engine', revision='v5.0')
    """
    if not purl:
        return None

    text = purl.strip()
    if not text.lower().startswith(PURL_SCHEME):
        return None
    text = text[len(PURL_SCHEME):].lstrip("/")

    text, _, _subpath = text.partition("#")
    text, _, _qualifiers = text.partition("?")

    revision = None
    if "@" in text:
        text, _, version = text.rpartition("@")
        revision = unquote(version) or None

    package_type, sep, remainder = text.partition("/")
    if not sep or not package_type:
        return None

    segments = [unquote(s) for s in remainder.strip("/").split("/") if s]
    if len(segments) < 2:
        return None

    return PackageRef(
        provider=package_type.lower(),
        owner="/".join(segments[:-1]),
        repo=segments[-1],
        revision=revision,
    )
