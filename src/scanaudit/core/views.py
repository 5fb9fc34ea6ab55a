"""View indices derived from the scan data store.

Two alternative projections of the same store: a directory hierarchy and a
component ranking grouped by primary package identifier. Both are rebuilt
wholesale on demand and never mutate the store.

Provides:
- DirectoryNode: Synthetic directory tree node (files are never nodes)
- ComponentRankEntry: Package identifier with the files it covers
- build_directory_tree: Directory hierarchy of paths with valid matches
- sorted_children: Rendering-time ordering of a node's children
- find_node: Locate a directory node by path
- build_component_ranking: Ranking of primary identifiers by file count
"""

from dataclasses import dataclass, field

import structlog

from .store import ScanDataStore

logger = structlog.get_logger()

ROOT_NAME = "Root"
ALL_FILES_NAME = "All Files"
SCAN_ROOT_NAME = "."


@dataclass(eq=False)
class DirectoryNode:
    """Directory in the scan tree.

    Attributes:
        name: Path segment (or a synthetic name for root-level nodes)
        path: Slash-joined ancestry; the root and the synthetic nodes use ""
        is_dir: Always True for tree nodes, files only contribute to counts
        children: Subdirectories in insertion order
        parent: Back-reference, None for the root
    """

    name: str
    path: str
    is_dir: bool = True
    children: list["DirectoryNode"] = field(default_factory=list)
    parent: "DirectoryNode | None" = field(default=None, repr=False)

    def child(self, name: str) -> "DirectoryNode | None":
        for child in self.children:
            if child.name == name:
                return child
        return None

    def walk(self):
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class ComponentRankEntry:
    """Package identifier and the paths whose first valid match leads with it."""

    purl: str
    files: list[str] = field(default_factory=list)
    count: int = 0


def build_directory_tree(store: ScanDataStore) -> DirectoryNode:
    """Build the directory hierarchy of all paths with a valid match.

    Every path segment except the last becomes a directory node, reusing an
    existing node with the same name under the same parent. Files are never
    nodes. Two synthetic root-level nodes exist:

    - ``All Files`` when no path has a directory segment but at least one
      valid match exists
    - ``.`` (first child of the root) when some valid path has no ``/``;
      skipped when ``All Files`` was created since both would cover the same
      files

    Args:
        store: Scan data store

    Returns:
        Root node (name "Root", path "")
    """
    root = DirectoryNode(name=ROOT_NAME, path="")

    paths = sorted(path for path in store if store.first_valid_match(path) is not None)

    for path in paths:
        parts = path.split("/")
        current = root
        for i, part in enumerate(parts[:-1]):
            if part == "":
                continue
            existing = current.child(part)
            if existing is None:
                existing = DirectoryNode(
                    name=part,
                    path="/".join(parts[: i + 1]),
                    parent=current,
                )
                current.children.append(existing)
            current = existing

    if not root.children and paths:
        root.children.append(DirectoryNode(name=ALL_FILES_NAME, path="", parent=root))
    elif any("/" not in path for path in paths):
        root.children.insert(0, DirectoryNode(name=SCAN_ROOT_NAME, path="", parent=root))

    logger.debug("directory_tree_built", files=len(paths), top_level=len(root.children))
    return root


def sorted_children(node: DirectoryNode) -> list[DirectoryNode]:
    """Children in display order: ".", directories, then by name."""
    return sorted(
        node.children,
        key=lambda child: (child.name != SCAN_ROOT_NAME, not child.is_dir, child.name),
    )


def find_node(root: DirectoryNode, path: str) -> DirectoryNode | None:
    """Find the first node whose path equals ``path`` (excluding the root)."""
    for node in root.walk():
        if node is not root and node.path == path:
            return node
    return None


def build_component_ranking(store: ScanDataStore) -> list[ComponentRankEntry]:
    """Rank primary package identifiers by the number of files they cover.

    For each path the first valid match is taken; if it carries at least one
    identifier, the first identifier groups the path. Entries are ordered by
    descending count, then ascending identifier, independently of dict
    iteration order.

    Args:
        store: Scan data store

    Returns:
        Ranked entries with sorted file lists
    """
    groups: dict[str, list[str]] = {}

    for path in store.paths():
        match = store.first_valid_match(path)
        if match is None or match.primary_purl is None:
            continue
        groups.setdefault(match.primary_purl, []).append(path)

    ranking = [
        ComponentRankEntry(purl=purl, files=files, count=len(files))
        for purl, files in groups.items()
    ]
    ranking.sort(key=lambda entry: (-entry.count, entry.purl))

    logger.debug("component_ranking_built", components=len(ranking))
    return ranking
