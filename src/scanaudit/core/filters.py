"""Filter state machine, filtered counts and visibility.

Every counting function takes an explicit ViewContext (store + filter
state); nothing reads a module-level pointer. Counts are recomputed per
call and always agree with the first-valid-match rule used by the ledger
and the export.

Provides:
- ViewMode: Directory hierarchy or component ranking
- FilterMode: all / matched / pending selector
- FilterState: Selector, view mode and hide-decided flag with persistence
- ViewContext: Store + filter state passed to every computation
- count_directory / is_directory_visible: Directory node counts
- count_ranking_entry / is_ranking_visible: Ranking entry counts
- tree_lines / ranking_lines: Display lines for the left pane
- files_in_directory / files_for_entry / visible_files: File listings
- common_path_suffix: Shared trailing segments of a path and its match
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

import structlog

from .models import FileStatus, Match, derive_status
from .preferences import HIDE_DECIDED, VIEW_FILTER, PreferenceStore
from .store import ScanDataStore
from .views import ComponentRankEntry, DirectoryNode, sorted_children

logger = structlog.get_logger()


class ViewMode(str, Enum):
    DIRECTORIES = "directories"
    RANKING = "ranking"


class FilterMode(str, Enum):
    ALL = "all"
    MATCHED = "matched"
    PENDING = "pending"


_DIRECTORY_CYCLE = {
    FilterMode.ALL: FilterMode.MATCHED,
    FilterMode.MATCHED: FilterMode.PENDING,
    FilterMode.PENDING: FilterMode.ALL,
}


class FilterState:
    """Current view mode, selector and hide-decided flag.

    When bound to a PreferenceStore the selector and flag are restored at
    construction and written back on every change. A failed preference
    write is logged and never undoes the state change.
    """

    def __init__(
        self,
        view_mode: ViewMode = ViewMode.DIRECTORIES,
        mode: FilterMode = FilterMode.ALL,
        hide_decided: bool = False,
        preferences: PreferenceStore | None = None,
    ):
        self.preferences = preferences
        self.view_mode = view_mode
        self.mode = mode
        self.hide_decided = hide_decided

        if preferences is not None:
            stored = (preferences.get(VIEW_FILTER) or "").strip().lower()
            if stored in {m.value for m in FilterMode}:
                self.mode = FilterMode(stored)
            elif stored:
                logger.debug("view_filter_preference_ignored", value=stored)
            stored_hide = preferences.get(HIDE_DECIDED)
            if stored_hide is not None:
                self.hide_decided = stored_hide.strip().lower() == "true"

        if self.view_mode is ViewMode.RANKING and self.mode is FilterMode.ALL:
            self.mode = FilterMode.MATCHED

    def _persist(self, key: str, value: str) -> None:
        if self.preferences is None:
            return
        try:
            self.preferences.set(key, value)
        except OSError as e:
            logger.warning("preference_write_failed", key=key, error=str(e))

    def cycle(self) -> FilterMode:
        """Advance the selector.

        Directories cycle all -> matched -> pending -> all. The ranking
        cycles matched <-> pending, anything else becomes matched.
        """
        if self.view_mode is ViewMode.RANKING:
            self.mode = FilterMode.PENDING if self.mode is FilterMode.MATCHED else FilterMode.MATCHED
        else:
            self.mode = _DIRECTORY_CYCLE[self.mode]
        self._persist(VIEW_FILTER, self.mode.value)
        return self.mode

    def set_view_mode(self, view_mode: ViewMode) -> None:
        self.view_mode = view_mode
        if view_mode is ViewMode.RANKING and self.mode is FilterMode.ALL:
            self.mode = FilterMode.MATCHED
            self._persist(VIEW_FILTER, self.mode.value)

    def toggle_view_mode(self) -> ViewMode:
        if self.view_mode is ViewMode.DIRECTORIES:
            self.set_view_mode(ViewMode.RANKING)
        else:
            self.set_view_mode(ViewMode.DIRECTORIES)
        return self.view_mode

    def set_hide_decided(self, value: bool) -> None:
        self.hide_decided = value
        self._persist(HIDE_DECIDED, "true" if value else "false")

    def toggle_hide_decided(self) -> bool:
        self.set_hide_decided(not self.hide_decided)
        return self.hide_decided


@dataclass
class ViewContext:
    store: ScanDataStore
    state: FilterState = field(default_factory=FilterState)


@dataclass
class FileRow:
    """One entry of a file listing."""

    path: str
    status: FileStatus
    match: Match | None = None

    @property
    def icon(self) -> str:
        if self.status is FileStatus.IDENTIFIED:
            return "✓"
        if self.status is FileStatus.IGNORED:
            return "✗"
        if self.status is FileStatus.PENDING:
            return "?"
        return "-"


@dataclass
class DisplayLine:
    """Rendered left-pane line."""

    label: str
    count: int
    depth: int = 0
    node: DirectoryNode | None = None
    entry: ComponentRankEntry | None = None


def _in_directory(path: str, dir_path: str) -> bool:
    if dir_path == "":
        return "/" not in path
    return path.startswith(dir_path + "/")


def _passes(ctx: ViewContext, path: str, honor_hide: bool) -> bool:
    state = ctx.state
    match = ctx.store.first_valid_match(path)
    status = derive_status(match)

    if honor_hide and state.hide_decided and status.is_decided:
        return False
    if state.mode is FilterMode.ALL:
        return True
    if match is None:
        return False
    if state.mode is FilterMode.PENDING:
        return status is FileStatus.PENDING
    return True


def count_directory(ctx: ViewContext, dir_path: str) -> int:
    """Count files under a directory that pass the current filter.

    Membership is "no '/' in path" for the root path "", otherwise a
    ``dir_path + "/"`` prefix, so nested files count toward every ancestor.

    Args:
        ctx: View context
        dir_path: Node path ("" for the root, "." and "All Files")

    Returns:
        Filtered file count
    """
    return sum(
        1
        for path in ctx.store
        if _in_directory(path, dir_path) and _passes(ctx, path, honor_hide=True)
    )


def is_directory_visible(ctx: ViewContext, node: DirectoryNode) -> bool:
    if ctx.state.mode is FilterMode.ALL and not ctx.state.hide_decided:
        return True
    return count_directory(ctx, node.path) > 0


def count_ranking_entry(ctx: ViewContext, entry: ComponentRankEntry) -> int:
    """Count an entry's files under the selector; hide-decided is not applied."""
    pending_only = ctx.state.mode is FilterMode.PENDING
    count = 0
    for path in entry.files:
        match = ctx.store.first_valid_match(path)
        if match is None:
            continue
        if pending_only and derive_status(match) is not FileStatus.PENDING:
            continue
        count += 1
    return count


def is_ranking_visible(ctx: ViewContext, entry: ComponentRankEntry) -> bool:
    return count_ranking_entry(ctx, entry) > 0


def tree_lines(
    ctx: ViewContext,
    tree: DirectoryNode,
    expanded: Mapping[str, bool] | None = None,
) -> list[DisplayLine]:
    """Depth-first display lines of visible directory nodes.

    Root-level nodes are always listed when visible; children are listed only
    for nodes whose path is expanded.
    """
    expanded = expanded or {}
    lines: list[DisplayLine] = []

    def visit(node: DirectoryNode, depth: int) -> None:
        for child in sorted_children(node):
            if not is_directory_visible(ctx, child):
                continue
            count = count_directory(ctx, child.path)
            lines.append(
                DisplayLine(
                    label=f"{child.name} ({count})",
                    count=count,
                    depth=depth,
                    node=child,
                )
            )
            if child.children and expanded.get(child.path, False):
                visit(child, depth + 1)

    visit(tree, 0)
    return lines


def ranking_lines(ctx: ViewContext, ranking: list[ComponentRankEntry]) -> list[DisplayLine]:
    lines = []
    for entry in ranking:
        count = count_ranking_entry(ctx, entry)
        if count == 0:
            continue
        lines.append(DisplayLine(label=f"{entry.purl} ({count})", count=count, entry=entry))
    return lines


def _row(ctx: ViewContext, path: str) -> FileRow:
    match = ctx.store.first_valid_match(path)
    return FileRow(path=path, status=derive_status(match), match=match)


def visible_files(ctx: ViewContext, paths: list[str]) -> list[FileRow]:
    """Filter a list of paths by the selector and attach per-file status.

    ``all`` keeps every path, ``matched`` paths with a valid match and
    ``pending`` valid, undecided paths. In directory mode hide-decided also
    drops decided paths.
    """
    honor_hide = ctx.state.view_mode is ViewMode.DIRECTORIES
    return [_row(ctx, path) for path in paths if _passes(ctx, path, honor_hide=honor_hide)]


def files_in_directory(ctx: ViewContext, dir_path: str) -> list[FileRow]:
    """Files in a directory or any of its subdirectories, sorted by path."""
    paths = sorted(path for path in ctx.store if _in_directory(path, dir_path))
    return visible_files(ctx, paths)


def files_for_entry(ctx: ViewContext, entry: ComponentRankEntry) -> list[FileRow]:
    return visible_files(ctx, entry.files)


def common_path_suffix(path: str, matched: str) -> str:
    """Longest run of trailing path segments shared by two paths.

    Example:
        >>> common_path_suffix("vendor/lib/src/util.c", "src/util.c")
        'src/util.c'
    """
    if not matched:
        return ""
    ours = path.split("/")
    theirs = matched.split("/")
    shared: list[str] = []
    while ours and theirs and ours[-1] == theirs[-1]:
        shared.insert(0, ours.pop())
        theirs.pop()
    return "/".join(shared)
