"""CSV export of audit results.

Writes one row per scanned path with the match metadata, audit status and
one deep link per snippet line range. The report is written to a temporary
file next to the destination and moved into place only after the last row,
so a failed or cancelled export never leaves a partial report behind.

Provides:
- ExportProgress: Progress event (processed, total, repository lookup)
- CancellationToken: Cooperative cancellation checked between rows
- ExportReport: Summary of a completed export
- ExportEngine: Writes the CSV report
- max_deeplink_columns: Dataset-wide deep-link column count
- build_header: CSV header for a given deep-link column count
- default_csv_path: Report path derived from the scan result path
"""

import asyncio
import csv
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import aiohttp
import structlog

from ..core.config import Config, load_config
from ..core.errors import ExportCancelledError, ExportError
from ..core.models import Match, derive_status
from ..core.store import ScanDataStore
from .branches import BranchResolver
from .providers import HostingProvider, default_providers
from .purl import parse_package_ref

logger = structlog.get_logger()

BASE_COLUMNS = [
    "File Path",
    "Match Type",
    "PURL",
    "License",
    "Status",
    "Comment",
    "Line Ranges",
]


@dataclass(frozen=True)
class ExportProgress:
    """Export progress event.

    ``repository`` is set while a default-branch lookup for that
    "owner/repo" is in flight.
    """

    processed: int
    total: int
    repository: str | None = None

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 100.0
        return self.processed / self.total * 100


class CancellationToken:
    """Cancellation flag shared between an export and its controller."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ExportReport:
    destination: Path
    rows: int
    deeplink_columns: int
    branch_lookups: int = 0


def max_deeplink_columns(store: ScanDataStore) -> int:
    """Largest concrete range count of any snippet match (at least 1)."""
    widest = 1
    for path in store:
        for match in store.matches(path):
            widest = max(widest, len(match.concrete_ranges))
    return widest


def build_header(deeplink_columns: int) -> list[str]:
    """CSV header: ``Deeplink`` for one column, else ``Deeplink 1..N``."""
    if deeplink_columns <= 1:
        return BASE_COLUMNS + ["Deeplink"]
    return BASE_COLUMNS + [f"Deeplink {i}" for i in range(1, deeplink_columns + 1)]


def default_csv_path(json_path: str | Path) -> Path:
    """Scan result path with its extension replaced by ``.csv``.

    Example:
        >>> default_csv_path("out/results.json")
        PosixPath('out/results.csv')
    """
    return Path(json_path).with_suffix(".csv")


class ExportEngine:
    """Builds the CSV report for a scan data store."""

    def __init__(
        self,
        config: Config | None = None,
        providers: dict[str, HostingProvider] | None = None,
    ):
        """Initialize export engine.

        Args:
            config: Configuration (defaults to load_config())
            providers: Provider registry keyed by package type
        """
        self.config = config or load_config()
        self.providers = (
            providers
            if providers is not None
            else default_providers(github_token=self.config.github_token)
        )

    async def deeplinks(
        self, match: Match, resolver: BranchResolver, columns: int
    ) -> list[str]:
        """Deep links of a match, padded to ``columns`` cells.

        The first identifier with a registered provider is used. Snippets
        with concrete ranges get one anchored link per range; everything else
        gets a single link without anchor.
        """
        links = [""] * columns

        for purl in match.purl:
            ref = parse_package_ref(purl)
            if ref is None:
                continue
            provider = self.providers.get(ref.provider)
            if provider is None:
                continue

            revision = await resolver.resolve(provider, ref)
            base = provider.blob_url(ref.owner, ref.repo, revision, match.file)
            ranges = match.concrete_ranges
            if ranges:
                for i, (start, end) in enumerate(ranges[:columns]):
                    links[i] = base + provider.line_anchor(start, end)
            else:
                links[0] = base
            break

        return links

    async def build_row(
        self, store: ScanDataStore, path: str, resolver: BranchResolver, columns: int
    ) -> list[str]:
        match = store.first_valid_match(path)
        if match is None:
            return [path, "no-match", "", "", "Pending", "", ""] + [""] * columns

        latest = match.latest_decision
        comment = (latest.assessment or "") if latest is not None else ""

        return [
            path,
            match.match_type,
            "; ".join(match.purl),
            "; ".join(match.license_names),
            derive_status(match).label,
            comment,
            match.line_ranges_text,
        ] + await self.deeplinks(match, resolver, columns)

    async def export(
        self,
        store: ScanDataStore,
        destination: str | Path,
        progress: Callable[[ExportProgress], None] | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExportReport:
        """Write the CSV report for every path in the store.

        Args:
            store: Scan data store (read only)
            destination: Report path, overwritten if it exists
            progress: Called after every row and before every branch lookup
            cancel: Checked before every row

        Returns:
            ExportReport with row and column counts

        Raises:
            ExportError: Report could not be created or written
            ExportCancelledError: Cancelled before completion (no file left)
        """
        destination = Path(destination)
        log = logger.bind(destination=str(destination))

        paths = store.paths()
        total = len(paths)
        columns = max_deeplink_columns(store)
        processed = 0

        def notify(repository: str | None = None) -> None:
            if progress is not None:
                progress(ExportProgress(processed, total, repository))

        log.info("export_start", files=total, deeplink_columns=columns)

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{destination.name}.", suffix=".tmp", dir=str(destination.parent)
            )
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(build_header(columns))

                async with aiohttp.ClientSession() as session:
                    resolver = BranchResolver(
                        session,
                        timeout=self.config.branch_lookup_timeout,
                        fallback=self.config.fallback_revision,
                        on_lookup=notify,
                    )
                    for path in paths:
                        if cancel is not None and cancel.is_cancelled:
                            raise ExportCancelledError(processed, total)

                        writer.writerow(await self.build_row(store, path, resolver, columns))
                        processed += 1
                        notify()
                        await asyncio.sleep(0)

            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, destination)
            tmp_name = None
        except ExportCancelledError:
            log.info("export_cancelled", processed=processed, total=total)
            raise
        except (OSError, csv.Error) as e:
            log.error("export_failed", error=str(e))
            raise ExportError(str(destination), e) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        log.info("export_complete", rows=total, branch_lookups=resolver.lookups)
        return ExportReport(
            destination=destination,
            rows=total,
            deeplink_columns=columns,
            branch_lookups=resolver.lookups,
        )
