"""Background export task and single-export guard.

Provides:
- ExportTask: One export running as an asyncio task with a progress queue
  and cooperative cancellation
- ExportCoordinator: Starts exports, refusing a second one while one runs
"""

import asyncio
from pathlib import Path
from typing import AsyncIterator

import structlog

from ..core.errors import ExportInProgressError
from ..core.store import ScanDataStore
from .engine import CancellationToken, ExportEngine, ExportProgress, ExportReport

logger = structlog.get_logger()


class ExportTask:
    """Export running in the background.

    Progress events are pushed into an unbounded queue with ``put_nowait``
    so the export never waits on a slow consumer. Iterating the task yields
    events until the export finishes.

    Example:
        >>> task = ExportTask(engine, store, "results.csv")
        >>> task.start()
        >>> async for event in task:
        ...     print(f"{event.processed}/{event.total}")
        >>> report = await task.result()
    """

    def __init__(self, engine: ExportEngine, store: ScanDataStore, destination: str | Path):
        self.engine = engine
        self.store = store
        self.destination = Path(destination)
        self.token = CancellationToken()
        self.queue: asyncio.Queue[ExportProgress | None] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def start(self) -> "ExportTask":
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self

    async def _run(self) -> ExportReport:
        try:
            return await self.engine.export(
                self.store,
                self.destination,
                progress=self.queue.put_nowait,
                cancel=self.token,
            )
        finally:
            self.queue.put_nowait(None)

    def cancel(self) -> None:
        """Request cancellation; the export stops before its next row."""
        logger.info("export_cancel_requested", destination=str(self.destination))
        self.token.cancel()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def result(self) -> ExportReport:
        """Wait for the export and return its report.

        Raises:
            ExportError: Export failed
            ExportCancelledError: Export was cancelled
        """
        if self._task is None:
            self.start()
        return await self._task

    async def __aiter__(self) -> AsyncIterator[ExportProgress]:
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event


class ExportCoordinator:
    """Allows at most one export in flight."""

    def __init__(self, engine: ExportEngine):
        self.engine = engine
        self.current: ExportTask | None = None

    @property
    def in_progress(self) -> bool:
        return self.current is not None and not self.current.done

    def start(self, store: ScanDataStore, destination: str | Path) -> ExportTask:
        """Start an export in the background.

        Raises:
            ExportInProgressError: Another export has not finished yet
        """
        if self.in_progress:
            raise ExportInProgressError()
        self.current = ExportTask(self.engine, store, destination).start()
        return self.current
