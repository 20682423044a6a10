# microtools/jobs/sweeper.py
# Periodic expiration sweep: purge expired rows, then reclaim the external
# resources they owned. Runs as an asyncio task owned by the app lifespan,
# or once per cron tick from the arq worker.

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from microtools.observability.metrics import SWEEP_CLEANUP_FAILURES
from microtools.repositories.object_store import ObjectRef, ObjectStore
from microtools.utils.logger import log_exception, log_info

logger = logging.getLogger(__name__)

PurgeCallback = Callable[[ObjectRef], Awaitable[None]]
ReconcileCallback = Callable[[], Awaitable[list[str]]]


@dataclass
class SweepReport:
    purged: list[ObjectRef] = field(default_factory=list)
    cleanup_failures: list[str] = field(default_factory=list)
    orphans_removed: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "purged": [ref._asdict() for ref in self.purged],
            "cleanup_failures": list(self.cleanup_failures),
            "orphans_removed": list(self.orphans_removed),
        }


class ExpirationSweeper:
    """
    Proactive half of expiration; lazy expiry in ObjectStore.get is the other.

    - on_purged: called once per purged row; failures are counted and
      reported but never stop the batch.
    - reconcile: optional extra pass for resources whose row is already gone.
    """

    def __init__(
        self,
        store: ObjectStore,
        on_purged: Optional[PurgeCallback] = None,
        interval_seconds: float = 3600.0,
        reconcile: Optional[ReconcileCallback] = None,
    ):
        self._store = store
        self._on_purged = on_purged
        self._reconcile = reconcile
        self.interval_seconds = interval_seconds
        self.last_report: Optional[SweepReport] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepReport:
        """One sweep. A failing purge raises; a failing cleanup is only reported."""
        report = SweepReport(purged=await self._store.purge_expired())

        if self._on_purged is not None:
            for ref in report.purged:
                try:
                    await self._on_purged(ref)
                except Exception as e:
                    SWEEP_CLEANUP_FAILURES.inc()
                    report.cleanup_failures.append(ref.id)
                    log_exception(e, f"ExpirationSweeper: cleanup of {ref.type} id={ref.id}")

        if self._reconcile is not None:
            try:
                report.orphans_removed = await self._reconcile()
            except Exception as e:
                log_exception(e, "ExpirationSweeper: reconcile")

        if report.purged or report.orphans_removed:
            log_info(
                f"cleanup: purged {len(report.purged)} expired object(s), "
                f"{len(report.cleanup_failures)} cleanup failure(s), "
                f"{len(report.orphans_removed)} orphan(s) removed"
            )
        self.last_report = report
        return report

    def start(self) -> None:
        """Start the background loop; the first sweep runs immediately."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="expiration-sweeper")
        logger.info(f"Expiration sweeper started (every {self.interval_seconds:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Expiration sweeper stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                # Retried on the next tick.
                log_exception(e, "ExpirationSweeper: sweep failed")
            await asyncio.sleep(self.interval_seconds)
