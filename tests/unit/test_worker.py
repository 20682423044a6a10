# tests/unit/test_worker.py
# arq job wiring: the cron job delegates to the shared sweeper

import pytest

from microtools.jobs.sweeper import SweepReport
from microtools.repositories.object_store import ObjectRef


class _Sweeper:
    async def run_once(self):
        return SweepReport(purged=[ObjectRef("x", "fileshare")])


class _Components:
    sweeper = _Sweeper()


@pytest.mark.asyncio
async def test_purge_job_returns_report():
    from microtools.jobs.worker import WorkerSettings, purge_expired

    result = await purge_expired({"components": _Components()})

    assert result == {"purged": [{"id": "x", "type": "fileshare"}], "cleanup_failures": [], "orphans_removed": []}
    assert purge_expired in WorkerSettings.functions
    assert len(WorkerSettings.cron_jobs) == 1
