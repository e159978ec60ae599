import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler

import subtrack.scheduler.jobs as jobs
from subtrack.analyzer.state import PipelineCoordinator
from subtrack.models.canonical_models import Origin, Platform


def test_newer_request_replaces_queued_pass(monkeypatch):
    monkeypatch.setattr(jobs, "scheduler", AsyncIOScheduler())
    coordinator = PipelineCoordinator()

    async def queue_twice():
        jobs.scheduler.start(paused=True)
        jobs.schedule_processing(coordinator)
        jobs.schedule_processing(coordinator)
        queued = jobs.scheduler.get_jobs()
        jobs.scheduler.shutdown(wait=False)
        return queued

    queued = asyncio.run(queue_twice())

    assert [j.id for j in queued] == [jobs.PROCESSING_JOB_ID]


def test_processing_job_runs_a_pass():
    coordinator = PipelineCoordinator()
    coordinator.ingest(Platform.SHOPEE, [{"Order ID": "O1", "Commission": "3"}], Origin.FILE_IMPORT)

    asyncio.run(jobs.processing_job(coordinator))

    assert coordinator.state.last_result.aggregates.totals.total_commission == 3


def test_start_scheduler_respects_config():
    jobs.start_scheduler()  # disabled in the test environment
    assert not jobs.scheduler.running
