"""SubTrack — Scheduler Jobs.

Import-triggered processing passes are placed on the APScheduler event loop
as one-shot jobs under a fixed id; a newer request replaces a queued one.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from subtrack.analyzer.state import PipelineCoordinator
from subtrack.config import settings
from subtrack.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()

PROCESSING_JOB_ID = "aggregation_pass"


async def processing_job(coordinator: PipelineCoordinator):
    """Run one deferred pass; failures are recorded on the coordinator."""
    result = await coordinator.run_deferred()
    if result is not None:
        logger.info(
            f"Scheduled pass {result.generation} applied",
            extra={"generation": result.generation},
        )


def schedule_processing(coordinator: PipelineCoordinator):
    """Queue a pass, superseding any pass still waiting to start."""
    scheduler.add_job(
        processing_job,
        "date",
        args=[coordinator],
        id=PROCESSING_JOB_ID,
        replace_existing=True,
        misfire_grace_time=60,
    )
    logger.info("Processing pass scheduled")


def start_scheduler():
    """Start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
