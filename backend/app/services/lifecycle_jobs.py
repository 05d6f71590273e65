"""Synchronous rq job entrypoints driving the async lifecycle engine.

rq-scheduler enqueues these on `settings.rq_queue_name`; an `rq worker` bound to
that queue executes them.
"""

from __future__ import annotations

import asyncio

from app.core.logging import configure_logging, get_logger
from app.models.organization_archive_policies import ArchiveSchedule
from app.services.lifecycle_driver import TickSummary, run_tick

logger = get_logger(__name__)


def run_lifecycle_tick_job() -> dict[str, object]:
    """Generation followed by the overdue sweep."""
    configure_logging()
    summary: TickSummary = asyncio.run(run_tick())
    return summary.log_fields()


def run_archive_sweep_job(schedule: str) -> dict[str, object]:
    """Archive pass for every organization on `schedule`."""
    configure_logging()
    tag = ArchiveSchedule(schedule)
    logger.info("lifecycle.archive.job_started", extra={"schedule": tag.value})
    summary: TickSummary = asyncio.run(run_tick(generate=False, archive_schedule=tag))
    return summary.log_fields()
