"""Lifecycle cron registration for rq-scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field

from redis import Redis
from rq_scheduler import Scheduler  # type: ignore[import-untyped]

from app.core.config import settings
from app.core.logging import get_logger
from app.models.organization_archive_policies import ArchiveSchedule
from app.services import lifecycle_jobs

logger = get_logger(__name__)


@dataclass(frozen=True)
class CronJobSpec:
    """One cron registration owned by the lifecycle engine."""

    job_id: str
    cron: str
    func: object
    args: tuple[object, ...] = field(default_factory=tuple)


def lifecycle_cron_jobs() -> list[CronJobSpec]:
    prefix = settings.lifecycle_schedule_id_prefix
    return [
        CronJobSpec(
            job_id=f"{prefix}:tick",
            cron=settings.lifecycle_tick_cron,
            func=lifecycle_jobs.run_lifecycle_tick_job,
        ),
        CronJobSpec(
            job_id=f"{prefix}:archive:{ArchiveSchedule.DAILY.value}",
            cron=settings.archive_daily_cron,
            func=lifecycle_jobs.run_archive_sweep_job,
            args=(ArchiveSchedule.DAILY.value,),
        ),
        CronJobSpec(
            job_id=f"{prefix}:archive:{ArchiveSchedule.WEEKLY_SUNDAY.value}",
            cron=settings.archive_weekly_sunday_cron,
            func=lifecycle_jobs.run_archive_sweep_job,
            args=(ArchiveSchedule.WEEKLY_SUNDAY.value,),
        ),
        CronJobSpec(
            job_id=f"{prefix}:archive:{ArchiveSchedule.WEEKLY_MONDAY.value}",
            cron=settings.archive_weekly_monday_cron,
            func=lifecycle_jobs.run_archive_sweep_job,
            args=(ArchiveSchedule.WEEKLY_MONDAY.value,),
        ),
    ]


def bootstrap_lifecycle_schedules(scheduler: Scheduler | None = None) -> list[str]:
    """Register the tick and archive cron jobs, replacing any previous registration."""
    if scheduler is None:
        connection = Redis.from_url(settings.rq_redis_url)
        scheduler = Scheduler(queue_name=settings.rq_queue_name, connection=connection)

    specs = lifecycle_cron_jobs()
    owned_ids = {spec.job_id for spec in specs}
    for job in scheduler.get_jobs():
        if job.id in owned_ids:
            scheduler.cancel(job)

    for spec in specs:
        scheduler.cron(
            spec.cron,
            func=spec.func,
            args=list(spec.args),
            repeat=None,
            id=spec.job_id,
            queue_name=settings.rq_queue_name,
        )
        logger.info(
            "lifecycle.schedule.registered",
            extra={"job_id": spec.job_id, "cron": spec.cron, "queue_name": settings.rq_queue_name},
        )
    return [spec.job_id for spec in specs]
