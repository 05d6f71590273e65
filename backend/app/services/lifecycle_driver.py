"""Lifecycle tick orchestration.

A tick walks a fixed phase sequence:

1. ``GENERATION``: every live recurring template inside its window is checked
   with the recurrence rules and materialized when due.
2. ``OVERDUE_SWEEP``: one bulk overdue transition.
3. ``ARCHIVE_SWEEP``: only when the trigger names an archive schedule or an
   organization to archive.

Templates and organizations are processed one at a time, each in its own
session, so a failing item is logged and skipped without touching the rest of
the tick. Generation and archival each run under an expiring lease so that
only one replica drives a phase at a time.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlmodel import col, or_, select

from app.core.config import settings
from app.core.logging import get_logger
from app.core.time import calendar_date, to_naive_utc, utcnow
from app.db.session import SessionFactory, async_session_maker
from app.models.tasks import RECURRING_SCHEDULE_TYPES, Task
from app.services.archival import archive_organization_now, sweep_archive
from app.services.leases import ARCHIVE_LEASE, TICK_LEASE, LeaseUnavailableError, hold_lease
from app.services.materializer import materialize_instance
from app.services.overdue import sweep_overdue
from app.services.recurrence import should_generate

if TYPE_CHECKING:
    from uuid import UUID

    from app.models.organization_archive_policies import ArchiveSchedule

logger = get_logger(__name__)


class TickPhase(StrEnum):
    GENERATION = "generation"
    OVERDUE_SWEEP = "overdue_sweep"
    ARCHIVE_SWEEP = "archive_sweep"
    DONE = "done"


@dataclass
class TickSummary:
    """Counts reported at the end of every tick."""

    as_of: date
    phase: TickPhase = TickPhase.GENERATION
    templates_checked: int = 0
    instances_created: int = 0
    duplicates_suppressed: int = 0
    tasks_overdue: int = 0
    tasks_archived: int = 0
    failures: int = 0
    skipped: bool = False

    def log_fields(self) -> dict[str, object]:
        fields = asdict(self)
        fields["as_of"] = self.as_of.isoformat()
        fields["phase"] = self.phase.value
        return fields


async def load_candidate_template_ids(session_factory: SessionFactory, today: date) -> list[UUID]:
    """Ids of live recurring templates whose window contains `today`."""
    statement = (
        select(Task.id)
        .where(col(Task.schedule_type).in_(sorted(s.value for s in RECURRING_SCHEDULE_TYPES)))
        .where(col(Task.parent_template_id).is_(None))
        .where(col(Task.archived_at).is_(None))
        .where(col(Task.start_date).is_not(None))
        .where(col(Task.start_date) <= today)
        .where(or_(col(Task.end_date).is_(None), col(Task.end_date) >= today))
        .order_by(col(Task.created_at).asc(), col(Task.id).asc())
    )
    async with session_factory() as session:
        return list(await session.exec(statement))


async def run_generation(
    summary: TickSummary,
    *,
    now: datetime,
    session_factory: SessionFactory,
) -> None:
    today = summary.as_of
    template_ids = await load_candidate_template_ids(session_factory, today)
    for template_id in template_ids:
        summary.templates_checked += 1
        try:
            async with session_factory() as session:
                template = await Task.objects.by_id(template_id).first(session)
                if template is None or not should_generate(template, today):
                    continue
                result = await materialize_instance(session, template, today, now=now)
        except Exception:
            summary.failures += 1
            logger.exception(
                "lifecycle.generation.template_failed",
                extra={"template_id": str(template_id), "as_of": today.isoformat()},
            )
            continue
        if result.created:
            summary.instances_created += 1
        else:
            summary.duplicates_suppressed += 1


async def _run_archive_phase(
    summary: TickSummary,
    *,
    now: datetime,
    archive_schedule: ArchiveSchedule | str | None,
    archive_organization_id: UUID | None,
    session_factory: SessionFactory,
) -> None:
    if archive_schedule is not None:
        result = await sweep_archive(archive_schedule, now=now, session_factory=session_factory)
        summary.tasks_archived += result.archived
        summary.failures += result.failures
    if archive_organization_id is not None:
        try:
            summary.tasks_archived += await archive_organization_now(
                archive_organization_id,
                now=now,
                session_factory=session_factory,
            )
        except Exception:
            summary.failures += 1
            logger.exception(
                "lifecycle.archive.org_failed",
                extra={"organization_id": str(archive_organization_id)},
            )


async def run_tick(
    *,
    now: datetime | None = None,
    generate: bool = True,
    archive_schedule: ArchiveSchedule | str | None = None,
    archive_organization_id: UUID | None = None,
    session_factory: SessionFactory = async_session_maker,
) -> TickSummary:
    """Run one tick and return its summary.

    Set `generate=False` for archive-only triggers. Database errors outside a
    per-item scope propagate and abort the rest of the tick.
    """
    timestamp = to_naive_utc(now) if now is not None else utcnow()
    summary = TickSummary(as_of=calendar_date(timestamp, settings.lifecycle_timezone))

    if generate:
        try:
            async with hold_lease(session_factory, TICK_LEASE):
                summary.phase = TickPhase.GENERATION
                await run_generation(summary, now=timestamp, session_factory=session_factory)
                summary.phase = TickPhase.OVERDUE_SWEEP
                async with session_factory() as session:
                    summary.tasks_overdue = await sweep_overdue(session, now=timestamp)
        except LeaseUnavailableError as exc:
            summary.skipped = True
            logger.warning(
                "lifecycle.tick.lease_unavailable",
                extra={"lease": exc.name, "holder": exc.holder},
            )

    if archive_schedule is not None or archive_organization_id is not None:
        try:
            async with hold_lease(session_factory, ARCHIVE_LEASE):
                summary.phase = TickPhase.ARCHIVE_SWEEP
                await _run_archive_phase(
                    summary,
                    now=timestamp,
                    archive_schedule=archive_schedule,
                    archive_organization_id=archive_organization_id,
                    session_factory=session_factory,
                )
        except LeaseUnavailableError as exc:
            summary.skipped = True
            logger.warning(
                "lifecycle.tick.lease_unavailable",
                extra={"lease": exc.name, "holder": exc.holder},
            )

    summary.phase = TickPhase.DONE
    logger.info("lifecycle.tick.complete", extra=summary.log_fields())
    return summary


async def run_tick_now(
    now: datetime | None = None,
    archive_organization_id: UUID | None = None,
    *,
    session_factory: SessionFactory = async_session_maker,
) -> TickSummary:
    """Operator entry point: generation and overdue sweep, plus an optional org archive."""
    return await run_tick(
        now=now,
        archive_organization_id=archive_organization_id,
        session_factory=session_factory,
    )
