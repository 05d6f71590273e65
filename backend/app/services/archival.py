"""Archival sweep retiring completed tasks past an organization's retention window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlmodel import col

from app.core.logging import get_logger
from app.core.time import utcnow
from app.db import crud
from app.db.session import SessionFactory, async_session_maker
from app.models.organization_archive_policies import ArchiveSchedule, OrganizationArchivePolicy
from app.models.tasks import Task
from app.services.audit import record_system_audit
from app.services.task_state_machine import TaskEvent, allowed_source_values

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

AUTO_ARCHIVED_ACTION = "auto_archived"


@dataclass
class ArchiveSweepResult:
    """Totals for one archive sweep across organizations."""

    schedule: str
    organizations: int = 0
    archived: int = 0
    failures: int = 0


def archive_cutoff(policy: OrganizationArchivePolicy, now: datetime) -> datetime:
    return now - timedelta(days=policy.auto_archive_after_days)


async def archive_organization_tasks(
    session: AsyncSession,
    policy: OrganizationArchivePolicy,
    *,
    now: datetime | None = None,
) -> int:
    """Archive one organization's stale completed tasks and audit each of them.

    `updated_at` is left untouched so the archive timestamp is the only trace
    of the sweep on the task row.
    """
    timestamp = now or utcnow()
    cutoff = archive_cutoff(policy, timestamp)
    candidates = await Task.objects.filter(
        col(Task.organization_id) == policy.organization_id,
        col(Task.status).in_(allowed_source_values(TaskEvent.ARCHIVE)),
        col(Task.archived_at).is_(None),
        col(Task.updated_at) < cutoff,
    ).all(session)
    if not candidates:
        return 0

    candidate_ids = [task.id for task in candidates]
    archived = await crud.update_where(
        session,
        Task,
        col(Task.id).in_(candidate_ids),
        col(Task.archived_at).is_(None),
        archived_at=timestamp,
        commit=False,
    )
    # Rows stamped by an overlapping sweep keep their own audit entry.
    stamped = await Task.objects.filter(
        col(Task.id).in_(candidate_ids),
        col(Task.archived_at) == timestamp,
    ).all(session)
    for task_id in sorted(task.id for task in stamped):
        await record_system_audit(
            session,
            organization_id=policy.organization_id,
            task_id=task_id,
            action=AUTO_ARCHIVED_ACTION,
            payload={
                "auto_archive_after_days": policy.auto_archive_after_days,
                "schedule_type": policy.archive_schedule,
            },
        )
    await session.commit()
    if archived:
        logger.info(
            "lifecycle.archive.org_archived",
            extra={
                "organization_id": str(policy.organization_id),
                "archived": archived,
                "cutoff": cutoff.isoformat(),
            },
        )
    return archived


async def _enabled_policies(
    session: AsyncSession,
    *,
    schedule: ArchiveSchedule | None = None,
    organization_id: UUID | None = None,
) -> list[OrganizationArchivePolicy]:
    queryset = OrganizationArchivePolicy.objects.filter_by(auto_archive_enabled=True)
    if schedule is not None:
        queryset = queryset.filter_by(archive_schedule=schedule.value)
    if organization_id is not None:
        queryset = queryset.filter_by(organization_id=organization_id)
    return await queryset.order_by(col(OrganizationArchivePolicy.organization_id)).all(session)


async def sweep_archive(
    schedule: ArchiveSchedule | str,
    *,
    now: datetime | None = None,
    session_factory: SessionFactory = async_session_maker,
) -> ArchiveSweepResult:
    """Run the archive pass for every enabled organization on `schedule`.

    Each organization runs in its own session; a failure is logged and the
    sweep moves on to the next organization.
    """
    tag = ArchiveSchedule(schedule)
    timestamp = now or utcnow()
    result = ArchiveSweepResult(schedule=tag.value)

    async with session_factory() as session:
        policies = await _enabled_policies(session, schedule=tag)

    for policy in policies:
        result.organizations += 1
        try:
            async with session_factory() as session:
                result.archived += await archive_organization_tasks(
                    session, policy, now=timestamp
                )
        except Exception:
            result.failures += 1
            logger.exception(
                "lifecycle.archive.org_failed",
                extra={"organization_id": str(policy.organization_id), "schedule": tag.value},
            )

    logger.info(
        "lifecycle.archive.complete",
        extra={
            "schedule": tag.value,
            "organizations": result.organizations,
            "archived": result.archived,
            "failures": result.failures,
        },
    )
    return result


async def archive_organization_now(
    organization_id: UUID,
    *,
    now: datetime | None = None,
    session_factory: SessionFactory = async_session_maker,
) -> int:
    """Operator-triggered archive pass for one organization.

    Organizations without an enabled policy are left alone and report 0.
    """
    async with session_factory() as session:
        policies = await _enabled_policies(session, organization_id=organization_id)
        if not policies:
            logger.info(
                "lifecycle.archive.manual_skipped",
                extra={"organization_id": str(organization_id)},
            )
            return 0
        return await archive_organization_tasks(session, policies[0], now=now)
