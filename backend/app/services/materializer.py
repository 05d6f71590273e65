"""Instance materialization: turn a due template into a concrete task.

One call creates the instance row, snapshots requirements and assignees,
notifies assignees, audits the generation, and advances the template's
`last_generated_at` watermark. Everything commits in a single transaction and
the watermark is written last, so a failure anywhere leaves the template
untouched and the next tick retries the same date.

Instances are keyed by `(parent_template_id, instance_date)`. A retry that
finds an instance already present for the date only advances the watermark.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.task_assignees import TaskAssignee
from app.models.task_requirements import TaskRequirement
from app.models.tasks import ScheduleType, Task, TaskStatus
from app.services.audit import record_system_audit
from app.services.notifications import TASK_ASSIGNED, notify
from app.services.recurrence import as_calendar_date, compute_instance_end_date

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

RECURRING_NOTIFICATION_TITLE = "New recurring task"
INSTANCE_GENERATED_ACTION = "instance_generated"


class MaterializationError(Exception):
    """Raised when a template cannot be materialized for a date."""

    def __init__(self, template_id: UUID, message: str) -> None:
        super().__init__(f"Template {template_id}: {message}")
        self.template_id = template_id


@dataclass(frozen=True)
class MaterializationResult:
    """Outcome of materializing one template for one date."""

    template_id: UUID
    instance_id: UUID
    instance_date: date
    created: bool
    notified_user_ids: tuple[UUID, ...] = field(default_factory=tuple)


async def find_instance_for_date(
    session: AsyncSession,
    *,
    template_id: UUID,
    instance_date: date,
) -> Task | None:
    return await Task.objects.filter_by(
        parent_template_id=template_id,
        instance_date=instance_date,
    ).first(session)


def _advance_watermark(template: Task, day: date, now: datetime) -> None:
    # Never rewind: a backfill for an older date must not re-open later dates.
    if template.last_generated_at is not None and template.last_generated_at >= day:
        return
    template.last_generated_at = day
    template.updated_at = now


def _build_instance(template: Task, day: date, now: datetime) -> Task:
    return Task(
        organization_id=template.organization_id,
        title=template.title,
        details=template.details,
        is_private=template.is_private,
        created_by_id=template.created_by_id,
        status=TaskStatus.IN_PROGRESS.value,
        schedule_type=ScheduleType.ONE_TIME.value,
        schedule_frequency=1,
        start_date=day,
        end_date=compute_instance_end_date(template, day),
        parent_template_id=template.id,
        instance_date=day,
        created_at=now,
        updated_at=now,
    )


async def _copy_requirements(session: AsyncSession, *, template: Task, instance: Task) -> int:
    requirements = await (
        TaskRequirement.objects.filter_by(task_id=template.id)
        .order_by(col(TaskRequirement.order_index).asc())
        .all(session)
    )
    for requirement in requirements:
        session.add(
            TaskRequirement(
                task_id=instance.id,
                description=requirement.description,
                order_index=requirement.order_index,
            ),
        )
    return len(requirements)


async def _copy_assignees(
    session: AsyncSession,
    *,
    template: Task,
    instance: Task,
) -> list[UUID]:
    assignees = await (
        TaskAssignee.objects.filter_by(task_id=template.id)
        .order_by(col(TaskAssignee.created_at).asc())
        .all(session)
    )
    user_ids: list[UUID] = []
    for assignee in assignees:
        if assignee.user_id in user_ids:
            continue
        session.add(
            TaskAssignee(
                task_id=instance.id,
                user_id=assignee.user_id,
                assigned_by_id=assignee.assigned_by_id,
                status="pending",
            ),
        )
        user_ids.append(assignee.user_id)
    return user_ids


async def _notify_assignee(session: AsyncSession, *, instance: Task, user_id: UUID) -> None:
    await notify(
        session,
        organization_id=instance.organization_id,
        user_id=user_id,
        notification_type=TASK_ASSIGNED,
        title=RECURRING_NOTIFICATION_TITLE,
        message=f'A new instance of "{instance.title}" has been created',
        task_id=instance.id,
    )


async def _reuse_existing_instance(
    session: AsyncSession,
    *,
    template: Task,
    existing: Task,
    day: date,
    now: datetime,
) -> MaterializationResult:
    _advance_watermark(template, day, now)
    session.add(template)
    await session.commit()
    logger.info(
        "lifecycle.generation.duplicate_suppressed",
        extra={
            "template_id": str(template.id),
            "instance_id": str(existing.id),
            "instance_date": day.isoformat(),
        },
    )
    return MaterializationResult(
        template_id=template.id,
        instance_id=existing.id,
        instance_date=day,
        created=False,
    )


async def materialize_instance(
    session: AsyncSession,
    template: Task,
    as_of: date | datetime,
    *,
    now: datetime | None = None,
) -> MaterializationResult:
    """Create the instance of `template` for `as_of` and advance its watermark."""
    template_id = template.id
    if not template.is_template:
        raise MaterializationError(template_id, "task is not a recurring template")
    day = as_calendar_date(as_of)
    timestamp = now or utcnow()

    existing = await find_instance_for_date(session, template_id=template_id, instance_date=day)
    if existing is not None:
        return await _reuse_existing_instance(
            session, template=template, existing=existing, day=day, now=timestamp
        )

    instance = _build_instance(template, day, timestamp)
    try:
        session.add(instance)
        await session.flush()

        requirement_count = await _copy_requirements(session, template=template, instance=instance)
        assignee_ids = await _copy_assignees(session, template=template, instance=instance)

        notified: list[UUID] = []
        for user_id in assignee_ids:
            if user_id == template.created_by_id:
                continue
            await _notify_assignee(session, instance=instance, user_id=user_id)
            notified.append(user_id)

        legacy_user_id = template.assigned_user_id
        if legacy_user_id is not None and legacy_user_id not in assignee_ids:
            instance.assigned_user_id = legacy_user_id
            session.add(instance)
            if legacy_user_id != template.created_by_id:
                await _notify_assignee(session, instance=instance, user_id=legacy_user_id)
                notified.append(legacy_user_id)

        await record_system_audit(
            session,
            organization_id=instance.organization_id,
            task_id=instance.id,
            action=INSTANCE_GENERATED_ACTION,
            payload={
                "template_id": str(template_id),
                "instance_date": day.isoformat(),
                "schedule_type": template.schedule_type,
                "schedule_frequency": template.schedule_frequency,
            },
        )

        _advance_watermark(template, day, timestamp)
        session.add(template)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        await session.refresh(template)
        existing = await find_instance_for_date(
            session, template_id=template_id, instance_date=day
        )
        if existing is None:
            raise MaterializationError(template_id, "integrity error while creating instance") from exc
        return await _reuse_existing_instance(
            session, template=template, existing=existing, day=day, now=timestamp
        )

    logger.info(
        "lifecycle.generation.instance_created",
        extra={
            "template_id": str(template_id),
            "instance_id": str(instance.id),
            "instance_date": day.isoformat(),
            "requirements": requirement_count,
            "assignees": len(assignee_ids),
            "notified": len(notified),
        },
    )
    return MaterializationResult(
        template_id=template_id,
        instance_id=instance.id,
        instance_date=day,
        created=True,
        notified_user_ids=tuple(notified),
    )
