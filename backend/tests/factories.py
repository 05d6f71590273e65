# ruff: noqa: INP001
"""Database builders shared by the lifecycle integration tests."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID, uuid4

from sqlmodel.ext.asyncio.session import AsyncSession

from app.db.session import SessionFactory, build_engine, build_session_factory, create_schema
from app.models.organization_archive_policies import OrganizationArchivePolicy
from app.models.organizations import Organization
from app.models.task_assignees import TaskAssignee
from app.models.task_requirements import TaskRequirement
from app.models.tasks import Task


async def make_session_factory() -> SessionFactory:
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    return build_session_factory(engine)


async def seed_organization(
    session: AsyncSession,
    *,
    archive_enabled: bool | None = None,
    archive_after_days: int = 30,
    archive_schedule: str = "daily",
) -> Organization:
    organization = Organization(id=uuid4(), name="Acme")
    session.add(organization)
    if archive_enabled is not None:
        session.add(
            OrganizationArchivePolicy(
                organization_id=organization.id,
                auto_archive_enabled=archive_enabled,
                auto_archive_after_days=archive_after_days,
                archive_schedule=archive_schedule,
            ),
        )
    await session.commit()
    return organization


async def seed_template(
    session: AsyncSession,
    *,
    organization_id: UUID,
    schedule_type: str = "daily",
    schedule_frequency: int = 1,
    start_date: date = date(2025, 1, 1),
    end_date: date | None = None,
    last_generated_at: date | None = None,
    created_by_id: UUID | None = None,
    assigned_user_id: UUID | None = None,
    requirements: Iterable[str] = (),
    assignee_ids: Iterable[UUID] = (),
) -> Task:
    template = Task(
        organization_id=organization_id,
        title="Check fire extinguishers",
        details="Walk every floor.",
        schedule_type=schedule_type,
        schedule_frequency=schedule_frequency,
        start_date=start_date,
        end_date=end_date,
        last_generated_at=last_generated_at,
        created_by_id=created_by_id,
        assigned_user_id=assigned_user_id,
        created_at=datetime(2024, 12, 31),
        updated_at=datetime(2024, 12, 31),
    )
    session.add(template)
    await session.flush()
    for index, description in enumerate(requirements):
        session.add(TaskRequirement(task_id=template.id, description=description, order_index=index))
    for user_id in assignee_ids:
        session.add(TaskAssignee(task_id=template.id, user_id=user_id, status="accepted"))
    await session.commit()
    return template


async def seed_task(
    session: AsyncSession,
    *,
    organization_id: UUID,
    status: str = "in_progress",
    end_date: date | None = None,
    updated_at: datetime = datetime(2025, 1, 1),
    archived_at: datetime | None = None,
    schedule_type: str = "one_time",
) -> Task:
    task = Task(
        organization_id=organization_id,
        title="One-off task",
        status=status,
        schedule_type=schedule_type,
        end_date=end_date,
        archived_at=archived_at,
        created_at=updated_at,
        updated_at=updated_at,
    )
    session.add(task)
    await session.commit()
    return task
