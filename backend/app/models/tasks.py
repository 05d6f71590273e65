"""Task model covering both recurring templates and their concrete instances."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.core.time import utcnow
from app.models.tenancy import TenantScoped

RUNTIME_ANNOTATION_TYPES = (date, datetime)


class TaskStatus(StrEnum):
    """Persisted work status of a task."""

    PENDING = "pending"  # legacy rows only
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class ScheduleType(StrEnum):
    """Recurrence unit; `one_time` marks tasks that never spawn instances."""

    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


RECURRING_SCHEDULE_TYPES = frozenset(
    {ScheduleType.DAILY, ScheduleType.WEEKLY, ScheduleType.MONTHLY},
)


class Task(TenantScoped, table=True):
    """Organization-scoped task; templates have a recurring `schedule_type`.

    On a template `end_date` closes the recurrence window. On an instance it is
    the instance's own deadline.
    """

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "parent_template_id",
            "instance_date",
            name="uq_tasks_template_instance_date",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    title: str
    details: str | None = None
    status: str = Field(default=TaskStatus.IN_PROGRESS.value, index=True)
    is_private: bool = Field(default=False)

    schedule_type: str = Field(default=ScheduleType.ONE_TIME.value, index=True)
    schedule_frequency: int = Field(default=1, ge=1)
    start_date: date | None = None
    end_date: date | None = Field(default=None, index=True)
    last_generated_at: date | None = None

    parent_template_id: UUID | None = Field(
        default=None,
        foreign_key="tasks.id",
        index=True,
    )
    instance_date: date | None = None
    archived_at: datetime | None = Field(default=None, index=True)

    # Legacy single-assignee pointer; `task_assignees` is authoritative.
    assigned_user_id: UUID | None = Field(default=None, index=True)
    created_by_id: UUID | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)

    @property
    def is_template(self) -> bool:
        return self.parent_template_id is None and self.schedule_type in RECURRING_SCHEDULE_TYPES
