"""Multi-assignee link rows between tasks and users."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class TaskAssignee(QueryModel, table=True):
    """A user assigned to a task, with per-assignee progress status."""

    __tablename__ = "task_assignees"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignees_task_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    user_id: UUID = Field(index=True)
    assigned_by_id: UUID | None = None
    status: str = Field(default="pending")  # pending | accepted | completed
    created_at: datetime = Field(default_factory=utcnow)
