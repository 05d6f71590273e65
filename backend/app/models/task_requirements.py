"""Ordered checklist items attached to a task."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class TaskRequirement(QueryModel, table=True):
    """Requirement line; instances receive verbatim copies from their template."""

    __tablename__ = "task_requirements"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    description: str
    order_index: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
