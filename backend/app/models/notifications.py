"""In-app notification rows addressed to a single user."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.tenancy import TenantScoped

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Notification(TenantScoped, table=True):
    """User-facing notification, optionally linked to a task."""

    __tablename__ = "notifications"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    notification_type: str = Field(index=True)
    title: str
    message: str
    task_id: UUID | None = Field(default=None, foreign_key="tasks.id", index=True)
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
