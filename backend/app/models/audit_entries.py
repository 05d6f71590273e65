"""Append-only task audit log model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.core.time import utcnow
from app.models.tenancy import TenantScoped

RUNTIME_ANNOTATION_TYPES = (datetime,)

SYSTEM_ACTOR_ID = UUID(int=0)


class AuditEntry(TenantScoped, table=True):
    """Append-only audit record for task actions, human or system initiated."""

    __tablename__ = "task_audit_logs"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    actor_id: UUID = Field(index=True)
    actor_type: str = Field(index=True)  # human | system
    action: str = Field(index=True)
    entity_type: str = Field(default="task")
    entity_id: UUID | None = None
    payload: dict[str, object] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
