"""Audit logging sink for task lifecycle actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.time import utcnow
from app.models.audit_entries import SYSTEM_ACTOR_ID, AuditEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


async def record_audit(
    session: AsyncSession,
    *,
    organization_id: UUID,
    task_id: UUID,
    actor_id: UUID,
    actor_type: str,
    action: str,
    entity_type: str = "task",
    entity_id: UUID | None = None,
    payload: dict[str, object] | None = None,
    commit: bool = True,
) -> AuditEntry:
    """Create an append-only audit log entry."""
    entry = AuditEntry(
        organization_id=organization_id,
        task_id=task_id,
        actor_id=actor_id,
        actor_type=actor_type,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id if entity_id is not None else task_id,
        payload=payload,
        created_at=utcnow(),
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry


async def record_system_audit(
    session: AsyncSession,
    *,
    organization_id: UUID,
    task_id: UUID,
    action: str,
    payload: dict[str, object] | None = None,
    commit: bool = False,
) -> AuditEntry:
    """Record an engine-initiated action under the sentinel system actor."""
    return await record_audit(
        session,
        organization_id=organization_id,
        task_id=task_id,
        actor_id=SYSTEM_ACTOR_ID,
        actor_type="system",
        action=action,
        payload=payload,
        commit=commit,
    )
