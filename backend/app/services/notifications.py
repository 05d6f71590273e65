"""Notification sink used by the lifecycle engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.notifications import Notification

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

TASK_ASSIGNED = "task_assigned"


async def notify(
    session: AsyncSession,
    *,
    organization_id: UUID,
    user_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    task_id: UUID | None = None,
    commit: bool = False,
) -> Notification:
    """Queue a notification row for `user_id` on the session."""
    notification = Notification(
        organization_id=organization_id,
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        task_id=task_id,
        created_at=utcnow(),
    )
    session.add(notification)
    if commit:
        await session.commit()
        await session.refresh(notification)
    logger.debug(
        "notification.created",
        extra={
            "user_id": str(user_id),
            "notification_type": notification_type,
            "task_id": str(task_id) if task_id else None,
        },
    )
    return notification
