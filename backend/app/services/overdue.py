"""Overdue sweep: bulk-expire one-off tasks whose deadline has passed."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlmodel import col

from app.core.config import settings
from app.core.logging import get_logger
from app.core.time import calendar_date, utcnow
from app.db import crud
from app.models.tasks import ScheduleType, Task, TaskStatus
from app.services.task_state_machine import TaskEvent, allowed_source_values

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


async def sweep_overdue(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    timezone: str | None = None,
) -> int:
    """Move every live task past its `end_date` to `overdue` and return the count.

    Recurring templates are excluded: their `end_date` closes the recurrence
    window rather than marking a deadline. Re-running is a no-op for tasks the
    state machine no longer allows to become overdue.
    """
    timestamp = now or utcnow()
    today = calendar_date(timestamp, timezone or settings.lifecycle_timezone)
    updated = await crud.update_where(
        session,
        Task,
        col(Task.archived_at).is_(None),
        col(Task.schedule_type) == ScheduleType.ONE_TIME.value,
        col(Task.status).in_(allowed_source_values(TaskEvent.MARK_OVERDUE)),
        col(Task.end_date).is_not(None),
        col(Task.end_date) < today,
        status=TaskStatus.OVERDUE.value,
        updated_at=timestamp,
        commit=True,
    )
    logger.info(
        "lifecycle.overdue.swept",
        extra={"today": today.isoformat(), "updated": updated},
    )
    return updated
