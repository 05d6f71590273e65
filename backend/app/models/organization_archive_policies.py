"""Per-organization auto-archive settings consumed by the archival sweep."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class ArchiveSchedule(StrEnum):
    """Cron trigger an organization's archive pass runs on."""

    DAILY = "daily"
    WEEKLY_SUNDAY = "weekly_sunday"
    WEEKLY_MONDAY = "weekly_monday"


class OrganizationArchivePolicy(QueryModel, table=True):
    """One row per organization controlling completed-task retention."""

    __tablename__ = "organization_archive_policies"  # pyright: ignore[reportAssignmentType]

    organization_id: UUID = Field(foreign_key="organizations.id", primary_key=True)
    auto_archive_enabled: bool = Field(default=False, index=True)
    auto_archive_after_days: int = Field(default=30, ge=0)
    archive_schedule: str = Field(default=ArchiveSchedule.DAILY.value, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
