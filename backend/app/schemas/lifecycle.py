"""Request/response schemas for the operator lifecycle endpoints."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (date, datetime, UUID)


class TickRequest(SQLModel):
    """Optional overrides for an operator-triggered tick."""

    as_of: datetime | None = Field(
        default=None,
        description="Clock value the tick runs at. Defaults to the current UTC time.",
        examples=["2025-01-02T00:00:00Z"],
    )
    archive_organization_id: UUID | None = Field(
        default=None,
        description="Also run the manual archive pass for this organization.",
    )


class ArchiveSweepRequest(SQLModel):
    """Optional clock override for an archive sweep."""

    as_of: datetime | None = None


class TickSummaryRead(SQLModel):
    """Counts produced by one lifecycle tick."""

    as_of: date
    phase: str = Field(examples=["done"])
    templates_checked: int
    instances_created: int
    duplicates_suppressed: int
    tasks_overdue: int
    tasks_archived: int
    failures: int
    skipped: bool = Field(
        description="True when a lease held by another engine skipped part of the tick.",
    )


class OrganizationArchiveRead(SQLModel):
    """Result of a manual archive pass for one organization."""

    organization_id: UUID
    archived: int
