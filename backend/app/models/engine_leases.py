"""Named, expiring leases that keep a single engine replica active per phase."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class EngineLease(QueryModel, table=True):
    """Advisory lease row; a holder owns `name` until `expires_at`."""

    __tablename__ = "engine_leases"  # pyright: ignore[reportAssignmentType]

    name: str = Field(primary_key=True)
    holder: str
    acquired_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
