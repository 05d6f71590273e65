"""Shared base for rows owned by a single organization."""

from __future__ import annotations

from uuid import UUID

from sqlmodel import Field

from app.models.base import QueryModel


class TenantScoped(QueryModel, table=False):
    """Adds the owning `organization_id` to tenant data."""

    organization_id: UUID = Field(foreign_key="organizations.id", index=True)
