"""Base SQLModel class exposing the `objects` query manager."""

from __future__ import annotations

from typing import Any, ClassVar

from sqlmodel import SQLModel

from app.db.query_manager import ManagerDescriptor


class QueryModel(SQLModel, table=False):
    """SQLModel base with a Django-style `objects` manager for reads."""

    objects: ClassVar[ManagerDescriptor[Any]] = ManagerDescriptor()
