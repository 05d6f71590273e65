"""Reusable FastAPI dependencies for the operator endpoints.

Routers compose these instead of reaching for the session factory or the
operator token check directly, so tests can swap the database with a single
dependency override.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from app.core.auth import require_operator
from app.db.session import SessionFactory, async_session_maker
from app.services.lifecycle_driver import TickSummary

OPERATOR_DEP = Depends(require_operator)


def get_session_factory() -> SessionFactory:
    """Session factory handed to engine phases; each item opens its own session."""
    return async_session_maker


SESSION_FACTORY_DEP = Depends(get_session_factory)


def raise_if_skipped(summary: TickSummary) -> TickSummary:
    """Map a tick skipped by a held lease to HTTP 409."""
    if summary.skipped:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another engine holds the lifecycle lease.",
        )
    return summary
