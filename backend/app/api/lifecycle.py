"""Operator endpoints running lifecycle ticks and archive sweeps on demand."""

from __future__ import annotations

from fastapi import APIRouter, status

from app.api.deps import OPERATOR_DEP, SESSION_FACTORY_DEP, raise_if_skipped
from app.core.auth import OperatorContext
from app.core.logging import get_logger
from app.db.session import SessionFactory
from app.models.organization_archive_policies import ArchiveSchedule
from app.schemas.errors import ErrorResponse
from app.schemas.lifecycle import ArchiveSweepRequest, TickRequest, TickSummaryRead
from app.services.lifecycle_driver import run_tick, run_tick_now

router = APIRouter(prefix="/lifecycle", tags=["lifecycle"])
logger = get_logger(__name__)

_LEASE_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
}


@router.post("/ticks", response_model=TickSummaryRead, responses=_LEASE_RESPONSES)
async def create_tick(
    payload: TickRequest | None = None,
    operator: OperatorContext = OPERATOR_DEP,
    session_factory: SessionFactory = SESSION_FACTORY_DEP,
) -> TickSummaryRead:
    """Run generation and the overdue sweep now, optionally archiving one organization."""
    payload = payload or TickRequest()
    logger.info(
        "lifecycle.api.tick_requested",
        extra={
            "actor_type": operator.actor_type,
            "as_of": payload.as_of.isoformat() if payload.as_of else None,
        },
    )
    summary = await run_tick_now(
        payload.as_of,
        payload.archive_organization_id,
        session_factory=session_factory,
    )
    raise_if_skipped(summary)
    return TickSummaryRead.model_validate(summary.log_fields())


@router.post("/archive/{schedule}", response_model=TickSummaryRead, responses=_LEASE_RESPONSES)
async def create_archive_sweep(
    schedule: ArchiveSchedule,
    payload: ArchiveSweepRequest | None = None,
    operator: OperatorContext = OPERATOR_DEP,
    session_factory: SessionFactory = SESSION_FACTORY_DEP,
) -> TickSummaryRead:
    """Run one archive sweep for every organization on `schedule`."""
    payload = payload or ArchiveSweepRequest()
    logger.info(
        "lifecycle.api.archive_requested",
        extra={"actor_type": operator.actor_type, "schedule": schedule.value},
    )
    summary = await run_tick(
        now=payload.as_of,
        generate=False,
        archive_schedule=schedule,
        session_factory=session_factory,
    )
    raise_if_skipped(summary)
    return TickSummaryRead.model_validate(summary.log_fields())
