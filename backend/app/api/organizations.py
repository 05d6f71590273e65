"""Per-organization operator endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from app.api.deps import OPERATOR_DEP, SESSION_FACTORY_DEP, raise_if_skipped
from app.core.auth import OperatorContext
from app.core.logging import get_logger
from app.db.session import SessionFactory
from app.models.organizations import Organization
from app.schemas.errors import ErrorResponse
from app.schemas.lifecycle import ArchiveSweepRequest, OrganizationArchiveRead
from app.services.lifecycle_driver import run_tick

router = APIRouter(prefix="/organizations", tags=["organizations"])
logger = get_logger(__name__)


@router.post(
    "/{organization_id}/archive",
    response_model=OrganizationArchiveRead,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def archive_organization(
    organization_id: UUID,
    payload: ArchiveSweepRequest | None = None,
    operator: OperatorContext = OPERATOR_DEP,
    session_factory: SessionFactory = SESSION_FACTORY_DEP,
) -> OrganizationArchiveRead:
    """Archive an organization's stale completed tasks now.

    Runs only when the organization's auto-archive policy is enabled; otherwise
    nothing is archived and the count is 0.
    """
    async with session_factory() as session:
        organization = await Organization.objects.by_id(organization_id).first(session)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

    logger.info(
        "lifecycle.api.org_archive_requested",
        extra={"actor_type": operator.actor_type, "organization_id": str(organization_id)},
    )
    summary = await run_tick(
        now=payload.as_of if payload else None,
        generate=False,
        archive_organization_id=organization_id,
        session_factory=session_factory,
    )
    raise_if_skipped(summary)
    return OrganizationArchiveRead(organization_id=organization_id, archived=summary.tasks_archived)
