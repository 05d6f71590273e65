"""Public schema exports shared across API route modules."""

from app.schemas.errors import ErrorResponse
from app.schemas.health import HealthStatusResponse
from app.schemas.lifecycle import (
    ArchiveSweepRequest,
    OrganizationArchiveRead,
    TickRequest,
    TickSummaryRead,
)

__all__ = [
    "ArchiveSweepRequest",
    "ErrorResponse",
    "HealthStatusResponse",
    "OrganizationArchiveRead",
    "TickRequest",
    "TickSummaryRead",
]
