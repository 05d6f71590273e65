"""Operator authentication for lifecycle maintenance endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest
from typing import Literal

from fastapi import Request, status
from fastapi.exceptions import HTTPException

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OperatorContext:
    """Authenticated operator context resolved from the bearer token."""

    actor_type: Literal["operator"] = "operator"


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value:
        return None
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", maxsplit=1)[1].strip()
    return token or None


async def require_operator(request: Request) -> OperatorContext:
    """Reject requests that do not carry the configured operator bearer token."""
    token = _extract_bearer_token(request.headers.get("Authorization"))
    expected = settings.ops_auth_token.strip()
    if token is None or not expected or not compare_digest(token, expected):
        logger.info(
            "auth.operator.rejected",
            extra={"path": request.url.path, "has_token": token is not None},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return OperatorContext()
