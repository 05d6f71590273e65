"""Expiring advisory leases keeping a single engine replica active per phase."""

from __future__ import annotations

import os
import socket
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from app.core.config import settings
from app.core.logging import get_logger
from app.core.time import utcnow
from app.db import crud
from app.models.engine_leases import EngineLease

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.db.session import SessionFactory

logger = get_logger(__name__)

TICK_LEASE = "lifecycle-tick"
ARCHIVE_LEASE = "lifecycle-archive"


class LeaseUnavailableError(Exception):
    """Raised when another holder owns an unexpired lease."""

    def __init__(self, name: str, holder: str, expires_at: datetime) -> None:
        super().__init__(f"Lease {name!r} is held by {holder!r} until {expires_at.isoformat()}")
        self.name = name
        self.holder = holder
        self.expires_at = expires_at


def default_holder() -> str:
    """Identify this process; unique per call so separate ticks never share a lease."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


async def acquire_lease(
    session: AsyncSession,
    name: str,
    holder: str,
    *,
    ttl_seconds: int,
    now: datetime | None = None,
) -> EngineLease:
    """Take `name` for `holder`, or raise `LeaseUnavailableError`.

    Missing or expired rows are claimed; a row already owned by `holder` is
    renewed.
    """
    timestamp = now or utcnow()
    expires_at = timestamp + timedelta(seconds=ttl_seconds)
    lease = await EngineLease.objects.by_id(name).first(session)
    if lease is None:
        lease = EngineLease(name=name, holder=holder, acquired_at=timestamp, expires_at=expires_at)
        session.add(lease)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            current = await EngineLease.objects.by_id(name).first(session)
            if current is None:
                raise
            raise LeaseUnavailableError(name, current.holder, current.expires_at) from None
        logger.info("lifecycle.lease.acquired", extra={"lease": name, "holder": holder})
        return lease

    if lease.holder != holder and lease.expires_at > timestamp:
        raise LeaseUnavailableError(name, lease.holder, lease.expires_at)

    # Conditional takeover so two replicas racing for an expired row cannot both win.
    claimed = await crud.update_where(
        session,
        EngineLease,
        col(EngineLease.name) == name,
        col(EngineLease.holder) == lease.holder,
        col(EngineLease.expires_at) == lease.expires_at,
        holder=holder,
        acquired_at=timestamp,
        expires_at=expires_at,
        commit=True,
    )
    if claimed == 0:
        await session.refresh(lease)
        raise LeaseUnavailableError(name, lease.holder, lease.expires_at)
    await session.refresh(lease)
    logger.info("lifecycle.lease.acquired", extra={"lease": name, "holder": holder})
    return lease


async def release_lease(session: AsyncSession, name: str, holder: str) -> bool:
    """Drop `name` if `holder` still owns it. Returns whether a row was removed."""
    removed = await crud.delete_where(
        session,
        EngineLease,
        col(EngineLease.name) == name,
        col(EngineLease.holder) == holder,
        commit=True,
    )
    if removed:
        logger.info("lifecycle.lease.released", extra={"lease": name, "holder": holder})
    else:
        logger.warning("lifecycle.lease.release_missed", extra={"lease": name, "holder": holder})
    return bool(removed)


@asynccontextmanager
async def hold_lease(
    session_factory: SessionFactory,
    name: str,
    *,
    holder: str | None = None,
    ttl_seconds: int | None = None,
    now: datetime | None = None,
) -> AsyncIterator[str | None]:
    """Hold `name` for the duration of the block.

    Yields the holder id, or None when leasing is disabled in settings.
    """
    if not settings.lifecycle_lease_enabled:
        yield None
        return

    owner = holder or default_holder()
    async with session_factory() as session:
        await acquire_lease(
            session,
            name,
            owner,
            ttl_seconds=ttl_seconds or settings.lifecycle_lease_ttl_seconds,
            now=now,
        )
    try:
        yield owner
    finally:
        async with session_factory() as session:
            await release_lease(session, name, owner)
