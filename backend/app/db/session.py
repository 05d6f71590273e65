"""Database engine, session factories, and startup schema helpers."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app import models as _models
from app.core.config import settings
from app.core.logging import get_logger

# Import model modules so SQLModel metadata is fully registered at startup.
_MODEL_REGISTRY = _models

SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


def _normalize_database_url(database_url: str) -> str:
    if "://" not in database_url:
        return database_url
    scheme, rest = database_url.split("://", 1)
    if scheme == "postgresql":
        return f"postgresql+psycopg://{rest}"
    if scheme == "sqlite":
        return f"sqlite+aiosqlite://{rest}"
    return database_url


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    # In-memory SQLite lives inside one connection; share it across sessions.
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for `database_url` with dialect-appropriate pooling."""
    url = _normalize_database_url(database_url)
    return create_async_engine(url, **_engine_kwargs(url))


def build_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Session factory used by tick phases; each item gets its own session."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine: AsyncEngine = build_engine(settings.database_url)
async_session_maker: SessionFactory = build_session_factory(async_engine)


def _alembic_config() -> Config:
    alembic_ini = Path(__file__).resolve().parents[2] / "alembic.ini"

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def run_migrations() -> None:
    """Apply Alembic migrations to the latest revision."""
    from alembic import command

    logger.info("db.migrations.start")
    command.upgrade(_alembic_config(), "head")
    logger.info("db.migrations.complete")


async def create_schema(engine: AsyncEngine) -> None:
    """Create all registered tables directly from SQLModel metadata."""
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)


async def init_db() -> None:
    """Initialize database schema, running migrations when configured."""
    if settings.db_auto_migrate:
        versions_dir = Path(__file__).resolve().parents[2] / "migrations" / "versions"
        if any(versions_dir.glob("*.py")):
            await asyncio.to_thread(run_migrations)
            return
        logger.warning("db.migrations.missing_revisions; falling back to create_all")

    await create_schema(async_engine)
