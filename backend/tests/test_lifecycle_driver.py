# ruff: noqa: INP001
"""End-to-end tick tests for the lifecycle driver."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from uuid import uuid4

import pytest

from app.core.time import utcnow
from app.models.engine_leases import EngineLease
from app.models.notifications import Notification
from app.models.tasks import Task
from app.services import lifecycle_driver, materializer
from app.services.leases import TICK_LEASE
from app.services.lifecycle_driver import TickPhase, run_tick, run_tick_now
from factories import make_session_factory, seed_organization, seed_task, seed_template


async def _instances(factory, template_id):  # type: ignore[no-untyped-def]
    async with factory() as session:
        return await Task.objects.filter_by(parent_template_id=template_id).all(session)


@pytest.mark.asyncio
async def test_daily_tick_creates_one_instance_and_is_idempotent() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(session, organization_id=org.id)

    now = datetime(2025, 1, 2, 0, 0)
    first = await run_tick(now=now, session_factory=factory)
    second = await run_tick(now=now, session_factory=factory)

    assert first.templates_checked == 1
    assert first.instances_created == 1
    assert first.phase is TickPhase.DONE
    assert second.instances_created == 0
    assert len(await _instances(factory, template.id)) == 1
    async with factory() as session:
        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at == date(2025, 1, 2)


@pytest.mark.asyncio
async def test_weekly_template_waits_for_full_interval() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            schedule_type="weekly",
            schedule_frequency=2,
            start_date=date(2025, 1, 6),
        )

    await run_tick(now=datetime(2025, 1, 13), session_factory=factory)
    assert await _instances(factory, template.id) == []

    summary = await run_tick(now=datetime(2025, 1, 20), session_factory=factory)
    assert summary.instances_created == 1


@pytest.mark.asyncio
async def test_monthly_template_clamps_to_month_end() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            schedule_type="monthly",
            start_date=date(2025, 1, 31),
        )

    feb = await run_tick(now=datetime(2025, 2, 28), session_factory=factory)
    mar = await run_tick(now=datetime(2025, 3, 31), session_factory=factory)

    assert feb.instances_created == 1
    assert mar.instances_created == 1
    dates = sorted(i.instance_date for i in await _instances(factory, template.id))
    assert dates == [date(2025, 2, 28), date(2025, 3, 31)]


@pytest.mark.asyncio
async def test_ineligible_templates_are_not_enumerated() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        await seed_template(session, organization_id=org.id, start_date=date(2025, 2, 1))
        await seed_template(session, organization_id=org.id, end_date=date(2024, 12, 31))
        archived = await seed_template(session, organization_id=org.id)
        archived.archived_at = datetime(2024, 12, 31)
        session.add(archived)
        await session.commit()

    summary = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)

    assert summary.templates_checked == 0
    assert summary.instances_created == 0


@pytest.mark.asyncio
async def test_overdue_sweep_runs_after_generation() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        await seed_template(session, organization_id=org.id)
        late = await seed_task(session, organization_id=org.id, end_date=date(2025, 1, 1))

    summary = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)

    assert summary.instances_created == 1
    assert summary.tasks_overdue == 1
    async with factory() as session:
        row = await Task.objects.by_id(late.id).first(session)
        assert row is not None and row.status == "overdue"


@pytest.mark.asyncio
async def test_failing_template_is_isolated(monkeypatch: pytest.MonkeyPatch) -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        bad = await seed_template(session, organization_id=org.id)
        good = await seed_template(session, organization_id=org.id)

    original = lifecycle_driver.materialize_instance

    async def _flaky(session, template, as_of, *, now=None):  # type: ignore[no-untyped-def]
        if template.id == bad.id:
            raise RuntimeError("template exploded")
        return await original(session, template, as_of, now=now)

    monkeypatch.setattr(lifecycle_driver, "materialize_instance", _flaky)

    summary = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)

    assert summary.templates_checked == 2
    assert summary.failures == 1
    assert summary.instances_created == 1
    assert await _instances(factory, bad.id) == []
    assert len(await _instances(factory, good.id)) == 1


@pytest.mark.asyncio
async def test_partial_failure_is_retried_on_next_tick(monkeypatch: pytest.MonkeyPatch) -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(session, organization_id=org.id, assignee_ids=[uuid4()])

    async def _boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("audit sink down")

    with monkeypatch.context() as patch:
        patch.setattr(materializer, "record_system_audit", _boom)
        failed = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)

    assert failed.failures == 1
    assert await _instances(factory, template.id) == []
    async with factory() as session:
        assert await Notification.objects.all().all(session) == []
        row = await Task.objects.by_id(template.id).first(session)
        assert row is not None and row.last_generated_at is None

    retried = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)
    assert retried.instances_created == 1


@pytest.mark.asyncio
async def test_held_tick_lease_skips_generation() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(session, organization_id=org.id)
        session.add(
            EngineLease(
                name=TICK_LEASE,
                holder="other-replica",
                acquired_at=utcnow(),
                expires_at=utcnow() + timedelta(hours=1),
            ),
        )
        await session.commit()

    summary = await run_tick(now=datetime(2025, 1, 2), session_factory=factory)

    assert summary.skipped is True
    assert summary.templates_checked == 0
    assert await _instances(factory, template.id) == []


@pytest.mark.asyncio
async def test_archive_schedule_tick_skips_generation() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session, archive_enabled=True, archive_after_days=7)
        template = await seed_template(session, organization_id=org.id)
        await seed_task(
            session, organization_id=org.id, status="completed", updated_at=datetime(2025, 1, 1)
        )

    summary = await run_tick(
        now=datetime(2025, 1, 9),
        generate=False,
        archive_schedule="daily",
        session_factory=factory,
    )

    assert summary.tasks_archived == 1
    assert summary.templates_checked == 0
    assert await _instances(factory, template.id) == []


@pytest.mark.asyncio
async def test_run_tick_now_with_organization_archive() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session, archive_enabled=True, archive_after_days=7)
        await seed_template(session, organization_id=org.id)
        await seed_task(
            session, organization_id=org.id, status="completed", updated_at=datetime(2025, 1, 1)
        )

    summary = await run_tick_now(
        datetime(2025, 1, 9), archive_organization_id=org.id, session_factory=factory
    )

    assert summary.instances_created == 1
    assert summary.tasks_archived == 1
    assert summary.log_fields()["as_of"] == "2025-01-09"
