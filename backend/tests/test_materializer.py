# ruff: noqa: INP001
"""Instance materialization tests against an in-memory database."""

from __future__ import annotations

from datetime import date, datetime
from uuid import uuid4

import pytest
from sqlmodel import col

from app.models.audit_entries import SYSTEM_ACTOR_ID, AuditEntry
from app.models.notifications import Notification
from app.models.task_assignees import TaskAssignee
from app.models.task_requirements import TaskRequirement
from app.models.tasks import Task
from app.services import materializer
from app.services.materializer import (
    MaterializationError,
    find_instance_for_date,
    materialize_instance,
)
from factories import make_session_factory, seed_organization, seed_task, seed_template

NOW = datetime(2025, 1, 2, 0, 5)


@pytest.mark.asyncio
async def test_materialize_copies_requirements_and_assignees() -> None:
    factory = await make_session_factory()
    creator, u1, u2 = uuid4(), uuid4(), uuid4()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            created_by_id=creator,
            requirements=["A", "B"],
            assignee_ids=[u1, u2],
        )

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        result = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    assert result.created is True
    assert set(result.notified_user_ids) == {u1, u2}

    async with factory() as session:
        instance = await Task.objects.by_id(result.instance_id).first(session)
        assert instance is not None
        assert instance.parent_template_id == template.id
        assert instance.schedule_type == "one_time"
        assert instance.status == "in_progress"
        assert instance.instance_date == date(2025, 1, 2)
        assert instance.start_date == date(2025, 1, 2)
        assert instance.end_date == date(2025, 1, 3)
        assert instance.title == template.title
        assert instance.created_by_id == creator
        assert instance.is_template is False

        requirements = await (
            TaskRequirement.objects.filter_by(task_id=instance.id)
            .order_by(col(TaskRequirement.order_index).asc())
            .all(session)
        )
        assert [(r.description, r.order_index) for r in requirements] == [("A", 0), ("B", 1)]

        assignees = await TaskAssignee.objects.filter_by(task_id=instance.id).all(session)
        assert {a.user_id for a in assignees} == {u1, u2}
        assert {a.status for a in assignees} == {"pending"}

        notifications = await Notification.objects.filter_by(task_id=instance.id).all(session)
        assert sorted(str(n.user_id) for n in notifications) == sorted([str(u1), str(u2)])
        assert {n.notification_type for n in notifications} == {"task_assigned"}
        assert {n.title for n in notifications} == {"New recurring task"}

        audits = await AuditEntry.objects.filter_by(task_id=instance.id).all(session)
        assert [a.action for a in audits] == ["instance_generated"]
        assert audits[0].actor_id == SYSTEM_ACTOR_ID
        assert audits[0].actor_type == "system"

        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at == date(2025, 1, 2)


@pytest.mark.asyncio
async def test_generating_actor_is_not_notified() -> None:
    factory = await make_session_factory()
    creator, other = uuid4(), uuid4()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            created_by_id=creator,
            assignee_ids=[creator, other],
        )

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        result = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    assert result.notified_user_ids == (other,)
    async with factory() as session:
        assignees = await TaskAssignee.objects.filter_by(task_id=result.instance_id).all(session)
        assert {a.user_id for a in assignees} == {creator, other}


@pytest.mark.asyncio
async def test_legacy_assignee_pointer_propagates_when_not_in_assignee_set() -> None:
    factory = await make_session_factory()
    legacy, u1 = uuid4(), uuid4()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            assigned_user_id=legacy,
            assignee_ids=[u1],
        )

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        result = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    assert set(result.notified_user_ids) == {legacy, u1}
    async with factory() as session:
        instance = await Task.objects.by_id(result.instance_id).first(session)
        assert instance is not None
        assert instance.assigned_user_id == legacy
        notifications = await Notification.objects.filter_by(user_id=legacy).all(session)
        assert len(notifications) == 1


@pytest.mark.asyncio
async def test_legacy_pointer_already_assigned_gets_single_notification() -> None:
    factory = await make_session_factory()
    u1 = uuid4()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session,
            organization_id=org.id,
            assigned_user_id=u1,
            assignee_ids=[u1],
        )

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        result = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    assert result.notified_user_ids == (u1,)
    async with factory() as session:
        instance = await Task.objects.by_id(result.instance_id).first(session)
        assert instance is not None
        assert instance.assigned_user_id is None


@pytest.mark.asyncio
async def test_existing_instance_for_date_is_reused() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(session, organization_id=org.id)

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        first = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        # Simulate a crash that left the watermark behind the created instance.
        template.last_generated_at = None
        session.add(template)
        await session.commit()
        second = await materialize_instance(session, template, date(2025, 1, 2), now=NOW)

    assert second.created is False
    assert second.instance_id == first.instance_id
    async with factory() as session:
        instances = await Task.objects.filter_by(parent_template_id=template.id).all(session)
        assert len(instances) == 1
        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at == date(2025, 1, 2)


@pytest.mark.asyncio
async def test_watermark_is_never_rewound() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session, organization_id=org.id, last_generated_at=date(2025, 1, 10)
        )

    async with factory() as session:
        template = await Task.objects.by_id(template.id).first(session)
        assert template is not None
        await materialize_instance(session, template, date(2025, 1, 5), now=NOW)

    async with factory() as session:
        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at == date(2025, 1, 10)


@pytest.mark.asyncio
async def test_failure_leaves_watermark_and_rows_untouched(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session, organization_id=org.id, requirements=["A"], assignee_ids=[uuid4()]
        )

    async def _boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("audit sink down")

    monkeypatch.setattr(materializer, "record_system_audit", _boom)

    with pytest.raises(RuntimeError, match="audit sink down"):
        async with factory() as session:
            loaded = await Task.objects.by_id(template.id).first(session)
            assert loaded is not None
            await materialize_instance(session, loaded, date(2025, 1, 2), now=NOW)

    async with factory() as session:
        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at is None
        assert await find_instance_for_date(
            session, template_id=template.id, instance_date=date(2025, 1, 2)
        ) is None
        assert await Notification.objects.all().all(session) == []


@pytest.mark.asyncio
async def test_non_template_is_rejected() -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        task = await seed_task(session, organization_id=org.id)
        with pytest.raises(MaterializationError, match="not a recurring template"):
            await materialize_instance(session, task, date(2025, 1, 2))


@pytest.mark.asyncio
async def test_unique_violation_at_flush_reuses_the_existing_instance(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    factory = await make_session_factory()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(session, organization_id=org.id, requirements=["A", "B"])

    async with factory() as session:
        loaded = await Task.objects.by_id(template.id).first(session)
        assert loaded is not None
        first = await materialize_instance(session, loaded, date(2025, 1, 2), now=NOW)

    async with factory() as session:
        loaded = await Task.objects.by_id(template.id).first(session)
        assert loaded is not None
        loaded.last_generated_at = None
        session.add(loaded)
        await session.commit()

    original = materializer.find_instance_for_date
    calls: list[date] = []

    async def _miss_first_lookup(session, *, template_id, instance_date):  # type: ignore[no-untyped-def]
        calls.append(instance_date)
        if len(calls) == 1:
            return None
        return await original(session, template_id=template_id, instance_date=instance_date)

    monkeypatch.setattr(materializer, "find_instance_for_date", _miss_first_lookup)

    async with factory() as session:
        loaded = await Task.objects.by_id(template.id).first(session)
        assert loaded is not None
        second = await materialize_instance(session, loaded, date(2025, 1, 2), now=NOW)

    assert len(calls) == 2
    assert second.created is False
    assert second.instance_id == first.instance_id
    async with factory() as session:
        instances = await Task.objects.filter_by(parent_template_id=template.id).all(session)
        assert [i.id for i in instances] == [first.instance_id]
        requirements = await TaskRequirement.objects.filter_by(task_id=first.instance_id).all(
            session
        )
        assert len(requirements) == 2
        refreshed = await Task.objects.by_id(template.id).first(session)
        assert refreshed is not None
        assert refreshed.last_generated_at == date(2025, 1, 2)


@pytest.mark.asyncio
async def test_later_template_edits_do_not_change_existing_instances() -> None:
    factory = await make_session_factory()
    u1, u2 = uuid4(), uuid4()
    async with factory() as session:
        org = await seed_organization(session)
        template = await seed_template(
            session, organization_id=org.id, requirements=["A", "B"], assignee_ids=[u1]
        )

    async with factory() as session:
        loaded = await Task.objects.by_id(template.id).first(session)
        assert loaded is not None
        result = await materialize_instance(session, loaded, date(2025, 1, 2), now=NOW)

    async with factory() as session:
        template_requirements = await TaskRequirement.objects.filter_by(
            task_id=template.id
        ).all(session)
        for requirement in template_requirements:
            requirement.description = f"{requirement.description} (revised)"
            session.add(requirement)
        session.add(TaskRequirement(task_id=template.id, description="C", order_index=2))
        session.add(TaskAssignee(task_id=template.id, user_id=u2, status="accepted"))
        await session.commit()

    async with factory() as session:
        requirements = await (
            TaskRequirement.objects.filter_by(task_id=result.instance_id)
            .order_by(col(TaskRequirement.order_index).asc())
            .all(session)
        )
        assert [(r.description, r.order_index) for r in requirements] == [("A", 0), ("B", 1)]
        assignees = await TaskAssignee.objects.filter_by(task_id=result.instance_id).all(session)
        assert {a.user_id for a in assignees} == {u1}
