"""Task status transitions shared by the lifecycle sweeps and task mutations.

Every status change a task can undergo is named by a `TaskEvent`. The
transition table lists the statuses each event may be applied from and the
status it lands on. Sweeps build their SQL predicates from the same table, so
bulk updates and single-task updates enforce identical rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from app.core.logging import get_logger
from app.models.tasks import TaskStatus

logger = get_logger(__name__)


class TaskEvent(StrEnum):
    """Named status-changing events."""

    SUBMIT = "submit"
    COMPLETE = "complete"
    REOPEN = "reopen"
    MARK_OVERDUE = "mark_overdue"
    ARCHIVE = "archive"


@dataclass(frozen=True)
class Transition:
    """Allowed source statuses for an event and the status it produces.

    A `target` of None keeps the current status (archival only stamps
    `archived_at`).
    """

    sources: frozenset[TaskStatus]
    target: TaskStatus | None


TRANSITIONS: dict[TaskEvent, Transition] = {
    TaskEvent.SUBMIT: Transition(
        sources=frozenset({TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE}),
        target=TaskStatus.SUBMITTED,
    ),
    TaskEvent.COMPLETE: Transition(
        sources=frozenset({TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED, TaskStatus.OVERDUE}),
        target=TaskStatus.COMPLETED,
    ),
    TaskEvent.REOPEN: Transition(
        sources=frozenset({TaskStatus.SUBMITTED, TaskStatus.COMPLETED}),
        target=TaskStatus.IN_PROGRESS,
    ),
    TaskEvent.MARK_OVERDUE: Transition(
        sources=frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS}),
        target=TaskStatus.OVERDUE,
    ),
    TaskEvent.ARCHIVE: Transition(
        sources=frozenset({TaskStatus.COMPLETED}),
        target=None,
    ),
}


class TaskTransitionError(Exception):
    """Raised when an event is applied to a task in a status that forbids it."""

    def __init__(
        self,
        message: str,
        *,
        event: TaskEvent,
        current_status: str,
        allowed_sources: frozenset[TaskStatus],
    ) -> None:
        super().__init__(message)
        self.event = event
        self.current_status = current_status
        self.allowed_sources = allowed_sources


def allowed_sources(event: TaskEvent) -> frozenset[TaskStatus]:
    return TRANSITIONS[event].sources


def allowed_source_values(event: TaskEvent) -> list[str]:
    """Sorted plain-string sources, ready for an SQL `IN` clause."""
    return sorted(status.value for status in TRANSITIONS[event].sources)


def can_apply(event: TaskEvent, status: str, *, archived: bool = False) -> bool:
    if archived:
        return False
    try:
        current = TaskStatus(status)
    except ValueError:
        return False
    return current in TRANSITIONS[event].sources


def target_status(event: TaskEvent, current: str) -> str:
    """Status a task ends in after `event`; unchanged for status-preserving events."""
    target = TRANSITIONS[event].target
    return current if target is None else target.value


def validate_transition(event: TaskEvent, status: str, *, archived: bool = False) -> str:
    """Return the resulting status, or raise `TaskTransitionError`."""
    if can_apply(event, status, archived=archived):
        return target_status(event, status)

    sources = TRANSITIONS[event].sources
    if archived:
        message = f"Archived tasks cannot accept '{event.value}'."
    else:
        allowed = ", ".join(sorted(s.value for s in sources))
        message = (
            f"Cannot apply '{event.value}' to a task in status '{status}'. "
            f"Allowed from: {allowed}."
        )
    logger.debug(
        "task.transition.rejected",
        extra={"event": event.value, "status": status, "archived": archived},
    )
    raise TaskTransitionError(
        message,
        event=event,
        current_status=status,
        allowed_sources=sources,
    )
