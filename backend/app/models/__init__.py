"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.audit_entries import AuditEntry
from app.models.engine_leases import EngineLease
from app.models.notifications import Notification
from app.models.organization_archive_policies import OrganizationArchivePolicy
from app.models.organizations import Organization
from app.models.task_assignees import TaskAssignee
from app.models.task_requirements import TaskRequirement
from app.models.tasks import Task

__all__ = [
    "AuditEntry",
    "EngineLease",
    "Notification",
    "Organization",
    "OrganizationArchivePolicy",
    "Task",
    "TaskAssignee",
    "TaskRequirement",
]
