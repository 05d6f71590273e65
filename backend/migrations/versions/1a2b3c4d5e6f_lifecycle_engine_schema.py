"""Lifecycle engine schema: organizations, tasks, requirements, assignees, sinks, leases.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "organizations" not in existing_tables:
        op.create_table(
            "organizations",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "organization_archive_policies" not in existing_tables:
        op.create_table(
            "organization_archive_policies",
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("auto_archive_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("auto_archive_after_days", sa.Integer(), server_default="30", nullable=False),
            sa.Column("archive_schedule", sa.String(), server_default="daily", nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.PrimaryKeyConstraint("organization_id"),
        )
        op.create_index(
            "ix_organization_archive_policies_auto_archive_enabled",
            "organization_archive_policies",
            ["auto_archive_enabled"],
        )
        op.create_index(
            "ix_organization_archive_policies_archive_schedule",
            "organization_archive_policies",
            ["archive_schedule"],
        )

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("details", sa.String(), nullable=True),
            sa.Column("status", sa.String(), server_default="in_progress", nullable=False),
            sa.Column("is_private", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("schedule_type", sa.String(), server_default="one_time", nullable=False),
            sa.Column("schedule_frequency", sa.Integer(), server_default="1", nullable=False),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("last_generated_at", sa.Date(), nullable=True),
            sa.Column("parent_template_id", sa.Uuid(), nullable=True),
            sa.Column("instance_date", sa.Date(), nullable=True),
            sa.Column("archived_at", sa.DateTime(), nullable=True),
            sa.Column("assigned_user_id", sa.Uuid(), nullable=True),
            sa.Column("created_by_id", sa.Uuid(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.ForeignKeyConstraint(["parent_template_id"], ["tasks.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(
                "parent_template_id",
                "instance_date",
                name="uq_tasks_template_instance_date",
            ),
        )
        op.create_index("ix_tasks_organization_id", "tasks", ["organization_id"])
        op.create_index("ix_tasks_status", "tasks", ["status"])
        op.create_index("ix_tasks_schedule_type", "tasks", ["schedule_type"])
        op.create_index("ix_tasks_end_date", "tasks", ["end_date"])
        op.create_index("ix_tasks_parent_template_id", "tasks", ["parent_template_id"])
        op.create_index("ix_tasks_archived_at", "tasks", ["archived_at"])
        op.create_index("ix_tasks_assigned_user_id", "tasks", ["assigned_user_id"])
        op.create_index("ix_tasks_created_by_id", "tasks", ["created_by_id"])
        op.create_index("ix_tasks_updated_at", "tasks", ["updated_at"])

    if "task_requirements" not in existing_tables:
        op.create_table(
            "task_requirements",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("task_id", sa.Uuid(), nullable=False),
            sa.Column("description", sa.String(), nullable=False),
            sa.Column("order_index", sa.Integer(), server_default="0", nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_requirements_task_id", "task_requirements", ["task_id"])

    if "task_assignees" not in existing_tables:
        op.create_table(
            "task_assignees",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("task_id", sa.Uuid(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("assigned_by_id", sa.Uuid(), nullable=True),
            sa.Column("status", sa.String(), server_default="pending", nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("task_id", "user_id", name="uq_task_assignees_task_user"),
        )
        op.create_index("ix_task_assignees_task_id", "task_assignees", ["task_id"])
        op.create_index("ix_task_assignees_user_id", "task_assignees", ["user_id"])

    if "task_audit_logs" not in existing_tables:
        op.create_table(
            "task_audit_logs",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("task_id", sa.Uuid(), nullable=False),
            sa.Column("actor_id", sa.Uuid(), nullable=False),
            sa.Column("actor_type", sa.String(), nullable=False),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("entity_type", sa.String(), server_default="task", nullable=False),
            sa.Column("entity_id", sa.Uuid(), nullable=True),
            sa.Column("payload", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_audit_logs_organization_id", "task_audit_logs", ["organization_id"])
        op.create_index("ix_task_audit_logs_task_id", "task_audit_logs", ["task_id"])
        op.create_index("ix_task_audit_logs_actor_id", "task_audit_logs", ["actor_id"])
        op.create_index("ix_task_audit_logs_actor_type", "task_audit_logs", ["actor_type"])
        op.create_index("ix_task_audit_logs_action", "task_audit_logs", ["action"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("organization_id", sa.Uuid(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("notification_type", sa.String(), nullable=False),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("message", sa.String(), nullable=False),
            sa.Column("task_id", sa.Uuid(), nullable=True),
            sa.Column("is_read", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_organization_id", "notifications", ["organization_id"])
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
        op.create_index("ix_notifications_notification_type", "notifications", ["notification_type"])
        op.create_index("ix_notifications_task_id", "notifications", ["task_id"])

    if "engine_leases" not in existing_tables:
        op.create_table(
            "engine_leases",
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("holder", sa.String(), nullable=False),
            sa.Column("acquired_at", sa.DateTime(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("name"),
        )
        op.create_index("ix_engine_leases_expires_at", "engine_leases", ["expires_at"])


def downgrade() -> None:
    op.drop_table("engine_leases")
    op.drop_table("notifications")
    op.drop_table("task_audit_logs")
    op.drop_table("task_assignees")
    op.drop_table("task_requirements")
    op.drop_table("tasks")
    op.drop_table("organization_archive_policies")
    op.drop_table("organizations")
