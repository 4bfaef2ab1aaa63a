"""create_workflow_tables

Revision ID: 3f2c9a1d7e50
Revises:
Create Date: 2026-10-18 09:12:41.203117

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2c9a1d7e50"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "workflow",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("workflow_type", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("trigger_event", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_system", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("configuration", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=320), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_workflow_tenant_name"),
        sa.CheckConstraint(
            "workflow_type IN ('approval', 'notification', 'automation', 'custom')",
            name="workflow_type_check",
        ),
        sa.CheckConstraint("version >= 1", name="workflow_version_check"),
    )
    op.create_index("ix_workflow_tenant_id", "workflow", ["tenant_id"])
    op.create_index(
        "ix_workflow_tenant_trigger", "workflow", ["tenant_id", "entity_type", "trigger_event"]
    )

    op.create_table(
        "workflow_step",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("step_name", sa.String(length=200), nullable=False),
        sa.Column("step_type", sa.String(length=50), nullable=False),
        sa.Column("approver_type", sa.String(length=50), nullable=False),
        sa.Column("approver_role", sa.String(length=100), nullable=True),
        sa.Column("approver_email", sa.String(length=320), nullable=True),
        sa.Column("approver_resolver", sa.String(length=100), nullable=True),
        sa.Column("is_parallel", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_required", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("timeout_hours", sa.Integer(), nullable=True),
        sa.Column(
            "escalation_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("escalation_after_hours", sa.Integer(), nullable=True),
        sa.Column("escalation_to", sa.String(length=320), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("step_number >= 1", name="workflow_step_number_check"),
        sa.CheckConstraint(
            "timeout_hours IS NULL OR timeout_hours > 0", name="workflow_step_timeout_check"
        ),
        sa.CheckConstraint(
            "escalation_after_hours IS NULL OR escalation_after_hours > 0",
            name="workflow_step_escalation_check",
        ),
        sa.CheckConstraint(
            "step_type IN ('approval', 'notification')", name="workflow_step_type_check"
        ),
        sa.CheckConstraint(
            "approver_type IN ('role', 'user', 'dynamic')",
            name="workflow_step_approver_type_check",
        ),
    )
    op.create_index("ix_workflow_step_tenant_id", "workflow_step", ["tenant_id"])
    op.create_index("ix_workflow_step_workflow_id", "workflow_step", ["workflow_id"])
    op.create_index(
        "ix_workflow_step_workflow_number", "workflow_step", ["workflow_id", "step_number"]
    )

    op.create_table(
        "workflow_version",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("workflow_type", sa.String(length=50), nullable=False),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workflow_id", "version", name="uq_workflow_version"),
    )
    op.create_index("ix_workflow_version_tenant_id", "workflow_version", ["tenant_id"])
    op.create_index("ix_workflow_version_workflow_id", "workflow_version", ["workflow_id"])

    op.create_table(
        "workflow_instance",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("workflow_version", sa.Integer(), nullable=False),
        sa.Column("target_entity_type", sa.String(length=100), nullable=False),
        sa.Column("target_entity_id", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("current_step_number", sa.Integer(), nullable=True),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
        sa.Column("started_by", sa.String(length=320), nullable=True),
        sa.Column("completed_by", sa.String(length=320), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'approved', 'rejected', 'cancelled', 'timed_out')",
            name="workflow_instance_status_check",
        ),
    )
    op.create_index("ix_workflow_instance_tenant_id", "workflow_instance", ["tenant_id"])
    op.create_index("ix_workflow_instance_workflow_id", "workflow_instance", ["workflow_id"])
    op.create_index(
        "ix_workflow_instance_tenant_status", "workflow_instance", ["tenant_id", "status"]
    )
    op.create_index(
        "ix_workflow_instance_target",
        "workflow_instance",
        ["tenant_id", "target_entity_type", "target_entity_id"],
    )

    op.create_table(
        "step_approval",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("instance_id", sa.String(), nullable=False),
        sa.Column("step_id", sa.String(), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("approver", sa.String(length=320), nullable=False),
        sa.Column("is_required", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("decision", sa.String(length=50), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by", sa.String(length=320), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("delegated_to", sa.String(length=320), nullable=True),
        sa.Column("escalated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "opened_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["instance_id"], ["workflow_instance.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "decision IN ('pending', 'approved', 'rejected', 'escalated', 'cancelled')",
            name="step_approval_decision_check",
        ),
    )
    op.create_index("ix_step_approval_tenant_id", "step_approval", ["tenant_id"])
    op.create_index("ix_step_approval_instance_id", "step_approval", ["instance_id"])
    op.create_index("ix_step_approval_step_id", "step_approval", ["step_id"])
    op.create_index(
        "ix_step_approval_instance_step", "step_approval", ["instance_id", "step_number"]
    )
    op.create_index(
        "ix_step_approval_approver", "step_approval", ["tenant_id", "approver", "decision"]
    )
    op.create_index("ix_step_approval_delegate", "step_approval", ["tenant_id", "delegated_to"])
    op.create_index(
        "uq_step_approval_open",
        "step_approval",
        ["instance_id", "step_id", "approver"],
        unique=True,
        postgresql_where=sa.text("decision IN ('pending', 'escalated')"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("uq_step_approval_open", table_name="step_approval")
    op.drop_table("step_approval")
    op.drop_table("workflow_instance")
    op.drop_table("workflow_version")
    op.drop_table("workflow_step")
    op.drop_table("workflow")
