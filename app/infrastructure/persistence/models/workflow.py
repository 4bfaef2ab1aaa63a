"""Workflow ORM models: definitions, steps, version snapshots, instances, approvals."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.domain.enums import (
    ApprovalDecision,
    ApproverType,
    InstanceStatus,
    StepType,
    WorkflowType,
)
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import MultiTenantModel, SnapshotModel


def _in_check(column: str, values: list[str], name: str) -> CheckConstraint:
    """CHECK (column IN (...)) over an enum's values."""
    return CheckConstraint(
        "{} IN ({})".format(
            column, ", ".join("'{}'".format(v.replace("'", "''")) for v in values)
        ),
        name=name,
    )


class Workflow(MultiTenantModel, Base):
    """Workflow definition. Table: workflow. Unique name per agency."""

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    workflow_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_event: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=sa.text("1")
    )
    configuration: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_workflow_tenant_name"),
        Index("ix_workflow_tenant_trigger", "tenant_id", "entity_type", "trigger_event"),
        _in_check("workflow_type", WorkflowType.values(), "workflow_type_check"),
        CheckConstraint("version >= 1", name="workflow_version_check"),
    )


class WorkflowStep(MultiTenantModel, Base):
    """One step of a workflow. Table: workflow_step. Steps sharing step_number form a group."""

    __tablename__ = "workflow_step"

    workflow_id: Mapped[str] = mapped_column(
        String, ForeignKey("workflow.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    step_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=StepType.APPROVAL.value
    )
    approver_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ApproverType.ROLE.value
    )
    approver_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approver_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    approver_resolver: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_parallel: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    is_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    timeout_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escalation_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    escalation_after_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escalation_to: Mapped[str | None] = mapped_column(String(320), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_workflow_step_workflow_number", "workflow_id", "step_number"),
        CheckConstraint("step_number >= 1", name="workflow_step_number_check"),
        CheckConstraint(
            "timeout_hours IS NULL OR timeout_hours > 0", name="workflow_step_timeout_check"
        ),
        CheckConstraint(
            "escalation_after_hours IS NULL OR escalation_after_hours > 0",
            name="workflow_step_escalation_check",
        ),
        _in_check("step_type", StepType.values(), "workflow_step_type_check"),
        _in_check("approver_type", ApproverType.values(), "workflow_step_approver_type_check"),
    )


class WorkflowVersion(SnapshotModel, Base):
    """Immutable step snapshot of a workflow version. Table: workflow_version.

    Written when the first instance pins a version; never updated.
    """

    __tablename__ = "workflow_version"

    workflow_id: Mapped[str] = mapped_column(
        String, ForeignKey("workflow.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    workflow_type: Mapped[str] = mapped_column(String(50), nullable=False)
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("workflow_id", "version", name="uq_workflow_version"),
    )


class WorkflowInstance(MultiTenantModel, Base):
    """One execution of a workflow against one target entity. Table: workflow_instance."""

    __tablename__ = "workflow_instance"

    workflow_id: Mapped[str] = mapped_column(
        String, ForeignKey("workflow.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workflow_version: Mapped[int] = mapped_column(Integer, nullable=False)
    target_entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    target_entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=InstanceStatus.PENDING.value
    )
    current_step_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    blocked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    completed_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    instance_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    approver_overrides: Mapped[dict[str, list[str]]] = mapped_column(
        JSON, nullable=False, default=dict, server_default=sa.text("'{}'")
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_workflow_instance_tenant_status", "tenant_id", "status"),
        Index(
            "ix_workflow_instance_target",
            "tenant_id",
            "target_entity_type",
            "target_entity_id",
        ),
        _in_check("status", InstanceStatus.values(), "workflow_instance_status_check"),
    )


class StepApproval(MultiTenantModel, Base):
    """One approver's decision on one step of one instance. Table: step_approval."""

    __tablename__ = "step_approval"

    instance_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_instance.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Step id from the pinned snapshot; the live step may since have changed.
    step_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    approver: Mapped[str] = mapped_column(String(320), nullable=False)
    is_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    decision: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ApprovalDecision.PENDING.value
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    decided_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    delegated_to: Mapped[str | None] = mapped_column(String(320), nullable=True)
    escalated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    # Deadlines fixed when the approval opens; the scheduler scans on these.
    timeout_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    escalate_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_step_approval_instance_step", "instance_id", "step_number"),
        Index("ix_step_approval_approver", "tenant_id", "approver", "decision"),
        Index("ix_step_approval_delegate", "tenant_id", "delegated_to"),
        Index("ix_step_approval_timeout_at", "timeout_at"),
        Index("ix_step_approval_escalate_at", "escalate_at"),
        Index(
            "uq_step_approval_open",
            "instance_id",
            "step_id",
            "approver",
            unique=True,
            postgresql_where=sa.text("decision IN ('pending', 'escalated')"),
        ),
        _in_check("decision", ApprovalDecision.values(), "step_approval_decision_check"),
    )
