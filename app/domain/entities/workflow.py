"""Workflow domain entities.

A workflow is a reusable definition bound to one entity type, made of
ordered steps. Steps sharing a step_number form a group; groups run in
ascending order. An instance is one live execution of a workflow against
one concrete entity and is pinned to the workflow version it started on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.domain.enums import (
    ApprovalDecision,
    ApproverType,
    InstanceStatus,
    StepType,
    WorkflowType,
)

# Step fields copied into a version snapshot (and read back from it).
_SNAPSHOT_FIELDS = (
    "id",
    "step_number",
    "step_name",
    "step_type",
    "approver_type",
    "approver_role",
    "approver_email",
    "approver_resolver",
    "is_parallel",
    "is_required",
    "timeout_hours",
    "escalation_enabled",
    "escalation_after_hours",
    "escalation_to",
)


@dataclass
class WorkflowEntity:
    """Domain entity for a workflow definition."""

    id: str
    tenant_id: str
    name: str
    description: str | None
    workflow_type: str
    entity_type: str
    trigger_event: str | None
    is_active: bool = True
    is_system: bool = False
    version: int = 1
    configuration: dict[str, Any] = field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    step_count: int = 0
    instance_count: int = 0

    def belongs_to_tenant(self, tenant_id: str) -> bool:
        """Return whether this workflow belongs to the given tenant."""
        return self.tenant_id == tenant_id

    def can_trigger_on(self, entity_type: str, event_name: str) -> bool:
        """Return whether this workflow is active and listens for the event on the entity type."""
        return (
            self.is_active
            and self.entity_type == entity_type
            and self.trigger_event == event_name
        )

    @property
    def allows_delegation(self) -> bool:
        return bool(self.configuration.get("allow_delegation", True))

    @property
    def notification_channels(self) -> list[str] | None:
        """Channels a notification workflow delivers on; None means the default."""
        channels = self.configuration.get("channels")
        return list(channels) if channels else None

    @property
    def automation_actions(self) -> list[dict[str, Any]]:
        """Actions an automation workflow runs when an instance is approved."""
        if self.workflow_type != WorkflowType.AUTOMATION.value:
            return []
        return list(self.configuration.get("actions") or [])


@dataclass
class WorkflowStepEntity:
    """Domain entity for one step of a workflow."""

    id: str
    tenant_id: str
    workflow_id: str
    step_number: int
    step_name: str
    step_type: str = StepType.APPROVAL.value
    approver_type: str = ApproverType.ROLE.value
    approver_role: str | None = None
    approver_email: str | None = None
    approver_resolver: str | None = None
    is_parallel: bool = False
    is_required: bool = True
    timeout_hours: int | None = None
    escalation_enabled: bool = False
    escalation_after_hours: int | None = None
    escalation_to: str | None = None
    notes: str | None = None

    @property
    def approver_rule(self) -> str:
        """Human-readable approver rule (e.g. 'role:finance')."""
        if self.approver_type == ApproverType.ROLE.value:
            return f"role:{self.approver_role}"
        if self.approver_type == ApproverType.USER.value:
            return f"user:{self.approver_email}"
        return f"dynamic:{self.approver_resolver}"

    @property
    def is_notification(self) -> bool:
        return self.step_type == StepType.NOTIFICATION.value

    def is_timed_out(self, elapsed_hours: float) -> bool:
        """Return whether an undecided approval of this step has passed its timeout."""
        return self.timeout_hours is not None and elapsed_hours >= self.timeout_hours

    def is_escalation_due(self, elapsed_hours: float) -> bool:
        """Return whether escalation should fire for an undecided approval."""
        return (
            self.escalation_enabled
            and self.escalation_after_hours is not None
            and elapsed_hours >= self.escalation_after_hours
        )

    def to_snapshot(self) -> dict[str, Any]:
        """Return the JSON-safe snapshot stored in a workflow version."""
        return {name: getattr(self, name) for name in _SNAPSHOT_FIELDS}

    @classmethod
    def from_snapshot(
        cls, data: dict[str, Any], *, tenant_id: str, workflow_id: str
    ) -> WorkflowStepEntity:
        """Rebuild a step from a version snapshot."""
        values = {name: data.get(name) for name in _SNAPSHOT_FIELDS}
        values["is_parallel"] = bool(values["is_parallel"])
        values["is_required"] = values["is_required"] is not False
        values["escalation_enabled"] = bool(values["escalation_enabled"])
        values["step_type"] = values["step_type"] or StepType.APPROVAL.value
        values["approver_type"] = values["approver_type"] or ApproverType.ROLE.value
        return cls(tenant_id=tenant_id, workflow_id=workflow_id, **values)


@dataclass
class WorkflowVersionEntity:
    """Immutable snapshot of a workflow's step composition at one version."""

    id: str
    tenant_id: str
    workflow_id: str
    version: int
    entity_type: str
    workflow_type: str
    steps: list[dict[str, Any]]
    created_at: datetime | None = None

    def step_entities(self) -> list[WorkflowStepEntity]:
        """Return the snapshot's steps ordered by step_number."""
        steps = [
            WorkflowStepEntity.from_snapshot(
                s, tenant_id=self.tenant_id, workflow_id=self.workflow_id
            )
            for s in self.steps
        ]
        return sorted(steps, key=lambda s: s.step_number)


@dataclass
class WorkflowInstanceEntity:
    """One live execution of a workflow against one target entity."""

    id: str
    tenant_id: str
    workflow_id: str
    workflow_version: int
    target_entity_type: str
    target_entity_id: str
    status: str = InstanceStatus.PENDING.value
    current_step_number: int | None = None
    blocked_reason: str | None = None
    started_by: str | None = None
    completed_by: str | None = None
    rejection_reason: str | None = None
    cancel_reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    # Hand-assigned approvers by step id; they win over the step's rule.
    approver_overrides: dict[str, list[str]] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return InstanceStatus(self.status).is_terminal

    @property
    def is_blocked(self) -> bool:
        return self.status == InstanceStatus.IN_PROGRESS.value and bool(
            self.blocked_reason
        )


@dataclass
class StepApprovalEntity:
    """One approver's decision on one step of one instance."""

    id: str
    tenant_id: str
    instance_id: str
    step_id: str
    step_number: int
    approver: str
    is_required: bool = True
    decision: str = ApprovalDecision.PENDING.value
    decided_at: datetime | None = None
    decided_by: str | None = None
    comment: str | None = None
    delegated_to: str | None = None
    escalated_at: datetime | None = None
    opened_at: datetime | None = None
    timeout_at: datetime | None = None
    escalate_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return ApprovalDecision(self.decision).is_open

    def can_be_decided_by(self, actor: str) -> bool:
        """Return whether actor is the approver or the current delegate."""
        actor = actor.strip().lower()
        return actor == self.approver or (
            self.delegated_to is not None and actor == self.delegated_to
        )
