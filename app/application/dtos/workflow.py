"""DTOs for workflow definitions, steps, instances and approvals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.domain.entities.workflow import (
    StepApprovalEntity,
    WorkflowInstanceEntity,
    WorkflowStepEntity,
)

# Marker for "field not supplied" in partial updates (None is a valid value).
UNSET: Any = object()


@dataclass(frozen=True)
class WorkflowCreate:
    """Input for creating a workflow definition."""

    name: str
    entity_type: str
    workflow_type: str
    description: str | None = None
    trigger_event: str | None = None
    is_active: bool = True
    configuration: dict[str, Any] | None = None


@dataclass(frozen=True)
class WorkflowUpdate:
    """Partial update of a workflow; fields left as UNSET are untouched."""

    name: Any = UNSET
    description: Any = UNSET
    entity_type: Any = UNSET
    workflow_type: Any = UNSET
    trigger_event: Any = UNSET
    is_active: Any = UNSET
    configuration: Any = UNSET

    def changes(self) -> dict[str, Any]:
        """Return only the supplied fields."""
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET
        }


@dataclass(frozen=True)
class WorkflowFilters:
    """Filters for listing workflows."""

    workflow_type: str | None = None
    entity_type: str | None = None
    is_active: bool | None = None
    search: str | None = None


@dataclass(frozen=True)
class StepCreate:
    """Input for adding a step. step_number None appends a new group."""

    step_name: str
    step_type: str = "approval"
    approver_type: str = "role"
    step_number: int | None = None
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


@dataclass(frozen=True)
class StepUpdate:
    """Partial update of a step; fields left as UNSET are untouched."""

    step_name: Any = UNSET
    step_number: Any = UNSET
    step_type: Any = UNSET
    approver_type: Any = UNSET
    approver_role: Any = UNSET
    approver_email: Any = UNSET
    approver_resolver: Any = UNSET
    is_parallel: Any = UNSET
    is_required: Any = UNSET
    timeout_hours: Any = UNSET
    escalation_enabled: Any = UNSET
    escalation_after_hours: Any = UNSET
    escalation_to: Any = UNSET
    notes: Any = UNSET

    def changes(self) -> dict[str, Any]:
        """Return only the supplied fields."""
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET
        }


@dataclass(frozen=True)
class InstanceFilters:
    """Filters for listing workflow instances."""

    status: str | None = None
    workflow_id: str | None = None
    target_entity_type: str | None = None
    target_entity_id: str | None = None
    blocked_only: bool = False


@dataclass(frozen=True)
class TargetEntity:
    """The domain object an instance runs against (passed to dynamic resolvers)."""

    entity_type: str
    entity_id: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepGroup:
    """Steps sharing one step_number; parallel when more than one step."""

    step_number: int
    steps: tuple[WorkflowStepEntity, ...]

    @property
    def is_parallel(self) -> bool:
        return any(s.is_parallel for s in self.steps)


@dataclass(frozen=True)
class ResolvedStep:
    """A step with its resolved approver (or recipient) emails."""

    step: WorkflowStepEntity
    approvers: tuple[str, ...]


@dataclass(frozen=True)
class InstanceDetail:
    """Instance with its approvals (read model for GET instance)."""

    instance: WorkflowInstanceEntity
    approvals: list[StepApprovalEntity]


@dataclass
class TickResult:
    """Outcome of one timeout/escalation scan."""

    scanned: int = 0
    escalated: int = 0
    timed_out: int = 0
    skipped_stale: int = 0


@dataclass
class EventOutcome:
    """What one domain event did: instances started and automation rules run."""

    started: list[WorkflowInstanceEntity] = field(default_factory=list)
    rules_run: list[str] = field(default_factory=list)
