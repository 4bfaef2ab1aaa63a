"""Workflow API schemas: definitions, steps, instances, approvals, triggers."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.shared.utils.sanitization import InputSanitizer, clean_text, validate_key

WorkflowTypeLiteral = Literal["approval", "notification", "automation", "custom"]
StepTypeLiteral = Literal["approval", "notification"]
ApproverTypeLiteral = Literal["role", "user", "dynamic"]


def _clean_metadata(v: dict[str, Any] | None) -> dict[str, Any] | None:
    if v is None:
        return None
    return InputSanitizer.clean_mapping(v)


# ---- Workflows ----


class WorkflowCreateRequest(BaseModel):
    """Request body for creating a workflow."""

    name: str = Field(..., min_length=1, max_length=200)
    entity_type: str = Field(..., min_length=1, max_length=100)
    workflow_type: WorkflowTypeLiteral = "approval"
    description: str | None = Field(default=None, max_length=2000)
    trigger_event: str | None = Field(default=None, max_length=100)
    is_active: bool = True
    configuration: dict[str, Any] | None = None

    @field_validator("entity_type")
    @classmethod
    def _entity_type_key(cls, v: str) -> str:
        return validate_key(v.strip())

    @field_validator("trigger_event")
    @classmethod
    def _trigger_event_key(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_key(v.strip())

    @field_validator("name", "description")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class WorkflowUpdateRequest(BaseModel):
    """Request body for updating a workflow (partial; only sent fields change)."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    entity_type: str | None = Field(default=None, min_length=1, max_length=100)
    workflow_type: WorkflowTypeLiteral | None = None
    description: str | None = Field(default=None, max_length=2000)
    trigger_event: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
    configuration: dict[str, Any] | None = None

    @field_validator("entity_type", "trigger_event")
    @classmethod
    def _key(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_key(v.strip())

    @field_validator("name", "description")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class WorkflowResponse(BaseModel):
    """Workflow response with step and instance counts."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str | None
    workflow_type: str
    entity_type: str
    trigger_event: str | None
    is_active: bool
    is_system: bool
    version: int
    configuration: dict[str, Any]
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    step_count: int = 0
    instance_count: int = 0


# ---- Steps ----


class StepCreateRequest(BaseModel):
    """Request body for adding a step. Omit step_number to append a new group."""

    step_name: str = Field(..., min_length=1, max_length=200)
    step_type: StepTypeLiteral = "approval"
    approver_type: ApproverTypeLiteral = "role"
    step_number: int | None = Field(default=None, ge=1)
    approver_role: str | None = Field(default=None, max_length=100)
    approver_email: str | None = Field(default=None, max_length=320)
    approver_resolver: str | None = Field(default=None, max_length=100)
    is_parallel: bool = False
    is_required: bool = True
    timeout_hours: int | None = Field(default=None, gt=0)
    escalation_enabled: bool = False
    escalation_after_hours: int | None = Field(default=None, gt=0)
    escalation_to: str | None = Field(default=None, max_length=320)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("step_name", "notes")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class StepUpdateRequest(BaseModel):
    """Request body for updating a step (partial; only sent fields change)."""

    step_name: str | None = Field(default=None, min_length=1, max_length=200)
    step_number: int | None = Field(default=None, ge=1)
    step_type: StepTypeLiteral | None = None
    approver_type: ApproverTypeLiteral | None = None
    approver_role: str | None = Field(default=None, max_length=100)
    approver_email: str | None = Field(default=None, max_length=320)
    approver_resolver: str | None = Field(default=None, max_length=100)
    is_parallel: bool | None = None
    is_required: bool | None = None
    timeout_hours: int | None = Field(default=None, gt=0)
    escalation_enabled: bool | None = None
    escalation_after_hours: int | None = Field(default=None, gt=0)
    escalation_to: str | None = Field(default=None, max_length=320)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("step_name", "notes")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class StepResponse(BaseModel):
    """Workflow step response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    step_number: int
    step_name: str
    step_type: str
    approver_type: str
    approver_role: str | None
    approver_email: str | None
    approver_resolver: str | None
    is_parallel: bool
    is_required: bool
    timeout_hours: int | None
    escalation_enabled: bool
    escalation_after_hours: int | None
    escalation_to: str | None
    notes: str | None = None


# ---- Instances and approvals ----


class InstanceCreateRequest(BaseModel):
    """Request body for starting a workflow instance against one entity."""

    workflow_id: str = Field(..., min_length=1, max_length=64)
    target_entity_type: str = Field(..., min_length=1, max_length=100)
    target_entity_id: str = Field(..., min_length=1, max_length=100)
    metadata: dict[str, Any] | None = None

    @field_validator("metadata")
    @classmethod
    def _clean_metadata(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _clean_metadata(v)


class InstanceResponse(BaseModel):
    """Workflow instance response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    workflow_id: str
    workflow_version: int
    target_entity_type: str
    target_entity_id: str
    status: str
    current_step_number: int | None
    blocked_reason: str | None = None
    started_by: str | None = None
    completed_by: str | None = None
    rejection_reason: str | None = None
    cancel_reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    approver_overrides: dict[str, list[str]] = Field(default_factory=dict)
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ApprovalResponse(BaseModel):
    """Step approval response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    instance_id: str
    step_id: str
    step_number: int
    approver: str
    is_required: bool
    decision: str
    decided_at: datetime | None = None
    decided_by: str | None = None
    comment: str | None = None
    delegated_to: str | None = None
    escalated_at: datetime | None = None
    opened_at: datetime | None = None
    timeout_at: datetime | None = None
    escalate_at: datetime | None = None


class InstanceDetailResponse(InstanceResponse):
    """Instance with every approval it created (all groups, all decisions)."""

    approvals: list[ApprovalResponse] = Field(default_factory=list)


class DecisionRequest(BaseModel):
    """Request body for approving or rejecting one approval."""

    approval_id: str = Field(..., min_length=1, max_length=64)
    decision: Literal["approved", "rejected"]
    comment: str | None = Field(default=None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v) or None


class CancelRequest(BaseModel):
    """Request body for cancelling an instance."""

    reason: str | None = Field(default=None, max_length=2000)

    @field_validator("reason")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v) or None


class ReassignRequest(BaseModel):
    """Request body for assigning approvers to a step of the open group by hand."""

    step_id: str = Field(..., min_length=1, max_length=64)
    approvers: list[str] = Field(..., min_length=1, max_length=50)


class DelegateRequest(BaseModel):
    """Request body for delegating an open approval."""

    delegate_to: str = Field(..., min_length=3, max_length=320)


# ---- Triggers ----


class TriggerEventRequest(BaseModel):
    """A domain event from another module (e.g. expense submitted)."""

    entity_type: str = Field(..., min_length=1, max_length=100)
    event_name: str = Field(..., min_length=1, max_length=100)
    entity_id: str = Field(..., min_length=1, max_length=100)
    metadata: dict[str, Any] | None = None

    @field_validator("entity_type", "event_name")
    @classmethod
    def _key(cls, v: str) -> str:
        return validate_key(v.strip())

    @field_validator("metadata")
    @classmethod
    def _clean_metadata(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _clean_metadata(v)


class TriggerEventResponse(BaseModel):
    """Instances started and automation rules run by one event."""

    started: list[InstanceResponse]
    rules_run: list[str] = Field(default_factory=list)


class RoleMembershipChangedRequest(BaseModel):
    """Notice that users were added to a role (may unblock instances)."""

    role: str = Field(..., min_length=1, max_length=100)


class RoleMembershipChangedResponse(BaseModel):
    """Blocked instances that were retried."""

    retried: list[InstanceResponse]
