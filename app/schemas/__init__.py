"""Pydantic request/response schemas for the API."""

from app.schemas.automation_rule import (
    AutomationRuleCreateRequest,
    AutomationRuleResponse,
    AutomationRuleUpdateRequest,
)
from app.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)
from app.schemas.workflow import (
    ApprovalResponse,
    CancelRequest,
    DecisionRequest,
    DelegateRequest,
    InstanceCreateRequest,
    InstanceDetailResponse,
    InstanceResponse,
    ReassignRequest,
    RoleMembershipChangedRequest,
    RoleMembershipChangedResponse,
    StepCreateRequest,
    StepResponse,
    StepUpdateRequest,
    TriggerEventRequest,
    TriggerEventResponse,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowUpdateRequest,
)

__all__ = [
    "ApprovalResponse",
    "AutomationRuleCreateRequest",
    "AutomationRuleResponse",
    "AutomationRuleUpdateRequest",
    "CancelRequest",
    "DecisionRequest",
    "DelegateRequest",
    "HealthResponse",
    "InstanceCreateRequest",
    "InstanceDetailResponse",
    "InstanceResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "ReassignRequest",
    "RoleMembershipChangedRequest",
    "RoleMembershipChangedResponse",
    "StepCreateRequest",
    "StepResponse",
    "StepUpdateRequest",
    "TriggerEventRequest",
    "TriggerEventResponse",
    "WorkflowCreateRequest",
    "WorkflowResponse",
    "WorkflowUpdateRequest",
]
