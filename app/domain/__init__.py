"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import (
    StepApprovalEntity,
    WorkflowEntity,
    WorkflowInstanceEntity,
    WorkflowStepEntity,
    WorkflowVersionEntity,
)
from app.domain.enums import (
    ApprovalDecision,
    ApproverType,
    InstanceStatus,
    StepType,
    WorkflowType,
)
from app.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
    WorkflowServiceException,
)

__all__ = [
    "ApprovalDecision",
    "ApproverType",
    "AuthorizationException",
    "InstanceStatus",
    "ResourceNotFoundException",
    "StepApprovalEntity",
    "StepType",
    "ValidationException",
    "WorkflowEntity",
    "WorkflowInstanceEntity",
    "WorkflowServiceException",
    "WorkflowStepEntity",
    "WorkflowType",
    "WorkflowVersionEntity",
]
