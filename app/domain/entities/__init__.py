"""Domain entities and aggregates.

Pure domain models; no ORM or persistence concerns.
"""

from app.domain.entities.automation_rule import AutomationRuleEntity
from app.domain.entities.workflow import (
    StepApprovalEntity,
    WorkflowEntity,
    WorkflowInstanceEntity,
    WorkflowStepEntity,
    WorkflowVersionEntity,
)

__all__ = [
    "AutomationRuleEntity",
    "StepApprovalEntity",
    "WorkflowEntity",
    "WorkflowInstanceEntity",
    "WorkflowStepEntity",
    "WorkflowVersionEntity",
]
