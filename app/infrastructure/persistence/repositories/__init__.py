"""Persistence repositories. Re-exports for dependency injection."""

from app.infrastructure.persistence.repositories.automation_rule_repo import (
    AutomationRuleRepository,
)
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.infrastructure.persistence.repositories.workflow_repo import (
    StepApprovalRepository,
    WorkflowInstanceRepository,
    WorkflowRepository,
    WorkflowStepRepository,
    WorkflowVersionRepository,
)

__all__ = [
    "AutomationRuleRepository",
    "BaseRepository",
    "StepApprovalRepository",
    "WorkflowInstanceRepository",
    "WorkflowRepository",
    "WorkflowStepRepository",
    "WorkflowVersionRepository",
]
