"""Persistence models: workflow and automation rule ORM tables and their column mixins."""

from app.infrastructure.persistence.models.automation_rule import AutomationRule
from app.infrastructure.persistence.models.mixins import MultiTenantModel, SnapshotModel
from app.infrastructure.persistence.models.workflow import (
    StepApproval,
    Workflow,
    WorkflowInstance,
    WorkflowStep,
    WorkflowVersion,
)

__all__ = [
    "AutomationRule",
    "MultiTenantModel",
    "SnapshotModel",
    "StepApproval",
    "Workflow",
    "WorkflowInstance",
    "WorkflowStep",
    "WorkflowVersion",
]
