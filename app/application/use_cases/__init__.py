"""Application use cases: one entry point per workflow and automation rule operation."""

from app.application.use_cases.automation import AutomationRuleService
from app.application.use_cases.workflows import (
    WorkflowDefinitionService,
    WorkflowInstanceService,
    WorkflowTriggerGateway,
)

__all__ = [
    "AutomationRuleService",
    "WorkflowDefinitionService",
    "WorkflowInstanceService",
    "WorkflowTriggerGateway",
]
