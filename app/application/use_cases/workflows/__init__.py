"""Workflow use cases: definitions, instance state machine, triggers."""

from app.application.use_cases.workflows.definitions import WorkflowDefinitionService
from app.application.use_cases.workflows.instances import WorkflowInstanceService
from app.application.use_cases.workflows.triggers import WorkflowTriggerGateway

__all__ = [
    "WorkflowDefinitionService",
    "WorkflowInstanceService",
    "WorkflowTriggerGateway",
]
