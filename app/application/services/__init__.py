"""Application services: step resolution, configuration validation, notification, automation actions."""

from app.application.services.automation_actions import AutomationActionRegistry
from app.application.services.step_resolver import (
    DynamicApproverRegistry,
    StepResolver,
    group_steps,
    normalize_email,
)
from app.application.services.workflow_configuration_validator import (
    WorkflowConfigurationValidator,
)
from app.application.services.workflow_notifier import WorkflowNotifier

__all__ = [
    "AutomationActionRegistry",
    "DynamicApproverRegistry",
    "StepResolver",
    "WorkflowConfigurationValidator",
    "WorkflowNotifier",
    "group_steps",
    "normalize_email",
]
