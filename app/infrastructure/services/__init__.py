"""Infrastructure implementations of application service interfaces."""

from app.infrastructure.services.approver_directory import RoleApproverDirectory
from app.infrastructure.services.automation_actions import build_default_action_registry
from app.infrastructure.services.dynamic_approvers import build_default_registry
from app.infrastructure.services.workflow_notification_service import (
    LogOnlyNotificationService,
)
from app.infrastructure.services.workflow_template_renderer import (
    WorkflowTemplateRenderer,
)

__all__ = [
    "LogOnlyNotificationService",
    "RoleApproverDirectory",
    "WorkflowTemplateRenderer",
    "build_default_action_registry",
    "build_default_registry",
]
