"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure or app.api.
"""

from app.application.interfaces.repositories import (
    IAutomationRuleRepository,
    IStepApprovalRepository,
    IWorkflowInstanceRepository,
    IWorkflowRepository,
    IWorkflowStepRepository,
    IWorkflowVersionRepository,
)
from app.application.interfaces.services import (
    IApproverDirectory,
    IAutomationActionHandler,
    IDynamicApproverResolver,
    INotificationRenderer,
    INotificationService,
)

__all__ = [
    "IApproverDirectory",
    "IAutomationRuleRepository",
    "IAutomationActionHandler",
    "IDynamicApproverResolver",
    "INotificationRenderer",
    "INotificationService",
    "IStepApprovalRepository",
    "IWorkflowInstanceRepository",
    "IWorkflowRepository",
    "IWorkflowStepRepository",
    "IWorkflowVersionRepository",
]
