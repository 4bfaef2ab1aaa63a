"""Domain exceptions for the workflow service.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class WorkflowServiceException(Exception):
    """Base exception for all workflow service errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body used by the API exception handler."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(WorkflowServiceException):
    """Raised when input validation fails (e.g. missing field or bad range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthorizationException(WorkflowServiceException):
    """Raised when the actor may not perform the operation (e.g. not the approver)."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'step_approval').
            action: Optional action that was attempted (e.g. 'decide').
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(WorkflowServiceException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'workflow', 'workflow_instance').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class DuplicateWorkflowNameException(WorkflowServiceException):
    """Raised when creating or renaming a workflow to a name already used in the tenant."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Workflow with name '{name}' already exists",
            "DUPLICATE_WORKFLOW_NAME",
            {"name": name},
        )


class ImmutableSystemWorkflowException(WorkflowServiceException):
    """Raised when a structural edit targets a system (built-in) workflow."""

    def __init__(self, workflow_id: str, fields: list[str]) -> None:
        """Initialize with the workflow and the structural fields that were touched.

        Args:
            workflow_id: The system workflow.
            fields: Fields the caller tried to change (e.g. ['entity_type'] or ['steps']).
        """
        super().__init__(
            f"System workflow {workflow_id} cannot be structurally modified",
            "IMMUTABLE_SYSTEM_WORKFLOW",
            {"workflow_id": workflow_id, "fields": fields},
        )


class SystemWorkflowProtectedException(WorkflowServiceException):
    """Raised when deleting a system (built-in) workflow."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            f"System workflow {workflow_id} cannot be deleted",
            "SYSTEM_WORKFLOW_PROTECTED",
            {"workflow_id": workflow_id},
        )


class WorkflowInUseException(WorkflowServiceException):
    """Raised when a workflow change conflicts with live or pinned instances."""

    def __init__(self, workflow_id: str, reason: str, **details_extra: Any) -> None:
        """Initialize with workflow and a reason.

        Args:
            workflow_id: The workflow in use.
            reason: Human-readable conflict (e.g. 'active instances').
            **details_extra: Optional keys merged into details (e.g. active_instances).
        """
        super().__init__(
            f"Workflow {workflow_id} is in use: {reason}",
            "WORKFLOW_IN_USE",
            {"workflow_id": workflow_id, "reason": reason, **details_extra},
        )


class WorkflowInactiveException(WorkflowServiceException):
    """Raised when starting an instance of an inactive workflow."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            f"Cannot start instance for inactive workflow {workflow_id}",
            "WORKFLOW_INACTIVE",
            {"workflow_id": workflow_id},
        )


class StepInUseException(WorkflowServiceException):
    """Raised when deleting a step that still has open approvals on live instances."""

    def __init__(self, step_id: str, open_approvals: int) -> None:
        super().__init__(
            f"Workflow step {step_id} has {open_approvals} open approval(s)",
            "STEP_IN_USE",
            {"step_id": step_id, "open_approvals": open_approvals},
        )


class UnresolvedApproverException(WorkflowServiceException):
    """Raised when a step's approver rule resolves to nobody.

    Blocks instance advancement; the instance keeps a warning
    (blocked_reason) until approvers appear or are reassigned.
    """

    def __init__(self, step_id: str, step_name: str, rule: str) -> None:
        """Initialize with the step and the rule that resolved to no approver.

        Args:
            step_id: Step whose approvers could not be resolved.
            step_name: Display name of the step.
            rule: The approver rule (e.g. 'role:finance').
        """
        super().__init__(
            f"No approver could be resolved for step '{step_name}' ({rule})",
            "UNRESOLVED_APPROVER",
            {"step_id": step_id, "step_name": step_name, "rule": rule},
        )


class InvalidInstanceStateException(WorkflowServiceException):
    """Raised when an operation is not legal in the instance's current status."""

    def __init__(self, instance_id: str, status: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} workflow instance {instance_id} in status '{status}'",
            "INVALID_INSTANCE_STATE",
            {"instance_id": instance_id, "status": status, "operation": operation},
        )


class AlreadyDecidedException(WorkflowServiceException):
    """Raised when a decision is recorded on an approval that is no longer open."""

    def __init__(self, approval_id: str, decision: str) -> None:
        super().__init__(
            f"Approval {approval_id} already decided ({decision})",
            "ALREADY_DECIDED",
            {"approval_id": approval_id, "decision": decision},
        )


class StaleInstanceStateException(WorkflowServiceException):
    """Raised when a conditional instance transition finds the row already moved on."""

    def __init__(self, instance_id: str, expected_status: str, expected_step: int | None) -> None:
        super().__init__(
            f"Workflow instance {instance_id} changed concurrently; re-read and retry",
            "STALE_INSTANCE_STATE",
            {
                "instance_id": instance_id,
                "expected_status": expected_status,
                "expected_step": expected_step,
            },
        )


class StoreUnavailableException(WorkflowServiceException):
    """Raised when the database cannot be reached (transient; caller retries with backoff)."""

    def __init__(self, reason: str = "Database unavailable") -> None:
        super().__init__(
            message="The workflow store is temporarily unavailable.",
            error_code="STORE_UNAVAILABLE",
            details={"reason": reason},
        )


class DuplicateAutomationRuleNameException(WorkflowServiceException):
    """Raised when creating or renaming an automation rule to a name already used in the tenant."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Automation rule with name '{name}' already exists",
            "DUPLICATE_AUTOMATION_RULE_NAME",
            {"name": name},
        )
