"""Domain enumerations for workflow definitions and instances.

Enums represent fixed sets of domain values stored as strings in the
database (workflow type, step type, approver type, statuses).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class WorkflowType(_ValuesMixin, str, Enum):
    """Kind of workflow template; selects the configuration variant."""

    APPROVAL = "approval"
    NOTIFICATION = "notification"
    AUTOMATION = "automation"
    CUSTOM = "custom"


class StepType(_ValuesMixin, str, Enum):
    """Step kind. Approval steps open approvals; notification steps only notify."""

    APPROVAL = "approval"
    NOTIFICATION = "notification"


class ApproverType(_ValuesMixin, str, Enum):
    """How a step's approvers are resolved at run time."""

    ROLE = "role"
    USER = "user"
    DYNAMIC = "dynamic"


class InstanceStatus(_ValuesMixin, str, Enum):
    """Workflow instance lifecycle status.

    pending -> in_progress -> one of the terminal statuses; pending may also
    go straight to cancelled. Terminal statuses never change.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @classmethod
    def terminal(cls) -> frozenset["InstanceStatus"]:
        """Statuses from which no further transition is allowed."""
        return frozenset({cls.APPROVED, cls.REJECTED, cls.CANCELLED, cls.TIMED_OUT})

    @classmethod
    def active(cls) -> frozenset["InstanceStatus"]:
        """Statuses that count as live (block workflow deletion)."""
        return frozenset({cls.PENDING, cls.IN_PROGRESS})

    @property
    def is_terminal(self) -> bool:
        return self in InstanceStatus.terminal()


class ApprovalDecision(_ValuesMixin, str, Enum):
    """Decision on one step approval.

    escalated: escalation fired, still awaiting a decision.
    cancelled: approval made moot (group closed or instance ended).
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"
    CANCELLED = "cancelled"

    @classmethod
    def open(cls) -> frozenset["ApprovalDecision"]:
        """Decisions that still accept an approve/reject."""
        return frozenset({cls.PENDING, cls.ESCALATED})

    @property
    def is_open(self) -> bool:
        return self in ApprovalDecision.open()


class RejectionPolicy(_ValuesMixin, str, Enum):
    """How a rejection inside an open group affects the instance."""

    FAIL_FAST = "fail_fast"


class AutomationRuleType(_ValuesMixin, str, Enum):
    """Category of an automation rule; used for filtering and display."""

    TRIGGER = "trigger"
    CONDITION = "condition"
    ACTION = "action"
    SCHEDULE = "schedule"
