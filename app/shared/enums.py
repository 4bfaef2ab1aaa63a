"""Shared enumerations for the workflow service.

Cross-cutting enums used by application and infrastructure (notification
kind). Workflow domain enums (statuses, step and approver types) live in
app.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class NotificationKind(_ValuesMixin, str, Enum):
    """Template keys for workflow notifications."""

    STEP_OPENED = "step_opened"
    STEP_NOTIFICATION = "step_notification"
    ESCALATED = "escalated"
    INSTANCE_APPROVED = "instance_approved"
    INSTANCE_REJECTED = "instance_rejected"
    INSTANCE_TIMED_OUT = "instance_timed_out"
    INSTANCE_CANCELLED = "instance_cancelled"
    DELEGATED = "delegated"
