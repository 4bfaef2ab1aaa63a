"""Service interfaces (ports) for the application layer.

Protocols define contracts for external collaborators of the workflow
core: identity/role lookup, dynamic approver callbacks, automation actions,
notification delivery and message rendering (DIP).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.workflow import TargetEntity


# Identity / role service: resolve approvers by role
class IApproverDirectory(Protocol):
    """Protocol for resolving users (emails) who currently hold a role in the tenant."""

    async def resolve_users_with_role(self, tenant_id: str, role: str) -> list[str]:
        """Return email addresses of active users holding the role (may be empty)."""


# Dynamic approver callback (e.g. "manager of requester"), supplied by the triggering module
class IDynamicApproverResolver(Protocol):
    """Callable resolving approvers for one target entity."""

    async def __call__(self, tenant_id: str, target: TargetEntity) -> list[str]:
        """Return approver emails for the target (may be empty)."""


# Notification service: deliver workflow messages
class INotificationService(Protocol):
    """Protocol for sending notifications (e.g. email) to a list of recipients."""

    async def send(
        self,
        to_emails: list[str],
        subject: str,
        body: str,
    ) -> None:
        """Send notification to the given addresses. No-op or log if not configured."""


# Notification templates
class INotificationRenderer(Protocol):
    """Protocol for rendering notification subject/body from a template key."""

    def render(self, template_key: str, context: dict[str, Any]) -> tuple[str, str]:
        """Return (subject, body). Raises KeyError if the template is unknown."""


# Automation action handler, registered by the module that owns the side effect
class IAutomationActionHandler(Protocol):
    """Callable carrying out one automation action (e.g. send a notice, post a webhook)."""

    async def __call__(
        self, tenant_id: str, params: dict[str, Any], context: dict[str, Any]
    ) -> None:
        """Run the action; raise to report failure (the caller logs and continues)."""
