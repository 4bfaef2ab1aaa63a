"""Built-in automation actions.

Modules with their own side effects (webhooks, record updates) register
further handlers on the registry at startup.
"""

from __future__ import annotations

from typing import Any

from app.application.interfaces.services import INotificationService
from app.application.services.automation_actions import AutomationActionRegistry
from app.domain.exceptions import ValidationException


def notify_action(service: INotificationService):
    """Send a fixed message: params {"to": [...], "subject": "...", "body": "..."}."""

    async def notify(tenant_id: str, params: dict[str, Any], context: dict[str, Any]) -> None:
        to = params.get("to")
        recipients = [to] if isinstance(to, str) else [r for r in to or [] if isinstance(r, str)]
        if not recipients:
            raise ValidationException("notify action needs params.to", field="params.to")
        subject = str(params.get("subject") or f"Automation: {context.get('source', 'workflow')}")
        body = str(params.get("body") or "")
        await service.send(recipients, subject, body)

    return notify


def build_default_action_registry(service: INotificationService) -> AutomationActionRegistry:
    """Return a registry with the built-in actions."""
    registry = AutomationActionRegistry()
    registry.register("notify", notify_action(service))
    return registry
