"""Sends workflow notifications (step opened, escalation, terminal states).

Each message is rendered once and handed to the service of every requested
channel. The primary service is the "email" channel; notification workflows
pick channels through configuration.channels. Delivery failures are logged
and never abort a state transition.
"""

from __future__ import annotations

from typing import Any

from app.application.interfaces.services import (
    INotificationRenderer,
    INotificationService,
)
from app.shared.enums import NotificationKind
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHANNEL = "email"


class WorkflowNotifier:
    """Renders a notification template and hands it to each channel's service."""

    def __init__(
        self,
        notification_service: INotificationService | None,
        renderer: INotificationRenderer | None,
        channels: dict[str, INotificationService] | None = None,
    ) -> None:
        self._channels: dict[str, INotificationService] = {}
        if notification_service is not None:
            self._channels[DEFAULT_CHANNEL] = notification_service
        self._channels.update(channels or {})
        self._renderer = renderer

    def channel_names(self) -> list[str]:
        return sorted(self._channels)

    async def notify(
        self,
        kind: NotificationKind,
        recipients: list[str],
        context: dict[str, Any],
        channels: list[str] | None = None,
    ) -> bool:
        """Send one notification; return False when skipped or no channel delivered it."""
        if not recipients:
            return False
        if not self._channels or self._renderer is None:
            logger.debug("Workflow notify %s skipped: notifier not configured", kind.value)
            return False
        delivered = False
        subject: str | None = None
        body = ""
        for name in dict.fromkeys(channels or [DEFAULT_CHANNEL]):
            service = self._channels.get(name)
            if service is None:
                logger.warning(
                    "Workflow notify %s: no service for channel %r (instance_id=%s)",
                    kind.value,
                    name,
                    context.get("instance_id"),
                )
                continue
            try:
                if subject is None:
                    subject, body = self._renderer.render(kind.value, context)
                await service.send(list(recipients), subject, body)
            except Exception:
                logger.exception(
                    "Workflow notify %s failed (instance_id=%s, channel=%s, recipients=%d)",
                    kind.value,
                    context.get("instance_id"),
                    name,
                    len(recipients),
                )
                continue
            delivered = True
        return delivered
