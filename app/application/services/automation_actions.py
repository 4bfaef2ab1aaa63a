"""Automation actions: named handlers run by automation workflows and rules.

An action is {"type": <registered key>, "params": {...}}. Automation
workflows run their configured actions when an instance is approved;
automation rules run theirs when a matching event arrives. A missing or
failing handler is logged and skipped; it never undoes the transition or
event that ran it.
"""

from __future__ import annotations

from typing import Any

from app.application.interfaces.services import IAutomationActionHandler
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AutomationActionRegistry:
    """Named automation action handlers (e.g. 'notify').

    Modules that own a side effect register a handler at startup; workflow
    configurations and automation rules reference it by type.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, IAutomationActionHandler] = {}

    def register(self, action_type: str, handler: IAutomationActionHandler) -> None:
        """Register (or replace) the handler for action_type."""
        self._handlers[action_type] = handler

    def get(self, action_type: str) -> IAutomationActionHandler | None:
        return self._handlers.get(action_type)

    def keys(self) -> list[str]:
        return sorted(self._handlers)

    async def run(
        self,
        tenant_id: str,
        action_type: str,
        params: dict[str, Any] | None,
        context: dict[str, Any],
    ) -> bool:
        """Run one action; return False when no handler exists or it raised."""
        handler = self._handlers.get(action_type)
        if handler is None:
            logger.warning(
                "No automation action registered for %r (tenant_id=%s, source=%s)",
                action_type,
                tenant_id,
                context.get("source"),
            )
            return False
        try:
            await handler(tenant_id, dict(params or {}), context)
        except Exception:
            logger.exception(
                "Automation action %s failed (tenant_id=%s, source=%s)",
                action_type,
                tenant_id,
                context.get("source"),
            )
            return False
        logger.info(
            "Automation action %s ran (tenant_id=%s, source=%s)",
            action_type,
            tenant_id,
            context.get("source"),
        )
        return True

    async def run_all(
        self, tenant_id: str, actions: list[dict[str, Any]], context: dict[str, Any]
    ) -> int:
        """Run actions in order; return how many succeeded."""
        succeeded = 0
        for action in actions:
            if await self.run(tenant_id, action["type"], action.get("params"), context):
                succeeded += 1
        return succeeded
