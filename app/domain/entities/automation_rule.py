"""Automation rule entity.

A rule listens for one event on one entity type, like a workflow trigger,
but instead of starting an instance it runs a single automation action
when the event metadata matches its trigger_condition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class AutomationRuleEntity:
    """Domain entity for an automation rule (tenant-scoped, unique name)."""

    id: str
    tenant_id: str
    name: str
    rule_type: str
    entity_type: str
    trigger_event: str
    action_type: str
    description: str | None = None
    trigger_condition: dict[str, Any] = field(default_factory=dict)
    action_config: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    priority: int = 0
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def matches(self, entity_type: str, event_name: str, metadata: dict[str, Any]) -> bool:
        """Return whether the rule fires for this event.

        Every trigger_condition key must be present in metadata with an equal
        value; a list condition matches any of its values.
        """
        if not self.is_active or self.entity_type != entity_type or self.trigger_event != event_name:
            return False
        for key, expected in self.trigger_condition.items():
            if key not in metadata:
                return False
            actual = metadata[key]
            if isinstance(expected, list):
                if actual not in expected:
                    return False
            elif actual != expected:
                return False
        return True
