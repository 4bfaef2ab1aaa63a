"""DTOs for automation rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.application.dtos.workflow import UNSET


@dataclass(frozen=True)
class AutomationRuleCreate:
    """Input for creating an automation rule."""

    name: str
    rule_type: str
    entity_type: str
    trigger_event: str
    action_type: str
    description: str | None = None
    trigger_condition: dict[str, Any] | None = None
    action_config: dict[str, Any] | None = None
    is_active: bool = True
    priority: int = 0


@dataclass(frozen=True)
class AutomationRuleUpdate:
    """Partial update of a rule; fields left as UNSET are untouched."""

    name: Any = UNSET
    description: Any = UNSET
    rule_type: Any = UNSET
    entity_type: Any = UNSET
    trigger_event: Any = UNSET
    trigger_condition: Any = UNSET
    action_type: Any = UNSET
    action_config: Any = UNSET
    is_active: Any = UNSET
    priority: Any = UNSET

    def changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET
        }


@dataclass(frozen=True)
class AutomationRuleFilters:
    """Filters for listing automation rules; search matches name or description."""

    rule_type: str | None = None
    entity_type: str | None = None
    is_active: bool | None = None
    search: str | None = None
