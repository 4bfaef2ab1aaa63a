"""Automation rules: tenant-scoped CRUD and evaluation against incoming events.

A rule names one event on one entity type, an optional trigger_condition
over the event metadata and a single action run through the automation
action registry. Matching rules run highest priority first.
"""

from __future__ import annotations

from typing import Any

import jsonschema

from app.application.dtos.automation_rule import (
    AutomationRuleCreate,
    AutomationRuleFilters,
    AutomationRuleUpdate,
)
from app.application.interfaces.repositories import IAutomationRuleRepository
from app.application.services.automation_actions import AutomationActionRegistry
from app.domain.entities.automation_rule import AutomationRuleEntity
from app.domain.enums import AutomationRuleType
from app.domain.exceptions import (
    DuplicateAutomationRuleNameException,
    ResourceNotFoundException,
    ValidationException,
)
from app.shared.telemetry.logging import get_logger
from app.shared.utils.generators import generate_cuid

logger = get_logger(__name__)

_OBJECT_SCHEMA: dict[str, Any] = {"type": "object"}
_TEXT_FIELDS = ("name", "entity_type", "trigger_event")


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationException(f"{field} is required", field=field)
    return value.strip()


def _object(value: Any, field: str) -> dict[str, Any]:
    """Return value ({} when None) if it is a JSON object, else raise ValidationException."""
    value = value if value is not None else {}
    try:
        jsonschema.validate(instance=value, schema=_OBJECT_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValidationException(f"{field} must be an object", field=field) from e
    return dict(value)


class AutomationRuleService:
    """Manage automation rules and run the ones an event matches."""

    def __init__(
        self,
        rule_repo: IAutomationRuleRepository,
        actions: AutomationActionRegistry,
    ) -> None:
        self.rule_repo = rule_repo
        self.actions = actions

    def _check_rule_type(self, rule_type: Any) -> str:
        rule_type = _require_text(rule_type, "rule_type")
        if rule_type not in AutomationRuleType.values():
            raise ValidationException(
                f"rule_type must be one of {AutomationRuleType.values()}", field="rule_type"
            )
        return rule_type

    def _check_action_type(self, action_type: Any) -> str:
        action_type = _require_text(action_type, "action_type")
        if self.actions.get(action_type) is None:
            raise ValidationException(
                f"action_type must be one of {self.actions.keys()}", field="action_type"
            )
        return action_type

    @staticmethod
    def _check_priority(priority: Any) -> int:
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationException("priority must be an integer", field="priority")
        return priority

    async def get_rule(self, tenant_id: str, rule_id: str) -> AutomationRuleEntity:
        """Return rule or raise ResourceNotFoundException."""
        rule = await self.rule_repo.get_by_id(tenant_id, rule_id)
        if rule is None:
            raise ResourceNotFoundException("automation_rule", rule_id)
        return rule

    async def list_rules(
        self,
        tenant_id: str,
        filters: AutomationRuleFilters | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AutomationRuleEntity]:
        return await self.rule_repo.get_by_tenant(
            tenant_id, filters or AutomationRuleFilters(), skip=skip, limit=limit
        )

    async def create_rule(
        self, tenant_id: str, data: AutomationRuleCreate, actor: str | None = None
    ) -> AutomationRuleEntity:
        """Create a rule.

        Raises ValidationException for missing text, an unknown rule_type or
        action_type, non-object condition/config or a non-integer priority;
        DuplicateAutomationRuleNameException when the name is taken.
        """
        name = _require_text(data.name, "name")
        rule = AutomationRuleEntity(
            id=generate_cuid(),
            tenant_id=tenant_id,
            name=name,
            description=(data.description or "").strip() or None,
            rule_type=self._check_rule_type(data.rule_type),
            entity_type=_require_text(data.entity_type, "entity_type"),
            trigger_event=_require_text(data.trigger_event, "trigger_event"),
            trigger_condition=_object(data.trigger_condition, "trigger_condition"),
            action_type=self._check_action_type(data.action_type),
            action_config=_object(data.action_config, "action_config"),
            is_active=data.is_active,
            priority=self._check_priority(data.priority),
            created_by=actor,
        )
        if await self.rule_repo.get_by_name(tenant_id, name) is not None:
            raise DuplicateAutomationRuleNameException(name)
        created = await self.rule_repo.create(rule)
        logger.info(
            "Automation rule created: %s (rule_id=%s, tenant_id=%s)", name, created.id, tenant_id
        )
        return created

    async def update_rule(
        self, tenant_id: str, rule_id: str, data: AutomationRuleUpdate
    ) -> AutomationRuleEntity:
        """Apply a partial update; an empty update is rejected."""
        rule = await self.get_rule(tenant_id, rule_id)
        changes = data.changes()
        if not changes:
            raise ValidationException("No fields to update")
        for field in _TEXT_FIELDS:
            if field in changes:
                changes[field] = _require_text(changes[field], field)
        if "rule_type" in changes:
            changes["rule_type"] = self._check_rule_type(changes["rule_type"])
        if "action_type" in changes:
            changes["action_type"] = self._check_action_type(changes["action_type"])
        for field in ("trigger_condition", "action_config"):
            if field in changes:
                changes[field] = _object(changes[field], field)
        if "priority" in changes:
            changes["priority"] = self._check_priority(changes["priority"])
        if "is_active" in changes and not isinstance(changes["is_active"], bool):
            raise ValidationException("is_active must be a boolean", field="is_active")
        if "description" in changes:
            changes["description"] = (changes["description"] or "").strip() or None
        if "name" in changes and changes["name"] != rule.name:
            if await self.rule_repo.get_by_name(tenant_id, changes["name"]) is not None:
                raise DuplicateAutomationRuleNameException(changes["name"])
        return await self.rule_repo.update(tenant_id, rule_id, changes)

    async def delete_rule(self, tenant_id: str, rule_id: str) -> None:
        await self.get_rule(tenant_id, rule_id)
        await self.rule_repo.delete(tenant_id, rule_id)
        logger.info("Automation rule deleted (rule_id=%s, tenant_id=%s)", rule_id, tenant_id)

    async def run_matching(
        self,
        tenant_id: str,
        entity_type: str,
        event_name: str,
        entity_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> list[str]:
        """Run the action of every active rule the event matches; return the ids that ran.

        A rule whose action fails is logged by the registry and left out of
        the result; the remaining rules still run.
        """
        metadata = metadata or {}
        ran: list[str] = []
        for rule in await self.rule_repo.list_by_trigger(tenant_id, entity_type, event_name):
            if not rule.matches(entity_type, event_name, metadata):
                continue
            context = {
                "source": f"rule:{rule.id}",
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event": event_name,
                "metadata": metadata,
            }
            if await self.actions.run(tenant_id, rule.action_type, rule.action_config, context):
                ran.append(rule.id)
        return ran
