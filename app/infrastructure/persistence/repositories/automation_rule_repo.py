"""Automation rule repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.automation_rule import AutomationRuleFilters
from app.domain.entities.automation_rule import AutomationRuleEntity
from app.infrastructure.persistence.models.automation_rule import AutomationRule
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.shared.utils.datetime import ensure_utc

_RULE_FIELDS = (
    "name",
    "description",
    "rule_type",
    "entity_type",
    "trigger_event",
    "trigger_condition",
    "action_type",
    "action_config",
    "is_active",
    "priority",
    "created_by",
)


def _to_rule(obj: AutomationRule) -> AutomationRuleEntity:
    return AutomationRuleEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        name=obj.name,
        description=obj.description,
        rule_type=obj.rule_type,
        entity_type=obj.entity_type,
        trigger_event=obj.trigger_event,
        trigger_condition=dict(obj.trigger_condition or {}),
        action_type=obj.action_type,
        action_config=dict(obj.action_config or {}),
        is_active=obj.is_active,
        priority=obj.priority,
        created_by=obj.created_by,
        created_at=ensure_utc(obj.created_at),
        updated_at=ensure_utc(obj.updated_at),
    )


class AutomationRuleRepository(BaseRepository[AutomationRule]):
    """IAutomationRuleRepository over the automation_rule table."""

    resource_type = "automation_rule"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, AutomationRule)

    async def get_by_id(self, tenant_id: str, rule_id: str) -> AutomationRuleEntity | None:
        obj = await self._get(tenant_id, rule_id)
        return _to_rule(obj) if obj is not None else None

    async def get_by_name(self, tenant_id: str, name: str) -> AutomationRuleEntity | None:
        result = await self.db.execute(
            self._scoped(tenant_id).where(AutomationRule.name == name)
        )
        obj = result.scalar_one_or_none()
        return _to_rule(obj) if obj is not None else None

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: AutomationRuleFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AutomationRuleEntity]:
        q = self._scoped(tenant_id)
        if filters.rule_type:
            q = q.where(AutomationRule.rule_type == filters.rule_type)
        if filters.entity_type:
            q = q.where(AutomationRule.entity_type == filters.entity_type)
        if filters.is_active is not None:
            q = q.where(AutomationRule.is_active.is_(filters.is_active))
        if filters.search:
            pattern = f"%{filters.search}%"
            q = q.where(
                or_(
                    AutomationRule.name.ilike(pattern),
                    AutomationRule.description.ilike(pattern),
                )
            )
        q = (
            q.order_by(AutomationRule.priority.desc(), AutomationRule.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(q)
        return [_to_rule(obj) for obj in result.scalars().all()]

    async def list_by_trigger(
        self, tenant_id: str, entity_type: str, trigger_event: str
    ) -> list[AutomationRuleEntity]:
        result = await self.db.execute(
            self._scoped(tenant_id)
            .where(
                AutomationRule.entity_type == entity_type,
                AutomationRule.trigger_event == trigger_event,
                AutomationRule.is_active.is_(True),
            )
            .order_by(AutomationRule.priority.desc(), AutomationRule.created_at.asc())
        )
        return [_to_rule(obj) for obj in result.scalars().all()]

    async def create(self, rule: AutomationRuleEntity) -> AutomationRuleEntity:
        obj = AutomationRule(
            id=rule.id,
            tenant_id=rule.tenant_id,
            **{name: getattr(rule, name) for name in _RULE_FIELDS},
        )
        return _to_rule(await self._add(obj))

    async def update(
        self, tenant_id: str, rule_id: str, changes: dict[str, Any]
    ) -> AutomationRuleEntity:
        return _to_rule(await self._apply(tenant_id, rule_id, changes))

    async def delete(self, tenant_id: str, rule_id: str) -> None:
        await self._remove(tenant_id, rule_id)
