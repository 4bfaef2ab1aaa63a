"""Automation rule repository integration tests. Require Postgres; session is rolled back after each test."""

import pytest

from app.application.dtos.automation_rule import AutomationRuleFilters
from app.domain.entities.automation_rule import AutomationRuleEntity
from app.infrastructure.persistence.repositories import AutomationRuleRepository
from app.shared.utils.generators import generate_cuid

TENANT = "repo-test-agency"


def _rule(name: str, **fields) -> AutomationRuleEntity:
    return AutomationRuleEntity(
        id=generate_cuid(),
        tenant_id=TENANT,
        name=f"{name} {generate_cuid()}",
        rule_type=fields.pop("rule_type", "trigger"),
        entity_type=fields.pop("entity_type", "expense"),
        trigger_event=fields.pop("trigger_event", "submitted"),
        action_type="notify",
        **fields,
    )


@pytest.mark.requires_db
async def test_rule_round_trip_and_filters(db_session) -> None:
    """JSON columns survive; filters and search narrow; priority orders the list."""
    repo = AutomationRuleRepository(db_session)
    low = await repo.create(_rule("Low", priority=1, trigger_condition={"currency": ["EUR"]}))
    high = await repo.create(_rule("High", priority=7, description="Nightly ledger sync"))
    off = await repo.create(_rule("Off", is_active=False, rule_type="schedule"))

    fetched = await repo.get_by_id(TENANT, low.id)
    assert fetched.trigger_condition == {"currency": ["EUR"]}
    assert fetched.created_at is not None
    assert (await repo.get_by_name(TENANT, high.name)).id == high.id

    listed = await repo.get_by_tenant(TENANT, AutomationRuleFilters())
    ids = [r.id for r in listed]
    assert ids.index(high.id) < ids.index(low.id) < ids.index(off.id)
    assert [
        r.id for r in await repo.get_by_tenant(TENANT, AutomationRuleFilters(search="ledger"))
    ] == [high.id]
    schedule = await repo.get_by_tenant(
        TENANT, AutomationRuleFilters(rule_type="schedule", is_active=False)
    )
    assert off.id in [r.id for r in schedule]

    triggered = await repo.list_by_trigger(TENANT, "expense", "submitted")
    assert off.id not in [r.id for r in triggered]
    assert [r.id for r in triggered].index(high.id) < [r.id for r in triggered].index(low.id)


@pytest.mark.requires_db
async def test_rule_update_and_delete(db_session) -> None:
    repo = AutomationRuleRepository(db_session)
    rule = await repo.create(_rule("Mutable"))
    updated = await repo.update(TENANT, rule.id, {"priority": 4, "action_config": {"to": "a@x.test"}})
    assert updated.priority == 4
    assert updated.action_config == {"to": "a@x.test"}
    await repo.delete(TENANT, rule.id)
    assert await repo.get_by_id(TENANT, rule.id) is None
