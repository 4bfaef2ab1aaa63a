"""AutomationActionRegistry and the built-in notify action."""

import logging
from unittest.mock import AsyncMock

from app.application.services.automation_actions import AutomationActionRegistry
from app.infrastructure.services import build_default_action_registry

TENANT = "agency-a"
CONTEXT = {"source": "workflow:wf-1", "instance_id": "inst-1"}


async def test_run_calls_registered_handler_with_copied_params() -> None:
    """The handler receives the tenant, a copy of params and the context."""
    handler = AsyncMock()
    registry = AutomationActionRegistry()
    registry.register("sync", handler)
    params = {"target": "ledger"}
    assert await registry.run(TENANT, "sync", params, CONTEXT) is True
    handler.assert_awaited_once_with(TENANT, {"target": "ledger"}, CONTEXT)
    assert handler.await_args.args[1] is not params


async def test_unknown_or_failing_action_is_logged_not_raised(caplog) -> None:
    """Missing handlers and handler errors both report False."""
    registry = AutomationActionRegistry()
    registry.register("broken", AsyncMock(side_effect=RuntimeError("boom")))
    with caplog.at_level(logging.WARNING):
        assert await registry.run(TENANT, "missing", None, CONTEXT) is False
        assert await registry.run(TENANT, "broken", {}, CONTEXT) is False
    assert "No automation action registered for 'missing'" in caplog.text
    assert "Automation action broken failed" in caplog.text


async def test_run_all_counts_successes_in_order() -> None:
    calls = []

    async def record(tenant_id, params, context):
        calls.append(params["n"])

    registry = AutomationActionRegistry()
    registry.register("record", record)
    ran = await registry.run_all(
        TENANT,
        [{"type": "record", "params": {"n": 1}}, {"type": "nope"}, {"type": "record", "params": {"n": 2}}],
        CONTEXT,
    )
    assert ran == 2
    assert calls == [1, 2]


async def test_notify_action_sends_to_listed_recipients() -> None:
    """notify takes a single address or a list; a missing 'to' fails the action."""
    service = AsyncMock()
    registry = build_default_action_registry(service)
    assert registry.keys() == ["notify"]

    assert await registry.run(
        TENANT, "notify", {"to": "ops@agency.test", "subject": "Paid", "body": "Done"}, CONTEXT
    )
    service.send.assert_awaited_once_with(["ops@agency.test"], "Paid", "Done")

    assert await registry.run(TENANT, "notify", {"to": ["a@agency.test", "b@agency.test"]}, CONTEXT)
    assert service.send.await_args.args == (
        ["a@agency.test", "b@agency.test"],
        "Automation: workflow:wf-1",
        "",
    )

    assert await registry.run(TENANT, "notify", {}, CONTEXT) is False
