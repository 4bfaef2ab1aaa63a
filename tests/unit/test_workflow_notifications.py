"""Notification rendering (Jinja templates) and the notifier's failure handling."""

import logging
from unittest.mock import AsyncMock

import pytest

from app.application.services.workflow_notifier import WorkflowNotifier
from app.infrastructure.services import LogOnlyNotificationService, WorkflowTemplateRenderer
from app.shared.enums import NotificationKind

CONTEXT = {
    "instance_id": "inst-1",
    "target_entity_type": "expense",
    "target_entity_id": "exp-7",
    "step_name": "Finance approval",
    "step_number": 2,
    "timeout_hours": 48,
}


def test_every_notification_kind_has_a_template() -> None:
    """Each NotificationKind renders without a KeyError."""
    renderer = WorkflowTemplateRenderer()
    for kind in NotificationKind:
        subject, _ = renderer.render(kind.value, CONTEXT)
        assert subject


def test_step_opened_renders_subject_and_body() -> None:
    """The step-opened template names the step, target and timeout."""
    subject, body = WorkflowTemplateRenderer().render("step_opened", CONTEXT)
    assert subject == "Approval needed: Finance approval (expense exp-7)"
    assert "step 2" in body
    assert "within 48 hours" in body


def test_unknown_template_key() -> None:
    """An unknown template key raises KeyError."""
    with pytest.raises(KeyError):
        WorkflowTemplateRenderer().render("nope", CONTEXT)


def test_templates_dir_overrides_builtin(tmp_path) -> None:
    """<key>.subject.j2 in templates_dir replaces the built-in subject only."""
    (tmp_path / "instance_approved.subject.j2").write_text("Done: {{ target_entity_id }}")
    renderer = WorkflowTemplateRenderer(templates_dir=str(tmp_path))
    subject, body = renderer.render("instance_approved", CONTEXT)
    assert subject == "Done: exp-7"
    assert body == "Workflow instance inst-1 was approved."


async def test_notifier_sends_rendered_message() -> None:
    """notify renders the kind's template and hands it to the service."""
    service = AsyncMock()
    notifier = WorkflowNotifier(service, WorkflowTemplateRenderer())
    sent = await notifier.notify(NotificationKind.INSTANCE_APPROVED, ["a@agency.test"], CONTEXT)
    assert sent is True
    service.send.assert_awaited_once_with(
        ["a@agency.test"], "Approved: expense exp-7", "Workflow instance inst-1 was approved."
    )


async def test_notifier_swallows_delivery_failure(caplog) -> None:
    """A failing sender is logged and reported as False, never raised."""
    service = AsyncMock()
    service.send = AsyncMock(side_effect=ConnectionError("smtp down"))
    notifier = WorkflowNotifier(service, WorkflowTemplateRenderer())
    with caplog.at_level(logging.ERROR):
        sent = await notifier.notify(NotificationKind.ESCALATED, ["a@agency.test"], CONTEXT)
    assert sent is False
    assert "Workflow notify escalated failed" in caplog.text


async def test_notifier_skips_without_recipients_or_service() -> None:
    """No recipients or no configured service means nothing is sent."""
    service = AsyncMock()
    assert await WorkflowNotifier(service, WorkflowTemplateRenderer()).notify(
        NotificationKind.ESCALATED, [], CONTEXT
    ) is False
    service.send.assert_not_awaited()
    assert await WorkflowNotifier(None, None).notify(
        NotificationKind.ESCALATED, ["a@agency.test"], CONTEXT
    ) is False


async def test_log_only_service_logs_summary(caplog) -> None:
    """The log-only sender records recipient count and subject."""
    with caplog.at_level(logging.INFO):
        await LogOnlyNotificationService().send(["a@agency.test"], "Subject line", "Body")
    assert "would send to 1 recipients" in caplog.text


async def test_notifier_delivers_on_each_requested_channel(caplog) -> None:
    """Each known channel gets the rendered message once; unknown channels are logged."""
    email = AsyncMock()
    sms = AsyncMock()
    notifier = WorkflowNotifier(email, WorkflowTemplateRenderer(), channels={"sms": sms})
    assert notifier.channel_names() == ["email", "sms"]
    with caplog.at_level(logging.WARNING):
        sent = await notifier.notify(
            NotificationKind.INSTANCE_APPROVED,
            ["a@agency.test"],
            CONTEXT,
            channels=["sms", "pager", "sms"],
        )
    assert sent is True
    sms.send.assert_awaited_once_with(
        ["a@agency.test"], "Approved: expense exp-7", "Workflow instance inst-1 was approved."
    )
    email.send.assert_not_awaited()
    assert "no service for channel 'pager'" in caplog.text


async def test_notifier_failed_channel_does_not_stop_the_next() -> None:
    """A channel that raises is skipped and the remaining channels still deliver."""
    email = AsyncMock()
    email.send = AsyncMock(side_effect=ConnectionError("smtp down"))
    sms = AsyncMock()
    notifier = WorkflowNotifier(email, WorkflowTemplateRenderer(), channels={"sms": sms})
    sent = await notifier.notify(
        NotificationKind.ESCALATED, ["a@agency.test"], CONTEXT, channels=["email", "sms"]
    )
    assert sent is True
    sms.send.assert_awaited_once()
