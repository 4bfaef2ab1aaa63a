"""Workflow notification templates: notification kind -> subject/body (Jinja)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound

from app.shared.enums import NotificationKind

# key -> (subject_template, body_template). Context keys: instance_id, workflow_id,
# target_entity_type, target_entity_id, status, step_name, step_number, ...
_DEFAULT_TEMPLATES: dict[str, tuple[str, str]] = {
    NotificationKind.STEP_OPENED.value: (
        "Approval needed: {{ step_name }} ({{ target_entity_type }} {{ target_entity_id }})",
        "Your approval is requested for step {{ step_number }} \"{{ step_name }}\" "
        "of workflow instance {{ instance_id }}.\n"
        "{% if timeout_hours %}Please decide within {{ timeout_hours }} hours.\n{% endif %}",
    ),
    NotificationKind.STEP_NOTIFICATION.value: (
        "FYI: {{ step_name }} ({{ target_entity_type }} {{ target_entity_id }})",
        "Workflow instance {{ instance_id }} reached step {{ step_number }} \"{{ step_name }}\".",
    ),
    NotificationKind.ESCALATED.value: (
        "Escalation: {{ step_name }} is waiting on {{ approver }}",
        "The approval by {{ approver }} on step {{ step_number }} \"{{ step_name }}\" "
        "of instance {{ instance_id }} ({{ target_entity_type }} {{ target_entity_id }}) "
        "is overdue.",
    ),
    NotificationKind.DELEGATED.value: (
        "Approval delegated to you ({{ target_entity_type }} {{ target_entity_id }})",
        "{{ delegated_by }} delegated approval {{ approval_id }} of instance "
        "{{ instance_id }} to you.",
    ),
    NotificationKind.INSTANCE_APPROVED.value: (
        "Approved: {{ target_entity_type }} {{ target_entity_id }}",
        "Workflow instance {{ instance_id }} was approved.",
    ),
    NotificationKind.INSTANCE_REJECTED.value: (
        "Rejected: {{ target_entity_type }} {{ target_entity_id }}",
        "Workflow instance {{ instance_id }} was rejected."
        "{% if rejection_reason %}\nReason: {{ rejection_reason }}{% endif %}",
    ),
    NotificationKind.INSTANCE_TIMED_OUT.value: (
        "Timed out: {{ target_entity_type }} {{ target_entity_id }}",
        "Workflow instance {{ instance_id }} timed out waiting for a decision.",
    ),
    NotificationKind.INSTANCE_CANCELLED.value: (
        "Cancelled: {{ target_entity_type }} {{ target_entity_id }}",
        "Workflow instance {{ instance_id }} was cancelled."
        "{% if cancel_reason %}\nReason: {{ cancel_reason }}{% endif %}",
    ),
}


class WorkflowTemplateRenderer:
    """Renders subject and body for a notification kind.

    Templates in templates_dir named <key>.subject.j2 / <key>.body.j2 override
    the built-in ones.
    """

    def __init__(
        self,
        templates: dict[str, tuple[str, str]] | None = None,
        templates_dir: str | None = None,
    ) -> None:
        self._templates = templates or _DEFAULT_TEMPLATES
        self._env = Environment(
            autoescape=False,
            loader=FileSystemLoader(templates_dir) if templates_dir and Path(templates_dir).is_dir() else None,
        )
        self._compiled: dict[str, tuple[Template, Template]] = {}
        for key, (sub_str, body_str) in self._templates.items():
            self._compiled[key] = (
                self._load(f"{key}.subject.j2", sub_str),
                self._load(f"{key}.body.j2", body_str),
            )

    def _load(self, name: str, fallback: str) -> Template:
        if self._env.loader is not None:
            try:
                return self._env.get_template(name)
            except TemplateNotFound:
                pass
        return self._env.from_string(fallback)

    def render(self, template_key: str, context: dict[str, Any]) -> tuple[str, str]:
        """Render subject and body for the template key. Raises KeyError if key unknown."""
        if template_key not in self._compiled:
            raise KeyError(f"Unknown workflow template: {template_key}")
        subject_tpl, body_tpl = self._compiled[template_key]
        return subject_tpl.render(**context).strip(), body_tpl.render(**context)
