"""Validates workflow configuration blobs per workflow_type (tagged variant).

approval, notification and automation workflows have a fixed schema;
custom workflows accept any JSON object.
"""

from __future__ import annotations

from typing import Any

import jsonschema

from app.domain.enums import RejectionPolicy, WorkflowType
from app.domain.exceptions import ValidationException

_CONFIGURATION_SCHEMAS: dict[str, dict[str, Any]] = {
    WorkflowType.APPROVAL.value: {
        "type": "object",
        "properties": {
            "rejection_policy": {"enum": RejectionPolicy.values()},
            "allow_delegation": {"type": "boolean"},
        },
        "additionalProperties": False,
    },
    WorkflowType.NOTIFICATION.value: {
        "type": "object",
        "properties": {
            "channels": {"type": "array", "items": {"type": "string", "minLength": 1}},
        },
        "additionalProperties": False,
    },
    WorkflowType.AUTOMATION.value: {
        "type": "object",
        "properties": {
            "actions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string", "minLength": 1},
                        "params": {"type": "object"},
                    },
                    "required": ["type"],
                },
            },
        },
        "additionalProperties": False,
    },
    WorkflowType.CUSTOM.value: {"type": "object"},
}


class WorkflowConfigurationValidator:
    """Checks a configuration dict against the schema of its workflow_type."""

    def __init__(self, schemas: dict[str, dict[str, Any]] | None = None) -> None:
        self._schemas = schemas or _CONFIGURATION_SCHEMAS

    def validate(self, workflow_type: str, configuration: dict[str, Any] | None) -> dict[str, Any]:
        """Return the configuration ({} when None) or raise ValidationException."""
        schema = self._schemas.get(workflow_type)
        if schema is None:
            raise ValidationException(
                f"Unknown workflow_type '{workflow_type}'; expected one of {WorkflowType.values()}",
                field="workflow_type",
            )
        config = configuration if configuration is not None else {}
        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as e:
            raise ValidationException(
                f"Invalid configuration for {workflow_type} workflow: {e.message}",
                field="configuration",
            ) from e
        return config
