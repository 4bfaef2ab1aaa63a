"""Automation rule API schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.shared.utils.sanitization import clean_text, validate_key

RuleTypeLiteral = Literal["trigger", "condition", "action", "schedule"]


class AutomationRuleCreateRequest(BaseModel):
    """Request body for creating an automation rule."""

    name: str = Field(..., min_length=1, max_length=200)
    rule_type: RuleTypeLiteral = "trigger"
    entity_type: str = Field(..., min_length=1, max_length=100)
    trigger_event: str = Field(..., min_length=1, max_length=100)
    action_type: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    trigger_condition: dict[str, Any] | None = None
    action_config: dict[str, Any] | None = None
    is_active: bool = True
    priority: int = 0

    @field_validator("entity_type", "trigger_event", "action_type")
    @classmethod
    def _key(cls, v: str) -> str:
        return validate_key(v.strip())

    @field_validator("name", "description")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class AutomationRuleUpdateRequest(BaseModel):
    """Request body for updating a rule (partial; only sent fields change)."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    rule_type: RuleTypeLiteral | None = None
    entity_type: str | None = Field(default=None, min_length=1, max_length=100)
    trigger_event: str | None = Field(default=None, min_length=1, max_length=100)
    action_type: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    trigger_condition: dict[str, Any] | None = None
    action_config: dict[str, Any] | None = None
    is_active: bool | None = None
    priority: int | None = None

    @field_validator("entity_type", "trigger_event", "action_type")
    @classmethod
    def _key(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_key(v.strip())

    @field_validator("name", "description")
    @classmethod
    def _clean(cls, v: str | None) -> str | None:
        return clean_text(v)


class AutomationRuleResponse(BaseModel):
    """Automation rule response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: str | None
    rule_type: str
    entity_type: str
    trigger_event: str
    trigger_condition: dict[str, Any]
    action_type: str
    action_config: dict[str, Any]
    is_active: bool
    priority: int
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
