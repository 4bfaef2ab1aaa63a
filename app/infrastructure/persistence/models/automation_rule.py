"""Automation rule ORM model."""

from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import MultiTenantModel


class AutomationRule(MultiTenantModel, Base):
    """Event-driven automation rule. Table: automation_rule. Unique name per agency."""

    __tablename__ = "automation_rule"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rule_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_event: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_condition: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, server_default=sa.text("'{}'")
    )
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    action_config: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, server_default=sa.text("'{}'")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_automation_rule_tenant_name"),
        Index("ix_automation_rule_tenant_trigger", "tenant_id", "entity_type", "trigger_event"),
    )
