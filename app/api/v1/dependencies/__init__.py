"""Presentation-layer dependency injection (composition root).

Routes depend only on these dependencies, never on infrastructure directly.
"""

from app.api.v1.dependencies.tenant import get_actor, get_optional_actor, get_tenant_id
from app.api.v1.dependencies.workflow import (
    build_definition_service,
    build_automation_rule_service,
    build_instance_service,
    get_automation_rule_service,
    get_automation_rule_service_for_write,
    get_definition_service,
    get_definition_service_for_write,
    get_instance_service,
    get_instance_service_for_write,
    get_trigger_gateway,
)

__all__ = [
    "build_automation_rule_service",
    "build_definition_service",
    "build_instance_service",
    "get_actor",
    "get_automation_rule_service",
    "get_automation_rule_service_for_write",
    "get_definition_service",
    "get_definition_service_for_write",
    "get_instance_service",
    "get_instance_service_for_write",
    "get_optional_actor",
    "get_tenant_id",
    "get_trigger_gateway",
]
