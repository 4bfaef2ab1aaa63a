"""Application DTOs (no ORM dependency)."""

from app.application.dtos.automation_rule import (
    AutomationRuleCreate,
    AutomationRuleFilters,
    AutomationRuleUpdate,
)
from app.application.dtos.workflow import (
    UNSET,
    InstanceDetail,
    InstanceFilters,
    ResolvedStep,
    StepCreate,
    StepGroup,
    StepUpdate,
    EventOutcome,
    TargetEntity,
    TickResult,
    WorkflowCreate,
    WorkflowFilters,
    WorkflowUpdate,
)

__all__ = [
    "UNSET",
    "AutomationRuleCreate",
    "AutomationRuleFilters",
    "AutomationRuleUpdate",
    "InstanceDetail",
    "InstanceFilters",
    "ResolvedStep",
    "StepCreate",
    "StepGroup",
    "StepUpdate",
    "EventOutcome",
    "TargetEntity",
    "TickResult",
    "WorkflowCreate",
    "WorkflowFilters",
    "WorkflowUpdate",
]
