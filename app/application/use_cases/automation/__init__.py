"""Automation use cases: event-driven rules."""

from app.application.use_cases.automation.rules import AutomationRuleService

__all__ = ["AutomationRuleService"]
