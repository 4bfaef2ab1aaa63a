"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities or application DTOs only; no infrastructure imports.
Every method is scoped by tenant_id (the agency).
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.automation_rule import AutomationRuleFilters
    from app.application.dtos.workflow import InstanceFilters, WorkflowFilters
    from app.domain.entities.automation_rule import AutomationRuleEntity
    from app.domain.entities.workflow import (
        StepApprovalEntity,
        WorkflowEntity,
        WorkflowInstanceEntity,
        WorkflowStepEntity,
        WorkflowVersionEntity,
    )


# Workflow definition repository interface
class IWorkflowRepository(Protocol):
    """Protocol for workflow definition repository (DIP)."""

    async def get_by_id(self, tenant_id: str, workflow_id: str) -> WorkflowEntity | None:
        """Return workflow with step_count / instance_count, or None."""

    async def get_by_name(self, tenant_id: str, name: str) -> WorkflowEntity | None:
        """Return workflow by unique name in tenant, or None."""

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: WorkflowFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowEntity]:
        """Return workflows matching filters, ordered by name."""

    async def list_by_trigger(
        self, tenant_id: str, entity_type: str, trigger_event: str
    ) -> list[WorkflowEntity]:
        """Return active workflows listening for the event on the entity type."""

    async def create(self, workflow: WorkflowEntity) -> WorkflowEntity:
        """Persist a new workflow."""

    async def update(
        self, tenant_id: str, workflow_id: str, changes: dict[str, Any]
    ) -> WorkflowEntity:
        """Apply changes and return the updated workflow."""

    async def delete(self, tenant_id: str, workflow_id: str) -> None:
        """Delete workflow; steps, versions and instances cascade."""


# Workflow step repository interface
class IWorkflowStepRepository(Protocol):
    """Protocol for workflow step repository (DIP)."""

    async def list_by_workflow(
        self, tenant_id: str, workflow_id: str
    ) -> list[WorkflowStepEntity]:
        """Return the workflow's steps ordered by step_number."""

    async def get_by_id(self, tenant_id: str, step_id: str) -> WorkflowStepEntity | None:
        """Return step by id, or None."""

    async def create(self, step: WorkflowStepEntity) -> WorkflowStepEntity:
        """Persist a new step."""

    async def update(
        self, tenant_id: str, step_id: str, changes: dict[str, Any]
    ) -> WorkflowStepEntity:
        """Apply changes and return the updated step."""

    async def delete(self, tenant_id: str, step_id: str) -> None:
        """Delete one step."""

    async def renumber(self, tenant_id: str, numbers: dict[str, int]) -> None:
        """Set step_number for each step id in the mapping."""


# Workflow version snapshot repository interface
class IWorkflowVersionRepository(Protocol):
    """Protocol for immutable workflow version snapshots (DIP)."""

    async def get(
        self, tenant_id: str, workflow_id: str, version: int
    ) -> WorkflowVersionEntity | None:
        """Return the snapshot for (workflow, version), or None when not pinned yet."""

    async def create(self, snapshot: WorkflowVersionEntity) -> WorkflowVersionEntity:
        """Persist a snapshot. Must be idempotent per (workflow_id, version)."""


# Workflow instance repository interface
class IWorkflowInstanceRepository(Protocol):
    """Protocol for workflow instance repository (DIP).

    State changes go through transition(), a conditional update that only
    applies when the row is still in the expected status and step.
    """

    async def get_by_id(
        self, tenant_id: str, instance_id: str, *, for_update: bool = False
    ) -> WorkflowInstanceEntity | None:
        """Return instance; for_update locks the row until the transaction ends."""

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: InstanceFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowInstanceEntity]:
        """Return instances matching filters, newest first."""

    async def list_due(
        self, now: datetime, tenant_id: str | None, limit: int = 500
    ) -> list[WorkflowInstanceEntity]:
        """Return unblocked in-progress instances with an open approval on the
        current step whose timeout has passed or whose escalation is due
        and not yet sent (all tenants when tenant_id is None).
        """

    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Nested transaction; an exception inside rolls back only its writes."""

    async def count_active_for_workflow(self, tenant_id: str, workflow_id: str) -> int:
        """Return number of pending / in_progress instances of the workflow."""

    async def create(self, instance: WorkflowInstanceEntity) -> WorkflowInstanceEntity:
        """Persist a new instance."""

    async def transition(
        self,
        tenant_id: str,
        instance_id: str,
        *,
        expected_statuses: frozenset[str],
        expected_step: int | None,
        changes: dict[str, Any],
    ) -> WorkflowInstanceEntity | None:
        """Apply changes only if status is in expected_statuses and, when
        expected_step is not None, current_step_number equals it.

        Returns the updated instance, or None when the row moved on (stale write).
        """


# Step approval repository interface
class IStepApprovalRepository(Protocol):
    """Protocol for step approval repository (DIP)."""

    async def get_by_id(self, tenant_id: str, approval_id: str) -> StepApprovalEntity | None:
        """Return approval by id, or None."""

    async def create_many(self, approvals: list[StepApprovalEntity]) -> list[StepApprovalEntity]:
        """Persist new approvals."""

    async def list_by_instance(
        self, tenant_id: str, instance_id: str, step_number: int | None = None
    ) -> list[StepApprovalEntity]:
        """Return approvals of an instance (optionally one group), oldest first."""

    async def decide_if_open(
        self,
        tenant_id: str,
        approval_id: str,
        *,
        decision: str,
        decided_by: str,
        decided_at: datetime,
        comment: str | None,
    ) -> StepApprovalEntity | None:
        """Record decision only if the approval is still open; None when already decided."""

    async def cancel_open(
        self,
        tenant_id: str,
        instance_id: str,
        *,
        decided_at: datetime,
        step_number: int | None = None,
        step_id: str | None = None,
    ) -> int:
        """Mark open approvals (optionally of one group / step) cancelled; return count."""

    async def mark_escalated(
        self, tenant_id: str, approval_id: str, escalated_at: datetime
    ) -> bool:
        """Set decision=escalated if still pending and not escalated before."""

    async def set_delegate(
        self, tenant_id: str, approval_id: str, delegate_to: str
    ) -> StepApprovalEntity | None:
        """Set delegated_to if the approval is still open; None otherwise."""

    async def count_open_for_step(self, tenant_id: str, step_id: str) -> int:
        """Return open approvals of the step on in-progress instances."""

    async def list_open_for_actor(
        self, tenant_id: str, actor: str, skip: int = 0, limit: int = 100
    ) -> list[StepApprovalEntity]:
        """Return open approvals assigned or delegated to actor on in-progress instances."""


# Automation rule repository interface
class IAutomationRuleRepository(Protocol):
    """Protocol for automation rule repository (DIP)."""

    async def get_by_id(self, tenant_id: str, rule_id: str) -> AutomationRuleEntity | None:
        """Return rule, or None."""

    async def get_by_name(self, tenant_id: str, name: str) -> AutomationRuleEntity | None:
        """Return rule by unique name in tenant, or None."""

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: AutomationRuleFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AutomationRuleEntity]:
        """Return rules matching filters, highest priority first, then newest."""

    async def list_by_trigger(
        self, tenant_id: str, entity_type: str, trigger_event: str
    ) -> list[AutomationRuleEntity]:
        """Return active rules for the event on the entity type, highest priority first."""

    async def create(self, rule: AutomationRuleEntity) -> AutomationRuleEntity:
        """Persist a new rule."""

    async def update(
        self, tenant_id: str, rule_id: str, changes: dict[str, Any]
    ) -> AutomationRuleEntity:
        """Apply changes and return the updated rule."""

    async def delete(self, tenant_id: str, rule_id: str) -> None:
        """Delete the rule."""
