"""Trigger gateway: starts workflows from domain events and unblocks instances on role changes."""

from __future__ import annotations

from typing import Any

from app.application.dtos.workflow import EventOutcome, InstanceFilters
from app.application.interfaces.repositories import (
    IWorkflowInstanceRepository,
    IWorkflowRepository,
)
from app.application.use_cases.automation.rules import AutomationRuleService
from app.application.use_cases.workflows.instances import WorkflowInstanceService
from app.domain.entities.workflow import WorkflowInstanceEntity
from app.domain.enums import ApproverType
from app.domain.exceptions import WorkflowServiceException
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

logger = get_logger(__name__)


class WorkflowTriggerGateway:
    """Entry point for other modules (leave, expenses, ...) to run workflows."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        instance_repo: IWorkflowInstanceRepository,
        instances: WorkflowInstanceService,
        rules: AutomationRuleService | None = None,
    ) -> None:
        self.workflow_repo = workflow_repo
        self.instance_repo = instance_repo
        self.instances = instances
        self.rules = rules

    @traced("workflow.trigger.handle_event")
    async def handle_event(
        self,
        tenant_id: str,
        entity_type: str,
        event_name: str,
        entity_id: str,
        actor: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> EventOutcome:
        """Start an instance for every active workflow listening for the event,
        then run the automation rules the event matches.

        A workflow that fails to start is logged and skipped; each start runs in
        its own savepoint so a failure leaves none of its rows behind and the
        others still run.
        """
        workflows = await self.workflow_repo.list_by_trigger(tenant_id, entity_type, event_name)
        started: list[WorkflowInstanceEntity] = []
        for workflow in workflows:
            if not workflow.can_trigger_on(entity_type, event_name):
                continue
            try:
                async with self.instance_repo.savepoint():
                    instance = await self.instances.start_instance(
                        tenant_id,
                        workflow.id,
                        entity_type,
                        entity_id,
                        actor=actor,
                        metadata=metadata,
                    )
            except WorkflowServiceException as e:
                logger.warning(
                    "Workflow %s not started for %s:%s on %s (tenant_id=%s): %s",
                    workflow.id,
                    entity_type,
                    entity_id,
                    event_name,
                    tenant_id,
                    e.message,
                )
                continue
            started.append(instance)
        logger.info(
            "Trigger %s on %s:%s started %d workflow(s) (tenant_id=%s)",
            event_name,
            entity_type,
            entity_id,
            len(started),
            tenant_id,
        )
        rules_run: list[str] = []
        if self.rules is not None:
            rules_run = await self.rules.run_matching(
                tenant_id, entity_type, event_name, entity_id, metadata
            )
        return EventOutcome(started=started, rules_run=rules_run)

    @traced("workflow.trigger.role_membership_changed")
    async def handle_role_membership_changed(
        self, tenant_id: str, role: str, limit: int = 500
    ) -> list[WorkflowInstanceEntity]:
        """Retry blocked instances whose open group resolves approvers by role."""
        blocked = await self.instance_repo.get_by_tenant(
            tenant_id, InstanceFilters(blocked_only=True), skip=0, limit=limit
        )
        retried: list[WorkflowInstanceEntity] = []
        for instance in blocked:
            steps = await self.instances.steps_for(instance)
            uses_role = any(
                s.step_number == instance.current_step_number
                and s.approver_type == ApproverType.ROLE.value
                and s.approver_role == role
                for s in steps
            )
            if not uses_role:
                continue
            try:
                async with self.instance_repo.savepoint():
                    retried.append(await self.instances.retry_blocked(tenant_id, instance.id))
            except WorkflowServiceException as e:
                logger.warning(
                    "Retry of blocked instance %s failed (tenant_id=%s, role=%s): %s",
                    instance.id,
                    tenant_id,
                    role,
                    e.message,
                )
        return retried
