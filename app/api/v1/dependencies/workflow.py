"""Workflow dependencies (composition root).

Builds repositories and the definition, instance, trigger and automation
rule services on the request's session. Read routes use get_db; write
routes use get_db_transactional so every change of one request commits or
rolls back together.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.services.automation_actions import AutomationActionRegistry
from app.application.services.step_resolver import DynamicApproverRegistry, StepResolver
from app.application.services.workflow_notifier import WorkflowNotifier
from app.application.use_cases.automation import AutomationRuleService
from app.application.use_cases.workflows import (
    WorkflowDefinitionService,
    WorkflowInstanceService,
    WorkflowTriggerGateway,
)
from app.core.config import get_settings
from app.infrastructure.persistence.database import get_db, get_db_transactional
from app.infrastructure.persistence.repositories import (
    AutomationRuleRepository,
    StepApprovalRepository,
    WorkflowInstanceRepository,
    WorkflowRepository,
    WorkflowStepRepository,
    WorkflowVersionRepository,
)
from app.infrastructure.services import (
    LogOnlyNotificationService,
    RoleApproverDirectory,
    WorkflowTemplateRenderer,
    build_default_action_registry,
    build_default_registry,
)


def _approver_registry(request: Request) -> DynamicApproverRegistry:
    registry = getattr(request.app.state, "approver_registry", None)
    if registry is None:
        registry = build_default_registry()
        request.app.state.approver_registry = registry
    return registry


def _action_registry(request: Request) -> AutomationActionRegistry:
    actions = getattr(request.app.state, "action_registry", None)
    if actions is None:
        actions = build_default_action_registry(LogOnlyNotificationService())
        request.app.state.action_registry = actions
    return actions


def build_definition_service(db: AsyncSession) -> WorkflowDefinitionService:
    """WorkflowDefinitionService over Postgres repositories on one session."""
    return WorkflowDefinitionService(
        workflow_repo=WorkflowRepository(db),
        step_repo=WorkflowStepRepository(db),
        version_repo=WorkflowVersionRepository(db),
        instance_repo=WorkflowInstanceRepository(db),
        approval_repo=StepApprovalRepository(db),
    )


def build_instance_service(
    db: AsyncSession,
    registry: DynamicApproverRegistry,
    actions: AutomationActionRegistry | None = None,
) -> WorkflowInstanceService:
    """WorkflowInstanceService with role directory, dynamic resolvers, notifier and actions."""
    settings = get_settings()
    definitions = build_definition_service(db)
    notification_service = LogOnlyNotificationService()
    notifier = WorkflowNotifier(
        notification_service,
        WorkflowTemplateRenderer(templates_dir=settings.workflow_templates_dir),
    )
    return WorkflowInstanceService(
        workflow_repo=definitions.workflow_repo,
        version_repo=definitions.version_repo,
        instance_repo=definitions.instance_repo,
        approval_repo=definitions.approval_repo,
        definitions=definitions,
        resolver=StepResolver(RoleApproverDirectory(db), registry),
        notifier=notifier,
        actions=actions or build_default_action_registry(notification_service),
    )


def build_automation_rule_service(
    db: AsyncSession, actions: AutomationActionRegistry
) -> AutomationRuleService:
    return AutomationRuleService(AutomationRuleRepository(db), actions)


async def get_definition_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowDefinitionService:
    """Definition service for read operations (list, get)."""
    return build_definition_service(db)


async def get_definition_service_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WorkflowDefinitionService:
    """Definition service for writes (transactional)."""
    return build_definition_service(db)


async def get_instance_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowInstanceService:
    """Instance service for read operations (get, list, my approvals)."""
    return build_instance_service(db, _approver_registry(request), _action_registry(request))


async def get_instance_service_for_write(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WorkflowInstanceService:
    """Instance service for state changes (transactional)."""
    return build_instance_service(db, _approver_registry(request), _action_registry(request))


async def get_automation_rule_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AutomationRuleService:
    """Automation rule service for read operations."""
    return build_automation_rule_service(db, _action_registry(request))


async def get_automation_rule_service_for_write(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> AutomationRuleService:
    """Automation rule service for writes (transactional)."""
    return build_automation_rule_service(db, _action_registry(request))


async def get_trigger_gateway(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    instances: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
) -> WorkflowTriggerGateway:
    """Trigger gateway sharing the instance service's transaction, with automation rules."""
    return WorkflowTriggerGateway(
        workflow_repo=instances.workflow_repo,
        instance_repo=instances.instance_repo,
        instances=instances,
        rules=build_automation_rule_service(db, instances.actions),
    )
