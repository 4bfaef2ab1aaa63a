"""Automation rule API: thin routes delegating to AutomationRuleService."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from app.api.v1.dependencies import (
    get_automation_rule_service,
    get_automation_rule_service_for_write,
    get_optional_actor,
    get_tenant_id,
)
from app.application.dtos.automation_rule import (
    AutomationRuleCreate,
    AutomationRuleFilters,
    AutomationRuleUpdate,
)
from app.application.use_cases.automation import AutomationRuleService
from app.core.limiter import limit_writes
from app.schemas.automation_rule import (
    AutomationRuleCreateRequest,
    AutomationRuleResponse,
    AutomationRuleUpdateRequest,
)

router = APIRouter()


@router.post("", response_model=AutomationRuleResponse, status_code=201)
@limit_writes
async def create_rule(
    request: Request,
    body: AutomationRuleCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    service: Annotated[AutomationRuleService, Depends(get_automation_rule_service_for_write)],
):
    """Create an automation rule. action_type must name a registered action."""
    rule = await service.create_rule(
        tenant_id, AutomationRuleCreate(**body.model_dump()), actor=actor
    )
    return AutomationRuleResponse.model_validate(rule)


@router.get("", response_model=list[AutomationRuleResponse])
async def list_rules(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AutomationRuleService, Depends(get_automation_rule_service)],
    rule_type: str | None = Query(None, max_length=50),
    entity_type: str | None = Query(None, max_length=100),
    is_active: bool | None = None,
    search: str | None = Query(None, max_length=200, description="Substring of name or description"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """List rules, highest priority first. Tenant-scoped."""
    rules = await service.list_rules(
        tenant_id,
        AutomationRuleFilters(
            rule_type=rule_type,
            entity_type=entity_type,
            is_active=is_active,
            search=search,
        ),
        skip=skip,
        limit=limit,
    )
    return [AutomationRuleResponse.model_validate(r) for r in rules]


@router.get("/{rule_id}", response_model=AutomationRuleResponse)
async def get_rule(
    rule_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AutomationRuleService, Depends(get_automation_rule_service)],
):
    return AutomationRuleResponse.model_validate(await service.get_rule(tenant_id, rule_id))


@router.put("/{rule_id}", response_model=AutomationRuleResponse)
@limit_writes
async def update_rule(
    request: Request,
    rule_id: str,
    body: AutomationRuleUpdateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AutomationRuleService, Depends(get_automation_rule_service_for_write)],
):
    """Update a rule (partial)."""
    patch = AutomationRuleUpdate(**body.model_dump(exclude_unset=True))
    return AutomationRuleResponse.model_validate(
        await service.update_rule(tenant_id, rule_id, patch)
    )


@router.delete("/{rule_id}", status_code=204)
@limit_writes
async def delete_rule(
    request: Request,
    rule_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AutomationRuleService, Depends(get_automation_rule_service_for_write)],
):
    await service.delete_rule(tenant_id, rule_id)
    return Response(status_code=204)
