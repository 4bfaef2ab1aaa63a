"""Trigger API: domain events and role membership changes from other modules."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_optional_actor, get_tenant_id, get_trigger_gateway
from app.application.use_cases.workflows import WorkflowTriggerGateway
from app.core.limiter import limit_triggers
from app.schemas.workflow import (
    InstanceResponse,
    RoleMembershipChangedRequest,
    RoleMembershipChangedResponse,
    TriggerEventRequest,
    TriggerEventResponse,
)

router = APIRouter()


@router.post("/events", response_model=TriggerEventResponse)
@limit_triggers
async def handle_event(
    request: Request,
    body: TriggerEventRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    gateway: Annotated[WorkflowTriggerGateway, Depends(get_trigger_gateway)],
):
    """Start every active workflow listening for this event and run matching automation rules."""
    outcome = await gateway.handle_event(
        tenant_id,
        body.entity_type,
        body.event_name,
        body.entity_id,
        actor=actor,
        metadata=body.metadata,
    )
    return TriggerEventResponse(
        started=[InstanceResponse.model_validate(i) for i in outcome.started],
        rules_run=outcome.rules_run,
    )


@router.post("/role-changes", response_model=RoleMembershipChangedResponse)
@limit_triggers
async def handle_role_membership_changed(
    request: Request,
    body: RoleMembershipChangedRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    gateway: Annotated[WorkflowTriggerGateway, Depends(get_trigger_gateway)],
):
    """Retry instances blocked on a group that resolves approvers by this role."""
    retried = await gateway.handle_role_membership_changed(tenant_id, body.role.strip())
    return RoleMembershipChangedResponse(
        retried=[InstanceResponse.model_validate(i) for i in retried]
    )
