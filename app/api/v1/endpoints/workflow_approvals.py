"""Approval inbox API: the acting user's open approvals and delegation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import (
    get_actor,
    get_instance_service,
    get_instance_service_for_write,
    get_tenant_id,
)
from app.application.use_cases.workflows import WorkflowInstanceService
from app.core.limiter import limit_writes
from app.schemas.workflow import ApprovalResponse, DelegateRequest

router = APIRouter()


@router.get("/pending", response_model=list[ApprovalResponse])
async def list_pending_approvals(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str, Depends(get_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """Open approvals assigned or delegated to the acting user on open groups."""
    approvals = await service.list_pending_approvals(tenant_id, actor, skip=skip, limit=limit)
    return [ApprovalResponse.model_validate(a) for a in approvals]


@router.post("/{approval_id}/delegate", response_model=ApprovalResponse)
@limit_writes
async def delegate_approval(
    request: Request,
    approval_id: str,
    body: DelegateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str, Depends(get_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Hand an open approval to another user (assigned approver only)."""
    approval = await service.delegate(tenant_id, approval_id, actor, body.delegate_to)
    return ApprovalResponse.model_validate(approval)
