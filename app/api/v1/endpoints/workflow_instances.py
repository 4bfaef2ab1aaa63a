"""Workflow instance API: start, inspect, decide, cancel, retry and reassign."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import (
    get_actor,
    get_instance_service,
    get_instance_service_for_write,
    get_optional_actor,
    get_tenant_id,
)
from app.application.dtos.workflow import InstanceDetail, InstanceFilters
from app.application.use_cases.workflows import WorkflowInstanceService
from app.core.limiter import limit_decisions, limit_writes
from app.schemas.workflow import (
    ApprovalResponse,
    CancelRequest,
    DecisionRequest,
    InstanceCreateRequest,
    InstanceDetailResponse,
    InstanceResponse,
    ReassignRequest,
)

router = APIRouter()


def _detail(detail: InstanceDetail) -> InstanceDetailResponse:
    base = InstanceResponse.model_validate(detail.instance).model_dump()
    return InstanceDetailResponse(
        **base,
        approvals=[ApprovalResponse.model_validate(a) for a in detail.approvals],
    )


@router.post("", response_model=InstanceResponse, status_code=201)
@limit_writes
async def start_instance(
    request: Request,
    body: InstanceCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Start a workflow against one entity; the first step group opens immediately."""
    instance = await service.start_instance(
        tenant_id,
        body.workflow_id,
        body.target_entity_type,
        body.target_entity_id,
        actor=actor,
        metadata=body.metadata,
    )
    return InstanceResponse.model_validate(instance)


@router.get("", response_model=list[InstanceResponse])
async def list_instances(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service)],
    status: str | None = Query(None, max_length=50),
    workflow_id: str | None = Query(None, max_length=64),
    target_entity_type: str | None = Query(None, max_length=100),
    target_entity_id: str | None = Query(None, max_length=100),
    blocked_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """List instances, newest first. Tenant-scoped."""
    instances = await service.list_instances(
        tenant_id,
        InstanceFilters(
            status=status,
            workflow_id=workflow_id,
            target_entity_type=target_entity_type,
            target_entity_id=target_entity_id,
            blocked_only=blocked_only,
        ),
        skip=skip,
        limit=limit,
    )
    return [InstanceResponse.model_validate(i) for i in instances]


@router.get("/{instance_id}", response_model=InstanceDetailResponse)
async def get_instance(
    instance_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service)],
):
    """Get an instance with all its approvals."""
    return _detail(await service.get_instance(tenant_id, instance_id))


@router.post("/{instance_id}/decide", response_model=InstanceDetailResponse)
@limit_decisions
async def decide(
    request: Request,
    instance_id: str,
    body: DecisionRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str, Depends(get_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Approve or reject one open approval as the acting user."""
    await service.record_decision(
        tenant_id,
        instance_id,
        body.approval_id,
        actor,
        body.decision,
        body.comment,
    )
    return _detail(await service.get_instance(tenant_id, instance_id))


@router.post("/{instance_id}/cancel", response_model=InstanceResponse)
@limit_writes
async def cancel_instance(
    request: Request,
    instance_id: str,
    body: CancelRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Cancel a pending or in-progress instance."""
    instance = await service.cancel_instance(
        tenant_id, instance_id, actor=actor, reason=body.reason
    )
    return InstanceResponse.model_validate(instance)


@router.post("/{instance_id}/retry", response_model=InstanceResponse)
@limit_writes
async def retry_blocked(
    request: Request,
    instance_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Re-run approver resolution for an instance blocked on its open group."""
    return InstanceResponse.model_validate(await service.retry_blocked(tenant_id, instance_id))


@router.post("/{instance_id}/reassign", response_model=InstanceDetailResponse)
@limit_writes
async def reassign(
    request: Request,
    instance_id: str,
    body: ReassignRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    service: Annotated[WorkflowInstanceService, Depends(get_instance_service_for_write)],
):
    """Assign approvers to one step of the open group by hand."""
    await service.reassign(tenant_id, instance_id, body.step_id, body.approvers, actor=actor)
    return _detail(await service.get_instance(tenant_id, instance_id))
