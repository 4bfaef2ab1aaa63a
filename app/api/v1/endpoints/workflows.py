"""Workflow definition API: thin routes delegating to WorkflowDefinitionService."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from app.api.v1.dependencies import (
    get_definition_service,
    get_definition_service_for_write,
    get_optional_actor,
    get_tenant_id,
)
from app.application.dtos.workflow import (
    StepCreate,
    StepUpdate,
    WorkflowCreate,
    WorkflowFilters,
    WorkflowUpdate,
)
from app.application.use_cases.workflows import WorkflowDefinitionService
from app.core.limiter import limit_writes
from app.schemas.workflow import (
    StepCreateRequest,
    StepResponse,
    StepUpdateRequest,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowUpdateRequest,
)

router = APIRouter()


@router.post("", response_model=WorkflowResponse, status_code=201)
@limit_writes
async def create_workflow(
    request: Request,
    body: WorkflowCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor: Annotated[str | None, Depends(get_optional_actor)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Create a workflow (tenant-scoped) at version 1 with no steps."""
    workflow = await service.create_workflow(
        tenant_id,
        WorkflowCreate(
            name=body.name,
            entity_type=body.entity_type,
            workflow_type=body.workflow_type,
            description=body.description,
            trigger_event=body.trigger_event,
            is_active=body.is_active,
            configuration=body.configuration,
        ),
        actor=actor,
    )
    return WorkflowResponse.model_validate(workflow)


@router.get("", response_model=list[WorkflowResponse])
async def list_workflows(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service)],
    workflow_type: str | None = Query(None, max_length=50),
    entity_type: str | None = Query(None, max_length=100),
    is_active: bool | None = None,
    search: str | None = Query(None, max_length=200, description="Substring of name"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """List workflows with step and instance counts. Tenant-scoped."""
    workflows = await service.list_workflows(
        tenant_id,
        WorkflowFilters(
            workflow_type=workflow_type,
            entity_type=entity_type,
            is_active=is_active,
            search=search,
        ),
        skip=skip,
        limit=limit,
    )
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service)],
):
    """Get workflow by id (tenant-scoped)."""
    return WorkflowResponse.model_validate(await service.get_workflow(tenant_id, workflow_id))


@router.put("/{workflow_id}", response_model=WorkflowResponse)
@limit_writes
async def update_workflow(
    request: Request,
    workflow_id: str,
    body: WorkflowUpdateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Update workflow (partial). System workflows only accept is_active, description, configuration."""
    patch = WorkflowUpdate(**body.model_dump(exclude_unset=True))
    workflow = await service.update_workflow(tenant_id, workflow_id, patch)
    return WorkflowResponse.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=204)
@limit_writes
async def delete_workflow(
    request: Request,
    workflow_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Delete a workflow without active instances. System workflows cannot be deleted."""
    await service.delete_workflow(tenant_id, workflow_id)
    return Response(status_code=204)


# ---- Steps ----


@router.get("/{workflow_id}/steps", response_model=list[StepResponse])
async def list_steps(
    workflow_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service)],
):
    """List the workflow's steps ordered by step_number."""
    steps = await service.list_steps(tenant_id, workflow_id)
    return [StepResponse.model_validate(s) for s in steps]


@router.post("/{workflow_id}/steps", response_model=StepResponse, status_code=201)
@limit_writes
async def add_step(
    request: Request,
    workflow_id: str,
    body: StepCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Add a step; later steps shift to keep step numbers contiguous."""
    step = await service.add_step(tenant_id, workflow_id, StepCreate(**body.model_dump()))
    return StepResponse.model_validate(step)


@router.put("/{workflow_id}/steps/{step_id}", response_model=StepResponse)
@limit_writes
async def update_step(
    request: Request,
    workflow_id: str,
    step_id: str,
    body: StepUpdateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Update a step (partial); a new step_number moves it and renumbers siblings."""
    patch = StepUpdate(**body.model_dump(exclude_unset=True))
    step = await service.update_step(tenant_id, workflow_id, step_id, patch)
    return StepResponse.model_validate(step)


@router.delete("/{workflow_id}/steps/{step_id}", status_code=204)
@limit_writes
async def delete_step(
    request: Request,
    workflow_id: str,
    step_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[WorkflowDefinitionService, Depends(get_definition_service_for_write)],
):
    """Delete a step that has no open approvals."""
    await service.delete_step(tenant_id, workflow_id, step_id)
    return Response(status_code=204)
