"""Workflow definition manager: CRUD over workflow templates and their ordered steps.

Enforces system-workflow immutability, step_number contiguity (groups are
numbered 1..N with no gaps) and versioning: once an instance has pinned the
current version, any change to step composition bumps workflow.version so
in-flight instances keep running against their snapshot.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from app.application.dtos.workflow import (
    StepCreate,
    StepUpdate,
    WorkflowCreate,
    WorkflowFilters,
    WorkflowUpdate,
)
from app.application.interfaces.repositories import (
    IStepApprovalRepository,
    IWorkflowInstanceRepository,
    IWorkflowRepository,
    IWorkflowStepRepository,
    IWorkflowVersionRepository,
)
from app.application.services.step_resolver import group_steps, normalize_email
from app.application.services.workflow_configuration_validator import (
    WorkflowConfigurationValidator,
)
from app.domain.entities.workflow import (
    WorkflowEntity,
    WorkflowStepEntity,
    WorkflowVersionEntity,
)
from app.domain.enums import ApproverType, StepType, WorkflowType
from app.domain.exceptions import (
    DuplicateWorkflowNameException,
    ImmutableSystemWorkflowException,
    ResourceNotFoundException,
    StepInUseException,
    SystemWorkflowProtectedException,
    ValidationException,
    WorkflowInUseException,
)
from app.shared.telemetry.logging import get_logger
from app.shared.utils.generators import generate_cuid

logger = get_logger(__name__)

# Fields a system workflow may never change.
_SYSTEM_STRUCTURAL_FIELDS = ("name", "trigger_event", "entity_type", "workflow_type")
# Fields frozen once the current version is pinned by an instance.
_PINNED_FIELDS = ("entity_type", "workflow_type")


def _require_text(value: Any, field: str) -> str:
    """Return stripped text or raise ValidationException naming the field."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationException(f"{field} is required", field=field)
    return value.strip()


def _validate_step(step: WorkflowStepEntity) -> WorkflowStepEntity:
    """Check per-step rules and return the step with normalized emails."""
    step_name = _require_text(step.step_name, "step_name")
    if step.step_type not in StepType.values():
        raise ValidationException(
            f"step_type must be one of {StepType.values()}", field="step_type"
        )
    if step.approver_type not in ApproverType.values():
        raise ValidationException(
            f"approver_type must be one of {ApproverType.values()}", field="approver_type"
        )
    if step.approver_type == ApproverType.ROLE.value and not (step.approver_role or "").strip():
        raise ValidationException("approver_role is required for role approvers", field="approver_role")
    if step.approver_type == ApproverType.USER.value and not (step.approver_email or "").strip():
        raise ValidationException("approver_email is required for user approvers", field="approver_email")
    if step.approver_type == ApproverType.DYNAMIC.value and not (step.approver_resolver or "").strip():
        raise ValidationException(
            "approver_resolver is required for dynamic approvers", field="approver_resolver"
        )
    if step.timeout_hours is not None and step.timeout_hours <= 0:
        raise ValidationException("timeout_hours must be positive", field="timeout_hours")
    if step.escalation_after_hours is not None and step.escalation_after_hours <= 0:
        raise ValidationException(
            "escalation_after_hours must be positive", field="escalation_after_hours"
        )
    if step.escalation_enabled:
        if step.escalation_after_hours is None:
            raise ValidationException(
                "escalation_after_hours is required when escalation is enabled",
                field="escalation_after_hours",
            )
        if step.timeout_hours is not None and step.escalation_after_hours >= step.timeout_hours:
            raise ValidationException(
                "escalation_after_hours must be less than timeout_hours",
                field="escalation_after_hours",
            )
    return replace(
        step,
        step_name=step_name,
        approver_role=step.approver_role.strip() if step.approver_role else None,
        approver_email=normalize_email(step.approver_email) if step.approver_email else None,
        escalation_to=normalize_email(step.escalation_to) if step.escalation_to else None,
    )


def _place_step(
    siblings: list[WorkflowStepEntity],
    step: WorkflowStepEntity,
    position: int | None,
) -> dict[str, int]:
    """Place step among siblings and return the contiguous step_number of every step.

    position None appends a new group. A parallel step placed on an existing
    all-parallel group joins it; otherwise a new group is inserted at
    position and later groups shift by one.
    """
    groups = [list(g.steps) for g in group_steps(siblings)]
    if position is None:
        position = len(groups) + 1
    if position < 1 or position > len(groups) + 1:
        raise ValidationException(
            f"step_number must be between 1 and {len(groups) + 1}", field="step_number"
        )
    if (
        position <= len(groups)
        and step.is_parallel
        and all(s.is_parallel for s in groups[position - 1])
    ):
        groups[position - 1].append(step)
    else:
        groups.insert(position - 1, [step])
    return {s.id: number for number, group in enumerate(groups, start=1) for s in group}


class WorkflowDefinitionService:
    """Create, update and delete workflows and their steps (tenant-scoped)."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        step_repo: IWorkflowStepRepository,
        version_repo: IWorkflowVersionRepository,
        instance_repo: IWorkflowInstanceRepository,
        approval_repo: IStepApprovalRepository,
        configuration_validator: WorkflowConfigurationValidator | None = None,
    ) -> None:
        self.workflow_repo = workflow_repo
        self.step_repo = step_repo
        self.version_repo = version_repo
        self.instance_repo = instance_repo
        self.approval_repo = approval_repo
        self._config_validator = configuration_validator or WorkflowConfigurationValidator()

    # ---- Workflows ----

    async def get_workflow(self, tenant_id: str, workflow_id: str) -> WorkflowEntity:
        """Return workflow or raise ResourceNotFoundException."""
        workflow = await self.workflow_repo.get_by_id(tenant_id, workflow_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return workflow

    async def list_workflows(
        self,
        tenant_id: str,
        filters: WorkflowFilters | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowEntity]:
        return await self.workflow_repo.get_by_tenant(
            tenant_id, filters or WorkflowFilters(), skip=skip, limit=limit
        )

    async def create_workflow(
        self,
        tenant_id: str,
        data: WorkflowCreate,
        actor: str | None = None,
        *,
        is_system: bool = False,
    ) -> WorkflowEntity:
        """Create a workflow at version 1 with no steps.

        Raises ValidationException when name, entity_type or workflow_type is
        missing or the configuration does not match the workflow_type.
        """
        name = _require_text(data.name, "name")
        entity_type = _require_text(data.entity_type, "entity_type")
        workflow_type = _require_text(data.workflow_type, "workflow_type")
        if workflow_type not in WorkflowType.values():
            raise ValidationException(
                f"workflow_type must be one of {WorkflowType.values()}", field="workflow_type"
            )
        configuration = self._config_validator.validate(workflow_type, data.configuration)
        if await self.workflow_repo.get_by_name(tenant_id, name) is not None:
            raise DuplicateWorkflowNameException(name)
        workflow = WorkflowEntity(
            id=generate_cuid(),
            tenant_id=tenant_id,
            name=name,
            description=data.description,
            workflow_type=workflow_type,
            entity_type=entity_type,
            trigger_event=(data.trigger_event or "").strip() or None,
            is_active=data.is_active,
            is_system=is_system,
            version=1,
            configuration=configuration,
            created_by=actor,
        )
        created = await self.workflow_repo.create(workflow)
        logger.info(
            "Workflow created (tenant_id=%s, workflow_id=%s, entity_type=%s, system=%s)",
            tenant_id,
            created.id,
            entity_type,
            is_system,
        )
        return created

    async def create_system_workflow(
        self,
        tenant_id: str,
        data: WorkflowCreate,
        steps: list[StepCreate],
    ) -> WorkflowEntity:
        """Seed a built-in workflow with its steps; afterwards it is immutable."""
        workflow = await self.create_workflow(tenant_id, data, is_system=True)
        for step_data in steps:
            await self._insert_step(workflow, step_data)
        return await self.get_workflow(tenant_id, workflow.id)

    async def update_workflow(
        self, tenant_id: str, workflow_id: str, patch: WorkflowUpdate
    ) -> WorkflowEntity:
        """Apply a partial update.

        System workflows reject changes to name, trigger_event, entity_type and
        workflow_type. entity_type and workflow_type are frozen once an
        instance pinned the current version.
        """
        workflow = await self.get_workflow(tenant_id, workflow_id)
        changes = {
            key: value
            for key, value in patch.changes().items()
            if getattr(workflow, key) != value
        }
        if not changes:
            return workflow

        if workflow.is_system:
            touched = [f for f in _SYSTEM_STRUCTURAL_FIELDS if f in changes]
            if touched:
                raise ImmutableSystemWorkflowException(workflow_id, touched)

        for field in ("name", "entity_type", "workflow_type"):
            if field in changes:
                changes[field] = _require_text(changes[field], field)
        if "is_active" in changes and not isinstance(changes["is_active"], bool):
            raise ValidationException("is_active must be a boolean", field="is_active")
        if "trigger_event" in changes:
            changes["trigger_event"] = (changes["trigger_event"] or "").strip() or None

        pinned = [f for f in _PINNED_FIELDS if f in changes]
        if pinned and await self.is_version_pinned(workflow):
            raise WorkflowInUseException(
                workflow_id,
                f"{', '.join(pinned)} cannot change while version {workflow.version} has instances",
                fields=pinned,
            )

        workflow_type = changes.get("workflow_type", workflow.workflow_type)
        if workflow_type not in WorkflowType.values():
            raise ValidationException(
                f"workflow_type must be one of {WorkflowType.values()}", field="workflow_type"
            )
        if "configuration" in changes or "workflow_type" in changes:
            changes["configuration"] = self._config_validator.validate(
                workflow_type, changes.get("configuration", workflow.configuration)
            )

        if "name" in changes:
            existing = await self.workflow_repo.get_by_name(tenant_id, changes["name"])
            if existing is not None and existing.id != workflow_id:
                raise DuplicateWorkflowNameException(changes["name"])

        return await self.workflow_repo.update(tenant_id, workflow_id, changes)

    async def delete_workflow(self, tenant_id: str, workflow_id: str) -> None:
        """Delete a workflow and (by cascade) its steps, versions and finished instances."""
        workflow = await self.get_workflow(tenant_id, workflow_id)
        if workflow.is_system:
            raise SystemWorkflowProtectedException(workflow_id)
        active = await self.instance_repo.count_active_for_workflow(tenant_id, workflow_id)
        if active:
            raise WorkflowInUseException(
                workflow_id, "workflow has active instances", active_instances=active
            )
        await self.workflow_repo.delete(tenant_id, workflow_id)
        logger.info("Workflow deleted (tenant_id=%s, workflow_id=%s)", tenant_id, workflow_id)

    # ---- Versions ----

    async def is_version_pinned(self, workflow: WorkflowEntity) -> bool:
        """Return whether an instance has pinned the workflow's current version."""
        snapshot = await self.version_repo.get(workflow.tenant_id, workflow.id, workflow.version)
        return snapshot is not None

    async def snapshot_version(self, workflow: WorkflowEntity) -> WorkflowVersionEntity:
        """Return the snapshot of the current version, writing it on first use."""
        existing = await self.version_repo.get(workflow.tenant_id, workflow.id, workflow.version)
        if existing is not None:
            return existing
        steps = await self.step_repo.list_by_workflow(workflow.tenant_id, workflow.id)
        group_steps(steps)
        snapshot = WorkflowVersionEntity(
            id=generate_cuid(),
            tenant_id=workflow.tenant_id,
            workflow_id=workflow.id,
            version=workflow.version,
            entity_type=workflow.entity_type,
            workflow_type=workflow.workflow_type,
            steps=[s.to_snapshot() for s in steps],
        )
        created = await self.version_repo.create(snapshot)
        logger.info(
            "Workflow version pinned (tenant_id=%s, workflow_id=%s, version=%d, steps=%d)",
            workflow.tenant_id,
            workflow.id,
            workflow.version,
            len(steps),
        )
        return created

    async def _after_composition_change(self, workflow: WorkflowEntity) -> WorkflowEntity:
        """Bump the version when the edited version is pinned by an instance."""
        if not await self.is_version_pinned(workflow):
            return workflow
        new_version = workflow.version + 1
        logger.info(
            "Workflow step composition changed; version %d -> %d (tenant_id=%s, workflow_id=%s)",
            workflow.version,
            new_version,
            workflow.tenant_id,
            workflow.id,
        )
        return await self.workflow_repo.update(
            workflow.tenant_id, workflow.id, {"version": new_version}
        )

    # ---- Steps ----

    async def list_steps(self, tenant_id: str, workflow_id: str) -> list[WorkflowStepEntity]:
        await self.get_workflow(tenant_id, workflow_id)
        return await self.step_repo.list_by_workflow(tenant_id, workflow_id)

    async def _get_step(
        self, tenant_id: str, workflow_id: str, step_id: str
    ) -> WorkflowStepEntity:
        step = await self.step_repo.get_by_id(tenant_id, step_id)
        if step is None or step.workflow_id != workflow_id:
            raise ResourceNotFoundException("workflow_step", step_id)
        return step

    async def _apply_numbers(
        self, tenant_id: str, siblings: list[WorkflowStepEntity], numbers: dict[str, int]
    ) -> None:
        """Persist step_number changes for existing siblings."""
        moved = {s.id: numbers[s.id] for s in siblings if numbers.get(s.id, s.step_number) != s.step_number}
        if moved:
            await self.step_repo.renumber(tenant_id, moved)

    async def _insert_step(self, workflow: WorkflowEntity, data: StepCreate) -> WorkflowStepEntity:
        step = _validate_step(
            WorkflowStepEntity(
                id=generate_cuid(),
                tenant_id=workflow.tenant_id,
                workflow_id=workflow.id,
                step_number=0,
                step_name=data.step_name,
                step_type=data.step_type,
                approver_type=data.approver_type,
                approver_role=data.approver_role,
                approver_email=data.approver_email,
                approver_resolver=data.approver_resolver,
                is_parallel=data.is_parallel,
                is_required=data.is_required,
                timeout_hours=data.timeout_hours,
                escalation_enabled=data.escalation_enabled,
                escalation_after_hours=data.escalation_after_hours,
                escalation_to=data.escalation_to,
                notes=data.notes,
            )
        )
        siblings = await self.step_repo.list_by_workflow(workflow.tenant_id, workflow.id)
        numbers = _place_step(siblings, step, data.step_number)
        await self._apply_numbers(workflow.tenant_id, siblings, numbers)
        return await self.step_repo.create(replace(step, step_number=numbers[step.id]))

    async def add_step(
        self, tenant_id: str, workflow_id: str, data: StepCreate
    ) -> WorkflowStepEntity:
        """Add a step; siblings at or after the position are renumbered."""
        workflow = await self.get_workflow(tenant_id, workflow_id)
        if workflow.is_system:
            raise ImmutableSystemWorkflowException(workflow_id, ["steps"])
        created = await self._insert_step(workflow, data)
        await self._after_composition_change(workflow)
        return created

    async def update_step(
        self, tenant_id: str, workflow_id: str, step_id: str, patch: StepUpdate
    ) -> WorkflowStepEntity:
        """Update a step; moving it to another step_number renumbers siblings."""
        workflow = await self.get_workflow(tenant_id, workflow_id)
        if workflow.is_system:
            raise ImmutableSystemWorkflowException(workflow_id, ["steps"])
        current = await self._get_step(tenant_id, workflow_id, step_id)
        changes = {
            key: value
            for key, value in patch.changes().items()
            if getattr(current, key) != value
        }
        if not changes:
            return current
        position = changes.pop("step_number", None)
        updated = _validate_step(replace(current, **changes))

        siblings = [
            s
            for s in await self.step_repo.list_by_workflow(tenant_id, workflow_id)
            if s.id != step_id
        ]
        if position is None:
            # Keep the step in its own group unless that group now holds only other steps.
            remaining_numbers = sorted({s.step_number for s in siblings})
            if current.step_number in remaining_numbers:
                position = remaining_numbers.index(current.step_number) + 1
                if not updated.is_parallel:
                    raise ValidationException(
                        f"Step number {current.step_number} is a parallel group",
                        field="is_parallel",
                    )
            else:
                position = sum(1 for n in remaining_numbers if n < current.step_number) + 1
        numbers = _place_step(siblings, updated, position)
        await self._apply_numbers(tenant_id, siblings, numbers)

        fields = {
            key: getattr(updated, key)
            for key in changes
        }
        fields["step_number"] = numbers[step_id]
        result = await self.step_repo.update(tenant_id, step_id, fields)
        await self._after_composition_change(workflow)
        return result

    async def delete_step(self, tenant_id: str, workflow_id: str, step_id: str) -> None:
        """Delete a step unless it has open approvals on in-progress instances."""
        workflow = await self.get_workflow(tenant_id, workflow_id)
        if workflow.is_system:
            raise ImmutableSystemWorkflowException(workflow_id, ["steps"])
        await self._get_step(tenant_id, workflow_id, step_id)
        open_approvals = await self.approval_repo.count_open_for_step(tenant_id, step_id)
        if open_approvals:
            raise StepInUseException(step_id, open_approvals)
        await self.step_repo.delete(tenant_id, step_id)
        siblings = await self.step_repo.list_by_workflow(tenant_id, workflow_id)
        numbers = {
            s.id: number
            for number, group in enumerate(group_steps(siblings), start=1)
            for s in group.steps
        }
        await self._apply_numbers(tenant_id, siblings, numbers)
        await self._after_composition_change(workflow)
