"""Workflow repositories: definitions, steps, version snapshots, instances, approvals.

Instance and approval state changes are conditional UPDATE ... RETURNING
statements so that concurrent writers cannot both win.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.workflow import InstanceFilters, WorkflowFilters
from app.domain.entities.workflow import (
    StepApprovalEntity,
    WorkflowEntity,
    WorkflowInstanceEntity,
    WorkflowStepEntity,
    WorkflowVersionEntity,
)
from app.domain.enums import ApprovalDecision, InstanceStatus
from app.infrastructure.persistence.models.workflow import (
    StepApproval,
    Workflow,
    WorkflowInstance,
    WorkflowStep,
    WorkflowVersion,
)
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.shared.utils.datetime import ensure_utc

_OPEN_DECISIONS = [d.value for d in ApprovalDecision.open()]
_ACTIVE_STATUSES = [s.value for s in InstanceStatus.active()]

_WORKFLOW_FIELDS = (
    "name",
    "description",
    "workflow_type",
    "entity_type",
    "trigger_event",
    "is_active",
    "is_system",
    "version",
    "configuration",
    "created_by",
)
_STEP_FIELDS = (
    "step_number",
    "step_name",
    "step_type",
    "approver_type",
    "approver_role",
    "approver_email",
    "approver_resolver",
    "is_parallel",
    "is_required",
    "timeout_hours",
    "escalation_enabled",
    "escalation_after_hours",
    "escalation_to",
    "notes",
)
_APPROVAL_FIELDS = (
    "step_id",
    "step_number",
    "approver",
    "is_required",
    "decision",
    "decided_at",
    "decided_by",
    "comment",
    "delegated_to",
    "escalated_at",
    "timeout_at",
    "escalate_at",
)


def _step_count():
    return (
        select(func.count(WorkflowStep.id))
        .where(WorkflowStep.workflow_id == Workflow.id)
        .correlate(Workflow)
        .scalar_subquery()
    )


def _instance_count():
    return (
        select(func.count(WorkflowInstance.id))
        .where(WorkflowInstance.workflow_id == Workflow.id)
        .correlate(Workflow)
        .scalar_subquery()
    )


def _to_workflow(obj: Workflow, step_count: int = 0, instance_count: int = 0) -> WorkflowEntity:
    return WorkflowEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        name=obj.name,
        description=obj.description,
        workflow_type=obj.workflow_type,
        entity_type=obj.entity_type,
        trigger_event=obj.trigger_event,
        is_active=obj.is_active,
        is_system=obj.is_system,
        version=obj.version,
        configuration=dict(obj.configuration or {}),
        created_by=obj.created_by,
        created_at=ensure_utc(obj.created_at),
        updated_at=ensure_utc(obj.updated_at),
        step_count=step_count or 0,
        instance_count=instance_count or 0,
    )


def _to_step(obj: WorkflowStep) -> WorkflowStepEntity:
    return WorkflowStepEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        workflow_id=obj.workflow_id,
        **{name: getattr(obj, name) for name in _STEP_FIELDS},
    )


def _to_version(obj: WorkflowVersion) -> WorkflowVersionEntity:
    return WorkflowVersionEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        workflow_id=obj.workflow_id,
        version=obj.version,
        entity_type=obj.entity_type,
        workflow_type=obj.workflow_type,
        steps=list(obj.steps or []),
        created_at=ensure_utc(obj.created_at),
    )


def _to_instance(obj: WorkflowInstance) -> WorkflowInstanceEntity:
    return WorkflowInstanceEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        workflow_id=obj.workflow_id,
        workflow_version=obj.workflow_version,
        target_entity_type=obj.target_entity_type,
        target_entity_id=obj.target_entity_id,
        status=obj.status,
        current_step_number=obj.current_step_number,
        blocked_reason=obj.blocked_reason,
        started_by=obj.started_by,
        completed_by=obj.completed_by,
        rejection_reason=obj.rejection_reason,
        cancel_reason=obj.cancel_reason,
        metadata=dict(obj.instance_metadata or {}),
        approver_overrides={k: list(v) for k, v in (obj.approver_overrides or {}).items()},
        created_at=ensure_utc(obj.created_at),
        updated_at=ensure_utc(obj.updated_at),
        started_at=ensure_utc(obj.started_at),
        completed_at=ensure_utc(obj.completed_at),
    )


def _to_approval(obj: StepApproval) -> StepApprovalEntity:
    return StepApprovalEntity(
        id=obj.id,
        tenant_id=obj.tenant_id,
        instance_id=obj.instance_id,
        step_id=obj.step_id,
        step_number=obj.step_number,
        approver=obj.approver,
        is_required=obj.is_required,
        decision=obj.decision,
        decided_at=ensure_utc(obj.decided_at),
        decided_by=obj.decided_by,
        comment=obj.comment,
        delegated_to=obj.delegated_to,
        escalated_at=ensure_utc(obj.escalated_at),
        opened_at=ensure_utc(obj.opened_at),
        timeout_at=ensure_utc(obj.timeout_at),
        escalate_at=ensure_utc(obj.escalate_at),
    )


class WorkflowRepository(BaseRepository[Workflow]):
    """IWorkflowRepository over the workflow table."""

    resource_type = "workflow"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Workflow)

    def _with_counts(self, tenant_id: str):
        return select(
            Workflow,
            _step_count().label("step_count"),
            _instance_count().label("instance_count"),
        ).where(Workflow.tenant_id == tenant_id)

    async def get_by_id(self, tenant_id: str, workflow_id: str) -> WorkflowEntity | None:
        result = await self.db.execute(
            self._with_counts(tenant_id).where(Workflow.id == workflow_id)
        )
        row = result.one_or_none()
        return _to_workflow(*row) if row is not None else None

    async def get_by_name(self, tenant_id: str, name: str) -> WorkflowEntity | None:
        result = await self.db.execute(self._scoped(tenant_id).where(Workflow.name == name))
        obj = result.scalar_one_or_none()
        return _to_workflow(obj) if obj is not None else None

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: WorkflowFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowEntity]:
        q = self._with_counts(tenant_id)
        if filters.workflow_type:
            q = q.where(Workflow.workflow_type == filters.workflow_type)
        if filters.entity_type:
            q = q.where(Workflow.entity_type == filters.entity_type)
        if filters.is_active is not None:
            q = q.where(Workflow.is_active.is_(filters.is_active))
        if filters.search:
            q = q.where(Workflow.name.ilike(f"%{filters.search}%"))
        q = q.order_by(Workflow.name.asc()).offset(skip).limit(limit)
        result = await self.db.execute(q)
        return [_to_workflow(*row) for row in result.all()]

    async def list_by_trigger(
        self, tenant_id: str, entity_type: str, trigger_event: str
    ) -> list[WorkflowEntity]:
        result = await self.db.execute(
            self._scoped(tenant_id)
            .where(
                Workflow.entity_type == entity_type,
                Workflow.trigger_event == trigger_event,
                Workflow.is_active.is_(True),
            )
            .order_by(Workflow.created_at.asc())
        )
        return [_to_workflow(obj) for obj in result.scalars().all()]

    async def create(self, workflow: WorkflowEntity) -> WorkflowEntity:
        obj = Workflow(
            id=workflow.id,
            tenant_id=workflow.tenant_id,
            **{name: getattr(workflow, name) for name in _WORKFLOW_FIELDS},
        )
        return _to_workflow(await self._add(obj))

    async def update(
        self, tenant_id: str, workflow_id: str, changes: dict[str, Any]
    ) -> WorkflowEntity:
        await self._apply(tenant_id, workflow_id, changes)
        updated = await self.get_by_id(tenant_id, workflow_id)
        assert updated is not None
        return updated

    async def delete(self, tenant_id: str, workflow_id: str) -> None:
        await self._remove(tenant_id, workflow_id)


class WorkflowStepRepository(BaseRepository[WorkflowStep]):
    """IWorkflowStepRepository over the workflow_step table."""

    resource_type = "workflow_step"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowStep)

    async def list_by_workflow(
        self, tenant_id: str, workflow_id: str
    ) -> list[WorkflowStepEntity]:
        result = await self.db.execute(
            self._scoped(tenant_id)
            .where(WorkflowStep.workflow_id == workflow_id)
            .order_by(WorkflowStep.step_number.asc(), WorkflowStep.created_at.asc())
        )
        return [_to_step(obj) for obj in result.scalars().all()]

    async def get_by_id(self, tenant_id: str, step_id: str) -> WorkflowStepEntity | None:
        obj = await self._get(tenant_id, step_id)
        return _to_step(obj) if obj is not None else None

    async def create(self, step: WorkflowStepEntity) -> WorkflowStepEntity:
        obj = WorkflowStep(
            id=step.id,
            tenant_id=step.tenant_id,
            workflow_id=step.workflow_id,
            **{name: getattr(step, name) for name in _STEP_FIELDS},
        )
        return _to_step(await self._add(obj))

    async def update(
        self, tenant_id: str, step_id: str, changes: dict[str, Any]
    ) -> WorkflowStepEntity:
        return _to_step(await self._apply(tenant_id, step_id, changes))

    async def delete(self, tenant_id: str, step_id: str) -> None:
        await self._remove(tenant_id, step_id)

    async def renumber(self, tenant_id: str, numbers: dict[str, int]) -> None:
        for step_id, step_number in numbers.items():
            await self.db.execute(
                update(WorkflowStep)
                .where(WorkflowStep.tenant_id == tenant_id, WorkflowStep.id == step_id)
                .values(step_number=step_number)
                .execution_options(synchronize_session="fetch")
            )
        await self.db.flush()


class WorkflowVersionRepository(BaseRepository[WorkflowVersion]):
    """IWorkflowVersionRepository over the workflow_version table."""

    resource_type = "workflow_version"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowVersion)

    async def get(
        self, tenant_id: str, workflow_id: str, version: int
    ) -> WorkflowVersionEntity | None:
        result = await self.db.execute(
            self._scoped(tenant_id).where(
                WorkflowVersion.workflow_id == workflow_id,
                WorkflowVersion.version == version,
            )
        )
        obj = result.scalar_one_or_none()
        return _to_version(obj) if obj is not None else None

    async def create(self, snapshot: WorkflowVersionEntity) -> WorkflowVersionEntity:
        """Insert the snapshot; a concurrent insert of the same version wins silently."""
        await self.db.execute(
            pg_insert(WorkflowVersion)
            .values(
                id=snapshot.id,
                tenant_id=snapshot.tenant_id,
                workflow_id=snapshot.workflow_id,
                version=snapshot.version,
                entity_type=snapshot.entity_type,
                workflow_type=snapshot.workflow_type,
                steps=snapshot.steps,
            )
            .on_conflict_do_nothing(index_elements=["workflow_id", "version"])
        )
        stored = await self.get(snapshot.tenant_id, snapshot.workflow_id, snapshot.version)
        assert stored is not None
        return stored


class WorkflowInstanceRepository(BaseRepository[WorkflowInstance]):
    """IWorkflowInstanceRepository over the workflow_instance table."""

    resource_type = "workflow_instance"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowInstance)

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        async with self.db.begin_nested():
            yield

    async def get_by_id(
        self, tenant_id: str, instance_id: str, *, for_update: bool = False
    ) -> WorkflowInstanceEntity | None:
        obj = await self._get(tenant_id, instance_id, for_update=for_update)
        return _to_instance(obj) if obj is not None else None

    async def get_by_tenant(
        self,
        tenant_id: str,
        filters: InstanceFilters,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowInstanceEntity]:
        q = self._scoped(tenant_id)
        if filters.status:
            q = q.where(WorkflowInstance.status == filters.status)
        if filters.workflow_id:
            q = q.where(WorkflowInstance.workflow_id == filters.workflow_id)
        if filters.target_entity_type:
            q = q.where(WorkflowInstance.target_entity_type == filters.target_entity_type)
        if filters.target_entity_id:
            q = q.where(WorkflowInstance.target_entity_id == filters.target_entity_id)
        if filters.blocked_only:
            q = q.where(
                WorkflowInstance.status == InstanceStatus.IN_PROGRESS.value,
                WorkflowInstance.blocked_reason.is_not(None),
            )
        q = q.order_by(WorkflowInstance.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(q)
        return [_to_instance(obj) for obj in result.scalars().all()]

    async def list_due(
        self, now: datetime, tenant_id: str | None, limit: int = 500
    ) -> list[WorkflowInstanceEntity]:
        due_approval = (
            select(StepApproval.id)
            .where(
                StepApproval.instance_id == WorkflowInstance.id,
                StepApproval.step_number == WorkflowInstance.current_step_number,
                StepApproval.decision.in_(_OPEN_DECISIONS),
                or_(
                    StepApproval.timeout_at <= now,
                    and_(StepApproval.escalate_at <= now, StepApproval.escalated_at.is_(None)),
                ),
            )
            .exists()
        )
        q = select(WorkflowInstance).where(
            WorkflowInstance.status == InstanceStatus.IN_PROGRESS.value,
            WorkflowInstance.blocked_reason.is_(None),
            due_approval,
        )
        if tenant_id is not None:
            q = q.where(WorkflowInstance.tenant_id == tenant_id)
        q = q.order_by(WorkflowInstance.updated_at.asc()).limit(limit)
        result = await self.db.execute(q)
        return [_to_instance(obj) for obj in result.scalars().all()]

    async def count_active_for_workflow(self, tenant_id: str, workflow_id: str) -> int:
        result = await self.db.execute(
            select(func.count(WorkflowInstance.id)).where(
                WorkflowInstance.tenant_id == tenant_id,
                WorkflowInstance.workflow_id == workflow_id,
                WorkflowInstance.status.in_(_ACTIVE_STATUSES),
            )
        )
        return int(result.scalar_one())

    async def create(self, instance: WorkflowInstanceEntity) -> WorkflowInstanceEntity:
        obj = WorkflowInstance(
            id=instance.id,
            tenant_id=instance.tenant_id,
            workflow_id=instance.workflow_id,
            workflow_version=instance.workflow_version,
            target_entity_type=instance.target_entity_type,
            target_entity_id=instance.target_entity_id,
            status=instance.status,
            current_step_number=instance.current_step_number,
            started_by=instance.started_by,
            instance_metadata=dict(instance.metadata or {}),
            approver_overrides=dict(instance.approver_overrides or {}),
        )
        return _to_instance(await self._add(obj))

    async def transition(
        self,
        tenant_id: str,
        instance_id: str,
        *,
        expected_statuses: frozenset[str],
        expected_step: int | None,
        changes: dict[str, Any],
    ) -> WorkflowInstanceEntity | None:
        stmt = update(WorkflowInstance).where(
            WorkflowInstance.tenant_id == tenant_id,
            WorkflowInstance.id == instance_id,
            WorkflowInstance.status.in_(sorted(expected_statuses)),
        )
        if expected_step is not None:
            stmt = stmt.where(WorkflowInstance.current_step_number == expected_step)
        stmt = (
            stmt.values(**changes)
            .returning(WorkflowInstance)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        obj = result.scalar_one_or_none()
        return _to_instance(obj) if obj is not None else None


class StepApprovalRepository(BaseRepository[StepApproval]):
    """IStepApprovalRepository over the step_approval table."""

    resource_type = "step_approval"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, StepApproval)

    async def get_by_id(self, tenant_id: str, approval_id: str) -> StepApprovalEntity | None:
        obj = await self._get(tenant_id, approval_id)
        return _to_approval(obj) if obj is not None else None

    async def create_many(
        self, approvals: Iterable[StepApprovalEntity]
    ) -> list[StepApprovalEntity]:
        objs = [
            StepApproval(
                id=a.id,
                tenant_id=a.tenant_id,
                instance_id=a.instance_id,
                opened_at=a.opened_at,
                **{name: getattr(a, name) for name in _APPROVAL_FIELDS},
            )
            for a in approvals
        ]
        self.db.add_all(objs)
        await self.db.flush()
        return [_to_approval(obj) for obj in objs]

    async def list_by_instance(
        self, tenant_id: str, instance_id: str, step_number: int | None = None
    ) -> list[StepApprovalEntity]:
        q = self._scoped(tenant_id).where(StepApproval.instance_id == instance_id)
        if step_number is not None:
            q = q.where(StepApproval.step_number == step_number)
        q = q.order_by(StepApproval.step_number.asc(), StepApproval.opened_at.asc())
        result = await self.db.execute(q)
        return [_to_approval(obj) for obj in result.scalars().all()]

    async def _update_open(
        self, tenant_id: str, approval_id: str, values: dict[str, Any], decisions: list[str]
    ) -> StepApprovalEntity | None:
        result = await self.db.execute(
            update(StepApproval)
            .where(
                StepApproval.tenant_id == tenant_id,
                StepApproval.id == approval_id,
                StepApproval.decision.in_(decisions),
            )
            .values(**values)
            .returning(StepApproval)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        obj = result.scalar_one_or_none()
        return _to_approval(obj) if obj is not None else None

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
        return await self._update_open(
            tenant_id,
            approval_id,
            {
                "decision": decision,
                "decided_by": decided_by,
                "decided_at": decided_at,
                "comment": comment,
            },
            _OPEN_DECISIONS,
        )

    async def cancel_open(
        self,
        tenant_id: str,
        instance_id: str,
        *,
        decided_at: datetime,
        step_number: int | None = None,
        step_id: str | None = None,
    ) -> int:
        stmt = update(StepApproval).where(
            StepApproval.tenant_id == tenant_id,
            StepApproval.instance_id == instance_id,
            StepApproval.decision.in_(_OPEN_DECISIONS),
        )
        if step_number is not None:
            stmt = stmt.where(StepApproval.step_number == step_number)
        if step_id is not None:
            stmt = stmt.where(StepApproval.step_id == step_id)
        result = await self.db.execute(
            stmt.values(decision=ApprovalDecision.CANCELLED.value, decided_at=decided_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def mark_escalated(
        self, tenant_id: str, approval_id: str, escalated_at: datetime
    ) -> bool:
        result = await self.db.execute(
            update(StepApproval)
            .where(
                StepApproval.tenant_id == tenant_id,
                StepApproval.id == approval_id,
                StepApproval.decision == ApprovalDecision.PENDING.value,
                StepApproval.escalated_at.is_(None),
            )
            .values(decision=ApprovalDecision.ESCALATED.value, escalated_at=escalated_at)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1

    async def set_delegate(
        self, tenant_id: str, approval_id: str, delegate_to: str
    ) -> StepApprovalEntity | None:
        return await self._update_open(
            tenant_id, approval_id, {"delegated_to": delegate_to}, _OPEN_DECISIONS
        )

    def _open_on_live_instances(self, tenant_id: str):
        return (
            select(StepApproval)
            .join(WorkflowInstance, WorkflowInstance.id == StepApproval.instance_id)
            .where(
                StepApproval.tenant_id == tenant_id,
                StepApproval.decision.in_(_OPEN_DECISIONS),
                WorkflowInstance.status == InstanceStatus.IN_PROGRESS.value,
            )
        )

    async def count_open_for_step(self, tenant_id: str, step_id: str) -> int:
        q = self._open_on_live_instances(tenant_id).where(StepApproval.step_id == step_id)
        result = await self.db.execute(select(func.count()).select_from(q.subquery()))
        return int(result.scalar_one())

    async def list_open_for_actor(
        self, tenant_id: str, actor: str, skip: int = 0, limit: int = 100
    ) -> list[StepApprovalEntity]:
        q = (
            self._open_on_live_instances(tenant_id)
            .where(
                StepApproval.step_number == WorkflowInstance.current_step_number,
                or_(StepApproval.approver == actor, StepApproval.delegated_to == actor),
            )
            .order_by(StepApproval.opened_at.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(q)
        return [_to_approval(obj) for obj in result.scalars().all()]
