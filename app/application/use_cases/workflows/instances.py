"""Instance state machine: starts instances, records decisions, handles timeouts.

Status graph:

    pending -> in_progress -> approved | rejected | timed_out
    pending | in_progress -> cancelled

Terminal states never change again. Every instance transition is a
conditional update on (status, current_step_number); a concurrent writer that
moved the row first makes the update match nothing and the caller gets
StaleInstanceStateException instead of a lost update.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from app.application.dtos.workflow import (
    InstanceDetail,
    InstanceFilters,
    ResolvedStep,
    TargetEntity,
    TickResult,
)
from app.application.interfaces.repositories import (
    IStepApprovalRepository,
    IWorkflowInstanceRepository,
    IWorkflowRepository,
    IWorkflowVersionRepository,
)
from app.application.services.automation_actions import AutomationActionRegistry
from app.application.services.step_resolver import (
    StepResolver,
    group_steps,
    normalize_email,
)
from app.application.services.workflow_notifier import WorkflowNotifier
from app.application.use_cases.workflows.definitions import WorkflowDefinitionService
from app.domain.entities.workflow import (
    StepApprovalEntity,
    WorkflowEntity,
    WorkflowInstanceEntity,
    WorkflowStepEntity,
)
from app.domain.enums import ApprovalDecision, InstanceStatus
from app.domain.exceptions import (
    AlreadyDecidedException,
    AuthorizationException,
    InvalidInstanceStateException,
    ResourceNotFoundException,
    StaleInstanceStateException,
    UnresolvedApproverException,
    ValidationException,
    WorkflowInactiveException,
)
from app.shared.enums import NotificationKind
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.datetime import hours_since, utc_now
from app.shared.utils.generators import generate_cuid

logger = get_logger(__name__)

_IN_PROGRESS = frozenset({InstanceStatus.IN_PROGRESS.value})
_ACTIVE = frozenset(s.value for s in InstanceStatus.active())

_TERMINAL_NOTIFICATIONS = {
    InstanceStatus.APPROVED.value: NotificationKind.INSTANCE_APPROVED,
    InstanceStatus.REJECTED.value: NotificationKind.INSTANCE_REJECTED,
    InstanceStatus.TIMED_OUT.value: NotificationKind.INSTANCE_TIMED_OUT,
    InstanceStatus.CANCELLED.value: NotificationKind.INSTANCE_CANCELLED,
}


def _after(start: datetime, hours: int | None) -> datetime | None:
    return start + timedelta(hours=hours) if hours is not None else None

def _group_complete(approvals: list[StepApprovalEntity]) -> bool:
    """Return whether a group's approvals satisfy it.

    All required approvals must be approved; a group of only optional
    approvals completes on its first approval. Cancelled rows are ignored.
    """
    live = [a for a in approvals if a.decision != ApprovalDecision.CANCELLED.value]
    required = [a for a in live if a.is_required]
    if required:
        return all(a.decision == ApprovalDecision.APPROVED.value for a in required)
    return any(a.decision == ApprovalDecision.APPROVED.value for a in live)


def _group_rejected(approvals: list[StepApprovalEntity], decided: StepApprovalEntity) -> bool:
    """Return whether a rejection ends the instance (fail-fast on required approvers)."""
    if decided.is_required:
        return True
    live = [a for a in approvals if a.decision != ApprovalDecision.CANCELLED.value]
    if any(a.is_required for a in live):
        return False
    return bool(live) and all(a.decision == ApprovalDecision.REJECTED.value for a in live)


class WorkflowInstanceService:
    """Runs workflow instances through their step groups."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        version_repo: IWorkflowVersionRepository,
        instance_repo: IWorkflowInstanceRepository,
        approval_repo: IStepApprovalRepository,
        definitions: WorkflowDefinitionService,
        resolver: StepResolver,
        notifier: WorkflowNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        actions: AutomationActionRegistry | None = None,
    ) -> None:
        self.workflow_repo = workflow_repo
        self.version_repo = version_repo
        self.instance_repo = instance_repo
        self.approval_repo = approval_repo
        self.definitions = definitions
        self.resolver = resolver
        self.notifier = notifier or WorkflowNotifier(None, None)
        self.actions = actions or AutomationActionRegistry()
        self._clock = clock
        self._workflows: dict[str, WorkflowEntity | None] = {}

    # ---- Queries ----

    async def _get_instance(
        self, tenant_id: str, instance_id: str, *, for_update: bool = False
    ) -> WorkflowInstanceEntity:
        instance = await self.instance_repo.get_by_id(
            tenant_id, instance_id, for_update=for_update
        )
        if instance is None:
            raise ResourceNotFoundException("workflow_instance", instance_id)
        return instance

    async def get_instance(self, tenant_id: str, instance_id: str) -> InstanceDetail:
        """Return instance with all its approvals."""
        instance = await self._get_instance(tenant_id, instance_id)
        approvals = await self.approval_repo.list_by_instance(tenant_id, instance_id)
        return InstanceDetail(instance=instance, approvals=approvals)

    async def list_instances(
        self,
        tenant_id: str,
        filters: InstanceFilters | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowInstanceEntity]:
        return await self.instance_repo.get_by_tenant(
            tenant_id, filters or InstanceFilters(), skip=skip, limit=limit
        )

    async def list_pending_approvals(
        self, tenant_id: str, actor: str, skip: int = 0, limit: int = 100
    ) -> list[StepApprovalEntity]:
        """Return open approvals assigned or delegated to actor."""
        return await self.approval_repo.list_open_for_actor(
            tenant_id, normalize_email(actor), skip=skip, limit=limit
        )

    # ---- Internals ----

    async def steps_for(self, instance: WorkflowInstanceEntity) -> list[WorkflowStepEntity]:
        """Return the steps of the version the instance is pinned to."""
        snapshot = await self.version_repo.get(
            instance.tenant_id, instance.workflow_id, instance.workflow_version
        )
        if snapshot is None:
            raise ResourceNotFoundException(
                "workflow_version", f"{instance.workflow_id}@{instance.workflow_version}"
            )
        return snapshot.step_entities()

    @staticmethod
    def _target(instance: WorkflowInstanceEntity) -> TargetEntity:
        return TargetEntity(
            entity_type=instance.target_entity_type,
            entity_id=instance.target_entity_id,
            metadata=dict(instance.metadata or {}),
        )

    @staticmethod
    def _context(instance: WorkflowInstanceEntity, **extra: Any) -> dict[str, Any]:
        context = {
            "tenant_id": instance.tenant_id,
            "instance_id": instance.id,
            "workflow_id": instance.workflow_id,
            "target_entity_type": instance.target_entity_type,
            "target_entity_id": instance.target_entity_id,
            "status": instance.status,
        }
        context.update(extra)
        return context

    async def _workflow_of(self, instance: WorkflowInstanceEntity) -> WorkflowEntity | None:
        if instance.workflow_id not in self._workflows:
            self._workflows[instance.workflow_id] = await self.workflow_repo.get_by_id(
                instance.tenant_id, instance.workflow_id
            )
        return self._workflows[instance.workflow_id]

    async def _notify(
        self,
        instance: WorkflowInstanceEntity,
        kind: NotificationKind,
        recipients: list[str],
        context: dict[str, Any],
    ) -> bool:
        """Notify on the channels the instance's workflow configures."""
        if not recipients:
            return False
        workflow = await self._workflow_of(instance)
        channels = workflow.notification_channels if workflow is not None else None
        return await self.notifier.notify(kind, recipients, context, channels=channels)

    async def _run_automation(self, instance: WorkflowInstanceEntity) -> int:
        workflow = await self._workflow_of(instance)
        if workflow is None or not workflow.automation_actions:
            return 0
        return await self.actions.run_all(
            instance.tenant_id,
            workflow.automation_actions,
            self._context(instance, source=f"workflow:{workflow.id}", metadata=instance.metadata),
        )

    async def _transition(
        self,
        instance: WorkflowInstanceEntity,
        changes: dict[str, Any],
        expected_statuses: frozenset[str] = _IN_PROGRESS,
    ) -> WorkflowInstanceEntity:
        """Apply changes if the instance is still where we last saw it."""
        updated = await self.instance_repo.transition(
            instance.tenant_id,
            instance.id,
            expected_statuses=expected_statuses,
            expected_step=instance.current_step_number,
            changes={**changes, "updated_at": self._clock()},
        )
        if updated is None:
            logger.warning(
                "Stale instance transition (tenant_id=%s, instance_id=%s, status=%s, step=%s)",
                instance.tenant_id,
                instance.id,
                instance.status,
                instance.current_step_number,
            )
            raise StaleInstanceStateException(
                instance.id, instance.status, instance.current_step_number
            )
        return updated

    async def _finish(
        self,
        instance: WorkflowInstanceEntity,
        status: InstanceStatus,
        expected_statuses: frozenset[str] = _IN_PROGRESS,
        **fields: Any,
    ) -> WorkflowInstanceEntity:
        """Move the instance to a terminal status and close its open approvals."""
        now = self._clock()
        finished = await self._transition(
            instance,
            {"status": status.value, "completed_at": now, "blocked_reason": None, **fields},
            expected_statuses=expected_statuses,
        )
        cancelled = await self.approval_repo.cancel_open(
            instance.tenant_id, instance.id, decided_at=now
        )
        logger.info(
            "Workflow instance %s (tenant_id=%s, instance_id=%s, step=%s, cancelled_approvals=%d)",
            status.value,
            instance.tenant_id,
            instance.id,
            instance.current_step_number,
            cancelled,
        )
        recipients = [finished.started_by] if finished.started_by else []
        await self._notify(
            finished,
            _TERMINAL_NOTIFICATIONS[status.value],
            recipients,
            self._context(
                finished,
                rejection_reason=finished.rejection_reason,
                cancel_reason=finished.cancel_reason,
            ),
        )
        if status == InstanceStatus.APPROVED:
            await self._run_automation(finished)
        return finished

    async def _create_approvals(
        self, instance: WorkflowInstanceEntity, resolved: list[ResolvedStep]
    ) -> int:
        """Create pending approvals for the group and notify; return rows created.

        Notification steps only notify their recipients.
        """
        now = self._clock()
        rows: list[StepApprovalEntity] = []
        for item in resolved:
            step = item.step
            if step.is_notification:
                await self._notify(
                    instance,
                    NotificationKind.STEP_NOTIFICATION,
                    list(item.approvers),
                    self._context(instance, step_name=step.step_name, step_number=step.step_number),
                )
                continue
            rows.extend(
                StepApprovalEntity(
                    id=generate_cuid(),
                    tenant_id=instance.tenant_id,
                    instance_id=instance.id,
                    step_id=step.id,
                    step_number=step.step_number,
                    approver=approver,
                    is_required=step.is_required,
                    opened_at=now,
                    timeout_at=_after(now, step.timeout_hours),
                    escalate_at=(
                        _after(now, step.escalation_after_hours)
                        if step.escalation_enabled
                        else None
                    ),
                )
                for approver in item.approvers
            )
        if not rows:
            return 0
        await self.approval_repo.create_many(rows)
        for item in resolved:
            if item.step.is_notification:
                continue
            await self._notify(
                instance,
                NotificationKind.STEP_OPENED,
                list(item.approvers),
                self._context(
                    instance,
                    step_name=item.step.step_name,
                    step_number=item.step.step_number,
                    timeout_hours=item.step.timeout_hours,
                ),
            )
        return len(rows)

    async def _open_from(
        self,
        instance: WorkflowInstanceEntity,
        steps: list[WorkflowStepEntity],
        first_step_number: int | None,
    ) -> WorkflowInstanceEntity:
        """Open the first group at or after first_step_number that needs a decision.

        Groups of notification steps resolve immediately. When no group is left
        the instance is approved. An unresolvable approver set blocks the
        instance on that group. Approvers assigned by hand through reassign()
        replace the step's rule for that step.
        """
        groups = [
            g
            for g in group_steps(steps)
            if first_step_number is None or g.step_number >= first_step_number
        ]
        for group in groups:
            try:
                resolved = await self.resolver.resolve_group(
                    instance.tenant_id,
                    group,
                    self._target(instance),
                    instance.approver_overrides or None,
                )
            except UnresolvedApproverException as e:
                logger.warning(
                    "Workflow instance blocked (tenant_id=%s, instance_id=%s, step=%d): %s",
                    instance.tenant_id,
                    instance.id,
                    group.step_number,
                    e.message,
                )
                return await self._transition(
                    instance,
                    {"current_step_number": group.step_number, "blocked_reason": e.message},
                )
            if instance.current_step_number != group.step_number or instance.blocked_reason:
                instance = await self._transition(
                    instance,
                    {"current_step_number": group.step_number, "blocked_reason": None},
                )
            opened = await self._create_approvals(instance, resolved)
            if opened:
                logger.info(
                    "Workflow step opened (tenant_id=%s, instance_id=%s, step=%d, approvals=%d)",
                    instance.tenant_id,
                    instance.id,
                    group.step_number,
                    opened,
                )
                return instance
        return await self._finish(instance, InstanceStatus.APPROVED)

    # ---- Commands ----

    @traced("workflow.instance.start_instance")
    async def start_instance(
        self,
        tenant_id: str,
        workflow_id: str,
        target_entity_type: str,
        target_entity_id: str,
        actor: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowInstanceEntity:
        """Pin the workflow's current version, create the instance and start it."""
        workflow = await self.definitions.get_workflow(tenant_id, workflow_id)
        if not workflow.is_active:
            raise WorkflowInactiveException(workflow_id)
        if target_entity_type != workflow.entity_type:
            raise ValidationException(
                f"Workflow applies to '{workflow.entity_type}', not '{target_entity_type}'",
                field="target_entity_type",
            )
        if not target_entity_id or not str(target_entity_id).strip():
            raise ValidationException("target_entity_id is required", field="target_entity_id")

        snapshot = await self.definitions.snapshot_version(workflow)
        instance = await self.instance_repo.create(
            WorkflowInstanceEntity(
                id=generate_cuid(),
                tenant_id=tenant_id,
                workflow_id=workflow.id,
                workflow_version=snapshot.version,
                target_entity_type=target_entity_type,
                target_entity_id=str(target_entity_id).strip(),
                status=InstanceStatus.PENDING.value,
                started_by=normalize_email(actor) if actor else None,
                metadata=dict(metadata or {}),
                created_at=self._clock(),
            )
        )
        add_span_attributes(instance_id=instance.id, workflow_version=snapshot.version)
        logger.info(
            "Workflow instance created (tenant_id=%s, instance_id=%s, workflow_id=%s, version=%d, target=%s:%s)",
            tenant_id,
            instance.id,
            workflow.id,
            snapshot.version,
            target_entity_type,
            instance.target_entity_id,
        )
        return await self.start(instance, snapshot.step_entities())

    async def start(
        self,
        instance: WorkflowInstanceEntity,
        steps: list[WorkflowStepEntity] | None = None,
    ) -> WorkflowInstanceEntity:
        """Move a pending instance to in_progress and open its first group."""
        if instance.status != InstanceStatus.PENDING.value:
            raise InvalidInstanceStateException(instance.id, instance.status, "start")
        if steps is None:
            steps = await self.steps_for(instance)
        groups = group_steps(steps)
        instance = await self._transition(
            instance,
            {
                "status": InstanceStatus.IN_PROGRESS.value,
                "current_step_number": groups[0].step_number if groups else None,
                "started_at": self._clock(),
            },
            expected_statuses=frozenset({InstanceStatus.PENDING.value}),
        )
        return await self._open_from(instance, steps, instance.current_step_number)

    @traced("workflow.instance.record_decision")
    async def record_decision(
        self,
        tenant_id: str,
        instance_id: str,
        approval_id: str,
        actor: str,
        decision: str,
        comment: str | None = None,
    ) -> WorkflowInstanceEntity:
        """Record approved / rejected on one open approval of the current group.

        A required rejection rejects the instance. A completed group opens
        the next one or approves the instance.
        """
        if decision not in (ApprovalDecision.APPROVED.value, ApprovalDecision.REJECTED.value):
            raise ValidationException("decision must be 'approved' or 'rejected'", field="decision")
        if not actor or not actor.strip():
            raise AuthorizationException("step_approval", "decide", "An acting user is required")
        actor = normalize_email(actor)
        add_span_attributes(instance_id=instance_id, approval_id=approval_id, decision=decision)

        instance = await self._get_instance(tenant_id, instance_id, for_update=True)
        if instance.status != InstanceStatus.IN_PROGRESS.value:
            raise InvalidInstanceStateException(instance_id, instance.status, "decide")
        approval = await self.approval_repo.get_by_id(tenant_id, approval_id)
        if approval is None or approval.instance_id != instance_id:
            raise ResourceNotFoundException("step_approval", approval_id)
        if not approval.is_open:
            raise AlreadyDecidedException(approval_id, approval.decision)
        if approval.step_number != instance.current_step_number:
            raise InvalidInstanceStateException(instance_id, instance.status, "decide")
        if not approval.can_be_decided_by(actor):
            raise AuthorizationException(
                "step_approval", "decide", "Only the approver or their delegate can decide"
            )

        decided = await self.approval_repo.decide_if_open(
            tenant_id,
            approval_id,
            decision=decision,
            decided_by=actor,
            decided_at=self._clock(),
            comment=comment,
        )
        if decided is None:
            raise AlreadyDecidedException(approval_id, "decided")
        logger.info(
            "Workflow approval %s (tenant_id=%s, instance_id=%s, approval_id=%s, step=%d, by=%s)",
            decision,
            tenant_id,
            instance_id,
            approval_id,
            decided.step_number,
            actor,
        )

        group = await self.approval_repo.list_by_instance(
            tenant_id, instance_id, step_number=instance.current_step_number
        )
        if decision == ApprovalDecision.REJECTED.value:
            if _group_rejected(group, decided):
                return await self._finish(
                    instance,
                    InstanceStatus.REJECTED,
                    rejection_reason=comment,
                    completed_by=actor,
                )
            return instance

        if not _group_complete(group):
            return instance
        current = instance.current_step_number
        await self.approval_repo.cancel_open(
            tenant_id, instance_id, decided_at=self._clock(), step_number=current
        )
        steps = await self.steps_for(instance)
        next_numbers = [g.step_number for g in group_steps(steps) if g.step_number > current]
        if not next_numbers:
            return await self._finish(instance, InstanceStatus.APPROVED, completed_by=actor)
        return await self._open_from(instance, steps, next_numbers[0])

    @traced("workflow.instance.cancel_instance")
    async def cancel_instance(
        self,
        tenant_id: str,
        instance_id: str,
        actor: str | None = None,
        reason: str | None = None,
    ) -> WorkflowInstanceEntity:
        """Cancel a pending or in-progress instance; open approvals become cancelled."""
        instance = await self._get_instance(tenant_id, instance_id, for_update=True)
        if instance.status not in _ACTIVE:
            raise InvalidInstanceStateException(instance_id, instance.status, "cancel")
        return await self._finish(
            instance,
            InstanceStatus.CANCELLED,
            expected_statuses=_ACTIVE,
            cancel_reason=reason,
            completed_by=normalize_email(actor) if actor else None,
        )

    @traced("workflow.instance.retry_blocked")
    async def retry_blocked(self, tenant_id: str, instance_id: str) -> WorkflowInstanceEntity:
        """Re-run approver resolution for an instance blocked on its current group."""
        instance = await self._get_instance(tenant_id, instance_id, for_update=True)
        if not instance.is_blocked:
            raise InvalidInstanceStateException(instance_id, instance.status, "retry")
        steps = await self.steps_for(instance)
        instance = await self._open_from(instance, steps, instance.current_step_number)
        if instance.is_blocked:
            logger.info(
                "Workflow instance still blocked after retry (tenant_id=%s, instance_id=%s)",
                tenant_id,
                instance_id,
            )
        return instance

    @traced("workflow.instance.reassign")
    async def reassign(
        self,
        tenant_id: str,
        instance_id: str,
        step_id: str,
        approvers: list[str],
        actor: str | None = None,
    ) -> WorkflowInstanceEntity:
        """Assign approvers to a step of the current group by hand.

        On a blocked instance the group is reopened with the given approvers
        for that step. Otherwise the step's open approvals are cancelled and
        replaced.
        """
        emails = list(dict.fromkeys(normalize_email(a) for a in approvers if a and a.strip()))
        if not emails:
            raise ValidationException("At least one approver is required", field="approvers")
        instance = await self._get_instance(tenant_id, instance_id, for_update=True)
        if instance.status != InstanceStatus.IN_PROGRESS.value:
            raise InvalidInstanceStateException(instance_id, instance.status, "reassign")
        steps = await self.steps_for(instance)
        step = next((s for s in steps if s.id == step_id), None)
        if step is None:
            raise ResourceNotFoundException("workflow_step", step_id)
        if step.step_number != instance.current_step_number:
            raise ValidationException(
                f"Step {step_id} is not part of the open step {instance.current_step_number}",
                field="step_id",
            )
        logger.info(
            "Workflow step reassigned (tenant_id=%s, instance_id=%s, step_id=%s, by=%s, approvers=%d)",
            tenant_id,
            instance_id,
            step_id,
            actor,
            len(emails),
        )
        if instance.is_blocked:
            # Kept on the instance so later retries of the group still see it.
            instance = await self._transition(
                instance,
                {"approver_overrides": {**instance.approver_overrides, step_id: emails}},
            )
            return await self._open_from(instance, steps, instance.current_step_number)

        if step.is_notification:
            raise ValidationException("Notification steps have no approvers", field="step_id")
        open_for_step = [
            a
            for a in await self.approval_repo.list_by_instance(
                tenant_id, instance_id, step_number=step.step_number
            )
            if a.step_id == step_id and a.is_open
        ]
        if not open_for_step:
            raise ValidationException(f"Step {step_id} has no open approvals", field="step_id")
        await self.approval_repo.cancel_open(
            tenant_id,
            instance_id,
            decided_at=self._clock(),
            step_number=step.step_number,
            step_id=step_id,
        )
        await self._create_approvals(instance, [ResolvedStep(step=step, approvers=tuple(emails))])
        return instance

    @traced("workflow.instance.delegate")
    async def delegate(
        self,
        tenant_id: str,
        approval_id: str,
        actor: str,
        delegate_to: str,
    ) -> StepApprovalEntity:
        """Hand an open approval to another user; either may then decide it."""
        approval = await self.approval_repo.get_by_id(tenant_id, approval_id)
        if approval is None:
            raise ResourceNotFoundException("step_approval", approval_id)
        instance = await self._get_instance(tenant_id, approval.instance_id)
        if instance.status != InstanceStatus.IN_PROGRESS.value:
            raise InvalidInstanceStateException(instance.id, instance.status, "delegate")
        workflow = await self.definitions.get_workflow(tenant_id, instance.workflow_id)
        if not workflow.allows_delegation:
            raise AuthorizationException(
                "step_approval", "delegate", "Delegation is disabled for this workflow"
            )
        if not approval.is_open:
            raise AlreadyDecidedException(approval_id, approval.decision)
        if not actor or normalize_email(actor) != approval.approver:
            raise AuthorizationException(
                "step_approval", "delegate", "Only the assigned approver can delegate"
            )
        if not delegate_to or not delegate_to.strip():
            raise ValidationException("delegate_to is required", field="delegate_to")
        delegate_email = normalize_email(delegate_to)
        if delegate_email == approval.approver:
            raise ValidationException("Cannot delegate to yourself", field="delegate_to")

        updated = await self.approval_repo.set_delegate(tenant_id, approval_id, delegate_email)
        if updated is None:
            raise AlreadyDecidedException(approval_id, "decided")
        logger.info(
            "Workflow approval delegated (tenant_id=%s, approval_id=%s, from=%s, to=%s)",
            tenant_id,
            approval_id,
            approval.approver,
            delegate_email,
        )
        await self._notify(
            instance,
            NotificationKind.DELEGATED,
            [delegate_email],
            self._context(instance, approval_id=approval_id, delegated_by=approval.approver),
        )
        return updated

    @traced("workflow.instance.tick")
    async def tick(
        self,
        now: datetime | None = None,
        tenant_id: str | None = None,
        limit: int = 500,
    ) -> TickResult:
        """Apply step timeouts and escalations to instances with a deadline due.

        Only unblocked instances whose current group has an open approval past
        its timeout, or past its escalation point and not yet escalated, are
        loaded, so instances with nothing due never crowd out the batch.

        Safe to run repeatedly: timeouts use the conditional transition and an
        approval escalates at most once.
        """
        now = now or self._clock()
        result = TickResult()
        instances = await self.instance_repo.list_due(now, tenant_id, limit=limit)
        for instance in instances:
            result.scanned += 1
            if instance.current_step_number is None or instance.is_blocked:
                continue
            steps = {s.id: s for s in await self.steps_for(instance)}
            open_approvals = [
                a
                for a in await self.approval_repo.list_by_instance(
                    instance.tenant_id, instance.id, step_number=instance.current_step_number
                )
                if a.is_open
            ]

            timed_out = next(
                (
                    a
                    for a in open_approvals
                    if a.step_id in steps
                    and steps[a.step_id].is_timed_out(hours_since(a.opened_at, now))
                ),
                None,
            )
            if timed_out is not None:
                try:
                    await self._finish(instance, InstanceStatus.TIMED_OUT)
                except StaleInstanceStateException:
                    result.skipped_stale += 1
                else:
                    result.timed_out += 1
                continue

            for approval in open_approvals:
                step = steps.get(approval.step_id)
                if step is None or approval.escalated_at is not None:
                    continue
                if not step.is_escalation_due(hours_since(approval.opened_at, now)):
                    continue
                if not await self.approval_repo.mark_escalated(
                    instance.tenant_id, approval.id, now
                ):
                    continue
                result.escalated += 1
                escalate_to = step.escalation_to or approval.delegated_to or approval.approver
                logger.info(
                    "Workflow approval escalated (tenant_id=%s, instance_id=%s, approval_id=%s, to=%s)",
                    instance.tenant_id,
                    instance.id,
                    approval.id,
                    escalate_to,
                )
                await self._notify(
                    instance,
                    NotificationKind.ESCALATED,
                    [escalate_to],
                    self._context(
                        instance,
                        approval_id=approval.id,
                        approver=approval.approver,
                        step_name=step.step_name,
                        step_number=step.step_number,
                    ),
                )
        logger.info(
            "Workflow tick done (tenant_id=%s, scanned=%d, escalated=%d, timed_out=%d, stale=%d)",
            tenant_id or "*",
            result.scanned,
            result.escalated,
            result.timed_out,
            result.skipped_stale,
        )
        return result
