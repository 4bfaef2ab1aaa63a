"""Step resolver: groups a workflow's steps and resolves each step's approvers.

Steps sharing a step_number form one group; groups run in ascending order.
A group with more than one step is a parallel group (all approver sets are
opened at once). Approvers are resolved by role (identity service), fixed
user email, or a dynamic callback registered by the triggering module.
"""

from __future__ import annotations

from collections.abc import Iterable
from itertools import groupby

from app.application.dtos.workflow import ResolvedStep, StepGroup, TargetEntity
from app.application.interfaces.services import (
    IApproverDirectory,
    IDynamicApproverResolver,
)
from app.domain.entities.workflow import WorkflowStepEntity
from app.domain.enums import ApproverType
from app.domain.exceptions import UnresolvedApproverException, ValidationException
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def normalize_email(value: str) -> str:
    """Return the canonical form used to compare approver identities."""
    return value.strip().lower()


class DynamicApproverRegistry:
    """Named dynamic approver callbacks (e.g. 'requester_manager').

    Modules that trigger workflows register callbacks at startup; steps
    with approver_type=dynamic reference them by approver_resolver.
    """

    def __init__(self) -> None:
        self._resolvers: dict[str, IDynamicApproverResolver] = {}

    def register(self, key: str, resolver: IDynamicApproverResolver) -> None:
        """Register (or replace) the callback for key."""
        self._resolvers[key] = resolver

    def get(self, key: str) -> IDynamicApproverResolver | None:
        return self._resolvers.get(key)

    def keys(self) -> list[str]:
        return sorted(self._resolvers)


def group_steps(steps: Iterable[WorkflowStepEntity]) -> list[StepGroup]:
    """Group steps by step_number in ascending order.

    Raises ValidationException when a group holds several steps and any of
    them is not marked parallel.
    """
    ordered = sorted(steps, key=lambda s: s.step_number)
    groups: list[StepGroup] = []
    for number, members in groupby(ordered, key=lambda s: s.step_number):
        group = tuple(members)
        if len(group) > 1 and not all(s.is_parallel for s in group):
            raise ValidationException(
                f"Step number {number} has {len(group)} steps but not all are parallel",
                field="is_parallel",
            )
        groups.append(StepGroup(step_number=number, steps=group))
    return groups


class StepResolver:
    """Resolves ordered step groups and their approver sets."""

    def __init__(
        self,
        approver_directory: IApproverDirectory,
        dynamic_registry: DynamicApproverRegistry | None = None,
    ) -> None:
        self._directory = approver_directory
        self._dynamic = dynamic_registry or DynamicApproverRegistry()

    async def resolve_step(
        self, tenant_id: str, step: WorkflowStepEntity, target: TargetEntity
    ) -> ResolvedStep:
        """Resolve one step's approvers; raise UnresolvedApproverException when empty."""
        approvers: list[str] = []
        if step.approver_type == ApproverType.ROLE.value and step.approver_role:
            approvers = await self._directory.resolve_users_with_role(
                tenant_id, step.approver_role
            )
        elif step.approver_type == ApproverType.USER.value and step.approver_email:
            approvers = [step.approver_email]
        elif step.approver_type == ApproverType.DYNAMIC.value and step.approver_resolver:
            resolver = self._dynamic.get(step.approver_resolver)
            if resolver is None:
                logger.warning(
                    "No dynamic approver resolver registered for %r (step_id=%s, tenant_id=%s)",
                    step.approver_resolver,
                    step.id,
                    tenant_id,
                )
            else:
                approvers = await resolver(tenant_id, target)

        unique = tuple(dict.fromkeys(normalize_email(a) for a in approvers if a and a.strip()))
        if not unique:
            raise UnresolvedApproverException(step.id, step.step_name, step.approver_rule)
        return ResolvedStep(step=step, approvers=unique)

    async def resolve_group(
        self,
        tenant_id: str,
        group: StepGroup,
        target: TargetEntity,
        overrides: dict[str, list[str]] | None = None,
    ) -> list[ResolvedStep]:
        """Resolve every step of a group; overrides maps step_id to manually assigned approvers.

        All steps are resolved before anything is returned, so a group either
        opens completely or not at all.
        """
        overrides = overrides or {}
        resolved: list[ResolvedStep] = []
        for step in group.steps:
            manual = overrides.get(step.id)
            if manual:
                approvers = tuple(dict.fromkeys(normalize_email(a) for a in manual if a.strip()))
                resolved.append(ResolvedStep(step=step, approvers=approvers))
                continue
            resolved.append(await self.resolve_step(tenant_id, step, target))
        return resolved

    async def resolve_steps(
        self,
        tenant_id: str,
        steps: Iterable[WorkflowStepEntity],
        target: TargetEntity,
    ) -> list[tuple[StepGroup, list[ResolvedStep]]]:
        """Resolve all groups of a workflow in execution order."""
        return [
            (group, await self.resolve_group(tenant_id, group, target))
            for group in group_steps(steps)
        ]
