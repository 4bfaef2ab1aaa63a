"""Built-in dynamic approver resolvers.

Triggering modules pass approver hints in the instance metadata; these
resolvers read them. Modules with richer rules register their own
callbacks on the registry at startup.
"""

from __future__ import annotations

from app.application.dtos.workflow import TargetEntity
from app.application.services.step_resolver import DynamicApproverRegistry


def _as_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list | tuple):
        return [v for v in value if isinstance(v, str)]
    return []


async def requester_manager(tenant_id: str, target: TargetEntity) -> list[str]:
    """Manager of the person who raised the request (metadata.manager_email)."""
    return _as_list(target.metadata.get("manager_email"))


async def department_head(tenant_id: str, target: TargetEntity) -> list[str]:
    """Head(s) of the requester's department (metadata.department_head_emails)."""
    return _as_list(target.metadata.get("department_head_emails"))


async def metadata_approvers(tenant_id: str, target: TargetEntity) -> list[str]:
    """Explicit approver list supplied by the trigger (metadata.approvers)."""
    return _as_list(target.metadata.get("approvers"))


def build_default_registry() -> DynamicApproverRegistry:
    """Return a registry with the built-in resolvers."""
    registry = DynamicApproverRegistry()
    registry.register("requester_manager", requester_manager)
    registry.register("department_head", department_head)
    registry.register("metadata_approvers", metadata_approvers)
    return registry
