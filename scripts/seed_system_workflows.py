"""Seed the built-in (system) workflows for an agency.

Usage:
    uv run python -m scripts.seed_system_workflows <tenant_id>
Workflows that already exist by name are left untouched, so the script can
be re-run after adding entries to SYSTEM_WORKFLOWS. Requires Postgres.
"""

import asyncio
import sys

from app.api.v1.dependencies.workflow import build_definition_service
from app.application.dtos.workflow import StepCreate, WorkflowCreate
from app.core.config import get_settings
import app.infrastructure.persistence.database as database
from app.shared.utils.sanitization import InputSanitizer

SYSTEM_WORKFLOWS: list[tuple[WorkflowCreate, list[StepCreate]]] = [
    (
        WorkflowCreate(
            name="Expense Approval",
            entity_type="expense",
            workflow_type="approval",
            description="Manager then finance approve submitted expenses.",
            trigger_event="submitted",
        ),
        [
            StepCreate(step_name="Manager approval", approver_role="manager", timeout_hours=72),
            StepCreate(step_name="Finance approval", approver_role="finance", timeout_hours=72),
        ],
    ),
    (
        WorkflowCreate(
            name="Leave Request Approval",
            entity_type="leave_request",
            workflow_type="approval",
            description="The requester's manager approves leave; HR is informed.",
            trigger_event="submitted",
        ),
        [
            StepCreate(
                step_name="Manager approval",
                approver_type="dynamic",
                approver_resolver="requester_manager",
                timeout_hours=48,
                escalation_enabled=True,
                escalation_after_hours=24,
            ),
            StepCreate(step_name="Notify HR", step_type="notification", approver_role="hr"),
        ],
    ),
    (
        WorkflowCreate(
            name="Purchase Order Approval",
            entity_type="purchase_order",
            workflow_type="approval",
            description="Department head and procurement approve in parallel, then finance.",
            trigger_event="created",
        ),
        [
            StepCreate(
                step_name="Department head approval",
                approver_type="dynamic",
                approver_resolver="department_head",
                is_parallel=True,
            ),
            StepCreate(
                step_name="Procurement review",
                approver_role="procurement",
                is_parallel=True,
                step_number=1,
            ),
            StepCreate(step_name="Finance approval", approver_role="finance"),
        ],
    ),
]


async def main() -> None:
    """Create each missing system workflow with its steps in one transaction."""
    if len(sys.argv) < 2:
        print(
            "Usage: uv run python -m scripts.seed_system_workflows <tenant_id>",
            file=sys.stderr,
        )
        sys.exit(1)
    tenant_id = sys.argv[1]
    if not InputSanitizer.is_valid_tenant_id(tenant_id):
        print(f"Invalid tenant id: {tenant_id}", file=sys.stderr)
        sys.exit(1)

    get_settings()
    session_factory = database.ensure_engine()
    created = 0
    async with session_factory() as session:
        async with session.begin():
            service = build_definition_service(session)
            for data, steps in SYSTEM_WORKFLOWS:
                if await service.workflow_repo.get_by_name(tenant_id, data.name) is not None:
                    print(f"Exists: {data.name}")
                    continue
                workflow = await service.create_system_workflow(tenant_id, data, steps)
                created += 1
                print(f"Created: {workflow.name} ({workflow.id}, {workflow.step_count} steps)")
    if database.engine is not None:
        await database.engine.dispose()
    print(f"Done. Created {created} system workflow(s) for tenant {tenant_id}")


if __name__ == "__main__":
    asyncio.run(main())
