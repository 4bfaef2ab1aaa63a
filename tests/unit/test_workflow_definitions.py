"""WorkflowDefinitionService tests over the in-memory repositories."""

import pytest

from app.application.dtos.workflow import StepCreate, StepUpdate, WorkflowCreate, WorkflowUpdate
from app.domain.exceptions import (
    DuplicateWorkflowNameException,
    ImmutableSystemWorkflowException,
    ResourceNotFoundException,
    StepInUseException,
    SystemWorkflowProtectedException,
    ValidationException,
    WorkflowInUseException,
)

TENANT = "agency-a"
OTHER_TENANT = "agency-b"


def _role_step(name: str, role: str = "manager", **kwargs) -> StepCreate:
    return StepCreate(step_name=name, approver_role=role, **kwargs)


def _layout(steps) -> list[tuple[int, str]]:
    return [(s.step_number, s.step_name) for s in steps]


async def test_create_workflow_starts_at_version_one(definitions) -> None:
    """A new workflow is version 1, active, with no steps."""
    workflow = await definitions.create_workflow(
        TENANT,
        WorkflowCreate(name="  Expense Approval ", entity_type="expense", workflow_type="approval"),
        actor="admin@agency.test",
    )
    assert workflow.name == "Expense Approval"
    assert workflow.version == 1
    assert workflow.is_active is True
    assert workflow.is_system is False
    assert workflow.step_count == 0
    assert workflow.created_by == "admin@agency.test"


@pytest.mark.parametrize(
    "data, field",
    [
        (WorkflowCreate(name=" ", entity_type="expense", workflow_type="approval"), "name"),
        (WorkflowCreate(name="W", entity_type="", workflow_type="approval"), "entity_type"),
        (WorkflowCreate(name="W", entity_type="expense", workflow_type="bogus"), "workflow_type"),
        (
            WorkflowCreate(
                name="W",
                entity_type="expense",
                workflow_type="approval",
                configuration={"unknown": True},
            ),
            "configuration",
        ),
    ],
)
async def test_create_workflow_rejects_invalid_input(definitions, data, field) -> None:
    """Missing name / entity_type, unknown type and bad configuration raise ValidationException."""
    with pytest.raises(ValidationException) as exc_info:
        await definitions.create_workflow(TENANT, data)
    assert exc_info.value.details == {"field": field}


async def test_workflow_names_are_unique_per_tenant(definitions) -> None:
    """The same name is rejected in one tenant but allowed in another."""
    data = WorkflowCreate(name="Leave", entity_type="leave_request", workflow_type="approval")
    await definitions.create_workflow(TENANT, data)
    with pytest.raises(DuplicateWorkflowNameException):
        await definitions.create_workflow(TENANT, data)
    other = await definitions.create_workflow(OTHER_TENANT, data)
    assert other.tenant_id == OTHER_TENANT


async def test_get_workflow_is_tenant_scoped(definitions, build_workflow) -> None:
    """A workflow of another tenant is reported as not found."""
    workflow = await build_workflow()
    with pytest.raises(ResourceNotFoundException):
        await definitions.get_workflow(OTHER_TENANT, workflow.id)


async def test_add_step_appends_and_inserts(definitions, build_workflow) -> None:
    """Steps append as new groups; inserting at a position shifts later groups."""
    workflow = await build_workflow(_role_step("Manager"), _role_step("Finance", "finance"))
    await definitions.add_step(TENANT, workflow.id, _role_step("Intake", "hr", step_number=1))
    steps = await definitions.list_steps(TENANT, workflow.id)
    assert _layout(steps) == [(1, "Intake"), (2, "Manager"), (3, "Finance")]


async def test_parallel_step_joins_parallel_group(definitions, build_workflow) -> None:
    """A parallel step placed on an all-parallel group joins it instead of shifting."""
    workflow = await build_workflow(
        _role_step("Legal", "legal", is_parallel=True),
        _role_step("Risk", "risk", is_parallel=True, step_number=1),
        _role_step("Finance", "finance"),
    )
    steps = await definitions.list_steps(TENANT, workflow.id)
    assert sorted(_layout(steps)) == [(1, "Legal"), (1, "Risk"), (2, "Finance")]


async def test_parallel_step_on_sequential_group_inserts_new_group(definitions, build_workflow) -> None:
    """A parallel step aimed at a non-parallel group gets its own group."""
    workflow = await build_workflow(_role_step("Manager"))
    await definitions.add_step(
        TENANT, workflow.id, _role_step("Risk", "risk", is_parallel=True, step_number=1)
    )
    steps = await definitions.list_steps(TENANT, workflow.id)
    assert _layout(steps) == [(1, "Risk"), (2, "Manager")]


async def test_add_step_out_of_range_position(definitions, build_workflow) -> None:
    """A step_number past the next free group raises ValidationException."""
    workflow = await build_workflow(_role_step("Manager"))
    with pytest.raises(ValidationException) as exc_info:
        await definitions.add_step(TENANT, workflow.id, _role_step("Late", step_number=3))
    assert exc_info.value.details == {"field": "step_number"}


@pytest.mark.parametrize(
    "step, field",
    [
        (StepCreate(step_name="No role"), "approver_role"),
        (StepCreate(step_name="No email", approver_type="user"), "approver_email"),
        (StepCreate(step_name="No resolver", approver_type="dynamic"), "approver_resolver"),
        (
            StepCreate(
                step_name="Escalation after timeout",
                approver_role="manager",
                timeout_hours=24,
                escalation_enabled=True,
                escalation_after_hours=24,
            ),
            "escalation_after_hours",
        ),
        (
            StepCreate(step_name="Escalation without delay", approver_role="manager", escalation_enabled=True),
            "escalation_after_hours",
        ),
    ],
)
async def test_add_step_validates_approver_rule(definitions, build_workflow, step, field) -> None:
    """Each approver type needs its matching field; escalation must precede timeout."""
    workflow = await build_workflow()
    with pytest.raises(ValidationException) as exc_info:
        await definitions.add_step(TENANT, workflow.id, step)
    assert exc_info.value.details == {"field": field}


async def test_add_step_normalizes_emails(definitions, build_workflow) -> None:
    """Fixed approver and escalation emails are stored lowercased."""
    workflow = await build_workflow()
    step = await definitions.add_step(
        TENANT,
        workflow.id,
        StepCreate(
            step_name="CFO",
            approver_type="user",
            approver_email=" CFO@Agency.test ",
            timeout_hours=48,
            escalation_enabled=True,
            escalation_after_hours=24,
            escalation_to="CEO@Agency.test",
        ),
    )
    assert step.approver_email == "cfo@agency.test"
    assert step.escalation_to == "ceo@agency.test"


async def test_update_step_moves_and_renumbers(definitions, build_workflow) -> None:
    """Moving the last step to the front renumbers the others contiguously."""
    workflow = await build_workflow(
        _role_step("A"), _role_step("B", "finance"), _role_step("C", "hr")
    )
    c = next(s for s in await definitions.list_steps(TENANT, workflow.id) if s.step_name == "C")
    moved = await definitions.update_step(TENANT, workflow.id, c.id, StepUpdate(step_number=1))
    assert moved.step_number == 1
    steps = await definitions.list_steps(TENANT, workflow.id)
    assert _layout(steps) == [(1, "C"), (2, "A"), (3, "B")]


async def test_update_step_without_move_keeps_position(definitions, build_workflow) -> None:
    """Renaming a step leaves every step_number untouched."""
    workflow = await build_workflow(_role_step("A"), _role_step("B", "finance"))
    b = (await definitions.list_steps(TENANT, workflow.id))[1]
    updated = await definitions.update_step(
        TENANT, workflow.id, b.id, StepUpdate(step_name="Finance review", timeout_hours=12)
    )
    assert (updated.step_number, updated.step_name, updated.timeout_hours) == (2, "Finance review", 12)
    assert _layout(await definitions.list_steps(TENANT, workflow.id)) == [
        (1, "A"),
        (2, "Finance review"),
    ]


async def test_update_step_of_other_workflow_not_found(definitions, build_workflow) -> None:
    """A step id from another workflow is not found under this workflow."""
    first = await build_workflow(_role_step("A"))
    second = await build_workflow(name="Second")
    step = (await definitions.list_steps(TENANT, first.id))[0]
    with pytest.raises(ResourceNotFoundException):
        await definitions.update_step(TENANT, second.id, step.id, StepUpdate(step_name="X"))


async def test_delete_step_closes_gap(definitions, build_workflow) -> None:
    """Deleting a middle group renumbers later groups down by one."""
    workflow = await build_workflow(
        _role_step("A"), _role_step("B", "finance"), _role_step("C", "hr")
    )
    b = (await definitions.list_steps(TENANT, workflow.id))[1]
    await definitions.delete_step(TENANT, workflow.id, b.id)
    assert _layout(await definitions.list_steps(TENANT, workflow.id)) == [(1, "A"), (2, "C")]


async def test_delete_step_with_open_approvals_is_in_use(definitions, instances, build_workflow) -> None:
    """A step with open approvals on an in-progress instance cannot be deleted."""
    workflow = await build_workflow(_role_step("Manager"))
    await instances.start_instance(TENANT, workflow.id, "expense", "exp-1")
    step = (await definitions.list_steps(TENANT, workflow.id))[0]
    with pytest.raises(StepInUseException) as exc_info:
        await definitions.delete_step(TENANT, workflow.id, step.id)
    assert exc_info.value.details["open_approvals"] == 1


async def test_step_changes_bump_version_only_when_pinned(definitions, instances, build_workflow) -> None:
    """Unpinned edits keep the version; the first edit after an instance starts bumps it once."""
    workflow = await build_workflow(_role_step("Manager"), _role_step("Finance", "finance"))
    assert workflow.version == 1

    instance = await instances.start_instance(TENANT, workflow.id, "expense", "exp-1")
    assert instance.workflow_version == 1

    await definitions.add_step(TENANT, workflow.id, _role_step("Audit", "hr"))
    assert (await definitions.get_workflow(TENANT, workflow.id)).version == 2
    await definitions.add_step(TENANT, workflow.id, _role_step("Archive", "hr"))
    assert (await definitions.get_workflow(TENANT, workflow.id)).version == 2

    pinned_steps = await instances.steps_for(instance)
    assert [s.step_name for s in pinned_steps] == ["Manager", "Finance"]


async def test_entity_type_frozen_while_version_pinned(definitions, instances, build_workflow) -> None:
    """entity_type may change until an instance pins the version."""
    workflow = await build_workflow(_role_step("Manager"))
    renamed = await definitions.update_workflow(
        TENANT, workflow.id, WorkflowUpdate(entity_type="invoice")
    )
    assert renamed.entity_type == "invoice"

    await instances.start_instance(TENANT, workflow.id, "invoice", "inv-1")
    with pytest.raises(WorkflowInUseException):
        await definitions.update_workflow(TENANT, workflow.id, WorkflowUpdate(entity_type="expense"))
    updated = await definitions.update_workflow(
        TENANT, workflow.id, WorkflowUpdate(description="Still editable", is_active=False)
    )
    assert updated.description == "Still editable"
    assert updated.is_active is False


async def test_rename_to_existing_name_rejected(definitions, build_workflow) -> None:
    """Renaming onto another workflow's name raises DuplicateWorkflowNameException."""
    await build_workflow(name="First")
    second = await build_workflow(name="Second")
    with pytest.raises(DuplicateWorkflowNameException):
        await definitions.update_workflow(TENANT, second.id, WorkflowUpdate(name="First"))


async def test_system_workflow_is_structurally_immutable(definitions) -> None:
    """System workflows reject structural edits and deletion but accept description changes."""
    workflow = await definitions.create_system_workflow(
        TENANT,
        WorkflowCreate(name="Expense Approval", entity_type="expense", workflow_type="approval"),
        [_role_step("Manager"), _role_step("Finance", "finance")],
    )
    assert workflow.is_system is True
    assert workflow.step_count == 2

    with pytest.raises(ImmutableSystemWorkflowException) as exc_info:
        await definitions.update_workflow(TENANT, workflow.id, WorkflowUpdate(name="Renamed"))
    assert exc_info.value.details["fields"] == ["name"]
    with pytest.raises(ImmutableSystemWorkflowException):
        await definitions.add_step(TENANT, workflow.id, _role_step("Extra"))
    step = (await definitions.list_steps(TENANT, workflow.id))[0]
    with pytest.raises(ImmutableSystemWorkflowException):
        await definitions.delete_step(TENANT, workflow.id, step.id)
    with pytest.raises(SystemWorkflowProtectedException):
        await definitions.delete_workflow(TENANT, workflow.id)

    updated = await definitions.update_workflow(
        TENANT, workflow.id, WorkflowUpdate(description="Built in")
    )
    assert updated.description == "Built in"


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("name", "Renamed"),
        ("trigger_event", "approved"),
        ("entity_type", "invoice"),
        ("workflow_type", "notification"),
    ],
)
async def test_system_workflow_structural_fields_are_frozen(definitions, field, value) -> None:
    """Each structural field of a system workflow rejects changes and stays as it was."""
    workflow = await definitions.create_system_workflow(
        TENANT,
        WorkflowCreate(
            name="Expense Approval",
            entity_type="expense",
            workflow_type="approval",
            trigger_event="submitted",
        ),
        [_role_step("Manager")],
    )
    with pytest.raises(ImmutableSystemWorkflowException) as exc_info:
        await definitions.update_workflow(TENANT, workflow.id, WorkflowUpdate(**{field: value}))
    assert exc_info.value.details["fields"] == [field]
    unchanged = await definitions.get_workflow(TENANT, workflow.id)
    assert getattr(unchanged, field) == getattr(workflow, field)


async def test_system_workflow_steps_cannot_be_updated(definitions) -> None:
    """update_step on a system workflow raises and leaves the step untouched."""
    workflow = await definitions.create_system_workflow(
        TENANT,
        WorkflowCreate(name="Expense Approval", entity_type="expense", workflow_type="approval"),
        [_role_step("Manager"), _role_step("Finance", "finance")],
    )
    manager, finance = await definitions.list_steps(TENANT, workflow.id)
    with pytest.raises(ImmutableSystemWorkflowException):
        await definitions.update_step(
            TENANT, workflow.id, manager.id, StepUpdate(step_name="Line manager")
        )
    with pytest.raises(ImmutableSystemWorkflowException):
        await definitions.update_step(TENANT, workflow.id, finance.id, StepUpdate(step_number=1))
    assert _layout(await definitions.list_steps(TENANT, workflow.id)) == [
        (1, "Manager"),
        (2, "Finance"),
    ]


async def test_delete_workflow_blocked_by_active_instances(definitions, instances, build_workflow) -> None:
    """Deletion fails while an instance is live and succeeds once it is cancelled."""
    workflow = await build_workflow(_role_step("Manager"))
    instance = await instances.start_instance(TENANT, workflow.id, "expense", "exp-1")
    with pytest.raises(WorkflowInUseException) as exc_info:
        await definitions.delete_workflow(TENANT, workflow.id)
    assert exc_info.value.details["active_instances"] == 1

    await instances.cancel_instance(TENANT, instance.id, reason="withdrawn")
    await definitions.delete_workflow(TENANT, workflow.id)
    with pytest.raises(ResourceNotFoundException):
        await definitions.get_workflow(TENANT, workflow.id)
