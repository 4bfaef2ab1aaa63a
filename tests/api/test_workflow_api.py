"""Workflow HTTP API tests. Services run over the in-memory store (see conftest)."""

from httpx import AsyncClient

TENANT_HEADERS = {"X-Tenant-ID": "agency-a"}
MANAGER = {**TENANT_HEADERS, "X-Actor-Email": "Manager@Agency.test"}


async def _create_workflow(client: AsyncClient, **overrides) -> dict:
    body = {
        "name": "Expense Approval",
        "entity_type": "expense",
        "workflow_type": "approval",
        "trigger_event": "submitted",
        **overrides,
    }
    response = await client.post("/api/v1/workflows", json=body, headers=TENANT_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


async def _add_step(client: AsyncClient, workflow_id: str, **body) -> dict:
    response = await client.post(
        f"/api/v1/workflows/{workflow_id}/steps", json=body, headers=TENANT_HEADERS
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_missing_tenant_header_returns_400(client: AsyncClient) -> None:
    """Workflow routes require X-Tenant-ID."""
    response = await client.get("/api/v1/workflows")
    assert response.status_code == 400
    assert response.json()["error"] == "HTTP_ERROR"


async def test_invalid_tenant_header_returns_400(client: AsyncClient) -> None:
    """A malformed tenant id is rejected before reaching the service."""
    response = await client.get("/api/v1/workflows", headers={"X-Tenant-ID": "bad tenant!"})
    assert response.status_code == 400


async def test_request_id_is_echoed(client: AsyncClient) -> None:
    """A valid X-Request-ID is returned on the response."""
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
    assert response.headers.get("X-Request-ID") == "req-123"


async def test_correlation_id_defaults_to_request_id(client: AsyncClient) -> None:
    """Without X-Correlation-ID the request id is reused; a client value is forwarded."""
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "req-456"})
    assert response.headers.get("X-Correlation-ID") == "req-456"
    forwarded = await client.get(
        "/api/v1/health", headers={"X-Request-ID": "req-789", "X-Correlation-ID": "expense-submit-1"}
    )
    assert forwarded.headers.get("X-Correlation-ID") == "expense-submit-1"


async def test_definition_crud(client: AsyncClient) -> None:
    """Create, read, update, list and delete a workflow with steps."""
    workflow = await _create_workflow(client, description="<b>Team</b> expenses")
    assert workflow["version"] == 1
    assert workflow["description"] == "Team expenses"

    step = await _add_step(client, workflow["id"], step_name="Manager", approver_role="manager")
    assert step["step_number"] == 1
    steps = await client.get(f"/api/v1/workflows/{workflow['id']}/steps", headers=TENANT_HEADERS)
    assert [s["step_name"] for s in steps.json()] == ["Manager"]

    updated = await client.put(
        f"/api/v1/workflows/{workflow['id']}",
        json={"description": "Updated"},
        headers=TENANT_HEADERS,
    )
    assert updated.status_code == 200
    assert updated.json()["description"] == "Updated"
    assert updated.json()["step_count"] == 1

    step_update = await client.put(
        f"/api/v1/workflows/{workflow['id']}/steps/{step['id']}",
        json={"timeout_hours": 24},
        headers=TENANT_HEADERS,
    )
    assert step_update.json()["timeout_hours"] == 24

    listed = await client.get("/api/v1/workflows?entity_type=expense", headers=TENANT_HEADERS)
    assert [w["id"] for w in listed.json()] == [workflow["id"]]
    other_tenant = await client.get("/api/v1/workflows", headers={"X-Tenant-ID": "agency-b"})
    assert other_tenant.json() == []

    deleted = await client.delete(f"/api/v1/workflows/{workflow['id']}", headers=TENANT_HEADERS)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/workflows/{workflow['id']}", headers=TENANT_HEADERS)
    assert missing.status_code == 404
    assert missing.json()["error"] == "RESOURCE_NOT_FOUND"


async def test_duplicate_workflow_name_returns_409(client: AsyncClient) -> None:
    """A second workflow with the same name conflicts."""
    await _create_workflow(client)
    response = await client.post(
        "/api/v1/workflows",
        json={"name": "Expense Approval", "entity_type": "expense"},
        headers=TENANT_HEADERS,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "DUPLICATE_WORKFLOW_NAME"


async def test_invalid_bodies_return_422(client: AsyncClient) -> None:
    """Schema violations return the validation envelope."""
    bad_key = await client.post(
        "/api/v1/workflows",
        json={"name": "W", "entity_type": "expense type"},
        headers=TENANT_HEADERS,
    )
    assert bad_key.status_code == 422
    assert bad_key.json()["error"] == "VALIDATION_ERROR"

    bad_type = await client.post(
        "/api/v1/workflows",
        json={"name": "W", "entity_type": "expense", "workflow_type": "bogus"},
        headers=TENANT_HEADERS,
    )
    assert bad_type.status_code == 422


async def test_domain_validation_returns_400(client: AsyncClient) -> None:
    """A role step without approver_role fails service validation with 400."""
    workflow = await _create_workflow(client)
    response = await client.post(
        f"/api/v1/workflows/{workflow['id']}/steps",
        json={"step_name": "Nobody"},
        headers=TENANT_HEADERS,
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "approver_role"}


async def test_start_and_decide_flow(client: AsyncClient) -> None:
    """Start an instance, see it in the approver's queue, approve it."""
    workflow = await _create_workflow(client)
    await _add_step(client, workflow["id"], step_name="Manager", approver_role="manager")

    started = await client.post(
        "/api/v1/workflow-instances",
        json={
            "workflow_id": workflow["id"],
            "target_entity_type": "expense",
            "target_entity_id": "exp-1",
            "metadata": {"amount": 120},
        },
        headers={**TENANT_HEADERS, "X-Actor-Email": "requester@agency.test"},
    )
    assert started.status_code == 201, started.text
    instance = started.json()
    assert instance["status"] == "in_progress"
    assert instance["started_by"] == "requester@agency.test"

    queue = await client.get("/api/v1/workflow-approvals/pending", headers=MANAGER)
    assert queue.status_code == 200
    [approval] = queue.json()
    assert approval["instance_id"] == instance["id"]

    no_actor = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/decide",
        json={"approval_id": approval["id"], "decision": "approved"},
        headers=TENANT_HEADERS,
    )
    assert no_actor.status_code == 401

    wrong_actor = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/decide",
        json={"approval_id": approval["id"], "decision": "approved"},
        headers={**TENANT_HEADERS, "X-Actor-Email": "intruder@agency.test"},
    )
    assert wrong_actor.status_code == 403

    decided = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/decide",
        json={"approval_id": approval["id"], "decision": "approved", "comment": "<b>ok</b>"},
        headers=MANAGER,
    )
    assert decided.status_code == 200, decided.text
    detail = decided.json()
    assert detail["status"] == "approved"
    assert detail["approvals"][0]["decision"] == "approved"
    assert detail["approvals"][0]["comment"] == "ok"

    again = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/decide",
        json={"approval_id": approval["id"], "decision": "rejected"},
        headers=MANAGER,
    )
    assert again.status_code == 409
    assert again.json()["error"] == "INVALID_INSTANCE_STATE"

    cancel = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/cancel", json={}, headers=TENANT_HEADERS
    )
    assert cancel.status_code == 409


async def test_decision_value_is_validated(client: AsyncClient) -> None:
    """Only approved and rejected are accepted decisions."""
    response = await client.post(
        "/api/v1/workflow-instances/inst-1/decide",
        json={"approval_id": "a1", "decision": "maybe"},
        headers=MANAGER,
    )
    assert response.status_code == 422


async def test_blocked_instance_reassign_and_delegate(client: AsyncClient, directory) -> None:
    """An instance blocked on an empty role is reassigned, then the approver delegates."""
    directory.roles.pop("finance")
    workflow = await _create_workflow(client)
    step = await _add_step(client, workflow["id"], step_name="Finance", approver_role="finance")
    started = await client.post(
        "/api/v1/workflow-instances",
        json={"workflow_id": workflow["id"], "target_entity_type": "expense", "target_entity_id": "exp-2"},
        headers=TENANT_HEADERS,
    )
    instance = started.json()
    assert "role:finance" in instance["blocked_reason"]

    blocked = await client.get(
        "/api/v1/workflow-instances?blocked_only=true", headers=TENANT_HEADERS
    )
    assert [i["id"] for i in blocked.json()] == [instance["id"]]

    retry = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/retry", headers=TENANT_HEADERS
    )
    assert retry.status_code == 200
    assert retry.json()["blocked_reason"] is not None

    reassigned = await client.post(
        f"/api/v1/workflow-instances/{instance['id']}/reassign",
        json={"step_id": step["id"], "approvers": ["cfo@agency.test"]},
        headers=TENANT_HEADERS,
    )
    assert reassigned.status_code == 200, reassigned.text
    [approval] = reassigned.json()["approvals"]
    assert approval["approver"] == "cfo@agency.test"

    delegated = await client.post(
        f"/api/v1/workflow-approvals/{approval['id']}/delegate",
        json={"delegate_to": "deputy@agency.test"},
        headers={**TENANT_HEADERS, "X-Actor-Email": "cfo@agency.test"},
    )
    assert delegated.status_code == 200, delegated.text
    assert delegated.json()["delegated_to"] == "deputy@agency.test"


async def test_trigger_event_starts_instances(client: AsyncClient) -> None:
    """POST /workflow-triggers/events starts listening workflows."""
    workflow = await _create_workflow(client)
    await _add_step(client, workflow["id"], step_name="Manager", approver_role="manager")
    response = await client.post(
        "/api/v1/workflow-triggers/events",
        json={"entity_type": "expense", "event_name": "submitted", "entity_id": "exp-3"},
        headers=TENANT_HEADERS,
    )
    assert response.status_code == 200, response.text
    [instance] = response.json()["started"]
    assert instance["workflow_id"] == workflow["id"]

    role_change = await client.post(
        "/api/v1/workflow-triggers/role-changes",
        json={"role": "manager"},
        headers=TENANT_HEADERS,
    )
    assert role_change.status_code == 200
    assert role_change.json() == {"retried": []}


async def test_unknown_instance_returns_404(client: AsyncClient) -> None:
    """GET on an unknown instance id maps to 404."""
    response = await client.get("/api/v1/workflow-instances/nope", headers=TENANT_HEADERS)
    assert response.status_code == 404


async def test_automation_rule_routes(client: AsyncClient, action_log) -> None:
    """Create, list, update and delete a rule; events report the rules they ran."""
    body = {
        "name": "Record submissions",
        "entity_type": "expense",
        "trigger_event": "submitted",
        "action_type": "record",
        "trigger_condition": {"currency": "EUR"},
        "priority": 3,
    }
    created = await client.post("/api/v1/automation-rules", json=body, headers=MANAGER)
    assert created.status_code == 201, created.text
    rule = created.json()
    assert rule["rule_type"] == "trigger"
    assert rule["created_by"] == "manager@agency.test"

    duplicate = await client.post("/api/v1/automation-rules", json=body, headers=TENANT_HEADERS)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "DUPLICATE_AUTOMATION_RULE_NAME"

    unknown_action = await client.post(
        "/api/v1/automation-rules",
        json={**body, "name": "Teleport", "action_type": "teleport"},
        headers=TENANT_HEADERS,
    )
    assert unknown_action.status_code == 400
    assert unknown_action.json()["details"] == {"field": "action_type"}

    listed = await client.get(
        "/api/v1/automation-rules",
        params={"entity_type": "expense", "is_active": "true", "search": "record"},
        headers=TENANT_HEADERS,
    )
    assert [r["id"] for r in listed.json()] == [rule["id"]]

    event = await client.post(
        "/api/v1/workflow-triggers/events",
        json={
            "entity_type": "expense",
            "event_name": "submitted",
            "entity_id": "exp-4",
            "metadata": {"currency": "EUR"},
        },
        headers=TENANT_HEADERS,
    )
    assert event.status_code == 200, event.text
    assert event.json() == {"started": [], "rules_run": [rule["id"]]}
    assert len(action_log) == 1

    updated = await client.put(
        f"/api/v1/automation-rules/{rule['id']}",
        json={"is_active": False},
        headers=TENANT_HEADERS,
    )
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    deleted = await client.delete(f"/api/v1/automation-rules/{rule['id']}", headers=TENANT_HEADERS)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/automation-rules/{rule['id']}", headers=TENANT_HEADERS)
    assert missing.status_code == 404
