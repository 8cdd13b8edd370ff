import pytest
from httpx import AsyncClient


async def _create(client: AsyncClient, payload: dict) -> dict:
    response = await client.post("/incidents", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def _review(client: AsyncClient, incident_id: str, decision: str, **extra):
    body = {"decision": decision, "actor": "shift-lead", "reason": "checked with caller", **extra}
    return await client.post(f"/incidents/{incident_id}/review", json=body)


@pytest.mark.asyncio
async def test_create_incident(client: AsyncClient, create_payload: dict):
    """POST creates an incident already routed to human review."""
    data = await _create(client, create_payload)
    assert data["status"] == "needs_human_review"
    assert data["suggestedPriority"] == "P2"
    assert data["confidence"] == 0.75
    assert data["finalPriority"] is None
    assert data["createdBy"] == "dispatcher-ana"
    assert data["urgencyHint"] == "medium"
    assert "createdAt" in data and "updatedAt" in data


@pytest.mark.asyncio
async def test_create_incident_defaults_actor(client: AsyncClient, create_payload: dict):
    create_payload.pop("actor")
    data = await _create(client, create_payload)
    assert data["createdBy"] == "system"


@pytest.mark.asyncio
async def test_rubble_scenario_is_p1(client: AsyncClient):
    data = await _create(client, {
        "report": "Person trapped under rubble, bleeding heavily",
        "location": "Market Square",
        "urgencyHint": "high",
    })
    assert data["suggestedPriority"] == "P1"
    assert data["confidence"] == 0.95
    assert data["status"] == "needs_human_review"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"report": "too short", "location": "Main St"},
    {"report": "A long enough report text", "location": "X"},
    {"report": "A long enough report text", "location": "Main St", "urgencyHint": "urgent"},
    {"location": "Main St"},
])
async def test_create_incident_validation(client: AsyncClient, payload: dict):
    response = await client.post("/incidents", json=payload)
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_get_incident_with_history(client: AsyncClient, create_payload: dict):
    created = await _create(client, create_payload)
    response = await client.get(f"/incidents/{created['id']}")
    assert response.status_code == 200

    data = response.json()
    assert data["incident"]["id"] == created["id"]
    assert data["allowedTransitions"] == ["approved", "rejected"]
    assert len(data["events"]) == 1
    event = data["events"][0]
    assert event["from"] == "draft"
    assert event["to"] == "needs_human_review"
    assert event["reason"] == "auto-routed for review"
    assert event["incidentId"] == created["id"]


@pytest.mark.asyncio
async def test_get_unknown_incident_404(client: AsyncClient):
    response = await client.get("/incidents/does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_incidents_with_status_filter(client: AsyncClient, create_payload: dict):
    first = await _create(client, create_payload)
    second = await _create(client, create_payload)
    await _review(client, second["id"], "reject")

    all_ids = [i["id"] for i in (await client.get("/incidents")).json()]
    assert all_ids == [first["id"], second["id"]]

    rejected = (await client.get("/incidents", params={"status": "rejected"})).json()
    assert [i["id"] for i in rejected] == [second["id"]]

    bad = await client.get("/incidents", params={"status": "archived"})
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_approve_then_second_review_conflicts(client: AsyncClient, create_payload: dict):
    """A second review of an approved incident is rejected and changes nothing."""
    created = await _create(client, create_payload)

    resp = await _review(client, created["id"], "approve", finalPriority="P1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["incident"]["status"] == "approved"
    assert body["incident"]["finalPriority"] == "P1"
    assert body["incident"]["reviewedBy"] == "shift-lead"
    assert body["event"]["from"] == "needs_human_review"
    assert body["event"]["to"] == "approved"

    again = await client.post(
        f"/incidents/{created['id']}/review",
        json={"decision": "reject", "actor": "other-lead", "reason": "second opinion"},
    )
    assert again.status_code == 409
    assert again.json()["from"] == "approved"
    assert again.json()["to"] == "rejected"

    detail = (await client.get(f"/incidents/{created['id']}")).json()
    assert detail["incident"]["status"] == "approved"
    assert detail["incident"]["reviewedBy"] == "shift-lead"
    assert detail["incident"]["finalPriority"] == "P1"


@pytest.mark.asyncio
async def test_review_requires_reason(client: AsyncClient, create_payload: dict):
    created = await _create(client, create_payload)
    resp = await client.post(
        f"/incidents/{created['id']}/review",
        json={"decision": "approve", "actor": "lead", "reason": "ok"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_review_unknown_incident_404(client: AsyncClient):
    resp = await _review(client, "missing", "approve")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_execute_rejected_incident_conflicts(client: AsyncClient, create_payload: dict):
    created = await _create(client, create_payload)
    await _review(client, created["id"], "reject")

    resp = await client.post(f"/incidents/{created['id']}/execute", json={"actor": "dispatcher"})
    assert resp.status_code == 409
    assert resp.json()["from"] == "rejected"
    assert resp.json()["to"] == "executed"


@pytest.mark.asyncio
async def test_reopen_only_from_rejected(client: AsyncClient, create_payload: dict):
    created = await _create(client, create_payload)

    early = await client.post(
        f"/incidents/{created['id']}/reopen", json={"actor": "supervisor", "reason": "again"}
    )
    assert early.status_code == 409

    await _review(client, created["id"], "reject")
    resp = await client.post(
        f"/incidents/{created['id']}/reopen", json={"actor": "supervisor", "reason": "new evidence"}
    )
    assert resp.status_code == 200
    assert resp.json()["incident"]["status"] == "needs_human_review"
    assert resp.json()["incident"]["reviewReason"] == "new evidence"


@pytest.mark.asyncio
async def test_full_dispatch_flow(client: AsyncClient, create_payload: dict):
    """Reject, reopen, approve and execute; history records every step."""
    created = await _create(client, create_payload)
    incident_id = created["id"]

    await _review(client, incident_id, "reject")
    await client.post(f"/incidents/{incident_id}/reopen", json={"actor": "supervisor", "reason": "caller called back"})
    await _review(client, incident_id, "approve")

    resp = await client.post(f"/incidents/{incident_id}/execute", json={"actor": "dispatcher"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["incident"]["status"] == "executed"
    assert body["incident"]["finalPriority"] == "P2"
    assert body["event"]["reason"] == "dispatch executed"

    detail = (await client.get(f"/incidents/{incident_id}")).json()
    assert detail["allowedTransitions"] == []
    assert [(e["from"], e["to"]) for e in detail["events"]] == [
        ("draft", "needs_human_review"),
        ("needs_human_review", "rejected"),
        ("rejected", "needs_human_review"),
        ("needs_human_review", "approved"),
        ("approved", "executed"),
    ]

    again = await client.post(f"/incidents/{incident_id}/execute", json={"actor": "dispatcher"})
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_events_csv_export(client: AsyncClient, create_payload: dict):
    created = await _create(client, create_payload)
    await _review(client, created["id"], "approve")

    resp = await client.get(f"/incidents/{created['id']}/events/csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert f"incident-{created['id']}-events.csv" in resp.headers["content-disposition"]

    lines = resp.text.strip().splitlines()
    assert lines[0] == "id,incidentId,from,to,actor,reason,createdAt"
    assert len(lines) == 3


@pytest.mark.asyncio
async def test_events_csv_unknown_incident_404(client: AsyncClient):
    resp = await client.get("/incidents/missing/events/csv")
    assert resp.status_code == 404
