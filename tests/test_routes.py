"""Tests for the HTTP routes."""

import uuid
from datetime import datetime

from genieflow.models.compliance import ComplianceItem
from genieflow.models.genie import GenieExecution
from genieflow.models.workflow import WorkflowRun

USER = {"X-User-Id": "user-1"}
OTHER_USER = {"X-User-Id": "user-2"}


def add_item(db, user_id="user-1", due_date=datetime(2026, 4, 1)):
    item = ComplianceItem(user_id=user_id, requirement="Submit 990", due_date=due_date)
    db.add(item)
    db.commit()
    return item.id


def create_session(client, **overrides):
    body = {"name": "Spring appeal", "genieType": "grant_writing", "inputData": {"projectName": "Spring appeal"}}
    body.update(overrides)
    response = client.post("/genie-sessions", json=body, headers=USER)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_user_are_rejected(client):
    """Test a missing X-User-Id header is 401."""
    assert client.get("/genie-sessions").status_code == 401
    assert client.post("/workflows/compliance-reminders").status_code == 401


def test_create_session_returns_camel_case(client):
    """Test the created session is a draft serialized in camelCase."""
    session = create_session(client)

    assert session["genieType"] == "grant_writing"
    assert session["status"] == "draft"
    assert session["executionCount"] == 0
    assert session["inputData"] == {"projectName": "Spring appeal"}
    assert session["userId"] == "user-1"


def test_create_session_rejects_bad_input(client):
    """Test invalid genie types and empty names are 422."""
    response = client.post("/genie-sessions", json={"name": "x", "genieType": "poetry"}, headers=USER)
    assert response.status_code == 422

    response = client.post("/genie-sessions", json={"name": "", "genieType": "grant_writing"}, headers=USER)
    assert response.status_code == 422


def test_patch_strips_log_execution(client, test_db):
    """Test logExecution is consumed by the route and logs one execution."""
    session = create_session(client)

    response = client.patch(
        f"/genie-sessions/{session['id']}",
        json={"outputContent": "Proposal body", "status": "completed", "logExecution": True},
        headers=USER,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["executionCount"] == 1
    assert body["status"] == "completed"
    assert body["outputContent"] == "Proposal body"

    detail = client.get(f"/genie-sessions/{session['id']}", headers=USER).json()
    assert len(detail["executions"]) == 1
    assert detail["executions"][0]["executionNumber"] == 1
    assert detail["executions"][0]["outputSnapshot"] == "Proposal body"


def test_patch_only_logs_for_literal_true(client, test_db):
    """Test a truthy but non-boolean logExecution does not log."""
    session = create_session(client)

    response = client.patch(
        f"/genie-sessions/{session['id']}",
        json={"name": "Renamed", "logExecution": "yes"},
        headers=USER,
    )

    assert response.status_code == 200
    assert response.json()["executionCount"] == 0
    assert response.json()["name"] == "Renamed"
    assert test_db.query(GenieExecution).count() == 0


def test_patch_rejects_invalid_status(client):
    """Test an unknown status is 422."""
    session = create_session(client)

    response = client.patch(f"/genie-sessions/{session['id']}", json={"status": "published"}, headers=USER)

    assert response.status_code == 422


def test_other_users_session_is_not_found(client):
    """Test sessions are invisible to other users."""
    session = create_session(client)
    url = f"/genie-sessions/{session['id']}"

    assert client.get(url, headers=OTHER_USER).status_code == 404
    assert client.patch(url, json={"name": "Mine now"}, headers=OTHER_USER).status_code == 404
    assert client.delete(url, headers=OTHER_USER).status_code == 404
    assert client.get(url, headers=USER).json()["name"] == "Spring appeal"


def test_list_sessions_paginates(client):
    """Test list pagination metadata and type filter."""
    for index in range(3):
        create_session(client, name=f"Grant {index}")
    create_session(client, name="Donor practice", genieType="donor_meeting")

    body = client.get("/genie-sessions", params={"limit": 2}, headers=USER).json()
    assert body["total"] == 4
    assert body["totalPages"] == 2
    assert len(body["data"]) == 2

    body = client.get("/genie-sessions", params={"genieType": "donor_meeting"}, headers=USER).json()
    assert body["total"] == 1
    assert body["data"][0]["name"] == "Donor practice"


def test_delete_archives_then_removes(client):
    """Test archive by default and permanent delete on request."""
    session = create_session(client)
    url = f"/genie-sessions/{session['id']}"

    response = client.delete(url, headers=USER)
    assert response.json() == {"success": True, "archived": True}
    assert client.get(url, headers=USER).json()["status"] == "archived"

    response = client.delete(url, params={"permanent": "true"}, headers=USER)
    assert response.json() == {"success": True, "archived": False}
    assert client.get(url, headers=USER).status_code == 404


def test_item_reminder_trigger_is_accepted(client, test_db):
    """Test an item trigger enqueues an item reminder run."""
    item_id = add_item(test_db)
    response = client.post(
        "/workflows/compliance-reminders",
        json={"itemId": item_id, "itemRequirement": "Submit 990", "dueDate": "2026-04-01T00:00:00Z"},
        headers=USER,
    )

    assert response.status_code == 202
    body = response.json()
    assert body["itemId"] == item_id
    assert body["message"] == "Item reminder workflow started"

    run = test_db.get(WorkflowRun, uuid.UUID(body["runId"]))
    assert run.workflow == "item_reminder"
    assert run.status == "queued"
    assert run.user_id == "user-1"
    assert run.payload["userId"] == "user-1"
    assert run.payload["dueDate"] == "2026-04-01T00:00:00"


def test_item_reminder_trigger_validates_input(client, test_db):
    """Test invalid item triggers are 422 and create no run."""
    bad_bodies = [
        {"itemId": 0, "itemRequirement": "Submit 990", "dueDate": "2026-04-01T00:00:00Z"},
        {"itemId": 7, "itemRequirement": "", "dueDate": "2026-04-01T00:00:00Z"},
        {"itemId": 7, "itemRequirement": "x" * 501, "dueDate": "2026-04-01T00:00:00Z"},
        {"itemId": 7, "itemRequirement": "Submit 990", "dueDate": "next tuesday"},
    ]
    for body in bad_bodies:
        response = client.post("/workflows/compliance-reminders", json=body, headers=USER)
        assert response.status_code == 422

    assert test_db.query(WorkflowRun).count() == 0


def test_item_reminder_for_missing_item_is_not_found(client, test_db):
    """Test an item trigger for an unknown item is 404 and creates no run."""
    response = client.post(
        "/workflows/compliance-reminders",
        json={"itemId": 999999, "itemRequirement": "Submit 990", "dueDate": "2026-04-01T00:00:00Z"},
        headers=USER,
    )

    assert response.status_code == 404
    assert test_db.query(WorkflowRun).count() == 0


def test_item_reminder_for_other_users_item_is_not_found(client, test_db):
    """Test a user cannot schedule reminders for someone else's item."""
    item_id = add_item(test_db, user_id="user-2")

    response = client.post(
        "/workflows/compliance-reminders",
        json={"itemId": item_id, "itemRequirement": "Submit 990", "dueDate": "2026-04-01T00:00:00Z"},
        headers=USER,
    )

    assert response.status_code == 404
    assert test_db.query(WorkflowRun).count() == 0


def test_empty_trigger_starts_daily_check(client, test_db):
    """Test a trigger without an item starts the daily sweep."""
    response = client.post("/workflows/compliance-reminders", headers=USER)

    assert response.status_code == 202
    run = test_db.get(WorkflowRun, uuid.UUID(response.json()["runId"]))
    assert run.workflow == "daily_compliance_check"


def test_grant_generation_trigger(client, test_db):
    """Test the grant trigger validates and enqueues a run."""
    response = client.post(
        "/workflows/grant-generation",
        json={"grantId": 3, "projectName": "River Cleanup", "funderName": "Green Futures Fund"},
        headers=USER,
    )

    assert response.status_code == 202
    assert response.json()["grantId"] == 3
    run = test_db.get(WorkflowRun, uuid.UUID(response.json()["runId"]))
    assert run.workflow == "grant_generation"
    assert run.payload["projectName"] == "River Cleanup"

    response = client.post(
        "/workflows/grant-generation",
        json={"grantId": 3, "funderName": "Green Futures Fund"},
        headers=USER,
    )
    assert response.status_code == 422


def test_run_status_is_owner_only(client, test_db, worker):
    """Test run status shows steps to the owner and is hidden from others."""
    item_id = add_item(test_db, due_date=datetime(2099, 1, 1))
    response = client.post(
        "/workflows/compliance-reminders",
        json={"itemId": item_id, "itemRequirement": "Submit 990", "dueDate": "2099-01-01T00:00:00Z"},
        headers=USER,
    )
    run_id = response.json()["runId"]
    worker.run_pending()

    body = client.get(f"/workflows/runs/{run_id}", headers=USER).json()
    assert body["status"] == "sleeping"
    assert body["wakeAt"] == "2098-12-25T00:00:00"
    assert body["steps"][0]["stepKey"] == "wait-7d"
    assert body["steps"][0]["kind"] == "sleep"

    assert client.get(f"/workflows/runs/{run_id}", headers=OTHER_USER).status_code == 404
    assert client.get(f"/workflows/runs/{uuid.uuid4()}", headers=USER).status_code == 404


def test_cron_requires_secret(client, test_db):
    """Test the cron route rejects missing and wrong secrets."""
    assert client.get("/cron/daily-compliance-check").status_code == 401
    response = client.get("/cron/daily-compliance-check", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401
    assert test_db.query(WorkflowRun).count() == 0


def test_cron_starts_one_daily_check_per_day(client, test_db):
    """Test repeated cron calls on one day return the same run."""
    headers = {"Authorization": "Bearer test-cron-secret"}

    first = client.get("/cron/daily-compliance-check", headers=headers)
    second = client.get("/cron/daily-compliance-check", headers=headers)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["runId"] == second.json()["runId"]
    assert test_db.query(WorkflowRun).count() == 1
