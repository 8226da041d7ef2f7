"""Tests for the workflow worker."""

from genieflow.models.workflow import WorkflowRun
from genieflow.workflows.runs import start_workflow


def test_unknown_workflow_is_retried_then_failed(test_db, clock, worker, drain):
    """Test unexpected errors requeue the run until the retry limit."""
    run = start_workflow(test_db, "no_such_workflow", {}, now=clock())
    run_id = run.run_id

    worker.run_pending()
    test_db.expire_all()
    run = test_db.get(WorkflowRun, run_id)
    assert run.status == "sleeping"
    assert run.attempts == 1
    assert "Unknown workflow" in run.last_error

    drain()

    run = test_db.get(WorkflowRun, run_id)
    assert run.status == "failed"
    assert run.attempts == worker.max_retries
    assert run.result == {"success": False, "error": "Unknown workflow: no_such_workflow"}
    assert run.finished_at is not None


def test_bad_payload_fails_without_retry(test_db, clock, worker):
    """Test an invalid payload fails the run on the first attempt."""
    run = start_workflow(test_db, "item_reminder", {"userId": "user-1", "itemId": -3}, now=clock())
    run_id = run.run_id

    worker.run_pending()

    test_db.expire_all()
    run = test_db.get(WorkflowRun, run_id)
    assert run.status == "failed"
    assert run.attempts == 0


def test_run_without_user_fails(test_db, clock, worker):
    """Test a reminder run with no owner is rejected."""
    run = start_workflow(
        test_db,
        "send_reminder",
        {"itemId": 1, "itemRequirement": "File 990", "dueDate": "2026-03-05T00:00:00"},
        now=clock(),
    )
    run_id = run.run_id

    worker.run_pending()

    test_db.expire_all()
    run = test_db.get(WorkflowRun, run_id)
    assert run.status == "failed"
    assert "no userId" in run.last_error


def test_completed_runs_are_not_picked_up_again(test_db, clock, worker):
    """Test only due runs are claimed."""
    start_workflow(test_db, "daily_compliance_check", {}, now=clock())

    assert worker.run_pending() == 1
    assert worker.run_pending() == 0
