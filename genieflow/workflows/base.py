"""Base workflow with durable steps, sleeps and retries."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from genieflow.errors import StepFailedError, ValidationError, WorkflowSuspended
from genieflow.models.workflow import WorkflowRun, WorkflowStep
from genieflow.time_utils import utcnow
from genieflow.workflows.retry_policy import RetryPolicy, is_transient
from genieflow.workflows.runs import enqueue_run

logger = logging.getLogger(__name__)


class BaseWorkflow:
    """
    Base class for all durable workflows.

    A run's _run() is executed from the top every time the worker resumes it.
    Work that must happen once goes through step(); waits go through
    sleep_until(). Both return their checkpointed outcome on replay, so _run()
    must be deterministic given its payload and the run's started_at.
    """

    NAME = ""

    def __init__(
        self,
        run: WorkflowRun,
        db_session: Session,
        llm_client=None,
        clock: Callable[[], datetime] = utcnow,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize base workflow."""
        self.run = run
        self.db = db_session
        self.llm = llm_client
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

    @property
    def started_at(self) -> datetime:
        """Reference time persisted when the run was created."""
        return self.run.started_at

    def now(self) -> datetime:
        return self.clock()

    def execute(self) -> Dict[str, Any]:
        """
        Execute (or resume) the workflow.

        Returns:
            Workflow result dict

        Raises:
            WorkflowSuspended: When the run must wait for a sleep or a step retry
            StepFailedError: When a step failed and the workflow did not handle it
        """
        logger.info(f"Workflow {self.__class__.__name__} executing run {self.run.run_id}")
        return self._run(self.run.payload or {})

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run the workflow logic (to be implemented by subclasses).

        Args:
            payload: Input payload

        Returns:
            Output dict
        """
        raise NotImplementedError

    def user_id_from(self, payload: Dict[str, Any]) -> str:
        """Owner of the run: the payload userId, else the run's user."""
        user_id = payload.get("userId") or self.run.user_id
        if not user_id:
            raise ValidationError(f"Run {self.run.run_id} has no userId")
        return user_id

    def failure_result(self, error: Exception) -> Dict[str, Any]:
        """Result stored on the run when it fails permanently."""
        return {"success": False, "error": str(error)}

    def _load_step(self, key: str) -> Optional[WorkflowStep]:
        return (
            self.db.query(WorkflowStep)
            .filter(WorkflowStep.run_id == self.run.run_id, WorkflowStep.step_key == key)
            .first()
        )

    def step(self, key: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run fn once for this run, checkpointing its JSON-serializable result.

        Database writes made by fn through self.db are committed in the same
        transaction as the checkpoint. A failed attempt is rolled back; if the
        error is transient and attempts remain, the run is suspended until the
        backoff elapses, otherwise StepFailedError is raised.
        """
        record = self._load_step(key)
        if record is not None:
            if record.status == "completed":
                logger.info(f"Replaying step {key} of run {self.run.run_id}")
                return (record.output or {}).get("value")
            if record.status == "failed":
                raise StepFailedError(key, record.last_error or "failed")
            if record.status == "retrying" and record.next_attempt_at and record.next_attempt_at > self.now():
                raise WorkflowSuspended(record.next_attempt_at, reason=f"retry {key}")
        else:
            record = WorkflowStep(run_id=self.run.run_id, step_key=key, kind="step", attempts=0)
            self.db.add(record)

        # Checkpoint the attempt before doing the work
        record.status = "running"
        record.attempts = (record.attempts or 0) + 1
        record.started_at = self.now()
        record.next_attempt_at = None
        self.db.commit()
        attempt = record.attempts

        try:
            value = fn(*args, **kwargs)

            record.status = "completed"
            record.output = {"value": value}
            record.last_error = None
            record.completed_at = self.now()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            self._fail_attempt(record, attempt, e)

        logger.info(f"Step {key} of run {self.run.run_id} completed (attempt {attempt})")
        return value

    def _fail_attempt(self, record: WorkflowStep, attempt: int, error: Exception) -> None:
        """Record a failed attempt and raise WorkflowSuspended or StepFailedError."""
        key = record.step_key
        now = self.now()
        record.last_error = str(error) or error.__class__.__name__

        if is_transient(error) and self.retry_policy.should_retry(attempt):
            record.status = "retrying"
            record.next_attempt_at = self.retry_policy.next_attempt_at(now, attempt)
            self.db.commit()
            logger.warning(
                f"Step {key} of run {self.run.run_id} failed (attempt {attempt}/"
                f"{self.retry_policy.max_attempts}), retrying at {record.next_attempt_at}: {error}"
            )
            raise WorkflowSuspended(record.next_attempt_at, reason=f"retry {key}") from error

        record.status = "failed"
        record.completed_at = now
        self.db.commit()
        logger.error(f"Step {key} of run {self.run.run_id} failed after {attempt} attempt(s): {error}")
        raise StepFailedError(key, record.last_error) from error

    def sleep_until(self, key: str, wake_at: datetime) -> None:
        """
        Durably wait until wake_at.

        The first call persists the wake time and suspends the run; once the
        worker resumes it at or after wake_at, the sleep is marked elapsed and
        later replays pass straight through.
        """
        record = self._load_step(key)
        if record is not None and record.status == "completed":
            return

        now = self.now()
        if record is None:
            record = WorkflowStep(
                run_id=self.run.run_id,
                step_key=key,
                kind="sleep",
                status="sleeping",
                attempts=0,
                next_attempt_at=wake_at,
                started_at=now,
            )
            self.db.add(record)

        if record.next_attempt_at <= now:
            record.status = "completed"
            record.completed_at = now
            self.db.commit()
            logger.info(f"Sleep {key} of run {self.run.run_id} elapsed")
            return

        self.db.commit()
        logger.info(f"Run {self.run.run_id} sleeping until {record.next_attempt_at} ({key})")
        raise WorkflowSuspended(record.next_attempt_at, reason=key)

    def start_child(
        self,
        key: str,
        workflow: str,
        payload: Dict[str, Any],
        user_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Enqueue an independent child run as a checkpointed step; returns its run id."""

        def _enqueue() -> str:
            child = enqueue_run(
                self.db,
                workflow,
                payload,
                user_id=user_id,
                idempotency_key=idempotency_key,
                parent_run_id=self.run.run_id,
                now=self.now(),
            )
            return str(child.run_id)

        return self.step(key, _enqueue)
