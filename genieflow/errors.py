"""Error taxonomy shared by the workflows, services and routes."""

from datetime import datetime
from typing import Optional


class GenieFlowError(Exception):
    """Base class for application errors."""


class ValidationError(GenieFlowError):
    """Malformed trigger or request input."""


class NotFoundError(GenieFlowError):
    """Entity does not exist or is not visible to the caller."""


class OwnershipError(NotFoundError):
    """Entity exists but belongs to another user.

    Subclasses NotFoundError so callers surface both the same way (404).
    """


class TransientInfrastructureError(GenieFlowError):
    """Temporary failure (DB timeout, provider rate limit); safe to retry."""


class TerminalGenerationError(GenieFlowError):
    """AI generation failed after retries were exhausted."""


class StepFailedError(GenieFlowError):
    """A workflow step failed permanently or exhausted its attempts."""

    def __init__(self, step_key: str, message: str):
        super().__init__(f"Step '{step_key}' failed: {message}")
        self.step_key = step_key
        self.message = message


class WorkflowSuspended(GenieFlowError):
    """Raised inside a workflow to park the run until wake_at."""

    def __init__(self, wake_at: datetime, reason: Optional[str] = None):
        super().__init__(f"Suspended until {wake_at.isoformat()}" + (f" ({reason})" if reason else ""))
        self.wake_at = wake_at
        self.reason = reason
