"""SQLAlchemy ORM models."""

from genieflow.models.activity import ActivityLog
from genieflow.models.compliance import ComplianceItem
from genieflow.models.genie import GenieExecution, GenieSession
from genieflow.models.grant import GrantApplication
from genieflow.models.notification import Notification
from genieflow.models.workflow import WorkflowRun, WorkflowStep

__all__ = [
    "ActivityLog",
    "ComplianceItem",
    "GenieExecution",
    "GenieSession",
    "GrantApplication",
    "Notification",
    "WorkflowRun",
    "WorkflowStep",
]
