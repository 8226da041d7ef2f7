"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Check if tables already exist and skip if so
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "workflow_runs" in existing_tables:
        # Tables already exist, skip migration
        return

    # Create compliance_items table
    op.create_table(
        "compliance_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("requirement", sa.Text, nullable=False),
        sa.Column("due_date", sa.DateTime, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="Upcoming"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_compliance_items_status_due", "compliance_items", ["status", "due_date"])
    op.create_index("idx_compliance_items_user_id", "compliance_items", ["user_id"])

    # Create notifications table
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("action_url", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_notifications_user_id", "notifications", ["user_id"])

    # Create grant_applications table
    op.create_table(
        "grant_applications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("project_name", sa.Text, nullable=False),
        sa.Column("funder_name", sa.Text, nullable=False),
        sa.Column("funding_amount", sa.Text),
        sa.Column("deadline", sa.Text),
        sa.Column("proposal_content", sa.Text),
        sa.Column("status", sa.Text, nullable=False, server_default="Not Started"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create activity_log table
    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("entity_type", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Integer),
        sa.Column("details", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_activity_log_user_id", "activity_log", ["user_id"])

    # Create genie_sessions table
    op.create_table(
        "genie_sessions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("genie_type", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="draft"),
        sa.Column("config", JSONB),
        sa.Column("input_data", JSONB),
        sa.Column("output_content", sa.Text),
        sa.Column("output_metadata", JSONB),
        sa.Column("conversation_history", JSONB),
        sa.Column("grant_application_id", sa.Integer),
        sa.Column("donor_id", sa.Integer),
        sa.Column("execution_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_executed_at", sa.DateTime),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_genie_sessions_user_updated", "genie_sessions", ["user_id", "updated_at"])

    # Create genie_executions table
    op.create_table(
        "genie_executions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.Integer, sa.ForeignKey("genie_sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("execution_number", sa.Integer, nullable=False),
        sa.Column("input_snapshot", JSONB),
        sa.Column("output_snapshot", sa.Text),
        sa.Column("status", sa.Text, nullable=False, server_default="success"),
        sa.Column("started_at", sa.DateTime),
        sa.Column("completed_at", sa.DateTime),
        sa.UniqueConstraint("session_id", "execution_number", name="uq_genie_executions_number"),
    )

    # Create workflow_runs table
    op.create_table(
        "workflow_runs",
        sa.Column("run_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("workflow", sa.Text, nullable=False),
        sa.Column("user_id", sa.Text),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("payload", JSONB),
        sa.Column("result", JSONB),
        sa.Column("idempotency_key", sa.Text, unique=True),
        sa.Column("parent_run_id", UUID(as_uuid=True), sa.ForeignKey("workflow_runs.run_id", ondelete="SET NULL")),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text),
        sa.Column("wake_at", sa.DateTime),
        sa.Column("claimed_at", sa.DateTime),
        sa.Column("started_at", sa.DateTime, nullable=False),
        sa.Column("finished_at", sa.DateTime),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_workflow_runs_status_wake", "workflow_runs", ["status", "wake_at"])
    op.create_index("idx_workflow_runs_parent", "workflow_runs", ["parent_run_id"])

    # Create workflow_steps table
    op.create_table(
        "workflow_steps",
        sa.Column("step_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("run_id", UUID(as_uuid=True), sa.ForeignKey("workflow_runs.run_id", ondelete="CASCADE"), nullable=False),
        sa.Column("step_key", sa.Text, nullable=False),
        sa.Column("kind", sa.Text, nullable=False, server_default="step"),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("output", JSONB),
        sa.Column("last_error", sa.Text),
        sa.Column("next_attempt_at", sa.DateTime),
        sa.Column("started_at", sa.DateTime),
        sa.Column("completed_at", sa.DateTime),
        sa.UniqueConstraint("run_id", "step_key", name="uq_workflow_steps_key"),
    )


def downgrade() -> None:
    op.drop_table("workflow_steps")
    op.drop_table("workflow_runs")
    op.drop_table("genie_executions")
    op.drop_table("genie_sessions")
    op.drop_table("activity_log")
    op.drop_table("grant_applications")
    op.drop_table("notifications")
    op.drop_table("compliance_items")
