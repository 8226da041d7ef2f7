"""Server-side genie session store.

Every read, update and delete is scoped to the calling user; a session owned by
someone else is indistinguishable from a missing one.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from genieflow.errors import NotFoundError
from genieflow.models.genie import GenieExecution, GenieSession
from genieflow.schemas.genie_session import GenieSessionCreate, GenieSessionUpdate
from genieflow.services.activity import genie_label, log_activity
from genieflow.time_utils import utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "status",
    "config",
    "input_data",
    "output_content",
    "output_metadata",
    "conversation_history",
    "grant_application_id",
    "donor_id",
)


def _owned_query(db: Session, user_id: str, session_id: int):
    return db.query(GenieSession).filter(
        GenieSession.id == session_id,
        GenieSession.user_id == user_id,
    )


def get_session(db: Session, user_id: str, session_id: int, for_update: bool = False) -> GenieSession:
    """Return the user's session or raise NotFoundError."""
    query = _owned_query(db, user_id, session_id)
    if for_update:
        query = query.with_for_update()
    session = query.first()
    if not session:
        raise NotFoundError(f"Genie session {session_id} not found")
    return session


def list_sessions(
    db: Session,
    user_id: str,
    genie_type: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[GenieSession], int]:
    """List the user's sessions, most recently updated first.

    Returns:
        (sessions on the requested page, total matching sessions)
    """
    query = db.query(GenieSession).filter(GenieSession.user_id == user_id)
    if genie_type:
        query = query.filter(GenieSession.genie_type == genie_type)
    if status:
        query = query.filter(GenieSession.status == status)

    total = query.with_entities(func.count(GenieSession.id)).scalar()
    sessions = (
        query.order_by(GenieSession.updated_at.desc(), GenieSession.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return sessions, total


def create_session(db: Session, user_id: str, data: GenieSessionCreate) -> GenieSession:
    """Create a draft session and log the activity in one transaction."""
    name = data.name.strip()
    now = utcnow()

    session = GenieSession(
        user_id=user_id,
        name=name,
        genie_type=data.genie_type,
        status="draft",
        config=data.config or {},
        input_data=data.input_data,
        output_content=data.output_content,
        output_metadata=data.output_metadata,
        conversation_history=(
            [m.model_dump() for m in data.conversation_history] if data.conversation_history else None
        ),
        grant_application_id=data.grant_application_id,
        donor_id=data.donor_id,
        execution_count=0,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    try:
        db.flush()  # Flush to get the auto-generated id

        log_activity(
            db,
            user_id=user_id,
            action=f"Created new {genie_label(data.genie_type)} session: {name}",
            entity_type="genie_session",
            entity_id=session.id,
            details=f"Genie type: {data.genie_type}",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    logger.info(f"Created genie session {session.id} for user {user_id}")
    return session


def update_session(
    db: Session,
    user_id: str,
    session_id: int,
    data: GenieSessionUpdate,
    log_execution: bool = False,
    now: Optional[datetime] = None,
) -> GenieSession:
    """
    Apply a partial update; optionally log an execution.

    The ownership check, the execution-count increment, the execution insert
    and the field update share one transaction. The increment happens in SQL
    against a locked row, so concurrent saves get distinct execution numbers.

    Raises:
        NotFoundError: If the session does not exist or is not owned by user_id
    """
    now = now or utcnow()
    try:
        session = get_session(db, user_id, session_id, for_update=True)

        changes = data.model_dump(exclude_unset=True)
        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == "name" and value is not None:
                value = value.strip()
            setattr(session, field, value)
        session.updated_at = now

        if log_execution:
            execution_number = db.execute(
                update(GenieSession)
                .where(GenieSession.id == session.id)
                .values(
                    execution_count=func.coalesce(GenieSession.execution_count, 0) + 1,
                    last_executed_at=now,
                )
                .returning(GenieSession.execution_count)
                .execution_options(synchronize_session=False)
            ).scalar_one()

            db.add(
                GenieExecution(
                    session_id=session.id,
                    execution_number=execution_number,
                    input_snapshot=changes.get("input_data") or session.input_data,
                    output_snapshot=changes.get("output_content") or session.output_content,
                    status="success",
                    started_at=now,
                    completed_at=now,
                )
            )
            logger.info(f"Logged execution #{execution_number} for genie session {session.id}")

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    return session


def delete_session(db: Session, user_id: str, session_id: int, permanent: bool = False) -> bool:
    """
    Archive (default) or permanently delete a session.

    Returns:
        True if the session was archived, False if it was deleted
    """
    try:
        session = get_session(db, user_id, session_id, for_update=True)
        label = genie_label(session.genie_type)

        if permanent:
            db.delete(session)
            log_activity(
                db,
                user_id=user_id,
                action=f"Permanently deleted {label} session: {session.name}",
                entity_type="genie_session",
                entity_id=session_id,
                details="Permanently deleted",
            )
        else:
            session.status = "archived"
            session.updated_at = utcnow()
            log_activity(
                db,
                user_id=user_id,
                action=f"Archived {label} session: {session.name}",
                entity_type="genie_session",
                entity_id=session_id,
                details="Archived",
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"{'Deleted' if permanent else 'Archived'} genie session {session_id}")
    return not permanent
