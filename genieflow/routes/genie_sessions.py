"""Genie session routes."""

import logging
import math
from typing import Any, Dict, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from genieflow.database import get_db
from genieflow.deps import get_current_user_id
from genieflow.errors import NotFoundError
from genieflow.schemas.genie_session import (
    GenieSessionCreate,
    GenieSessionDeleteResponse,
    GenieSessionDetail,
    GenieSessionList,
    GenieSessionResponse,
    GenieSessionUpdate,
)
from genieflow.services import genie_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/genie-sessions", tags=["genie-sessions"])


@router.get("", response_model=GenieSessionList)
def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    genie_type: Optional[str] = Query(None, alias="genieType"),
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's genie sessions."""
    sessions, total = genie_sessions.list_sessions(
        db, user_id, genie_type=genie_type, status=status, page=page, limit=limit
    )
    return GenieSessionList(
        data=[GenieSessionResponse.model_validate(s) for s in sessions],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )


@router.post("", response_model=GenieSessionResponse, status_code=201)
def create_session(
    data: GenieSessionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a new draft genie session."""
    session = genie_sessions.create_session(db, user_id, data)
    return GenieSessionResponse.model_validate(session)


@router.get("/{session_id}", response_model=GenieSessionDetail)
def get_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get a session with its execution history."""
    try:
        session = genie_sessions.get_session(db, user_id, session_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Genie session not found")

    return GenieSessionDetail.model_validate(session)


@router.patch("/{session_id}", response_model=GenieSessionResponse)
def update_session(
    session_id: int,
    body: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Update a session.

    A `logExecution: true` flag in the body is removed before validation and
    logs one execution, incrementing the session's execution count.
    """
    log_execution = body.pop("logExecution", None) is True

    try:
        data = GenieSessionUpdate.model_validate(body)
    except pydantic.ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        session = genie_sessions.update_session(db, user_id, session_id, data, log_execution=log_execution)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Genie session not found")

    return GenieSessionResponse.model_validate(session)


@router.delete("/{session_id}", response_model=GenieSessionDeleteResponse)
def delete_session(
    session_id: int,
    permanent: bool = False,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Archive a session, or delete it with ?permanent=true."""
    try:
        archived = genie_sessions.delete_session(db, user_id, session_id, permanent=permanent)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Genie session not found")

    return GenieSessionDeleteResponse(success=True, archived=archived)
