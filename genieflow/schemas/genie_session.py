"""Genie session Pydantic schemas (camelCase on the wire)."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GenieType = Literal["grant_writing", "donor_meeting", "newsletter", "email_management"]
SessionStatus = Literal["draft", "in_progress", "completed", "archived"]


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ConversationMessage(CamelModel):
    """One turn of a conversational genie session."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: Optional[str] = None


class GenieSessionCreate(CamelModel):
    """Schema for creating a genie session."""

    name: str = Field(min_length=1, max_length=200)
    genie_type: GenieType
    config: Optional[Dict[str, Any]] = None
    input_data: Optional[Dict[str, Any]] = None
    output_content: Optional[str] = None
    output_metadata: Optional[Dict[str, Any]] = None
    conversation_history: Optional[List[ConversationMessage]] = None
    grant_application_id: Optional[int] = None
    donor_id: Optional[int] = None


class GenieSessionUpdate(CamelModel):
    """Schema for updating a genie session. Only fields that are sent are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[SessionStatus] = None
    config: Optional[Dict[str, Any]] = None
    input_data: Optional[Dict[str, Any]] = None
    output_content: Optional[str] = None
    output_metadata: Optional[Dict[str, Any]] = None
    conversation_history: Optional[List[ConversationMessage]] = None
    grant_application_id: Optional[int] = None
    donor_id: Optional[int] = None


class GenieExecutionResponse(CamelModel):
    """Logged execution of a session."""

    id: int
    session_id: int
    execution_number: int
    input_snapshot: Optional[Dict[str, Any]] = None
    output_snapshot: Optional[str] = None
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GenieSessionResponse(CamelModel):
    """Genie session as returned by the API."""

    id: int
    user_id: str
    name: str
    genie_type: str
    status: str
    config: Optional[Dict[str, Any]] = None
    input_data: Optional[Dict[str, Any]] = None
    output_content: Optional[str] = None
    output_metadata: Optional[Dict[str, Any]] = None
    conversation_history: Optional[List[Dict[str, Any]]] = None
    grant_application_id: Optional[int] = None
    donor_id: Optional[int] = None
    execution_count: int
    last_executed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GenieSessionDetail(GenieSessionResponse):
    """Genie session with its execution history, newest first."""

    executions: List[GenieExecutionResponse] = []


class GenieSessionList(CamelModel):
    """Paginated list of sessions."""

    data: List[GenieSessionResponse]
    page: int
    limit: int
    total: int
    total_pages: int


class GenieSessionDeleteResponse(CamelModel):
    """Result of archiving or deleting a session."""

    success: bool
    archived: bool
