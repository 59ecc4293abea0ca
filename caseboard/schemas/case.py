"""Pydantic schemas for cases."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from caseboard.db.enums import CasePriority, CaseType


class CaseCreate(BaseModel):
    """Request schema for creating a case."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: CasePriority = CasePriority.MEDIUM
    assignee_id: UUID | None = None

    # Board id or slug; optional only for client callers
    board_id: str | None = None

    case_type: CaseType = Field(CaseType.ORDER, alias="type")

    # Quote attributes (ignored unless case_type == QUOTE)
    product_type: str | None = Field(None, max_length=100)
    specs: str | None = None
    customer_name: str | None = Field(None, max_length=255)

    form_payload: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("board_id")
    @classmethod
    def blank_board_is_missing(cls, v: str | None) -> str | None:
        if v is None or v.strip() == "":
            return None
        return v.strip()


class CaseUpdate(BaseModel):
    """Request schema for updating case details (partial)."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: CasePriority | None = None
    assignee_id: UUID | None = None
    product_type: str | None = Field(None, max_length=100)
    specs: str | None = None
    customer_name: str | None = Field(None, max_length=255)


class CaseMove(BaseModel):
    """Move a case to a column at an explicit position."""

    column_id: UUID
    position: int = Field(..., ge=0)


class CaseImport(BaseModel):
    """Import a case from an external CRM record."""

    crm_system: str = Field("Salesforce", max_length=50)
    crm_id: str = Field(..., min_length=1, max_length=100)
    board_id: str
    column_id: UUID | None = None


class EscalationSummary(BaseModel):
    """Where the escalated copy of a case currently sits."""

    id: UUID
    column_id: UUID
    column_name: str
    is_active_escalation: bool


class CaseRead(BaseModel):
    """Case row as exposed to UI and reporting collaborators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email_slug: str
    title: str
    description: str | None
    priority: str

    board_id: UUID
    column_id: UUID
    position: int

    case_type: str
    quote_id: str | None
    product_type: str | None
    specs: str | None
    customer_name: str | None

    crm_system: str | None
    crm_id: str | None

    creator_id: UUID | None
    assignee_id: UUID | None
    escalated_to_id: UUID | None

    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None
    archived_at: datetime | None
    deleted_at: datetime | None


class CaseDetail(CaseRead):
    """Single-case view with dependent counts and escalation placement."""

    notes_count: int = 0
    emails_count: int = 0
    attachments_count: int = 0
    inbound_email: str | None = None
    escalated_to: EscalationSummary | None = None


class DeescalateResponse(BaseModel):
    message: str
    id: UUID


# =============================================================================
# Notes & Attachments
# =============================================================================

class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=50000)


class NoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    author_id: UUID | None
    content: str
    created_at: datetime


class AttachmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    file_name: str
    mime_type: str
    size_bytes: int
    blob_path: str
    uploaded_at: datetime
