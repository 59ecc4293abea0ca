"""Pydantic schemas for case emails and inbound routing."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from caseboard.db.enums import RouteIgnoreReason, RouteStatus


class EmailAttachmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    mime_type: str
    size_bytes: int
    blob_path: str
    content_id: str | None


class CaseEmailRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    direction: str
    from_address: str
    to_address: str
    cc: str
    subject: str
    body_text: str
    body_html: str
    message_id: str | None
    in_reply_to: str | None
    received_at: datetime
    attachments: list[EmailAttachmentRead] = []


class InboundEmailFields(BaseModel):
    """Header and body fields delivered by the mail relay (all optional)."""

    from_address: str | None = None
    subject: str | None = None
    text: str | None = None
    html: str | None = None
    message_id: str | None = None
    in_reply_to: str | None = None


class InboundAttachment(BaseModel):
    """Attachment already written to storage by the webhook receiver."""

    file_name: str
    mime_type: str
    size_bytes: int
    blob_path: str
    content_id: str | None = None


class RouteResult(BaseModel):
    """Outcome of routing one inbound email. Never an error for the relay."""

    status: RouteStatus
    reason: RouteIgnoreReason | None = None
    case_id: UUID | None = None
    email_id: UUID | None = None

    @property
    def accepted(self) -> bool:
        return self.status == RouteStatus.ACCEPTED
