"""SQLAlchemy ORM models for users, boards, cases and case correspondence."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caseboard.db.base import Base
from caseboard.db.enums import (
    DEFAULT_BOARD_COLOR,
    DEFAULT_CASE_PRIORITY,
    DEFAULT_CASE_TYPE,
    Role,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """A staff member or client. Identity management itself is external."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=Role.MEMBER.value, nullable=False)
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# Boards
# =============================================================================

class Board(Base):
    """
    A named pipeline of columns.

    Boards are addressable by id or by their human-readable slug.
    """

    __tablename__ = "boards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(7), default=DEFAULT_BOARD_COLOR, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    columns: Mapped[list["Column"]] = relationship(
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="Column.position",
    )


class Column(Base):
    """
    A stage within a board.

    - position: unique per board, ascending display order
    - name: unique per board so lazily created lanes can be found again
    - is_final: advisory terminal-stage marker
    """

    __tablename__ = "columns"
    __table_args__ = (
        UniqueConstraint("board_id", "name", name="uq_column_board_name"),
        UniqueConstraint("board_id", "position", name="uq_column_board_position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    board_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    color: Mapped[str | None] = mapped_column(String(7), nullable=True)
    is_final: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    board: Mapped["Board"] = relationship(back_populates="columns")


# =============================================================================
# Cases
# =============================================================================

class Case(Base):
    """
    A tracked work item (order, quote, service request, question).

    Placement:
    - position is per column, sparse and not renumbered on moves
    Lifecycle:
    - active iff closed_at, archived_at and deleted_at are all NULL
    Escalation:
    - escalated_to_id points from the original to its escalated copy;
      the inverse (escalated_from) is a lookup on the indexed column
    """

    __tablename__ = "cases"
    __table_args__ = (
        Index("idx_cases_column_position", "column_id", "position"),
        Index("idx_cases_board", "board_id"),
        Index("idx_cases_escalated_to", "escalated_to_id"),
        Index("idx_cases_deleted_at", "deleted_at"),
        Index("idx_cases_creator", "creator_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email_slug: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), default=DEFAULT_CASE_PRIORITY, nullable=False)

    # Placement
    board_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False
    )
    column_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("columns.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Classification (quote attributes only populated for QUOTE)
    case_type: Mapped[str] = mapped_column(String(20), default=DEFAULT_CASE_TYPE, nullable=False)
    quote_id: Mapped[str | None] = mapped_column(String(16), unique=True, nullable=True)
    product_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    specs: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Provenance
    form_payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    crm_system: Mapped[str | None] = mapped_column(String(50), nullable=True)
    crm_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    crm_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Ownership
    creator_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Escalation link
    escalated_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="SET NULL"), nullable=True
    )

    # Lifecycle
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    board: Mapped["Board"] = relationship()
    column: Mapped["Column"] = relationship()
    creator: Mapped["User | None"] = relationship(foreign_keys=[creator_id])
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assignee_id])
    escalated_to: Mapped["Case | None"] = relationship(
        remote_side="Case.id",
        foreign_keys=[escalated_to_id],
        back_populates="escalated_from",
    )
    escalated_from: Mapped[list["Case"]] = relationship(
        foreign_keys=[escalated_to_id],
        back_populates="escalated_to",
    )
    notes: Mapped[list["CaseNote"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseNote.created_at.desc()",
    )
    emails: Mapped[list["CaseEmail"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseEmail.received_at.desc()",
    )
    attachments: Mapped[list["CaseAttachment"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseAttachment.uploaded_at.desc()",
    )

    @property
    def is_active(self) -> bool:
        return self.closed_at is None and self.archived_at is None and self.deleted_at is None


class CaseNote(Base):
    """Append-only note on a case."""

    __tablename__ = "case_notes"
    __table_args__ = (Index("idx_case_notes_case", "case_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    case: Mapped["Case"] = relationship(back_populates="notes")


# =============================================================================
# Correspondence & Files
# =============================================================================

class CaseEmail(Base):
    """
    An email on a case thread.

    Inbound rows are written by the inbound email router; message_id and
    in_reply_to carry RFC 5322 threading headers when the relay provides them.
    """

    __tablename__ = "case_emails"
    __table_args__ = (
        Index("idx_case_emails_case", "case_id", "received_at"),
        Index("idx_case_emails_message_id", "case_id", "message_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    direction: Mapped[str] = mapped_column(String(3), nullable=False)  # in | out
    from_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    to_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cc: Mapped[str] = mapped_column(Text, default="", nullable=False)
    subject: Mapped[str] = mapped_column(Text, default="", nullable=False)
    body_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    body_html: Mapped[str] = mapped_column(Text, default="", nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(998), nullable=True)
    in_reply_to: Mapped[str | None] = mapped_column(String(998), nullable=True)
    received_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    case: Mapped["Case"] = relationship(back_populates="emails")
    attachments: Mapped[list["CaseEmailAttachment"]] = relationship(
        back_populates="email",
        cascade="all, delete-orphan",
    )


class CaseEmailAttachment(Base):
    """File that arrived with an email. Only metadata is stored here."""

    __tablename__ = "case_email_attachments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_emails.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    blob_path: Mapped[str] = mapped_column(String(512), nullable=False)
    content_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    email: Mapped["CaseEmail"] = relationship(back_populates="attachments")


class CaseAttachment(Base):
    """File attached directly to a case."""

    __tablename__ = "case_attachments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    uploaded_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    blob_path: Mapped[str] = mapped_column(String(512), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    case: Mapped["Case"] = relationship(back_populates="attachments")
