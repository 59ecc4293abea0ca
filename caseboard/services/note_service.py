"""Note service - append-only notes on cases."""

from uuid import UUID

import nh3
from sqlalchemy.orm import Session

from caseboard.db.models import CaseNote
from caseboard.services import case_service

# Allowed HTML tags for rich text notes
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(html: str) -> str:
    """Sanitize HTML to prevent XSS, allowing only safe rich text tags."""
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def create_note(
    db: Session,
    case_id: UUID,
    author_id: UUID | None,
    content: str,
) -> CaseNote:
    """Append a note to a case. Notes are never edited afterwards."""
    case_service.require_case(db, case_id)

    note = CaseNote(
        case_id=case_id,
        author_id=author_id,
        content=sanitize_html(content),
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def list_notes(db: Session, case_id: UUID) -> list[CaseNote]:
    """List notes for a case, newest first."""
    return db.query(CaseNote).filter(
        CaseNote.case_id == case_id,
    ).order_by(CaseNote.created_at.desc()).all()
