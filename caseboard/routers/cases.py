"""Cases router - API endpoints for the case lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.orm import Session

from caseboard.core.config import settings
from caseboard.core.deps import get_current_session, get_db, require_roles
from caseboard.db.enums import ROLES_STAFF
from caseboard.db.models import Case
from caseboard.schemas.auth import UserSession
from caseboard.schemas.case import (
    AttachmentRead,
    CaseCreate,
    CaseDetail,
    CaseImport,
    CaseMove,
    CaseRead,
    CaseUpdate,
    DeescalateResponse,
    EscalationSummary,
    NoteCreate,
    NoteRead,
)
from caseboard.schemas.email import CaseEmailRead
from caseboard.services import (
    attachment_service,
    board_service,
    case_service,
    escalation_service,
    inbound_email_service,
    note_service,
    trash_service,
)
from caseboard.utils.pagination import PaginationParams, get_pagination
from caseboard.utils.slugs import inbound_address

router = APIRouter()


def _case_to_detail(case: Case, db: Session) -> CaseDetail:
    """Case with dependent counts and where its escalated copy sits."""
    escalated_to = None
    if case.escalated_to is not None:
        copy = case.escalated_to
        column = board_service.get_column(db, copy.column_id)
        escalated_to = EscalationSummary(
            id=copy.id,
            column_id=copy.column_id,
            column_name=column.name if column else "",
            is_active_escalation=escalation_service.is_active_escalation(db, copy),
        )

    detail = CaseDetail.model_validate(case)
    detail.notes_count = len(case.notes)
    detail.emails_count = len(case.emails)
    detail.attachments_count = len(case.attachments)
    detail.inbound_email = inbound_address(case.email_slug, settings.INBOUND_EMAIL_DOMAIN)
    detail.escalated_to = escalated_to
    return detail


@router.get("", response_model=list[CaseRead])
def list_cases(
    response: Response,
    active: bool = True,
    board_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    List cases, most recently updated first.

    - active=true (default) hides closed and archived cases
    - trashed cases never appear here (see /cases/trash/all)
    - client callers only see cases they created
    """
    cases, total = case_service.list_cases_for_session(
        db,
        session,
        active=active,
        board_id=board_id,
        pagination=pagination,
    )

    response.headers["X-Total-Count"] = str(total)
    if pagination.per_page is not None:
        response.headers["X-Page"] = str(pagination.page)
        response.headers["X-Limit"] = str(pagination.per_page)
    return [CaseRead.model_validate(c) for c in cases]


# NOTE: /trash/all and /import MUST come before /{case_id} routes
@router.get("/trash/all", response_model=list[CaseRead])
def list_trash(
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """Soft-deleted cases, most recently deleted first."""
    return [CaseRead.model_validate(c) for c in trash_service.list_trash(db)]


@router.post("/import", response_model=CaseRead, status_code=201)
def import_case(
    data: CaseImport,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """Create a case from a CRM record."""
    case = case_service.import_case(db, data, session)
    return CaseRead.model_validate(case)


@router.post("", response_model=CaseRead, status_code=201)
def create_case(
    data: CaseCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a case in the first column of the given board (id or slug)."""
    case = case_service.create_case(db, data, session)
    return CaseRead.model_validate(case)


@router.get("/{case_id}", response_model=CaseDetail)
def get_case(
    case_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case = case_service.get_case_for_session(db, case_id, session)
    return _case_to_detail(case, db)


@router.put("/{case_id}", response_model=CaseRead)
def update_case(
    case_id: UUID,
    data: CaseUpdate,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    case = case_service.require_case(db, case_id)
    case = case_service.update_case(db, case, data)
    return CaseRead.model_validate(case)


@router.post("/{case_id}/move", response_model=CaseRead)
def move_case(
    case_id: UUID,
    data: CaseMove,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """Set column and position. Other cases are not renumbered."""
    case = case_service.move_case(db, case_id, data.column_id, data.position)
    return CaseRead.model_validate(case)


@router.patch("/{case_id}/archive", response_model=CaseRead)
def archive_case(
    case_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    case = case_service.archive_case(db, case_id)
    return CaseRead.model_validate(case)


@router.patch("/{case_id}/close", response_model=CaseRead)
def close_case(
    case_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    case = case_service.close_case(db, case_id)
    return CaseRead.model_validate(case)


@router.delete("/{case_id}", status_code=204)
def delete_case(
    case_id: UUID,
    permanent: bool = Query(False),
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """
    Move a case to the trash (default) or delete it permanently.

    Trashing an original also trashes its escalated copy.
    """
    trash_service.soft_delete(db, case_id, permanent=permanent)
    return Response(status_code=204)


@router.post("/{case_id}/restore", response_model=CaseRead)
def restore_case(
    case_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    case = trash_service.restore(db, case_id)
    return CaseRead.model_validate(case)


# =============================================================================
# Escalation
# =============================================================================

@router.post("/{case_id}/escalate", response_model=CaseRead, status_code=201)
def escalate_case(
    case_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """Fork the case into the board's Escalations lane. Returns the copy."""
    copy = escalation_service.escalate(db, case_id)
    return CaseRead.model_validate(copy)


@router.post("/{case_id}/deescalate", response_model=DeescalateResponse)
def deescalate_case(
    case_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_STAFF)),
    db: Session = Depends(get_db),
):
    """Move the escalated copy (given either side of the link) to De-escalated."""
    target = escalation_service.deescalate(db, case_id)
    return DeescalateResponse(message="De-escalated successfully", id=target.id)


# =============================================================================
# Notes, Emails, Attachments
# =============================================================================

@router.get("/{case_id}/notes", response_model=list[NoteRead])
def list_notes(
    case_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case_service.get_case_for_session(db, case_id, session)
    return note_service.list_notes(db, case_id)


@router.post("/{case_id}/notes", response_model=NoteRead, status_code=201)
def create_note(
    case_id: UUID,
    data: NoteCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case_service.get_case_for_session(db, case_id, session)
    return note_service.create_note(db, case_id, session.user_id, data.content)


@router.get("/{case_id}/emails", response_model=list[CaseEmailRead])
def list_emails(
    case_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case_service.get_case_for_session(db, case_id, session)
    return inbound_email_service.list_case_emails(db, case_id)


@router.get("/{case_id}/attachments", response_model=list[AttachmentRead])
def list_attachments(
    case_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case_service.get_case_for_session(db, case_id, session)
    return attachment_service.list_case_attachments(db, case_id)


@router.post("/{case_id}/attachments", response_model=AttachmentRead, status_code=201)
def upload_attachment(
    case_id: UUID,
    file: UploadFile = File(...),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    case_service.get_case_for_session(db, case_id, session)
    return attachment_service.upload_case_attachment(
        db=db,
        case_id=case_id,
        user_id=session.user_id,
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        file=file.file,
    )
