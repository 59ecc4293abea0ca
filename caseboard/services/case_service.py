"""Case service - case store and per-column ordering."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseboard.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NoColumnsError,
    NotFoundError,
)
from caseboard.core.structured_logging import build_log_context
from caseboard.db.enums import CaseType
from caseboard.db.models import Board, Case
from caseboard.schemas.auth import UserSession
from caseboard.schemas.case import CaseCreate, CaseImport, CaseUpdate
from caseboard.utils.pagination import PaginationParams, paginate_query
from caseboard.utils.slugs import generate_email_slug, generate_quote_id

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 3
UNIQUE_TOKEN_COLUMNS = ("email_slug", "quote_id")


def _is_unique_token_conflict(error: IntegrityError) -> bool:
    """True when the violation is on a randomly generated token column."""
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None) or ""
    message = str(error.orig) if error.orig else str(error)
    return any(column in constraint_name or column in message for column in UNIQUE_TOKEN_COLUMNS)


def next_position(db: Session, column_id: UUID) -> int:
    """
    Append position for a column: last position + 1, or 0 when empty.

    Positions are sparse and may repeat; only the append rule is guaranteed.
    """
    max_position = db.query(func.max(Case.position)).filter(
        Case.column_id == column_id
    ).scalar()
    return 0 if max_position is None else max_position + 1


def add_with_fresh_tokens(db: Session, case: Case) -> Case:
    """
    Flush a new case, regenerating its random tokens on a uniqueness collision.

    Each attempt runs in a savepoint so the caller's transaction survives a
    collision; the caller commits. A collision on email_slug / quote_id is
    retried, anything else (or a collision on every attempt) is raised.
    """
    for attempt in range(CREATE_ATTEMPTS):
        try:
            with db.begin_nested():
                db.add(case)
            return case
        except IntegrityError as exc:
            if not _is_unique_token_conflict(exc):
                raise
            logger.warning(f"Case token collision on insert, attempt={attempt + 1}")
            case.email_slug = generate_email_slug()
            if case.quote_id:
                case.quote_id = generate_quote_id()
    raise ConflictError("Could not allocate a unique case token, please retry")


def insert_with_fresh_tokens(db: Session, case: Case) -> Case:
    """Insert a single case row and commit."""
    try:
        add_with_fresh_tokens(db, case)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(case)
    return case


# =============================================================================
# Create
# =============================================================================

def _resolve_target_board(db: Session, board_ref: str | None, session: UserSession | None) -> Board:
    from caseboard.services import board_service

    if not board_ref and session is not None and session.is_client:
        # Clients submit without picking a board; use the first one
        default_board = db.query(Board).order_by(Board.created_at.asc()).first()
        if default_board:
            return default_board

    if not board_ref:
        raise BadRequestError("boardId is required")

    return board_service.require_board(db, board_ref)


def create_case(
    db: Session,
    data: CaseCreate,
    session: UserSession | None = None,
) -> Case:
    """
    Create a case in the first column of a board.

    Args:
        db: Database session
        data: Case creation data (board given by id or slug)
        session: Requester; None for system-created cases

    Raises:
        BadRequestError: no board reference
        NotFoundError: board does not exist
        NoColumnsError: board has no columns
        ConflictError: token collision survived retries
    """
    from caseboard.services import board_service

    board = _resolve_target_board(db, data.board_id, session)

    first_column = board_service.get_first_column(db, board.id)
    if not first_column:
        raise NoColumnsError()

    case = Case(
        title=data.title,
        description=data.description,
        priority=data.priority.value,
        assignee_id=data.assignee_id,
        board_id=board.id,
        column_id=first_column.id,
        position=next_position(db, first_column.id),
        case_type=data.case_type.value,
        form_payload=data.form_payload or {},
        email_slug=generate_email_slug(),
        creator_id=session.user_id if session else None,
    )

    if data.case_type == CaseType.QUOTE:
        case.quote_id = generate_quote_id()
        case.product_type = data.product_type
        case.specs = data.specs
        case.customer_name = data.customer_name

    if session is not None and session.is_client:
        case.customer_name = session.display_name

    case = insert_with_fresh_tokens(db, case)
    logger.info(
        "Case created",
        extra=build_log_context(case_id=case.id, board_id=board.id, email_slug=case.email_slug),
    )
    return case


def import_case(
    db: Session,
    data: CaseImport,
    session: UserSession | None = None,
) -> Case:
    """
    Create a case from an external CRM record.

    Placed in the requested column, or the board's first column, using the
    same append rule as manual creation.
    """
    from caseboard.services import board_service, crm_service

    board = board_service.require_board(db, data.board_id)
    if data.column_id:
        column = board_service.get_column(db, data.column_id)
        if not column or column.board_id != board.id:
            raise NotFoundError("Column not found")
    else:
        column = board_service.get_first_column(db, board.id)
        if not column:
            raise NoColumnsError()

    record = crm_service.fetch_record(data.crm_id, data.crm_system)
    case_type = CaseType.QUOTE if record.entity_type == "Quote" else CaseType.ORDER

    case = Case(
        title=record.title,
        description=record.description,
        case_type=case_type.value,
        customer_name=record.customer_name,
        crm_system=record.system,
        crm_id=record.id,
        crm_data=record.data,
        board_id=board.id,
        column_id=column.id,
        position=next_position(db, column.id),
        form_payload={"imported": True, "value": record.value},
        email_slug=generate_email_slug(),
        creator_id=session.user_id if session else None,
    )
    if case_type == CaseType.QUOTE:
        case.quote_id = generate_quote_id()

    case = insert_with_fresh_tokens(db, case)
    logger.info(
        f"Case imported from {record.system} crm_id={record.id}",
        extra=build_log_context(case_id=case.id, board_id=board.id),
    )
    return case


# =============================================================================
# Read
# =============================================================================

def get_case(db: Session, case_id: UUID) -> Case | None:
    return db.get(Case, case_id)


def require_case(db: Session, case_id: UUID) -> Case:
    case = get_case(db, case_id)
    if not case:
        raise NotFoundError("Case not found")
    return case


def get_case_for_session(db: Session, case_id: UUID, session: UserSession) -> Case:
    """Load a case, enforcing that client callers only see their own cases."""
    case = require_case(db, case_id)
    if session.is_client and case.creator_id != session.user_id:
        raise ForbiddenError()
    return case


def get_case_by_slug(db: Session, email_slug: str) -> Case | None:
    return db.query(Case).filter(Case.email_slug == email_slug).first()


def list_cases(
    db: Session,
    active: bool = True,
    board_id: UUID | None = None,
    creator_id: UUID | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[Case], int]:
    """
    List cases, newest activity first.

    - Soft-deleted cases are always excluded (see trash_service.list_trash)
    - active=True additionally excludes closed and archived cases
    - creator_id scopes a client caller to their own submissions
    """
    query = db.query(Case).filter(Case.deleted_at.is_(None))

    if active:
        query = query.filter(Case.closed_at.is_(None), Case.archived_at.is_(None))

    if creator_id is not None:
        query = query.filter(Case.creator_id == creator_id)
    elif board_id is not None:
        query = query.filter(Case.board_id == board_id)

    query = query.order_by(Case.updated_at.desc(), Case.id.desc())
    return paginate_query(query, pagination)


def list_cases_for_session(
    db: Session,
    session: UserSession,
    active: bool = True,
    board_id: UUID | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[Case], int]:
    creator_id = session.user_id if session.is_client else None
    return list_cases(
        db,
        active=active,
        board_id=board_id,
        creator_id=creator_id,
        pagination=pagination,
    )


# =============================================================================
# Placement & Updates
# =============================================================================

def move_case(db: Session, case_id: UUID, column_id: UUID, position: int) -> Case:
    """
    Overwrite a case's column and position.

    Siblings in either column are not renumbered, so positions may collide.
    No optimistic locking: concurrent moves are last-write-wins.
    """
    from caseboard.services import board_service

    case = require_case(db, case_id)
    column = board_service.get_column(db, column_id)
    if not column:
        raise NotFoundError("Column not found")

    case.column_id = column.id
    case.board_id = column.board_id
    case.position = position
    db.commit()
    db.refresh(case)
    return case


def update_case(db: Session, case: Case, data: CaseUpdate) -> Case:
    """
    Update case details.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    Identity, placement, tokens and the escalation link are not editable here.
    """
    update_data = data.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        if field == "title" and value is None:
            continue
        if field == "priority":
            if value is None:
                continue
            value = value.value
        setattr(case, field, value)

    db.commit()
    db.refresh(case)
    return case


def archive_case(db: Session, case_id: UUID) -> Case:
    case = require_case(db, case_id)
    if case.archived_at is None:
        case.archived_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(case)
    return case


def close_case(db: Session, case_id: UUID) -> Case:
    case = require_case(db, case_id)
    if case.closed_at is None:
        case.closed_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(case)
    return case
