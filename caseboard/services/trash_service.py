"""Trash service - soft delete, restore, permanent delete and purge."""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from caseboard.core.config import settings
from caseboard.core.structured_logging import build_log_context
from caseboard.db.models import Case
from caseboard.services import case_service

logger = logging.getLogger(__name__)


def soft_delete(db: Session, case_id: UUID, permanent: bool = False) -> None:
    """
    Move a case to the trash, or remove it outright when permanent.

    Soft-deleting an original also trashes its escalated copy in the same
    transaction. Trashing a copy leaves the original and its link alone.

    Raises:
        NotFoundError: case does not exist
    """
    case = case_service.require_case(db, case_id)

    if permanent:
        hard_delete(db, case)
        return

    now = datetime.now(timezone.utc)
    try:
        case.deleted_at = now
        if case.escalated_to_id is not None:
            copy = case_service.get_case(db, case.escalated_to_id)
            if copy is not None:
                copy.deleted_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Case moved to trash",
        extra=build_log_context(case_id=case_id, board_id=case.board_id),
    )


def hard_delete(db: Session, case: Case) -> None:
    """
    Permanently delete a case with its notes, emails and attachments.

    Any original still linking to this case has its link cleared.
    """
    case_id = case.id
    try:
        db.delete(case)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Case permanently deleted", extra=build_log_context(case_id=case_id))


def restore(db: Session, case_id: UUID) -> Case:
    """Clear deleted_at. Does not cascade to a linked case."""
    case = case_service.require_case(db, case_id)
    case.deleted_at = None
    db.commit()
    db.refresh(case)
    logger.info("Case restored from trash", extra=build_log_context(case_id=case_id))
    return case


def list_trash(db: Session) -> list[Case]:
    """Soft-deleted cases, most recently deleted first."""
    return db.query(Case).filter(Case.deleted_at.is_not(None)).order_by(
        Case.deleted_at.desc(), Case.id.desc()
    ).all()


def purge_cutoff(now: datetime | None = None, retention_days: int | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    days = settings.TRASH_RETENTION_DAYS if retention_days is None else retention_days
    return now - timedelta(days=days)


def list_purge_eligible(
    db: Session,
    now: datetime | None = None,
    retention_days: int | None = None,
) -> list[Case]:
    """Trashed cases whose deleted_at is older than the retention window."""
    cutoff = purge_cutoff(now, retention_days)
    return db.query(Case).filter(
        Case.deleted_at.is_not(None),
        Case.deleted_at <= cutoff,
    ).order_by(Case.deleted_at.asc()).all()


def purge_expired(
    db: Session,
    now: datetime | None = None,
    retention_days: int | None = None,
) -> int:
    """
    Permanently delete every purge-eligible case.

    Invoked by the scheduled `caseboard purge-trash` job; nothing in the API
    sweeps the trash on its own.

    Returns:
        Number of cases deleted.
    """
    eligible = list_purge_eligible(db, now, retention_days)
    try:
        for case in eligible:
            db.delete(case)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if eligible:
        logger.info(f"Trash purge removed {len(eligible)} case(s)")
    return len(eligible)
