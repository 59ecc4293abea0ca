"""Escalation service - fork a case into the Escalations lane and move it back out.

State is derived from the stored link rather than kept as an enum:

- normal: escalated_to_id is NULL and nothing points at the case
- escalated_original: escalated_to_id points at the escalated copy
- escalated_copy: another case's escalated_to_id points at this case

De-escalation moves the copy to the De-escalated lane but keeps the link, so
an escalation is "active" or "resolved" depending on the copy's column name.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from caseboard.core.exceptions import BadRequestError, NotFoundError
from caseboard.core.structured_logging import build_log_context
from caseboard.db.enums import (
    DEESCALATED_COLUMN_COLOR,
    DEESCALATED_COLUMN_NAME,
    ESCALATIONS_COLUMN_COLOR,
    ESCALATIONS_COLUMN_NAME,
    EscalationState,
)
from caseboard.db.models import Case
from caseboard.services import board_service, case_service
from caseboard.utils.slugs import generate_email_slug, generate_quote_id

logger = logging.getLogger(__name__)

ESCALATED_TITLE_PREFIX = "[ESCALATED] "
TITLE_MAX_LENGTH = 255

# Never carried over to the escalated copy
EXCLUDED_COPY_FIELDS = {
    "id",
    "created_at",
    "updated_at",
    "closed_at",
    "archived_at",
    "deleted_at",
    "escalated_to_id",
    # Unique tokens: the copy gets its own
    "email_slug",
    "quote_id",
}


def find_escalation_source(db: Session, case_id: UUID) -> Case | None:
    """Inverse of escalated_to_id: the original whose link points at case_id."""
    return db.query(Case).filter(Case.escalated_to_id == case_id).order_by(
        Case.updated_at.desc()
    ).first()


def get_escalation_state(db: Session, case: Case) -> EscalationState:
    if case.escalated_to_id is not None:
        return EscalationState.ESCALATED_ORIGINAL
    if find_escalation_source(db, case.id) is not None:
        return EscalationState.ESCALATED_COPY
    return EscalationState.NORMAL


def is_active_escalation(db: Session, copy: Case) -> bool:
    """An escalation is active while the copy sits in the Escalations lane."""
    column = board_service.get_column(db, copy.column_id)
    return column is not None and column.name == ESCALATIONS_COLUMN_NAME


def _copyable_fields(case: Case) -> dict:
    return {
        attr.key: getattr(case, attr.key)
        for attr in inspect(Case).column_attrs
        if attr.key not in EXCLUDED_COPY_FIELDS
    }


def escalate(db: Session, case_id: UUID) -> Case:
    """
    Duplicate a case into its board's Escalations lane and link the original.

    Runs as one transaction: lane creation, the copy insert and the link
    update either all land or none do. Re-escalating an original is allowed;
    its previous copy, if still sitting in the Escalations lane, is archived
    so it does not linger there unlinked.

    Returns:
        The new escalated copy.

    Raises:
        NotFoundError: case does not exist
        BadRequestError: case is itself an escalated copy
    """
    original = case_service.require_case(db, case_id)

    if original.escalated_to_id is None and find_escalation_source(db, original.id) is not None:
        raise BadRequestError("Case is already an escalated copy")

    try:
        lane = board_service.get_or_create_column(
            db, original.board_id, ESCALATIONS_COLUMN_NAME, ESCALATIONS_COLUMN_COLOR
        )

        fields = _copyable_fields(original)
        title = f"{ESCALATED_TITLE_PREFIX}{original.title}"[:TITLE_MAX_LENGTH]
        fields.update(
            title=title,
            column_id=lane.id,
            position=case_service.next_position(db, lane.id),
            email_slug=generate_email_slug(),
            quote_id=generate_quote_id() if original.quote_id else None,
        )
        copy = Case(**fields)
        case_service.add_with_fresh_tokens(db, copy)

        stale_copy = original.escalated_to
        if (
            stale_copy is not None
            and stale_copy.is_active
            and is_active_escalation(db, stale_copy)
        ):
            stale_copy.archived_at = datetime.now(timezone.utc)
            logger.info(
                "Archived superseded escalation copy",
                extra=build_log_context(case_id=stale_copy.id),
            )

        original.escalated_to_id = copy.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(copy)
    logger.info(
        f"Case escalated: copy={copy.id} lane={lane.id} position={copy.position}",
        extra=build_log_context(case_id=original.id, board_id=original.board_id),
    )
    return copy


def deescalate(db: Session, case_id: UUID) -> Case:
    """
    Move an escalated copy into its board's De-escalated lane.

    Accepts either side of the link: an original resolves to its copy, any
    other case is treated as the copy itself. The original keeps
    escalated_to_id for lineage. A copy already in the lane stays put.

    Returns:
        The case that was moved.
    """
    case = case_service.require_case(db, case_id)

    target = case
    if case.escalated_to_id is not None:
        target = case_service.get_case(db, case.escalated_to_id)
        if target is None:
            raise NotFoundError("Escalated case not found")

    try:
        lane = board_service.get_or_create_column(
            db, target.board_id, DEESCALATED_COLUMN_NAME, DEESCALATED_COLUMN_COLOR
        )
        # Already de-escalated: keep its place instead of appending again
        if target.column_id != lane.id:
            target.column_id = lane.id
            target.position = case_service.next_position(db, lane.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(target)
    logger.info(
        f"Case de-escalated: lane={lane.id} position={target.position}",
        extra=build_log_context(case_id=target.id, board_id=target.board_id),
    )
    return target
