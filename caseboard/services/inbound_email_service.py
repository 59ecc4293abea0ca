"""Inbound email routing - attach relayed mail to the case named in its address.

Mail for a case is addressed to card-<email_slug>@<inbound domain>. The relay
retries anything that is not a 2xx, so "no slug" and "unknown case" are
reported as ignored results rather than errors. Storage failures still raise
so the relay tries again later.
"""

import logging
import re

from sqlalchemy.orm import Session

from caseboard.core.structured_logging import build_log_context
from caseboard.db.enums import EmailDirection, RouteIgnoreReason, RouteStatus
from caseboard.db.models import Case, CaseEmail, CaseEmailAttachment
from caseboard.schemas.email import InboundAttachment, InboundEmailFields, RouteResult
from caseboard.services import case_service

logger = logging.getLogger(__name__)

CARD_ADDRESS_PATTERN = re.compile(r"card-([a-z0-9]+)@")
DEFAULT_FROM = "Unknown"
DEFAULT_SUBJECT = "(No Subject)"


def extract_slug(to: str | None, cc: str | None = None) -> str | None:
    """First card-<slug>@ token across the To and Cc headers, lower-cased."""
    recipients = f"{to or ''},{cc or ''}".lower()
    match = CARD_ADDRESS_PATTERN.search(recipients)
    return match.group(1) if match else None


def is_duplicate_delivery(db: Session, case_id, message_id: str | None) -> bool:
    """A redelivered message carries the same Message-ID as a stored one."""
    if not message_id:
        return False
    return db.query(CaseEmail.id).filter(
        CaseEmail.case_id == case_id,
        CaseEmail.message_id == message_id,
    ).first() is not None


def resolve_case(
    db: Session,
    to: str | None,
    cc: str | None,
    message_id: str | None = None,
) -> tuple[Case | None, RouteResult | None]:
    """
    Find the case an inbound email belongs to, without writing anything.

    Returns:
        (case, None) when the email should be stored, or (None, ignored
        result) for no_slug, case_not_found and duplicate deliveries.
    """
    slug = extract_slug(to, cc)
    if slug is None:
        logger.info("Inbound email ignored: no card slug in recipients")
        return None, RouteResult(status=RouteStatus.IGNORED, reason=RouteIgnoreReason.NO_SLUG)

    case = case_service.get_case_by_slug(db, slug)
    if case is None:
        logger.info("Inbound email ignored: case not found", extra=build_log_context(email_slug=slug))
        return None, RouteResult(status=RouteStatus.IGNORED, reason=RouteIgnoreReason.CASE_NOT_FOUND)

    if is_duplicate_delivery(db, case.id, message_id or None):
        logger.info("Inbound email ignored: duplicate delivery", extra=build_log_context(case_id=case.id))
        return None, RouteResult(
            status=RouteStatus.IGNORED,
            reason=RouteIgnoreReason.DUPLICATE,
            case_id=case.id,
        )
    return case, None


def route(
    db: Session,
    to: str | None,
    cc: str | None,
    fields: InboundEmailFields,
    attachments: list[InboundAttachment] | None = None,
) -> RouteResult:
    """
    Record an inbound email (and its attachments) on the addressed case.

    Returns:
        accepted with case and email ids, or ignored with the reason
        (no_slug, case_not_found, duplicate).
    """
    message_id = fields.message_id or None
    case, ignored = resolve_case(db, to, cc, message_id)
    if ignored is not None:
        return ignored

    try:
        email = CaseEmail(
            case_id=case.id,
            direction=EmailDirection.INBOUND.value,
            from_address=fields.from_address or DEFAULT_FROM,
            to_address=to or "",
            cc=cc or "",
            subject=fields.subject or DEFAULT_SUBJECT,
            body_text=fields.text or "",
            body_html=fields.html or "",
            message_id=message_id,
            in_reply_to=fields.in_reply_to or None,
        )
        db.add(email)
        db.flush()

        for attachment in attachments or []:
            db.add(
                CaseEmailAttachment(
                    email_id=email.id,
                    file_name=attachment.file_name,
                    mime_type=attachment.mime_type,
                    size_bytes=attachment.size_bytes,
                    blob_path=attachment.blob_path,
                    content_id=attachment.content_id,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Inbound email attached with {len(attachments or [])} attachment(s)",
        extra=build_log_context(case_id=case.id),
    )
    return RouteResult(
        status=RouteStatus.ACCEPTED,
        case_id=case.id,
        email_id=email.id,
    )


def list_case_emails(db: Session, case_id) -> list[CaseEmail]:
    return db.query(CaseEmail).filter(CaseEmail.case_id == case_id).order_by(
        CaseEmail.received_at.desc()
    ).all()
