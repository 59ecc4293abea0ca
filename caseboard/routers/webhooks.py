"""Webhooks router - inbound mail relay."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from caseboard.core.deps import get_db
from caseboard.core.rate_limit import WEBHOOK_LIMIT, limiter
from caseboard.schemas.email import InboundAttachment, InboundEmailFields, RouteResult
from caseboard.services import attachment_service, inbound_email_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _form_value(form, key: str) -> str | None:
    value = form.get(key)
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)


def _discard(attachments: list[InboundAttachment]) -> None:
    for attachment in attachments:
        attachment_service.delete_stored_file(attachment.blob_path)


def _store_attachments(form) -> list[InboundAttachment]:
    """
    Write every file part of the form to storage.

    Files over the size limit are skipped so the rest of the email still
    lands on the case. Any other storage error removes what was already
    written and propagates.
    """
    stored = []
    try:
        for _, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue
            filename = value.filename or "attachment"
            try:
                blob_path, size = attachment_service.store_file(
                    attachment_service.build_storage_key(attachment_service.EMAIL_PREFIX, filename),
                    value.file,
                )
            except attachment_service.FileTooLargeError:
                logger.warning(f"Inbound attachment skipped, over size limit: {filename!r}")
                continue
            stored.append(
                InboundAttachment(
                    file_name=filename,
                    mime_type=value.content_type or "application/octet-stream",
                    size_bytes=size,
                    blob_path=blob_path,
                    content_id=value.headers.get("content-id") if value.headers else None,
                )
            )
    except Exception:
        _discard(stored)
        raise
    return stored


def _ignored(result: RouteResult) -> dict:
    return {"status": result.status.value, "reason": result.reason.value}


@router.post("/sendgrid/inbound")
@limiter.limit(WEBHOOK_LIMIT)
async def receive_inbound_email(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Receive a parsed email from the mail relay (multipart form).

    Mail addressed to card-<slug>@ is attached to the case with that slug.
    Unroutable mail is acknowledged with 200 so the relay does not retry it.
    Storage failures surface as 500 so the relay does retry.

    Files are only written once the case is known and the delivery is not
    a duplicate, and are removed again if the email is not recorded.
    """
    form = await request.form()
    to = _form_value(form, "to")
    cc = _form_value(form, "cc")

    fields = InboundEmailFields(
        from_address=_form_value(form, "from"),
        subject=_form_value(form, "subject"),
        text=_form_value(form, "text"),
        html=_form_value(form, "html"),
        message_id=_form_value(form, "message_id"),
        in_reply_to=_form_value(form, "in_reply_to"),
    )

    _, ignored = inbound_email_service.resolve_case(db, to, cc, fields.message_id)
    if ignored is not None:
        logger.info(f"Inbound webhook ignored: reason={ignored.reason.value} to={to!r}")
        return _ignored(ignored)

    attachments = _store_attachments(form)
    try:
        result = inbound_email_service.route(db, to, cc, fields, attachments)
    except Exception:
        _discard(attachments)
        raise

    if not result.accepted:
        # Another delivery of the same message won the race
        _discard(attachments)
        return _ignored(result)
    return {"status": result.status.value, "case_id": str(result.case_id), "email_id": str(result.email_id)}
