from caseboard.db.enums import RouteIgnoreReason, RouteStatus
from caseboard.db.models import CaseEmail, CaseEmailAttachment
from caseboard.schemas.case import CaseCreate
from caseboard.schemas.email import InboundAttachment, InboundEmailFields
from caseboard.services import case_service, inbound_email_service


def _case(db, board):
    return case_service.create_case(db, CaseCreate(title="Mail case", board_id=str(board.id)))


def test_extract_slug_from_to():
    assert inbound_email_service.extract_slug("card-ab12cd34@inbound.example.com") == "ab12cd34"


def test_extract_slug_from_cc_and_display_names():
    slug = inbound_email_service.extract_slug(
        "Sales <sales@example.com>",
        "Board <CARD-XY99@inbound.example.com>",
    )
    assert slug == "xy99"


def test_extract_slug_takes_first_match():
    to = "card-first1@x.com, card-second2@x.com"
    assert inbound_email_service.extract_slug(to) == "first1"


def test_extract_slug_without_card_address():
    assert inbound_email_service.extract_slug("sales@example.com", None) is None
    assert inbound_email_service.extract_slug(None, None) is None


def test_route_attaches_email_to_case(db, board):
    case = _case(db, board)

    result = inbound_email_service.route(
        db,
        to=f"card-{case.email_slug}@inbound.example.com",
        cc="",
        fields=InboundEmailFields(
            from_address="buyer@example.com",
            subject="PO attached",
            text="See attached",
            html="<p>See attached</p>",
            message_id="<m1@example.com>",
        ),
    )

    assert result.status == RouteStatus.ACCEPTED
    assert result.case_id == case.id
    email = db.get(CaseEmail, result.email_id)
    assert email.direction == "in"
    assert email.from_address == "buyer@example.com"
    assert email.subject == "PO attached"
    assert email.body_text == "See attached"
    assert email.message_id == "<m1@example.com>"


def test_route_fills_defaults(db, board):
    case = _case(db, board)

    result = inbound_email_service.route(
        db, to=f"card-{case.email_slug}@x.com", cc=None, fields=InboundEmailFields()
    )

    email = db.get(CaseEmail, result.email_id)
    assert email.from_address == "Unknown"
    assert email.subject == "(No Subject)"
    assert email.body_text == ""
    assert email.body_html == ""


def test_route_records_attachments(db, board):
    case = _case(db, board)

    result = inbound_email_service.route(
        db,
        to=f"card-{case.email_slug}@x.com",
        cc=None,
        fields=InboundEmailFields(subject="Files"),
        attachments=[
            InboundAttachment(
                file_name="po.pdf",
                mime_type="application/pdf",
                size_bytes=1024,
                blob_path="uploads/emails/po.pdf",
            ),
            InboundAttachment(
                file_name="logo.png",
                mime_type="image/png",
                size_bytes=64,
                blob_path="uploads/emails/logo.png",
                content_id="<logo>",
            ),
        ],
    )

    rows = db.query(CaseEmailAttachment).filter(
        CaseEmailAttachment.email_id == result.email_id
    ).all()
    assert sorted(r.file_name for r in rows) == ["logo.png", "po.pdf"]


def test_route_without_slug_is_ignored(db, board):
    result = inbound_email_service.route(
        db, to="sales@example.com", cc=None, fields=InboundEmailFields()
    )
    assert result.status == RouteStatus.IGNORED
    assert result.reason == RouteIgnoreReason.NO_SLUG
    assert db.query(CaseEmail).count() == 0


def test_route_unknown_slug_is_ignored(db, board):
    result = inbound_email_service.route(
        db, to="card-nosuch99@x.com", cc=None, fields=InboundEmailFields()
    )
    assert result.status == RouteStatus.IGNORED
    assert result.reason == RouteIgnoreReason.CASE_NOT_FOUND
    assert db.query(CaseEmail).count() == 0


def test_route_reaches_trashed_case(db, board):
    from caseboard.services import trash_service

    case = _case(db, board)
    trash_service.soft_delete(db, case.id)

    result = inbound_email_service.route(
        db, to=f"card-{case.email_slug}@x.com", cc=None, fields=InboundEmailFields()
    )
    assert result.accepted


def test_redelivery_is_ignored_as_duplicate(db, board):
    case = _case(db, board)
    fields = InboundEmailFields(subject="Once", message_id="<dup@example.com>")
    to = f"card-{case.email_slug}@x.com"

    first = inbound_email_service.route(db, to=to, cc=None, fields=fields)
    second = inbound_email_service.route(db, to=to, cc=None, fields=fields)

    assert first.accepted
    assert second.status == RouteStatus.IGNORED
    assert second.reason == RouteIgnoreReason.DUPLICATE
    assert db.query(CaseEmail).count() == 1


def test_messages_without_id_are_never_duplicates(db, board):
    case = _case(db, board)
    to = f"card-{case.email_slug}@x.com"

    inbound_email_service.route(db, to=to, cc=None, fields=InboundEmailFields(subject="A"))
    inbound_email_service.route(db, to=to, cc=None, fields=InboundEmailFields(subject="A"))

    assert len(inbound_email_service.list_case_emails(db, case.id)) == 2


def test_resolve_case_writes_nothing(db, board):
    case = _case(db, board)

    found, ignored = inbound_email_service.resolve_case(
        db, f"card-{case.email_slug}@x.com", None, "<new@example.com>"
    )
    assert found.id == case.id
    assert ignored is None
    assert db.query(CaseEmail).count() == 0

    found, ignored = inbound_email_service.resolve_case(db, "card-nosuch99@x.com", None)
    assert found is None
    assert ignored.reason == RouteIgnoreReason.CASE_NOT_FOUND
