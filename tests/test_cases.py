import uuid

import pytest

from caseboard.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NoColumnsError,
    NotFoundError,
)
from caseboard.db.enums import CaseType
from caseboard.db.models import Board, Case
from caseboard.schemas.case import CaseCreate, CaseImport, CaseUpdate
from caseboard.services import board_service, case_service
from caseboard.utils.pagination import PaginationParams
from caseboard.utils.slugs import generate_email_slug


def _create(db, board, title="Case", **kwargs) -> Case:
    return case_service.create_case(db, CaseCreate(title=title, board_id=str(board.id), **kwargs))


def test_new_cases_append_to_first_column(db, board):
    backlog = board_service.get_first_column(db, board.id)

    c1 = _create(db, board, "C1")
    c2 = _create(db, board, "C2")
    c3 = _create(db, board, "C3")

    assert [c.column_id for c in (c1, c2, c3)] == [backlog.id] * 3
    assert [c.position for c in (c1, c2, c3)] == [0, 1, 2]


def test_append_follows_max_position_not_count(db, board):
    backlog = board_service.get_first_column(db, board.id)
    c1 = _create(db, board, "C1")
    case_service.move_case(db, c1.id, backlog.id, 7)

    c2 = _create(db, board, "C2")
    assert c2.position == 8


def test_create_accepts_board_slug(db, board):
    case = case_service.create_case(db, CaseCreate(title="By slug", board_id=board.slug))
    assert case.board_id == board.id


def test_create_sets_defaults(db, board):
    case = _create(db, board)
    assert case.case_type == CaseType.ORDER.value
    assert case.priority == "medium"
    assert case.quote_id is None
    assert case.escalated_to_id is None
    assert case.closed_at is None and case.archived_at is None and case.deleted_at is None
    assert case.form_payload == {}


def test_create_assigns_distinct_email_slugs(db, board):
    slugs = {_create(db, board, f"C{i}").email_slug for i in range(10)}
    assert len(slugs) == 10


def test_quote_case_gets_quote_id_and_attributes(db, board):
    case = _create(
        db,
        board,
        "Rack quote",
        case_type=CaseType.QUOTE,
        product_type="Servers",
        specs="2U, 128GB",
        customer_name="Initech",
    )
    assert case.quote_id is not None
    assert case.product_type == "Servers"
    assert case.specs == "2U, 128GB"
    assert case.customer_name == "Initech"


def test_quote_attributes_ignored_for_orders(db, board):
    case = _create(db, board, "Order", product_type="Servers")
    assert case.quote_id is None
    assert case.product_type is None


def test_create_requires_board_for_staff(db, board, member_session):
    with pytest.raises(BadRequestError):
        case_service.create_case(db, CaseCreate(title="No board"), member_session)


def test_create_unknown_board_is_not_found(db):
    with pytest.raises(NotFoundError):
        case_service.create_case(db, CaseCreate(title="X", board_id=str(uuid.uuid4())))


def test_create_on_board_without_columns(db):
    empty = Board(name="Empty", slug="empty")
    db.add(empty)
    db.commit()

    with pytest.raises(NoColumnsError):
        case_service.create_case(db, CaseCreate(title="X", board_id=str(empty.id)))
    assert db.query(Case).count() == 0


def test_client_without_board_uses_first_board(db, board, client_user, client_session):
    board_service.create_board(db, "Later board")

    case = case_service.create_case(db, CaseCreate(title="Help"), client_session)

    assert case.board_id == board.id
    assert case.creator_id == client_user.id
    assert case.customer_name == client_user.display_name


def test_client_only_reads_own_cases(db, board, client_session, member_session):
    own = case_service.create_case(db, CaseCreate(title="Mine"), client_session)
    other = _create(db, board, "Staff case")

    assert case_service.get_case_for_session(db, own.id, client_session).id == own.id
    with pytest.raises(ForbiddenError):
        case_service.get_case_for_session(db, other.id, client_session)

    cases, total = case_service.list_cases_for_session(db, client_session)
    assert [c.id for c in cases] == [own.id]
    assert total == 1

    cases, total = case_service.list_cases_for_session(db, member_session)
    assert total == 2


def test_list_filters_lifecycle(db, board):
    live = _create(db, board, "Live")
    archived = _create(db, board, "Archived")
    closed = _create(db, board, "Closed")
    trashed = _create(db, board, "Trashed")

    case_service.archive_case(db, archived.id)
    case_service.close_case(db, closed.id)
    from caseboard.services import trash_service
    trash_service.soft_delete(db, trashed.id)

    active, _ = case_service.list_cases(db)
    assert {c.id for c in active} == {live.id}

    everything, _ = case_service.list_cases(db, active=False)
    assert {c.id for c in everything} == {live.id, archived.id, closed.id}


def test_list_filters_by_board_and_paginates(db, board):
    other = board_service.create_board(db, "Other")
    for i in range(5):
        _create(db, board, f"C{i}")
    _create(db, other, "Elsewhere")

    cases, total = case_service.list_cases(db, board_id=board.id)
    assert total == 5
    assert all(c.board_id == board.id for c in cases)

    page, total = case_service.list_cases(
        db, board_id=board.id, pagination=PaginationParams(page=2, per_page=2)
    )
    assert total == 5
    assert len(page) == 2


def test_move_overwrites_column_and_position(db, board):
    done = board_service.get_column_by_name(db, board.id, "Done")
    c1 = _create(db, board, "C1")
    c2 = _create(db, board, "C2")

    moved = case_service.move_case(db, c1.id, done.id, 0)
    assert moved.column_id == done.id
    assert moved.position == 0

    # Siblings are never renumbered
    db.refresh(c2)
    assert c2.position == 1


def test_move_to_other_board_updates_board(db, board):
    other = board_service.create_board(db, "Other")
    target = board_service.get_first_column(db, other.id)
    case = _create(db, board)

    moved = case_service.move_case(db, case.id, target.id, 3)
    assert moved.board_id == other.id


def test_move_unknown_column(db, board):
    case = _create(db, board)
    with pytest.raises(NotFoundError):
        case_service.move_case(db, case.id, uuid.uuid4(), 0)


def test_move_unknown_case(db, board):
    column = board_service.get_first_column(db, board.id)
    with pytest.raises(NotFoundError):
        case_service.move_case(db, uuid.uuid4(), column.id, 0)


def test_update_only_touches_provided_fields(db, board):
    case = _create(db, board, "Original", description="keep me")

    updated = case_service.update_case(db, case, CaseUpdate(title="Renamed"))
    assert updated.title == "Renamed"
    assert updated.description == "keep me"


def test_archive_is_idempotent(db, board):
    case = _create(db, board)
    first = case_service.archive_case(db, case.id).archived_at
    second = case_service.archive_case(db, case.id).archived_at
    assert first == second


def test_import_quote_from_crm(db, board):
    case = case_service.import_case(db, CaseImport(crm_id="Q-1001", board_id=str(board.id)))

    assert case.case_type == CaseType.QUOTE.value
    assert case.title == "Quote for Q-1001 - Server Hardware"
    assert case.customer_name == "Acme Corp"
    assert case.crm_system == "Salesforce"
    assert case.crm_id == "Q-1001"
    assert case.quote_id is not None
    assert case.form_payload["imported"] is True


def test_import_order_into_named_column(db, board):
    done = board_service.get_column_by_name(db, board.id, "Done")
    case = case_service.import_case(
        db, CaseImport(crm_id="1001", board_id=board.slug, column_id=done.id)
    )

    assert case.case_type == CaseType.ORDER.value
    assert case.title == "Order 1001 - Network Upgrade"
    assert case.column_id == done.id
    assert case.position == 0


def test_import_rejects_column_from_another_board(db, board):
    other = board_service.create_board(db, "Other")
    foreign = board_service.get_first_column(db, other.id)
    with pytest.raises(NotFoundError):
        case_service.import_case(
            db, CaseImport(crm_id="1001", board_id=str(board.id), column_id=foreign.id)
        )


def test_slug_collision_is_retried(db, board, monkeypatch):
    taken = _create(db, board, "First").email_slug
    slugs = iter([taken, "zzzzzzzz"])
    monkeypatch.setattr(case_service, "generate_email_slug", lambda: next(slugs))

    case = _create(db, board, "Second")

    assert case.email_slug == "zzzzzzzz"
    assert db.query(Case).count() == 2


def test_quote_id_collision_is_retried(db, board, monkeypatch):
    taken = _create(db, board, "First", case_type=CaseType.QUOTE).quote_id
    quote_ids = iter([taken, "QFRESH01"])
    monkeypatch.setattr(case_service, "generate_quote_id", lambda: next(quote_ids))

    case = _create(db, board, "Second", case_type=CaseType.QUOTE)

    assert case.quote_id == "QFRESH01"


def test_persistent_slug_collision_is_conflict(db, board, monkeypatch):
    taken = _create(db, board, "First").email_slug
    monkeypatch.setattr(case_service, "generate_email_slug", lambda: taken)

    with pytest.raises(ConflictError):
        _create(db, board, "Second")

    assert db.query(Case).count() == 1
    monkeypatch.setattr(case_service, "generate_email_slug", generate_email_slug)
    # Session is still usable after the failed create
    assert _create(db, board, "Third").title == "Third"
