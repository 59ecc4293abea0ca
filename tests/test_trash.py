import uuid
from datetime import datetime, timedelta, timezone

import pytest

from caseboard.core.exceptions import NotFoundError
from caseboard.db.models import Case, CaseAttachment, CaseEmail, CaseNote
from caseboard.schemas.case import CaseCreate
from caseboard.schemas.email import InboundEmailFields
from caseboard.services import (
    case_service,
    escalation_service,
    inbound_email_service,
    note_service,
    trash_service,
)


def _create(db, board, title="Case") -> Case:
    return case_service.create_case(db, CaseCreate(title=title, board_id=str(board.id)))


def test_soft_delete_moves_case_to_trash(db, board):
    case = _create(db, board)

    trash_service.soft_delete(db, case.id)

    db.refresh(case)
    assert case.deleted_at is not None
    assert [c.id for c in trash_service.list_trash(db)] == [case.id]
    active, total = case_service.list_cases(db, active=False)
    assert total == 0


def test_soft_delete_original_cascades_to_copy(db, board):
    original = _create(db, board)
    copy = escalation_service.escalate(db, original.id)

    trash_service.soft_delete(db, original.id)

    db.refresh(original)
    db.refresh(copy)
    assert original.deleted_at is not None
    assert copy.deleted_at == original.deleted_at


def test_soft_delete_copy_leaves_original(db, board):
    original = _create(db, board)
    copy = escalation_service.escalate(db, original.id)

    trash_service.soft_delete(db, copy.id)

    db.refresh(original)
    assert original.deleted_at is None
    assert original.escalated_to_id == copy.id


def test_restore_clears_deleted_at_without_cascade(db, board):
    original = _create(db, board)
    copy = escalation_service.escalate(db, original.id)
    trash_service.soft_delete(db, original.id)

    restored = trash_service.restore(db, original.id)

    db.refresh(copy)
    assert restored.deleted_at is None
    assert copy.deleted_at is not None


def test_restore_keeps_placement(db, board):
    case = _create(db, board)
    column_id, position = case.column_id, case.position
    trash_service.soft_delete(db, case.id)

    restored = trash_service.restore(db, case.id)
    assert (restored.column_id, restored.position) == (column_id, position)


def test_trash_is_ordered_by_deletion(db, board):
    first = _create(db, board, "First")
    second = _create(db, board, "Second")
    trash_service.soft_delete(db, first.id)
    trash_service.soft_delete(db, second.id)

    assert [c.id for c in trash_service.list_trash(db)] == [second.id, first.id]


def test_permanent_delete_removes_dependents(db, board, test_user):
    case = _create(db, board)
    note_service.create_note(db, case.id, test_user.id, "<p>hello</p>")
    inbound_email_service.route(
        db,
        to=f"card-{case.email_slug}@inbound.example.com",
        cc=None,
        fields=InboundEmailFields(subject="Hi"),
    )
    db.add(
        CaseAttachment(
            case_id=case.id,
            file_name="drawing.pdf",
            mime_type="application/pdf",
            size_bytes=10,
            blob_path="uploads/cases/drawing.pdf",
        )
    )
    db.commit()

    case_id = case.id
    trash_service.soft_delete(db, case_id, permanent=True)

    assert db.get(Case, case_id) is None
    assert db.query(CaseNote).count() == 0
    assert db.query(CaseEmail).count() == 0
    assert db.query(CaseAttachment).count() == 0


def test_permanent_delete_of_copy_clears_original_link(db, board):
    original = _create(db, board)
    copy = escalation_service.escalate(db, original.id)

    trash_service.soft_delete(db, copy.id, permanent=True)

    db.refresh(original)
    assert original.escalated_to_id is None


def test_delete_unknown_case(db):
    with pytest.raises(NotFoundError):
        trash_service.soft_delete(db, uuid.uuid4())
    with pytest.raises(NotFoundError):
        trash_service.restore(db, uuid.uuid4())


def test_purge_removes_only_expired(db, board):
    old = _create(db, board, "Old")
    recent = _create(db, board, "Recent")
    live = _create(db, board, "Live")
    trash_service.soft_delete(db, old.id)
    trash_service.soft_delete(db, recent.id)

    old.deleted_at = datetime.now(timezone.utc) - timedelta(days=45)
    db.commit()

    old_id, recent_id, live_id = old.id, recent.id, live.id

    eligible = trash_service.list_purge_eligible(db, retention_days=30)
    assert [c.id for c in eligible] == [old_id]

    assert trash_service.purge_expired(db, retention_days=30) == 1
    assert db.get(Case, old_id) is None
    assert db.get(Case, recent_id) is not None
    assert db.get(Case, live_id) is not None


def test_purge_with_nothing_eligible(db, board):
    _create(db, board)
    assert trash_service.purge_expired(db) == 0


def test_deleted_at_reloads_as_utc(db, board):
    case = _create(db, board)
    trash_service.soft_delete(db, case.id)
    case_id = case.id

    db.expire_all()
    reloaded = db.get(Case, case_id)

    assert reloaded.deleted_at.tzinfo is not None
    assert reloaded.deleted_at.utcoffset() == timedelta(0)
    assert reloaded.created_at.utcoffset() == timedelta(0)


def test_purge_cutoff_compares_against_stored_utc(db, board):
    case = _create(db, board)
    trash_service.soft_delete(db, case.id)
    case_id = case.id
    db.expire_all()

    later = datetime.now(timezone.utc) + timedelta(days=31)
    assert [c.id for c in trash_service.list_purge_eligible(db, now=later)] == [case_id]
