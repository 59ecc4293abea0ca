from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from caseboard import cli as cli_module
from caseboard.core.security import decode_session_token
from caseboard.db.models import Board, Case, User
from caseboard.schemas.case import CaseCreate
from caseboard.services import case_service, trash_service


@pytest.fixture
def runner(db, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: db)
    return CliRunner()


def test_create_board_command(runner, db):
    result = runner.invoke(
        cli_module.cli,
        ["create-board", "--name", "Hardware Orders", "--column", "Backlog", "--column", "Done"],
    )
    assert result.exit_code == 0, result.output
    assert "hardware-orders" in result.output

    board = db.query(Board).one()
    assert [c.name for c in board.columns] == ["Backlog", "Done"]


def test_create_user_prints_valid_token(runner, db):
    result = runner.invoke(
        cli_module.cli,
        ["create-user", "--email", "Ops@Example.com", "--name", "Ops", "--role", "admin"],
    )
    assert result.exit_code == 0, result.output

    user = db.query(User).one()
    assert user.email == "ops@example.com"
    assert user.role == "admin"

    token = result.output.split("Token: ")[1].strip()
    assert decode_session_token(token)["sub"] == str(user.id)


def test_create_user_rejects_duplicate(runner, db, test_user):
    result = runner.invoke(
        cli_module.cli,
        ["create-user", "--email", test_user.email, "--name", "Dup"],
    )
    assert "already exists" in result.output
    assert db.query(User).count() == 1


def test_revoke_sessions_bumps_token_version(runner, db, test_user):
    user_id, email = test_user.id, test_user.email

    result = runner.invoke(cli_module.cli, ["revoke-sessions", "--email", email])
    assert result.exit_code == 0, result.output

    assert db.get(User, user_id).token_version == 2


def test_purge_trash_command(runner, db, board):
    case = case_service.create_case(db, CaseCreate(title="Old", board_id=board.slug))
    trash_service.soft_delete(db, case.id)
    case.deleted_at = datetime.now(timezone.utc) - timedelta(days=40)
    db.commit()
    case_id = case.id

    dry = runner.invoke(cli_module.cli, ["purge-trash", "--dry-run"])
    assert "1 case(s) eligible" in dry.output
    assert db.get(Case, case_id) is not None

    result = runner.invoke(cli_module.cli, ["purge-trash", "--retention-days", "30"])
    assert result.exit_code == 0, result.output
    assert "Purged 1 case(s)" in result.output
    assert db.get(Case, case_id) is None
