"""Boards router - pipelines and their columns."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from caseboard.core.deps import get_current_session, get_db, require_roles
from caseboard.db.enums import ROLES_CAN_MANAGE_BOARDS
from caseboard.schemas.auth import UserSession
from caseboard.schemas.board import (
    BoardCreate,
    BoardDetail,
    BoardRead,
    BoardUpdate,
    ColumnCreate,
    ColumnRead,
    ColumnUpdate,
    ColumnWithCases,
)
from caseboard.schemas.case import CaseRead
from caseboard.services import board_service

router = APIRouter()


@router.get("", response_model=list[BoardRead])
def list_boards(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return board_service.list_boards(db)


@router.post("", response_model=BoardRead, status_code=201)
def create_board(
    data: BoardCreate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    """Create a board. Columns default to To Do / In Progress / Done."""
    return board_service.create_board(db, data.name, color=data.color, columns=data.columns)


@router.get("/{board_ref}", response_model=BoardDetail)
def get_board(
    board_ref: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Board by id or slug, with its columns in order and the live cases in each.

    Archived and trashed cases are left out.
    """
    board = board_service.require_board(db, board_ref)
    columns = [
        ColumnWithCases(
            id=column.id,
            board_id=column.board_id,
            name=column.name,
            position=column.position,
            color=column.color,
            is_final=column.is_final,
            cases=[CaseRead.model_validate(c) for c in cases],
        )
        for column, cases in board_service.get_board_columns_with_cases(db, board)
    ]
    return BoardDetail(
        id=board.id,
        name=board.name,
        slug=board.slug,
        color=board.color,
        created_at=board.created_at,
        columns=columns,
    )


@router.put("/{board_ref}", response_model=BoardRead)
def update_board(
    board_ref: str,
    data: BoardUpdate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    board = board_service.require_board(db, board_ref)
    return board_service.update_board(db, board, data)


@router.delete("/{board_ref}", status_code=204)
def delete_board(
    board_ref: str,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    """Delete a board with all of its columns and cases."""
    board = board_service.require_board(db, board_ref)
    board_service.delete_board(db, board)
    return Response(status_code=204)


# =============================================================================
# Columns
# =============================================================================

@router.post("/{board_ref}/columns", response_model=ColumnRead, status_code=201)
def create_column(
    board_ref: str,
    data: ColumnCreate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    """Add a column; without a position it goes after the last one."""
    board = board_service.require_board(db, board_ref)
    return board_service.create_column(db, board, data)


@router.put("/{board_ref}/columns/{column_id}", response_model=ColumnRead)
def update_column(
    board_ref: str,
    column_id: UUID,
    data: ColumnUpdate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    board = board_service.require_board(db, board_ref)
    return board_service.update_column(db, board, column_id, data)


@router.delete("/{board_ref}/columns/{column_id}", status_code=204)
def delete_column(
    board_ref: str,
    column_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_BOARDS)),
    db: Session = Depends(get_db),
):
    """Delete a column. Cases in it are deleted too."""
    board = board_service.require_board(db, board_ref)
    board_service.delete_column(db, board, column_id)
    return Response(status_code=204)
