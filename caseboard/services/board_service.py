"""Board service - boards, columns, and lazily created lanes."""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseboard.core.exceptions import ConflictError, NotFoundError
from caseboard.db.enums import DEFAULT_BOARD_COLOR, DEFAULT_BOARD_COLUMNS
from caseboard.db.models import Board, Case, Column
from caseboard.schemas.board import BoardUpdate, ColumnCreate, ColumnUpdate
from caseboard.utils.slugs import slugify

logger = logging.getLogger(__name__)

LANE_CREATE_ATTEMPTS = 3


def _parse_uuid(value: str | UUID) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# Boards
# =============================================================================

def list_boards(db: Session) -> list[Board]:
    return list(db.execute(select(Board).order_by(Board.name)).scalars().all())


def get_board(db: Session, board_ref: str | UUID) -> Board | None:
    """
    Look up a board by id or by slug.

    Callers pass whatever the client sent; both forms resolve transparently.
    """
    board_id = _parse_uuid(board_ref)
    conditions = [Board.slug == str(board_ref)]
    if board_id is not None:
        conditions.append(Board.id == board_id)
    return db.execute(select(Board).where(or_(*conditions))).scalars().first()


def require_board(db: Session, board_ref: str | UUID) -> Board:
    board = get_board(db, board_ref)
    if not board:
        raise NotFoundError("Board not found")
    return board


def _unique_board_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug = base
    suffix = 2
    while db.execute(select(Board.id).where(Board.slug == slug)).first():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def create_board(
    db: Session,
    name: str,
    color: str | None = None,
    columns: list[str] | None = None,
) -> Board:
    """
    Create a board with its initial columns.

    Column names default to To Do / In Progress / Done. The last column is
    marked final.
    """
    column_names = [c.strip() for c in (columns or []) if c and c.strip()]
    if not column_names:
        column_names = list(DEFAULT_BOARD_COLUMNS)

    board = Board(
        name=name.strip(),
        slug=_unique_board_slug(db, name),
        color=color or DEFAULT_BOARD_COLOR,
    )
    db.add(board)
    db.flush()

    db.add_all([
        Column(
            board_id=board.id,
            name=column_name,
            position=index,
            is_final=index == len(column_names) - 1,
        )
        for index, column_name in enumerate(column_names)
    ])
    db.commit()
    db.refresh(board)
    logger.info(f"Board created: slug={board.slug} columns={len(column_names)}")
    return board


def update_board(db: Session, board: Board, data: BoardUpdate) -> Board:
    """Rename or recolor a board. The slug is left unchanged."""
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()

    for field, value in update_data.items():
        setattr(board, field, value)
    db.commit()
    db.refresh(board)
    logger.info(f"Board updated: slug={board.slug} fields={sorted(update_data)}")
    return board


def delete_board(db: Session, board: Board) -> int:
    """
    Delete a board with its columns and every case on it.

    Case notes, emails and attachments go with their cases.

    Returns:
        Number of cases deleted.
    """
    board_id, slug = board.id, board.slug
    cases = db.query(Case).filter(Case.board_id == board_id).all()
    try:
        for case in cases:
            db.delete(case)
        db.flush()
        db.delete(board)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Board deleted: id={board_id} slug={slug} cases={len(cases)}")
    return len(cases)


def get_board_columns_with_cases(db: Session, board: Board) -> list[tuple[Column, list[Case]]]:
    """Columns in display order, each with its non-archived, non-deleted cases."""
    columns = list_columns(db, board.id)
    cases = db.query(Case).filter(
        Case.board_id == board.id,
        Case.archived_at.is_(None),
        Case.deleted_at.is_(None),
    ).order_by(Case.position.asc(), Case.created_at.asc(), Case.id.asc()).all()

    by_column: dict[UUID, list[Case]] = {column.id: [] for column in columns}
    for case in cases:
        by_column.setdefault(case.column_id, []).append(case)
    return [(column, by_column[column.id]) for column in columns]


# =============================================================================
# Columns
# =============================================================================

def list_columns(db: Session, board_id: UUID) -> list[Column]:
    return list(
        db.execute(
            select(Column).where(Column.board_id == board_id).order_by(Column.position)
        ).scalars().all()
    )


def get_column(db: Session, column_id: UUID) -> Column | None:
    return db.get(Column, column_id)


def get_first_column(db: Session, board_id: UUID) -> Column | None:
    """Lowest-position column, where new cases land."""
    return db.execute(
        select(Column).where(Column.board_id == board_id).order_by(Column.position.asc()).limit(1)
    ).scalar_one_or_none()


def get_column_by_name(db: Session, board_id: UUID, name: str) -> Column | None:
    return db.execute(
        select(Column).where(Column.board_id == board_id, Column.name == name)
    ).scalar_one_or_none()


def _next_column_position(db: Session, board_id: UUID) -> int:
    max_position = db.execute(
        select(func.max(Column.position)).where(Column.board_id == board_id)
    ).scalar()
    return 0 if max_position is None else max_position + 1


def get_or_create_column(db: Session, board_id: UUID, name: str, color: str) -> Column:
    """
    Get a named lane on a board, appending it after the last column if missing.

    The insert runs in a savepoint so a concurrent creator (unique board/name
    or board/position violation) only rolls back this attempt; we then re-read
    and use whichever column won. The caller's transaction stays intact.
    """
    for attempt in range(LANE_CREATE_ATTEMPTS):
        column = get_column_by_name(db, board_id, name)
        if column:
            return column

        column = Column(
            board_id=board_id,
            name=name,
            position=_next_column_position(db, board_id),
            color=color,
            is_final=False,
        )
        try:
            with db.begin_nested():
                db.add(column)
        except IntegrityError:
            # Race condition: another transaction created a column first
            logger.info(
                f"Lane creation conflict on board={board_id} name={name} attempt={attempt + 1}"
            )
            continue

        logger.info(f"Lane created: board={board_id} name={name} position={column.position}")
        return column

    column = get_column_by_name(db, board_id, name)
    if column:
        return column
    raise ConflictError(f"Could not create column '{name}'")


def require_column(db: Session, board_id: UUID, column_id: UUID) -> Column:
    column = get_column(db, column_id)
    if not column or column.board_id != board_id:
        raise NotFoundError("Column not found")
    return column


def _commit_column(db: Session, column: Column) -> Column:
    """Commit a column write, reporting a (board, name|position) clash as a conflict."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A column with this name or position already exists on the board")
    db.refresh(column)
    return column


def create_column(db: Session, board: Board, data: ColumnCreate) -> Column:
    """
    Add a column to a board.

    Raises:
        ConflictError: name or position already used on this board
    """
    position = data.position
    if position is None:
        position = _next_column_position(db, board.id)

    column = Column(
        board_id=board.id,
        name=data.name.strip(),
        position=position,
        color=data.color,
        is_final=data.is_final,
    )
    db.add(column)
    column = _commit_column(db, column)
    logger.info(f"Column created: board={board.id} name={column.name} position={column.position}")
    return column


def update_column(db: Session, board: Board, column_id: UUID, data: ColumnUpdate) -> Column:
    """
    Rename, reposition or restyle a column.

    Raises:
        NotFoundError: column is not on this board
        ConflictError: name or position already used on this board
    """
    column = require_column(db, board.id, column_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        update_data["name"] = update_data["name"].strip()
    for field in ("name", "position", "is_final"):
        if field in update_data and update_data[field] is None:
            del update_data[field]

    for field, value in update_data.items():
        setattr(column, field, value)
    return _commit_column(db, column)


def delete_column(db: Session, board: Board, column_id: UUID) -> int:
    """
    Delete a column together with the cases in it.

    Returns:
        Number of cases deleted.
    """
    column = require_column(db, board.id, column_id)
    cases = db.query(Case).filter(Case.column_id == column.id).all()
    try:
        for case in cases:
            db.delete(case)
        db.flush()
        db.delete(column)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Column deleted: board={board.id} column={column_id} cases={len(cases)}")
    return len(cases)
