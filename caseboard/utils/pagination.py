"""Pagination utilities for list endpoints."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery


# Pagination limits
DEFAULT_PAGE = 1
MAX_PER_PAGE = 500


@dataclass
class PaginationParams:
    """Pagination parameters from query string. per_page=None means unbounded."""
    page: int
    per_page: int | None

    @property
    def offset(self) -> int:
        if self.per_page is None:
            return 0
        return (self.page - 1) * self.per_page


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    limit: int | None = Query(None, ge=1, le=MAX_PER_PAGE, description=f"Items per page (max {MAX_PER_PAGE})"),
) -> PaginationParams:
    """
    Pagination dependency.

    The board UI loads whole lists, so results are unpaginated unless
    ``limit`` is given.
    """
    return PaginationParams(page=page, per_page=limit)


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams | None) -> tuple[list, int]:
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        (items, total_count)
    """
    total = query.count()
    if pagination is None or pagination.per_page is None:
        return query.all(), total
    items = query.offset(pagination.offset).limit(pagination.per_page).all()
    return items, total
