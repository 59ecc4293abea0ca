"""Utility modules."""

from caseboard.utils.pagination import (
    PaginationParams,
    get_pagination,
    paginate_query,
)
from caseboard.utils.slugs import (
    generate_email_slug,
    generate_quote_id,
    slugify,
)

__all__ = [
    # Pagination
    "PaginationParams",
    "get_pagination",
    "paginate_query",
    # Slugs
    "generate_email_slug",
    "generate_quote_id",
    "slugify",
]
