"""Structured logging helpers (no message bodies or addresses)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    case_id: UUID | str | None = None,
    board_id: UUID | str | None = None,
    user_id: UUID | str | None = None,
    email_slug: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict safe to attach as ``extra``."""
    context: dict[str, Any] = {}
    if case_id:
        context["case_id"] = str(case_id)
    if board_id:
        context["board_id"] = str(board_id)
    if user_id:
        context["user_id"] = str(user_id)
    if email_slug:
        context["email_slug"] = email_slug
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    return context
