"""Domain errors raised by services and rendered by the API error handlers."""


class CaseboardError(Exception):
    """Base exception for case lifecycle errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Request failed"


class NotFoundError(CaseboardError):
    """Case, board, column or email not found."""

    code = "NOT_FOUND"
    status_code = 404

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class BadRequestError(CaseboardError):
    """Missing mandatory reference or invalid input."""

    code = "BAD_REQUEST"
    status_code = 400


class NoColumnsError(CaseboardError):
    """Board has no columns to place a new case into."""

    code = "NO_COLUMNS"
    status_code = 400

    @classmethod
    def default_message(cls) -> str:
        return "Board has no columns"


class ConflictError(CaseboardError):
    """Unique constraint clash: a case token that survived retries, or a column name or position."""

    code = "CONFLICT"
    status_code = 409


class ForbiddenError(CaseboardError):
    """Caller may not access this case."""

    code = "FORBIDDEN"
    status_code = 403

    @classmethod
    def default_message(cls) -> str:
        return "Not authorized"
