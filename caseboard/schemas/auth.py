"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from caseboard.db.enums import Role


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency and handed to services
    that scope results by requester (client callers see only their own cases).
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    display_name: str

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT
