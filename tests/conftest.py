"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Users for each role and JWT token minting
- HTTPX AsyncClient with get_db overridden
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Must be set before the app (and its limiter/settings) are imported
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")

from caseboard.main import app
from caseboard.core.config import settings
from caseboard.core.deps import get_db, COOKIE_NAME
from caseboard.core.security import create_session_token
from caseboard.db.base import Base
from caseboard.db.enums import Role
from caseboard.db.models import Board, User
from caseboard.db.session import configure_sqlite
from caseboard.schemas.auth import UserSession
from caseboard.services import board_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a session on a private in-memory database.

    App code commits freely; the whole database is discarded after the test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(engine)

    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session

    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def storage_path(tmp_path, monkeypatch):
    """Keep uploaded files inside the test's temp dir."""
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(path))
    return path


def _make_user(db: Session, role: Role, display_name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        display_name=display_name,
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_user(db: Session) -> User:
    """Staff member working the boards."""
    return _make_user(db, Role.MEMBER, "Test Member")


@pytest.fixture(scope="function")
def admin_user(db: Session) -> User:
    return _make_user(db, Role.ADMIN, "Test Admin")


@pytest.fixture(scope="function")
def client_user(db: Session) -> User:
    """External requester."""
    return _make_user(db, Role.CLIENT, "Acme Buyer")


def session_for(user: User) -> UserSession:
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


@pytest.fixture(scope="function")
def member_session(test_user: User) -> UserSession:
    return session_for(test_user)


@pytest.fixture(scope="function")
def client_session(client_user: User) -> UserSession:
    return session_for(client_user)


@pytest.fixture(scope="function")
def board(db: Session) -> Board:
    """Board with two columns: Backlog (0) and Done (1, final)."""
    return board_service.create_board(db, "Support", columns=["Backlog", "Done"])


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def make_auth(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    """Create JWT token for the staff test user."""
    return make_auth(test_user)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    _override_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient authenticated as the staff member (session cookie).
    """
    _override_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(db: Session, admin_user: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as an admin (bearer token)."""
    _override_db(db)
    auth = make_auth(admin_user)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {auth.token}"},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_client(db: Session, client_user: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as an external client."""
    _override_db(db)
    auth = make_auth(client_user)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token},
    ) as c:
        yield c

    app.dependency_overrides.clear()
