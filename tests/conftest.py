"""Pytest configuration and fixtures."""

import os

os.environ.update(
    {
        "APP_ENV": "test",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": "test-secret",
        "ADMIN_EMAIL": "admin@example.com",
        "ADMIN_CODE": "admin-code",
        "CORS_MODE": "wildcard",
        "SMTP_HOST": "",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import get_settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.models.reset import Reset  # noqa: E402, F401
from app.models.user import User  # noqa: E402, F401
from app.services.auth import AuthService  # noqa: E402
from app.services.mailer import get_mailer  # noqa: E402
from app.services.user_store import UserStore  # noqa: E402


class RecordingMailer:
    """Mailer that keeps sent messages in memory."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "body": body})


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="client")
def client_fixture(db_session: Session, mailer: RecordingMailer):
    """Create a test client with the DB and mailer dependencies overridden."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="auth_service")
def auth_service_fixture(mailer: RecordingMailer) -> AuthService:
    return AuthService(get_settings(), mailer)


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, auth_service: AuthService) -> dict:
    """Register an account that has not been approved yet."""
    auth_service.register(db_session, "Test User", "Test@Example.com", "password123")
    user = UserStore(db_session).find_by_email("test@example.com")
    return {"user_id": user.id, "email": user.email, "name": user.name, "password": "password123"}


@pytest.fixture(name="approved_user")
def approved_user_fixture(db_session: Session, auth_service: AuthService, test_user: dict) -> dict:
    """Approved account plus a bearer token for it."""
    auth_service.approve(db_session, test_user["email"], "admin-code")
    result = auth_service.login(db_session, test_user["email"], test_user["password"])
    return {**test_user, "token": result.token}
