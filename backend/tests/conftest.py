import os

# Must be set before lamont.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lamont.core.database import Base, get_db
from lamont.core.rate_limit import RegistrationRateLimiter
from lamont.core.tokens import JoseTokenService
from lamont.main import app

TEST_SECRET = os.environ["SECRET_KEY"]
SEVEN_DAYS = 7 * 24 * 60 * 60


class FakeClock:
    """Controllable replacement for time.time"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    # One shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def token_service():
    return JoseTokenService(TEST_SECRET, SEVEN_DAYS)


@pytest.fixture
def limiter(clock):
    return RegistrationRateLimiter(limit=5, window_seconds=24 * 60 * 60, clock=clock)


@pytest.fixture
def client(engine, token_service, limiter):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    previous_token_service = app.state.token_service
    previous_limiter = app.state.registration_limiter
    app.state.token_service = token_service
    app.state.registration_limiter = limiter

    # Not used as a context manager, so the lifespan (scheduler, create_all) never runs
    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.token_service = previous_token_service
    app.state.registration_limiter = previous_limiter


def register_payload(email="ada@example.com", password="correct-horse", name="Ada Lovelace"):
    return {
        "name": name,
        "email": email,
        "password": password,
        "confirmPassword": password,
    }


@pytest.fixture
def registered_user(client):
    """Register a user and return (user_json, auth_headers)"""
    response = client.post("/api/auth/register", json=register_payload())
    assert response.status_code == 201
    body = response.json()
    # Clear the cookie so tests opt into a transport explicitly
    client.cookies.clear()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}
