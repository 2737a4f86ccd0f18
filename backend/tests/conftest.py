"""Shared test fixtures for the accounts service."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["ALLOW_PUBLIC_REGISTER"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENABLE_PROMETHEUS_METRICS"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.database import Base, engine, get_db, SessionLocal
from app.core.session_store import SessionContext, clear_sessions
from app.models import Account, Contact, Permission, User
from app.services.auth_service import hash_password, create_token, decode_token


def override_get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db
client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables and forget session state between tests."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    clear_sessions()
    yield


@pytest.fixture
def db_session():
    """Provide a database session for test setup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _create_user(db, username: str, full_name: str, role: str = "user") -> User:
    user = User(
        username=username,
        email=f"{username}@test.com",
        hashed_password=hash_password("secret123"),
        full_name=full_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def current_user(db_session):
    """The logged-in user and its bearer token."""
    user = _create_user(db_session, "current", "Current User", role="admin")
    return user, create_token(user)


@pytest.fixture
def other_user(db_session):
    user = _create_user(db_session, "other", "Other User")
    return user, create_token(user)


@pytest.fixture
def third_user(db_session):
    user = _create_user(db_session, "third", "Third User")
    return user, create_token(user)


@pytest.fixture
def auth_headers(current_user):
    _, token = current_user
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def xml_headers(auth_headers):
    return {**auth_headers, "Accept": "application/xml"}


@pytest.fixture
def session_state(current_user):
    """Session-scoped state behind the current user's token."""
    _, token = current_user
    return SessionContext(decode_token(token)["sid"])


@pytest.fixture
def make_account(db_session):
    """Factory that inserts accounts directly, bypassing the API."""
    def _make(owner: User, name: str = "Acme", access: str = "Public", shared_with=(), **fields) -> Account:
        account = Account(user_id=owner.id, name=name, access=access, **fields)
        db_session.add(account)
        db_session.flush()
        for uid in shared_with:
            db_session.add(Permission(user_id=uid, asset_type="Account", asset_id=account.id))
        db_session.commit()
        db_session.refresh(account)
        return account
    return _make


@pytest.fixture
def make_contact(db_session):
    def _make(owner: User, first_name: str = "Ana", access: str = "Public", **fields) -> Contact:
        contact = Contact(user_id=owner.id, first_name=first_name, access=access, **fields)
        db_session.add(contact)
        db_session.commit()
        db_session.refresh(contact)
        return contact
    return _make
