import os

# Must be set before db.py is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_ENV", "test")

import asyncio  # noqa: E402
from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from db import Base, SessionLocal, engine  # noqa: E402
from dependencies import get_now  # noqa: E402
from main import app  # noqa: E402
from models import ClickOutEvent, SearchEvent, User  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 30, 0)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def fixed_now():
    app.dependency_overrides[get_now] = lambda: NOW
    return NOW


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(role="user", **fields) -> str:
        counter["n"] += 1
        session = SessionLocal()
        try:
            user = User(
                email=fields.pop("email", f"{role}{counter['n']}@example.com"),
                name=fields.pop("name", f"{role.title()} {counter['n']}"),
                role=role,
                **fields,
            )
            session.add(user)
            session.commit()
            return user.id
        finally:
            session.close()

    return _make


@pytest.fixture
def admin_id(make_user):
    return make_user("admin")


@pytest.fixture
def moderator_id(make_user):
    return make_user("moderator")


@pytest.fixture
def customer_id(make_user):
    return make_user("user")


def auth(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def add_search(session, created_at, origin="LAX", destination="JFK", **fields):
    event = SearchEvent(
        created_at=created_at,
        origin=origin,
        destination=destination,
        trip_type=fields.pop("trip_type", "round-trip"),
        **fields,
    )
    session.add(event)
    return event


def add_clickout(session, created_at, origin="LAX", destination="JFK", **fields):
    event = ClickOutEvent(
        created_at=created_at,
        origin=origin,
        destination=destination,
        trip_type=fields.pop("trip_type", "round-trip"),
        **fields,
    )
    session.add(event)
    return event


@pytest.fixture
def session_opens(monkeypatch):
    """
    Patch `SessionLocal` in the given modules and record, per session opened,
    whether it was opened on a thread running the event loop.
    """
    on_loop = []

    def _on_event_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    def _factory():
        on_loop.append(_on_event_loop())
        return SessionLocal()

    def _track(*modules):
        for module in modules:
            monkeypatch.setattr(module, "SessionLocal", _factory)
        return on_loop

    return _track
