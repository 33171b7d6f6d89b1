"""
Pytest configuration and fixtures.

mongomock stands in for the MongoDB server; every test gets a fresh database.
"""
import itertools
from typing import Any, Callable, Dict, Iterator

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.database import Database

from assignments import AssignmentManager
from database import ensure_indexes
from main import create_app
from progress import ProgressTracker
from settings import Settings
from storage import Store


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_name="mentor-buddy-tracker-test",
        app_env="test",
        log_level="WARNING",
        seed_default_topics=False,
    )


@pytest.fixture
def db() -> Database:
    database = mongomock.MongoClient()["mentor_buddy_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def store(db: Database) -> Store:
    return Store(db)


@pytest.fixture
def assignments(store: Store) -> AssignmentManager:
    return AssignmentManager(store)


@pytest.fixture
def tracker(store: Store) -> ProgressTracker:
    return ProgressTracker(store)


@pytest.fixture
def client(db: Database, test_settings: Settings) -> Iterator[TestClient]:
    app = create_app(db=db, settings=test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(store: Store) -> Callable[..., Dict[str, Any]]:
    counter = itertools.count(1)

    def _make(role: str = "buddy", domain: str = "frontend", name: str = None, email: str = None):
        n = next(counter)
        return store.create_user({
            "name": name or f"{role.capitalize()} {n}",
            "email": email or f"{role}{n}@example.com",
            "role": role,
            "domain": domain,
        })

    return _make


@pytest.fixture
def make_buddy(store: Store, make_user) -> Callable[..., Dict[str, Any]]:
    def _make(domain: str = "frontend", status: str = "active", **user_fields):
        user = make_user(role="buddy", domain=domain, **user_fields)
        return store.create_buddy({"user_id": user["id"], "status": status})

    return _make


@pytest.fixture
def make_mentor(store: Store, make_user) -> Callable[..., Dict[str, Any]]:
    def _make(domain: str = "frontend", expertise: str = "", is_active: bool = True, **user_fields):
        user = make_user(role="mentor", domain=domain, **user_fields)
        return store.create_mentor({"user_id": user["id"], "expertise": expertise, "is_active": is_active})

    return _make


@pytest.fixture
def make_task(store: Store) -> Callable[..., Dict[str, Any]]:
    def _make(mentor: Dict[str, Any], buddy: Dict[str, Any], title: str = "Build a landing page", **fields):
        return store.create_task({
            "mentor_id": mentor["id"],
            "buddy_id": buddy["id"],
            "title": title,
            **fields,
        })

    return _make
