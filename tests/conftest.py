import copy
from contextlib import contextmanager
from datetime import timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from database import utcnow
from security import create_token, hash_password


@pytest.fixture
def db():
    return mongomock.MongoClient()["admin_test"]


@pytest.fixture(autouse=True)
def snapshot_transaction(monkeypatch):
    """
    mongomock has no sessions, so stand in for database.transaction with a
    snapshot of every collection that is restored if the block raises.
    """

    @contextmanager
    def fake_transaction(handle):
        saved = {name: copy.deepcopy(list(handle[name].find({}))) for name in handle.list_collection_names()}
        try:
            yield None
        except Exception:
            for name in handle.list_collection_names():
                handle[name].delete_many({})
            for name, docs in saved.items():
                if docs:
                    handle[name].insert_many(docs)
            raise

    monkeypatch.setattr(database, "transaction", fake_transaction)


@pytest.fixture
def tomorrow():
    return utcnow() + timedelta(days=1)


@pytest.fixture
def admin_user(db):
    user = {"email": "admin@example.com", "name": "Admin", "role": "admin", "hashed_password": hash_password("secret123")}
    user["_id"] = db["users"].insert_one(user).inserted_id
    return user


@pytest.fixture
def client(db):
    from main import app

    app.dependency_overrides[database.get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_token(admin_user)}"}
