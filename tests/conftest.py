import itertools
import os
import tempfile

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "rating_voyage_test_logs"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from aggregates import on_rating_changed
from database import create_document, get_db
from main import app
from schemas import Rating as RatingSchema, Store as StoreSchema, User as UserSchema
from security import hash_password, token_for

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)

_seq = itertools.count(1)


@pytest.fixture
def db():
    mongo = mongomock.MongoClient()
    yield mongo["rating_voyage_test"]
    mongo.close()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(role="user", **overrides):
        n = next(_seq)
        fields = {
            "name": f"Test {role.title()} {n}",
            "email": f"{role.replace('-', '')}{n}@example.com",
            "address": f"{n} Test Street, Test City",
            "password_hash": PASSWORD_HASH,
            "role": role,
        }
        fields.update(overrides)
        return create_document(db, "user", UserSchema(**fields))
    return _make


@pytest.fixture
def make_store(db):
    def _make(owner, **overrides):
        n = next(_seq)
        fields = {
            "owner_id": str(owner["_id"]),
            "name": f"Store {n}",
            "description": "A perfectly ordinary store for testing",
            "category": "retail",
            "address": f"{n} Market Street, Shop City",
            "phone": "+1234567890",
            "email": f"store{n}@example.com",
        }
        fields.update(overrides)
        return create_document(db, "store", StoreSchema(**fields))
    return _make


@pytest.fixture
def make_rating(db):
    def _make(user, store, score, **overrides):
        rating = RatingSchema(user_id=str(user["_id"]), store_id=str(store["_id"]), rating=score, **overrides)
        doc = create_document(db, "rating", rating)
        on_rating_changed(db, str(store["_id"]))
        return doc
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _headers


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def owner(make_user):
    return make_user("store-owner")


@pytest.fixture
def shopper(make_user):
    return make_user("user")
