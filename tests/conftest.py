"""Shared fixtures: in-memory SQLite store, no Redis, fresh tables per test."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from wms import models
from wms.config import ALGORITHM, SECRET_KEY
from wms.database import Base, SessionLocal, engine
from wms.main import app


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def add_item(db):
    """Insert an item straight into the store and return it."""

    def _add(sku, quantity=5, location="Warehouse", name=None, category="Parts"):
        now = datetime.utcnow()
        item = models.Item(
            sku=sku,
            name=name or f"Item {sku}",
            category=category,
            quantity=quantity,
            location=location,
            condition="New",
            created_at=now,
            updated_at=now,
        )
        db.add(item)
        db.commit()
        return item

    return _add


@pytest.fixture()
def add_worker(db):
    """Insert a worker straight into the store and return it."""

    def _add(username="jdoe", role="Employee", email=None):
        worker = models.Worker(
            username=username,
            password_hash="not-a-real-hash",
            email=email or f"{username}@warehouse.io",
            full_name=username.title(),
            role=role,
        )
        db.add(worker)
        db.commit()
        return worker

    return _add


def make_token(user_id):
    return jwt.encode({"sub": str(user_id)}, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture()
def auth_header():
    """Build an Authorization header acting as the given worker id."""

    def _header(user_id):
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _header
