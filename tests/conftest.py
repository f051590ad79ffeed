import os

# must be set before chalanbook is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from chalanbook.db import engine
from chalanbook.main import app


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


def register(client, username, password="pw", **extra):
    body = {"username": username, "password": password, "email": f"{username}@example.com"}
    body.update(extra)
    resp = client.post("/auth/register", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def root_headers(client):
    return bearer(register(client, "admin", "pw1", isRoot=True))


@pytest.fixture
def user_headers(client):
    def make(role, username=None):
        return bearer(register(client, username or f"user-{role}", role=role))
    return make


@pytest.fixture
def acme(client, root_headers):
    resp = client.post("/clients", headers=root_headers,
                       json={"name": "Acme", "phone": "123", "email": "a@b.com", "address": "X"})
    assert resp.status_code == 201
    return resp.json()
