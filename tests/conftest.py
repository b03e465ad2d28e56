import pytest
from fastapi.testclient import TestClient

import main
from auth import TokenIssuer
from database import InMemoryStore
from notifier import Notifier
from schemas import User

SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, to, code):
        self.sent.append((to, code))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def tokens():
    return TokenIssuer(SECRET)


@pytest.fixture
def alice(store):
    user = User(name="Alice", email="alice@splitease.io", verified=True)
    store.users.append(user)
    return user


@pytest.fixture
def bob(store):
    user = User(name="Bob", phone="+16502530000", verified=True)
    store.users.append(user)
    return user


@pytest.fixture
def client(store):
    main.configure(store, Notifier(), secret=SECRET)
    return TestClient(main.app)


@pytest.fixture
def signup(client):
    """Sign a contact up through the API in dev mode and return its bearer headers."""

    def _signup(contact, name):
        r = client.post("/api/auth/request-code", json={"contact": contact, "name": name, "isSignup": True})
        assert r.status_code == 200, r.text
        r = client.post("/api/auth/verify-code", json={"contact": contact, "code": r.json()["code"]})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _signup
