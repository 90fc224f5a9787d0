"""Shared test setup: isolated data dirs, a clean database per test, pairing helpers."""

import os
import tempfile

# Setup environment for testing (before anything imports the settings)
_DATA_DIR = tempfile.mkdtemp()
os.environ["SECRETCALC_DATA_DIR"] = _DATA_DIR
os.environ["SECRETCALC_UPLOAD_DIR"] = tempfile.mkdtemp()
os.environ["SECRETCALC_DB_PATH"] = os.path.join(_DATA_DIR, "test.db")
os.environ["SECRETCALC_JWT_SECRET"] = "test-secret"
os.environ["SECRETCALC_BASE_URL"] = "http://testserver"
os.environ["SECRETCALC_CODE_SWEEP_INTERVAL_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlmodel import Session

from secretcalc.database import engine, init_db
from secretcalc.models import Message, PairingCode, Room

init_db()


class FakeConnection:
    """Stands in for a live WebSocket: records every frame the relay sends it."""

    def __init__(self, name: str):
        self.name = name
        self.sent: list[dict] = []
        self.closed = False

    async def send(self, message: dict) -> bool:
        if self.closed:
            return False
        self.sent.append(message)
        return True

    def events(self, event_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == event_type]

    def __repr__(self) -> str:
        return f"<FakeConnection {self.name}>"


@pytest.fixture(autouse=True)
def clean_db():
    yield
    with Session(engine) as session:
        for model in (Message, Room, PairingCode):
            session.exec(delete(model))
        session.commit()


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def client():
    from secretcalc.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_conn():
    return FakeConnection


@pytest.fixture
def paired(client):
    """Pair device A1 (generator) with B1 (enterer) through the REST API.

    Returns (room_id, token_a, token_b).
    """
    from secretcalc.utils.security import issue_claim

    r = client.post("/api/pairing/generate", json={"deviceId": "A1"})
    assert r.status_code == 200, r.text
    code = r.json()["code"]

    r = client.post("/api/pairing/enter", json={"code": code, "deviceId": "B1"})
    assert r.status_code == 200, r.text
    room_id = r.json()["roomId"]
    return room_id, issue_claim("A1", room_id), r.json()["token"]
