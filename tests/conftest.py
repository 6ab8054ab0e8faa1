import asyncio
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

from app.deps import get_database
from app.errors import DocumentNotFound
from app.main import app


class InMemoryDocumentDatabase:
    """Dict-backed stand-in for the document database, recording every call."""

    def __init__(self):
        self.collections = defaultdict(dict)
        self.calls = []
        self.fail_reads = False
        self.fail_writes = False
        self.read_delays = []

    def seed(self, collection, key, document):
        self.collections[collection][key] = {k: v for k, v in document.items() if k != "id"}

    def docs(self, collection):
        return [dict(doc, id=key) for key, doc in self.collections[collection].items()]

    async def _read(self, rows):
        if self.fail_reads:
            raise ConnectionError("database unavailable")
        if self.read_delays:
            await asyncio.sleep(self.read_delays.pop(0))
        return rows

    async def get_all(self, collection):
        self.calls.append(("get_all", collection))
        return await self._read(self.docs(collection))

    async def get_where(self, collection, field, value):
        self.calls.append(("get_where", collection, field, value))
        return await self._read([d for d in self.docs(collection) if d.get(field) == value])

    async def put(self, collection, key, document):
        self.calls.append(("put", collection, key))
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        self.seed(collection, key, document)

    async def patch(self, collection, key, fields):
        self.calls.append(("patch", collection, key))
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        if key not in self.collections[collection]:
            raise DocumentNotFound(collection, key)
        self.collections[collection][key].update(fields)

    def call_names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_db():
    return InMemoryDocumentDatabase()


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_database] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def registration_doc(user_id, event_id, checked_in=False, checked_in_at=None):
    doc = {
        "userId": user_id,
        "eventId": event_id,
        "registrationDate": "2024-05-01T09:00:00.000Z",
        "checkedIn": checked_in,
    }
    if checked_in_at:
        doc["checkedInAt"] = checked_in_at
    return doc


@pytest.fixture
def seed_registration(fake_db):
    def _seed(user_id, event_id, **kwargs):
        key = f"{user_id}-{event_id}"
        fake_db.seed("registrations", key, registration_doc(user_id, event_id, **kwargs))
        return key

    return _seed
