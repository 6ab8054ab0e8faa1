import asyncio
from types import SimpleNamespace

import pytest

from app.db import MongoDocumentDatabase, doc_with_id
from app.errors import DocumentNotFound


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)

    def __aiter__(self):
        self._it = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """Just enough of a motor collection for the adapter."""

    def __init__(self):
        self.docs = {}

    def find(self, query):
        return FakeCursor(
            dict(d, _id=k) for k, d in self.docs.items() if all(d.get(f) == v for f, v in query.items())
        )

    async def replace_one(self, flt, body, upsert=False):
        assert upsert
        self.docs[flt["_id"]] = dict(body)

    async def update_one(self, flt, update):
        key = flt["_id"]
        if key not in self.docs:
            return SimpleNamespace(matched_count=0)
        self.docs[key].update(update["$set"])
        return SimpleNamespace(matched_count=1)


def test_doc_with_id_moves_mongo_key():
    assert doc_with_id({"_id": "u1-e1", "userId": "u1"}) == {"id": "u1-e1", "userId": "u1"}


def test_mongo_adapter_primitives():
    collections = {"registrations": FakeCollection()}
    adapter = MongoDocumentDatabase(collections)

    async def scenario():
        await adapter.put("registrations", "u1-e1", {"id": "u1-e1", "userId": "u1", "checkedIn": False})
        await adapter.put("registrations", "u2-e1", {"id": "u2-e1", "userId": "u2", "checkedIn": False})
        # id lives in _id only
        assert "id" not in collections["registrations"].docs["u1-e1"]

        assert len(await adapter.get_all("registrations")) == 2
        mine = await adapter.get_where("registrations", "userId", "u1")
        assert mine == [{"id": "u1-e1", "userId": "u1", "checkedIn": False}]

        await adapter.patch("registrations", "u1-e1", {"checkedIn": True})
        assert collections["registrations"].docs["u1-e1"]["checkedIn"] is True

        with pytest.raises(DocumentNotFound):
            await adapter.patch("registrations", "ghost-e1", {"checkedIn": True})

    asyncio.run(scenario())
