from typing import Any, Protocol

from motor.motor_asyncio import AsyncIOMotorClient

from .config import settings
from .errors import DocumentNotFound

client = AsyncIOMotorClient(settings.mongo_uri)
db = client[settings.db_name]

registrations = db[settings.registrations_collection]
events = db[settings.events_collection]


class DocumentDatabase(Protocol):
    """The four primitives the registration layer needs from a document store."""

    async def get_all(self, collection: str) -> list[dict]: ...

    async def get_where(self, collection: str, field: str, value: Any) -> list[dict]: ...

    async def put(self, collection: str, key: str, document: dict) -> None: ...

    async def patch(self, collection: str, key: str, fields: dict) -> None: ...


def doc_with_id(doc: dict) -> dict:
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


class MongoDocumentDatabase:
    """DocumentDatabase over motor. Keys live in `_id` and come back as `id`."""

    def __init__(self, database=None):
        self._db = database if database is not None else db

    async def get_all(self, collection: str) -> list[dict]:
        cursor = self._db[collection].find({})
        return [doc_with_id(d) async for d in cursor]

    async def get_where(self, collection: str, field: str, value: Any) -> list[dict]:
        cursor = self._db[collection].find({field: value})
        return [doc_with_id(d) async for d in cursor]

    async def put(self, collection: str, key: str, document: dict) -> None:
        body = {k: v for k, v in document.items() if k != "id"}
        await self._db[collection].replace_one({"_id": key}, body, upsert=True)

    async def patch(self, collection: str, key: str, fields: dict) -> None:
        result = await self._db[collection].update_one({"_id": key}, {"$set": fields})
        if result.matched_count == 0:
            raise DocumentNotFound(collection, key)


database = MongoDocumentDatabase()


async def ensure_indexes():
    await registrations.create_index([("userId", 1)])
    await registrations.create_index([("eventId", 1)])
    await events.create_index([("date", 1)])
