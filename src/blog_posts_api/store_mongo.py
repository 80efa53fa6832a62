"""MongoDB-backed blog post store using the pymongo async client."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure

from blog_posts_api.models import BlogPost, BlogPostCreate
from blog_posts_api.store import StoreUnavailableError

if TYPE_CHECKING:
    from pymongo import AsyncMongoClient
    from pymongo.asynchronous.collection import AsyncCollection

log = structlog.get_logger()

COLLECTION = "blogposts"


def _object_id(post_id: str) -> ObjectId | None:
    try:
        return ObjectId(post_id)
    except (InvalidId, TypeError):
        return None


def _to_post(doc: Mapping[str, Any]) -> BlogPost:
    fields = {k: v for k, v in doc.items() if k != "_id"}
    return BlogPost.model_validate({"id": str(doc["_id"]), **fields})


def _millis(value: datetime) -> datetime:
    """BSON dates carry millisecond precision."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def _to_document(data: BlogPostCreate) -> dict[str, Any]:
    doc = data.model_dump(by_alias=True, exclude_none=True)
    doc["_id"] = ObjectId()
    doc["created"] = _millis(data.created or datetime.now(UTC))
    return doc


def _to_set(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Translate attribute-named changes into a ``$set`` with wire field names."""
    update: dict[str, Any] = {}
    for field, value in changes.items():
        if field == "author":
            value = {"firstName": value["first_name"], "lastName": value["last_name"]}
        update[field] = value
    return update


class MongoPostStore:
    """Stores posts in the ``blogposts`` collection, one document per post.

    Ids are ObjectId hex strings; a malformed id is treated as not found.
    Connection failures raise :class:`StoreUnavailableError`; any other
    driver error propagates.
    """

    def __init__(self, client: AsyncMongoClient[dict[str, Any]], database: str) -> None:
        self._client = client
        self._database = database
        self._collection: AsyncCollection[dict[str, Any]] = client[database][COLLECTION]

    async def insert_one(self, data: BlogPostCreate) -> BlogPost:
        (post,) = await self.insert_many([data])
        return post

    async def insert_many(self, items: Iterable[BlogPostCreate]) -> list[BlogPost]:
        docs = [_to_document(data) for data in items]
        if not docs:
            return []
        try:
            await self._collection.insert_many(docs, ordered=True)
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="insert_many")
            raise StoreUnavailableError("mongodb", "insert_many") from exc
        return [_to_post(doc) for doc in docs]

    async def find_all(self) -> list[BlogPost]:
        try:
            docs = await self._collection.find({}).sort("_id", ASCENDING).to_list()
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="find_all")
            raise StoreUnavailableError("mongodb", "find_all") from exc
        return [_to_post(doc) for doc in docs]

    async def find_one(self) -> BlogPost | None:
        try:
            doc = await self._collection.find_one({}, sort=[("_id", ASCENDING)])
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="find_one")
            raise StoreUnavailableError("mongodb", "find_one") from exc
        return _to_post(doc) if doc else None

    async def find_by_id(self, post_id: str) -> BlogPost | None:
        oid = _object_id(post_id)
        if oid is None:
            return None
        try:
            doc = await self._collection.find_one({"_id": oid})
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="find_by_id", post_id=post_id)
            raise StoreUnavailableError("mongodb", "find_by_id") from exc
        return _to_post(doc) if doc else None

    async def update(self, post_id: str, changes: Mapping[str, Any]) -> BlogPost | None:
        oid = _object_id(post_id)
        if oid is None:
            return None
        if not changes:
            return await self.find_by_id(post_id)
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": oid},
                {"$set": _to_set(changes)},
                return_document=ReturnDocument.AFTER,
            )
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="update", post_id=post_id)
            raise StoreUnavailableError("mongodb", "update") from exc
        return _to_post(doc) if doc else None

    async def delete(self, post_id: str) -> bool:
        oid = _object_id(post_id)
        if oid is None:
            return False
        try:
            result = await self._collection.delete_one({"_id": oid})
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="delete", post_id=post_id)
            raise StoreUnavailableError("mongodb", "delete") from exc
        return result.deleted_count > 0

    async def count(self) -> int:
        try:
            return await self._collection.count_documents({})
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="count")
            raise StoreUnavailableError("mongodb", "count") from exc

    async def drop(self) -> None:
        """Drop the whole database, not just the collection."""
        try:
            await self._client.drop_database(self._database)
        except ConnectionFailure as exc:
            log.warning("mongo_store_unreachable", op="drop")
            raise StoreUnavailableError("mongodb", "drop") from exc

    async def aclose(self) -> None:
        """Close the underlying MongoDB client."""
        await self._client.close()
