"""Redis-backed blog post store: one JSON document per key plus an ordered index."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from blog_posts_api.models import BlogPost, BlogPostCreate
from blog_posts_api.store import StoreUnavailableError, apply_changes, build_post

if TYPE_CHECKING:
    from redis.asyncio import Redis

log = structlog.get_logger()

_POST_PREFIX = "post:"
_INDEX_KEY = "posts"
_SEQ_KEY = "posts:seq"
_UNAVAILABLE = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisPostStore:
    """Stores posts under ``<namespace>:post:<id>``.

    Insertion order is kept in a sorted set scored by a per-namespace counter.
    Connection failures raise :class:`StoreUnavailableError`.
    """

    def __init__(self, client: Redis, namespace: str = "blog-posts") -> None:
        self._client: Redis = client
        self._namespace = namespace

    def _key(self, suffix: str) -> str:
        return f"{self._namespace}:{suffix}"

    def _post_key(self, post_id: str) -> str:
        return self._key(f"{_POST_PREFIX}{post_id}")

    async def insert_one(self, data: BlogPostCreate) -> BlogPost:
        (post,) = await self.insert_many([data])
        return post

    async def insert_many(self, items: Iterable[BlogPostCreate]) -> list[BlogPost]:
        posts = [build_post(uuid4().hex, data) for data in items]
        if not posts:
            return []
        try:
            last = await self._client.incrby(self._key(_SEQ_KEY), len(posts))
            first = last - len(posts) + 1
            async with self._client.pipeline(transaction=True) as pipe:
                for seq, post in enumerate(posts, start=first):
                    pipe.set(self._post_key(post.id), json.dumps(post.document()))
                    pipe.zadd(self._key(_INDEX_KEY), {post.id: seq})
                await pipe.execute()
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="insert_many")
            raise StoreUnavailableError("redis", "insert_many") from exc
        return posts

    async def find_all(self) -> list[BlogPost]:
        try:
            ids = await self._client.zrange(self._key(_INDEX_KEY), 0, -1)
            if not ids:
                return []
            raws = await self._client.mget([self._post_key(_decode(i)) for i in ids])
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="find_all")
            raise StoreUnavailableError("redis", "find_all") from exc
        return [BlogPost.model_validate_json(raw) for raw in raws if raw is not None]

    async def find_one(self) -> BlogPost | None:
        try:
            ids = await self._client.zrange(self._key(_INDEX_KEY), 0, 0)
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="find_one")
            raise StoreUnavailableError("redis", "find_one") from exc
        if not ids:
            return None
        return await self.find_by_id(_decode(ids[0]))

    async def find_by_id(self, post_id: str) -> BlogPost | None:
        try:
            raw = await self._client.get(self._post_key(post_id))
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="find_by_id", post_id=post_id)
            raise StoreUnavailableError("redis", "find_by_id") from exc
        if raw is None:
            return None
        return BlogPost.model_validate_json(raw)

    async def update(self, post_id: str, changes: Mapping[str, Any]) -> BlogPost | None:
        post = await self.find_by_id(post_id)
        if post is None:
            return None
        updated = apply_changes(post, changes)
        try:
            # xx: never resurrect a post deleted between the read and the write
            written = await self._client.set(
                self._post_key(post_id), json.dumps(updated.document()), xx=True
            )
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="update", post_id=post_id)
            raise StoreUnavailableError("redis", "update") from exc
        return updated if written else None

    async def delete(self, post_id: str) -> bool:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(self._post_key(post_id))
                pipe.zrem(self._key(_INDEX_KEY), post_id)
                removed, _ = await pipe.execute()
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="delete", post_id=post_id)
            raise StoreUnavailableError("redis", "delete") from exc
        return bool(removed)

    async def count(self) -> int:
        try:
            total: int = await self._client.zcard(self._key(_INDEX_KEY))
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="count")
            raise StoreUnavailableError("redis", "count") from exc
        return total

    async def drop(self) -> None:
        """Delete every key in this store's namespace."""
        try:
            keys = [key async for key in self._client.scan_iter(match=self._key("*"))]
            if keys:
                await self._client.delete(*keys)
        except _UNAVAILABLE as exc:
            log.warning("redis_store_unreachable", op="drop")
            raise StoreUnavailableError("redis", "drop") from exc

    async def aclose(self) -> None:
        """Close the underlying Redis connection."""
        await self._client.aclose()


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value
