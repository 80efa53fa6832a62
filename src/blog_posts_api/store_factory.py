"""Factory for creating the document store based on configuration."""

from __future__ import annotations

from typing import Any, cast

from blog_posts_api.config import Settings
from blog_posts_api.store import MemoryPostStore, PostStore


async def create_store(settings: Settings) -> PostStore:
    """Create the post store backend based on STORE_BACKEND config.

    Returns:
        RedisPostStore if STORE_BACKEND=redis, MongoPostStore if
        STORE_BACKEND=mongodb, MemoryPostStore otherwise.
    """
    if settings.store_backend == "redis":
        from redis.asyncio import Redis

        from blog_posts_api.store_redis import RedisPostStore

        if not settings.database_url:
            raise ValueError("DATABASE_URL is required when STORE_BACKEND=redis")

        client = Redis.from_url(settings.database_url)
        return cast(PostStore, RedisPostStore(client, namespace=settings.database_name))

    if settings.store_backend == "mongodb":
        from pymongo import AsyncMongoClient

        from blog_posts_api.store_mongo import MongoPostStore

        if not settings.database_url:
            raise ValueError("DATABASE_URL is required when STORE_BACKEND=mongodb")

        mongo: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            settings.database_url, tz_aware=True
        )
        database = mongo.get_default_database(default=settings.database_name).name
        return cast(PostStore, MongoPostStore(mongo, database))

    return cast(PostStore, MemoryPostStore())
