"""Tests for the Redis-backed post store."""

from __future__ import annotations

from unittest.mock import AsyncMock

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from blog_posts_api.main import app
from blog_posts_api.models import Author, BlogPostCreate
from blog_posts_api.seeding import seed_posts, tear_down_db
from blog_posts_api.store import PostStore, StoreUnavailableError
from blog_posts_api.store_redis import RedisPostStore
from tests.conftest import SEED_COUNT, UPDATE_DATA, make_settings

NAMESPACE = "blog-app-test"
OTHER_NAMESPACE = "blog-app"


@pytest.fixture()
def fake_redis() -> fakeredis.FakeAsyncRedis:
    """Isolated fake Redis client per test."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture()
def redis_store(fake_redis: fakeredis.FakeAsyncRedis) -> RedisPostStore:
    return RedisPostStore(fake_redis, namespace=NAMESPACE)


def _data(title: str = "title") -> BlogPostCreate:
    return BlogPostCreate(
        author=Author(first_name="Ada", last_name="Lovelace"), title=title, content="content"
    )


async def test_redis_store_implements_protocol(redis_store: RedisPostStore) -> None:
    assert isinstance(redis_store, PostStore)


async def test_insert_and_find_by_id(redis_store: RedisPostStore) -> None:
    post = await redis_store.insert_one(_data())
    assert await redis_store.find_by_id(post.id) == post


async def test_find_all_keeps_insertion_order(redis_store: RedisPostStore) -> None:
    titles = [f"post-{i}" for i in range(12)]
    await redis_store.insert_many(_data(t) for t in titles)
    await redis_store.insert_one(_data("last"))

    posts = await redis_store.find_all()

    assert [p.title for p in posts] == [*titles, "last"]
    assert (await redis_store.find_one()) == posts[0]


async def test_insert_many_empty(redis_store: RedisPostStore) -> None:
    assert await redis_store.insert_many([]) == []
    assert await redis_store.count() == 0


async def test_find_missing_returns_none(redis_store: RedisPostStore) -> None:
    assert await redis_store.find_by_id("missing") is None
    assert await redis_store.find_one() is None


async def test_update_overwrites_supplied_fields(redis_store: RedisPostStore) -> None:
    post = await redis_store.insert_one(_data())

    updated = await redis_store.update(post.id, UPDATE_DATA)

    assert updated is not None
    stored = await redis_store.find_by_id(post.id)
    assert stored == updated
    assert stored.title == UPDATE_DATA["title"]
    assert stored.content == UPDATE_DATA["content"]
    assert stored.author == post.author
    assert stored.created == post.created


async def test_update_missing_returns_none(redis_store: RedisPostStore) -> None:
    assert await redis_store.update("missing", UPDATE_DATA) is None
    assert await redis_store.count() == 0


async def test_delete_removes_document_and_index(redis_store: RedisPostStore) -> None:
    post = await redis_store.insert_one(_data())

    assert await redis_store.delete(post.id) is True
    assert await redis_store.find_by_id(post.id) is None
    assert await redis_store.count() == 0
    assert await redis_store.delete(post.id) is False


async def test_drop_is_scoped_to_namespace(fake_redis: fakeredis.FakeAsyncRedis) -> None:
    test_store = RedisPostStore(fake_redis, namespace=NAMESPACE)
    other_store = RedisPostStore(fake_redis, namespace=OTHER_NAMESPACE)
    await seed_posts(test_store)
    await seed_posts(other_store, 3)

    await tear_down_db(test_store)

    assert await test_store.count() == 0
    assert await fake_redis.keys(f"{NAMESPACE}:*") == []
    assert await other_store.count() == 3


async def test_reseed_after_drop(redis_store: RedisPostStore) -> None:
    await seed_posts(redis_store)
    await tear_down_db(redis_store)
    await seed_posts(redis_store)
    assert await redis_store.count() == SEED_COUNT


async def test_connection_error_raises_store_unavailable() -> None:
    client = AsyncMock()
    client.get = AsyncMock(side_effect=RedisConnectionError("down"))
    store = RedisPostStore(client)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.find_by_id("abc")

    assert exc_info.value.backend == "redis"
    assert exc_info.value.op == "find_by_id"


async def test_unreachable_store_answers_503() -> None:
    client = AsyncMock()
    client.zrange = AsyncMock(side_effect=RedisConnectionError("down"))
    app.state.settings = make_settings()
    app.state.store = RedisPostStore(client)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        resp = await c.get("/posts")

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Storage backend unavailable"}


async def test_api_round_trip_over_redis(redis_store: RedisPostStore) -> None:
    app.state.settings = make_settings()
    app.state.store = redis_store
    seeded = await seed_posts(redis_store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        listed = (await c.get("/posts")).json()
        put = await c.put(f"/posts/{seeded[0].id}", json=UPDATE_DATA)
        delete = await c.delete(f"/posts/{seeded[1].id}")

    assert listed == [p.document() for p in seeded]
    assert put.status_code == 204
    assert delete.status_code == 204
    assert await redis_store.count() == SEED_COUNT - 1


async def test_redis_store_aclose(fake_redis: fakeredis.FakeAsyncRedis) -> None:
    """RedisPostStore.aclose() delegates to the Redis client without error."""
    await RedisPostStore(fake_redis).aclose()
