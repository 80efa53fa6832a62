"""Shared test constants, fixtures, and factory functions."""

from collections.abc import AsyncIterator
from typing import Any

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

from blog_posts_api.config import Settings
from blog_posts_api.main import app
from blog_posts_api.models import BlogPost
from blog_posts_api.seeding import seed_posts, tear_down_db
from blog_posts_api.store import MemoryPostStore

# -- Constants --

SEED_COUNT = 10
POST_KEYS = {"id", "title", "content", "author", "created"}

REDIS_URL = "redis://localhost:6379/0"
MONGODB_URL = "mongodb://localhost:27017/blog-app-test"

UPDATE_DATA: dict[str, str] = {
    "title": "Updated BlogPost",
    "content": "This is the UPDATED content",
}

POST_PAYLOAD: dict[str, Any] = {
    "author": {"firstName": "Ada", "lastName": "Lovelace"},
    "title": "Notes",
    "content": "On the analytical engine.",
}

_faker = Faker()


# -- Factories --


def make_settings(**overrides: Any) -> Settings:
    """Create a Settings instance with test defaults. Override any field."""
    defaults: dict[str, Any] = {"store_backend": "memory", "host": "127.0.0.1", "port": 0}
    return Settings(**(defaults | overrides))


def make_post_payload(**overrides: Any) -> dict[str, Any]:
    """A random ``POST /posts`` body, the way a client would send it."""
    payload: dict[str, Any] = {
        "author": {"firstName": _faker.first_name(), "lastName": _faker.last_name()},
        "title": _faker.word(),
        "content": " ".join(_faker.sentences()),
        "date": _faker.past_datetime(start_date="-1y").isoformat(),
    }
    return payload | overrides


# -- Fixtures --


@pytest.fixture
def store() -> MemoryPostStore:
    return MemoryPostStore()


@pytest.fixture
async def seeded(store: MemoryPostStore) -> AsyncIterator[list[BlogPost]]:
    """Seed the store before the test and drop it afterwards."""
    posts = await seed_posts(store, SEED_COUNT)
    yield posts
    await tear_down_db(store)


@pytest.fixture
async def client(store: MemoryPostStore) -> AsyncIterator[AsyncClient]:
    """AsyncClient wired to the FastAPI app, serving from ``store``."""
    app.state.settings = make_settings()
    app.state.store = store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
