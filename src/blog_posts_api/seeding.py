"""Synthetic blog post data for seeding a store."""

from __future__ import annotations

from datetime import UTC

import structlog
from faker import Faker

from blog_posts_api.models import Author, BlogPost, BlogPostCreate
from blog_posts_api.store import PostStore

log = structlog.get_logger()

DEFAULT_SEED_COUNT = 10

_faker = Faker()


def generate_post_data(faker: Faker | None = None) -> BlogPostCreate:
    """A random post: a lorem word title, a few lorem sentences, a date in the past."""
    fake = faker or _faker
    return BlogPostCreate(
        author=Author(first_name=fake.first_name(), last_name=fake.last_name()),
        title=fake.word(),
        content=" ".join(fake.sentences()),
        created=fake.past_datetime(start_date="-1y", tzinfo=UTC),
    )


async def seed_posts(
    store: PostStore, count: int = DEFAULT_SEED_COUNT, faker: Faker | None = None
) -> list[BlogPost]:
    """Bulk-insert ``count`` generated posts."""
    posts = await store.insert_many(generate_post_data(faker) for _ in range(count))
    await log.ainfo("posts_seeded", count=len(posts))
    return posts


async def tear_down_db(store: PostStore) -> None:
    """Drop every post in the store's database."""
    await log.awarning("database_dropped")
    await store.drop()
