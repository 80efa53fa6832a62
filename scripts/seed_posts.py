#!/usr/bin/env python3
"""Seed a blog post store with synthetic posts.

Usage:
    uv run scripts/seed_posts.py --count 10
    uv run scripts/seed_posts.py --backend mongodb \\
        --database-url mongodb://localhost:27017/blog-app --drop

Store settings can also be provided via environment variables:
    STORE_BACKEND, DATABASE_URL, DATABASE_NAME
"""

from __future__ import annotations

import argparse
import asyncio
import os

from blog_posts_api.config import Settings
from blog_posts_api.seeding import DEFAULT_SEED_COUNT, seed_posts, tear_down_db
from blog_posts_api.store_factory import create_store


async def _seed(settings: Settings, count: int, drop: bool) -> None:
    store = await create_store(settings)
    try:
        if drop:
            await tear_down_db(store)
        posts = await seed_posts(store, count)
        total = await store.count()
    finally:
        await store.aclose()
    print(f"✅ Seeded {len(posts)} posts ({total} in store)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a blog post store with synthetic posts")
    parser.add_argument(
        "--backend",
        choices=["memory", "redis", "mongodb"],
        default=os.environ.get("STORE_BACKEND", "memory"),
        help="Store backend (or STORE_BACKEND env)",
    )
    parser.add_argument(
        "--database-url", default=None, help="Store connection string (or DATABASE_URL env)"
    )
    parser.add_argument(
        "--count", type=int, default=DEFAULT_SEED_COUNT, help="Number of posts to insert"
    )
    parser.add_argument(
        "--drop", action="store_true", help="Drop the database before seeding"
    )
    args = parser.parse_args()

    overrides: dict[str, str] = {"store_backend": args.backend}
    if args.database_url:
        overrides["database_url"] = args.database_url
    asyncio.run(_seed(Settings(**overrides), args.count, args.drop))  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
