"""Document store protocol and the in-memory backend."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

from blog_posts_api.models import BlogPost, BlogPostCreate


class StoreUnavailableError(Exception):
    """The storage backend could not be reached."""

    def __init__(self, backend: str, op: str) -> None:
        super().__init__(f"{backend} store unavailable during {op}")
        self.backend = backend
        self.op = op


@runtime_checkable
class PostStore(Protocol):
    """Protocol for blog post storage backends."""

    async def insert_one(self, data: BlogPostCreate) -> BlogPost: ...
    async def insert_many(self, items: Iterable[BlogPostCreate]) -> list[BlogPost]: ...
    async def find_all(self) -> list[BlogPost]: ...
    async def find_one(self) -> BlogPost | None: ...
    async def find_by_id(self, post_id: str) -> BlogPost | None: ...
    async def update(self, post_id: str, changes: Mapping[str, Any]) -> BlogPost | None: ...
    async def delete(self, post_id: str) -> bool: ...
    async def count(self) -> int: ...
    async def drop(self) -> None: ...

    async def aclose(self) -> None: ...


def build_post(post_id: str, data: BlogPostCreate) -> BlogPost:
    """Assign an id, and the current time when ``data`` carries no ``created``."""
    return BlogPost(
        id=post_id,
        author=data.author,
        title=data.title,
        content=data.content,
        created=data.created or datetime.now(UTC),
    )


def apply_changes(post: BlogPost, changes: Mapping[str, Any]) -> BlogPost:
    """Overwrite only the supplied fields, re-validating the result."""
    return BlogPost.model_validate(post.model_dump() | dict(changes))


class MemoryPostStore:
    """In-memory store for local runs and testing. Keeps insertion order."""

    def __init__(self) -> None:
        self._posts: OrderedDict[str, BlogPost] = OrderedDict()

    async def insert_one(self, data: BlogPostCreate) -> BlogPost:
        post = build_post(uuid4().hex, data)
        self._posts[post.id] = post
        return post

    async def insert_many(self, items: Iterable[BlogPostCreate]) -> list[BlogPost]:
        return [await self.insert_one(data) for data in items]

    async def find_all(self) -> list[BlogPost]:
        return list(self._posts.values())

    async def find_one(self) -> BlogPost | None:
        return next(iter(self._posts.values()), None)

    async def find_by_id(self, post_id: str) -> BlogPost | None:
        return self._posts.get(post_id)

    async def update(self, post_id: str, changes: Mapping[str, Any]) -> BlogPost | None:
        post = self._posts.get(post_id)
        if post is None:
            return None
        updated = apply_changes(post, changes)
        self._posts[post_id] = updated
        return updated

    async def delete(self, post_id: str) -> bool:
        return self._posts.pop(post_id, None) is not None

    async def count(self) -> int:
        return len(self._posts)

    async def drop(self) -> None:
        self._posts.clear()

    async def aclose(self) -> None:
        """No-op; the in-memory store holds no connections."""
