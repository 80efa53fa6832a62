"""CRUD endpoints for blog posts."""

import structlog
from fastapi import APIRouter, Body, HTTPException, Request, Response, status

from blog_posts_api.metrics import posts_created_total, posts_deleted_total, posts_updated_total
from blog_posts_api.models import BlogPost, BlogPostCreate, BlogPostUpdate
from blog_posts_api.store import PostStore

log = structlog.get_logger()

router = APIRouter(prefix="/posts", tags=["posts"])


def _store(request: Request) -> PostStore:
    store: PostStore = request.app.state.store
    return store


@router.get("", response_model=list[BlogPost])
async def list_posts(request: Request) -> list[BlogPost]:
    return await _store(request).find_all()


@router.get("/{post_id}", response_model=BlogPost)
async def read_post(post_id: str, request: Request) -> BlogPost:
    post = await _store(request).find_by_id(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BlogPost)
async def create_post(body: BlogPostCreate, request: Request) -> BlogPost:
    post = await _store(request).insert_one(body)
    posts_created_total.add(1)
    await log.ainfo("post_created", post_id=post.id, title=post.title)
    return post


@router.put("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_post(
    post_id: str, request: Request, body: BlogPostUpdate = Body(default_factory=BlogPostUpdate)
) -> Response:
    """Overwrite only the supplied fields of a post. A missing body counts as empty."""
    if body.id is not None and body.id != post_id:
        raise HTTPException(
            status_code=400,
            detail=f"Request path id ({post_id}) and request body id ({body.id}) must match",
        )
    changes = body.changes()
    if not changes:
        raise HTTPException(
            status_code=400, detail="Supply at least one of: title, content, author"
        )

    post = await _store(request).update(post_id, changes)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")

    posts_updated_total.add(1)
    await log.ainfo("post_updated", post_id=post_id, fields=sorted(changes))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, request: Request) -> Response:
    """Remove a post. Deleting an unknown id still answers 204."""
    deleted = await _store(request).delete(post_id)
    posts_deleted_total.add(1, {"deleted": deleted})
    await log.ainfo("post_deleted", post_id=post_id, deleted=deleted)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
