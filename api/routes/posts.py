"""
api/routes/posts.py -- Blog post routes.

Routes (admin/all is registered before /posts/{post_id}):
  GET    /api/posts             -- published posts, paginated (public)
  GET    /api/posts/admin/all   -- every post incl. drafts, paginated (admin)
  GET    /api/posts/{post_id}   -- one published post (public; drafts are 404)
  POST   /api/posts             -- create (admin)
  PUT    /api/posts/{post_id}   -- update title/content/status (admin)
  DELETE /api/posts/{post_id}   -- delete (admin)

Which statuses a read may return comes from posts/visibility.py and is pushed
down into the SQL WHERE clause by PostStore. Write routes are gated by
require_post_editor before any store call is made.

Any admin may edit or delete any post; authorship is recorded, not enforced.
"""

import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import (
    MessageResponse,
    Pagination,
    PostCreate,
    PostData,
    PostListData,
    PostListResponse,
    PostOut,
    PostResponse,
    PostUpdate,
)
from auth.dependencies import require_admin
from auth.models import User
from posts.models import Post
from posts.store import PostStore
from posts.visibility import Audience, Scope, audience_for, can_write, readable_statuses

logger = logging.getLogger("blog.api.posts")

router = APIRouter()

_POST_NOT_FOUND = "Post not found"


def require_post_editor(current_user: User = Depends(require_admin)) -> User:
    """Write gate: authenticated, admin, and allowed to write by the visibility policy."""
    if not can_write(audience_for(current_user)):
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    return current_user


def _page(store: PostStore, statuses: frozenset[str], page: int, limit: int) -> PostListResponse:
    posts, total = store.list_posts(statuses, limit=limit, offset=(page - 1) * limit)
    return PostListResponse(
        data=PostListData(
            posts=[PostOut.from_post(p) for p in posts],
            pagination=Pagination(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit)),
        )
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/posts", response_model=PostListResponse)
def list_published_posts(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> PostListResponse:
    """List published posts, newest first."""
    statuses = readable_statuses(Audience.anonymous, Scope.public)
    return _page(request.app.state.post_store, statuses, page, limit)


@router.get("/posts/admin/all", response_model=PostListResponse)
def list_all_posts(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(require_admin),
) -> PostListResponse:
    """List every post regardless of status, newest first. Admin only."""
    statuses = readable_statuses(audience_for(current_user), Scope.admin)
    return _page(request.app.state.post_store, statuses, page, limit)


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_published_post(request: Request, post_id: int) -> PostResponse:
    """Return one published post. A draft is indistinguishable from a missing post."""
    store: PostStore = request.app.state.post_store
    post = store.get_post(post_id, statuses=readable_statuses(Audience.anonymous, Scope.public))
    if post is None:
        raise HTTPException(status_code=404, detail=_POST_NOT_FOUND)
    return PostResponse(data=PostData(post=PostOut.from_post(post)))


# ---------------------------------------------------------------------------
# Writes (admin)
# ---------------------------------------------------------------------------


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    body: PostCreate,
    current_user: User = Depends(require_post_editor),
) -> PostResponse:
    """Create a post authored by the calling admin. Status defaults to draft."""
    store: PostStore = request.app.state.post_store
    created = store.create_post(
        Post(title=body.title, content=body.content, status=body.status.value, author_id=current_user.id)
    )
    if created is None:
        raise HTTPException(status_code=500, detail="Post not found after write.")
    logger.info("Post id=%s created by user id=%s (%s)", created.id, current_user.id, created.status)
    return PostResponse(message="Post created successfully", data=PostData(post=PostOut.from_post(created)))


@router.put("/posts/{post_id}", response_model=PostResponse)
def update_post(
    request: Request,
    post_id: int,
    body: PostUpdate,
    current_user: User = Depends(require_post_editor),
) -> PostResponse:
    """Update any subset of title, content and status.

    Either status transition is allowed, in both directions.
    """
    store: PostStore = request.app.state.post_store
    updated = store.update_post(
        post_id,
        title=body.title,
        content=body.content,
        status=body.status.value if body.status is not None else None,
    )
    if updated is None:
        raise HTTPException(status_code=404, detail=_POST_NOT_FOUND)
    logger.info("Post id=%s updated by user id=%s", post_id, current_user.id)
    return PostResponse(message="Post updated successfully", data=PostData(post=PostOut.from_post(updated)))


@router.delete("/posts/{post_id}", response_model=MessageResponse)
def delete_post(
    request: Request,
    post_id: int,
    current_user: User = Depends(require_post_editor),
) -> MessageResponse:
    store: PostStore = request.app.state.post_store
    if not store.delete_post(post_id):
        raise HTTPException(status_code=404, detail=_POST_NOT_FOUND)
    logger.info("Post id=%s deleted by user id=%s", post_id, current_user.id)
    return MessageResponse(message="Post deleted successfully")
