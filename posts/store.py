"""
posts/store.py -- SQLAlchemy-backed persistence layer for blog posts.

Uses SQLAlchemy Core (not ORM) so the dataclasses in posts/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. PostStore is the repository, _row_to_post
the mapper. Route handlers never touch SQL directly.

Visibility: every read takes the set of statuses the caller may see (from
posts/visibility.py) and applies it as a WHERE clause. The store never
decides visibility itself, and never returns rows outside the given set.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = PostStore(engine)
    post = store.create_post(Post(title="Hello", content="...", author_id=1))
    posts, total = store.list_posts({"published"}, limit=10, offset=0)
    store.update_post(post.id, status="published")
    store.delete_post(post.id)
"""

from typing import Iterable, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Connection, Engine

from auth.store import users
from core.db import metadata, now_iso
from posts.models import STATUS_DRAFT, STATUSES, Post, PostAuthor

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default=STATUS_DRAFT),
    # No ON DELETE: deleting a user leaves their posts, deleting a post
    # leaves its author.
    Column("author_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint(f"status IN {STATUSES!r}", name="ck_posts_status"),
)

_MUTABLE_FIELDS = {"title", "content", "status"}


def _with_author():
    """SELECT posts.* plus the author's username via LEFT OUTER JOIN."""
    return select(posts, users.c.username.label("author_username")).select_from(
        posts.outerjoin(users, posts.c.author_id == users.c.id)
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    """Repository for Post entities."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_posts(self, statuses: Iterable[str], limit: int, offset: int) -> tuple[list[Post], int]:
        """Return one page of posts whose status is in `statuses`, plus the total count.

        Newest first; id breaks ties between posts created in the same instant.
        """
        allowed = list(statuses)
        with self.engine.connect() as conn:
            total = conn.execute(
                select(func.count()).select_from(posts).where(posts.c.status.in_(allowed))
            ).scalar_one()
            rows = conn.execute(
                _with_author()
                .where(posts.c.status.in_(allowed))
                .order_by(posts.c.created_at.desc(), posts.c.id.desc())
                .limit(limit)
                .offset(offset)
            ).fetchall()
        return [_row_to_post(r) for r in rows], total

    def get_post(self, post_id: int, statuses: Optional[Iterable[str]] = None) -> Optional[Post]:
        """Fetch one post with its author.

        With `statuses`, a post outside the set is reported as missing (None),
        exactly as if it did not exist. Without it, any status matches -- only
        admin write paths call it that way.
        """
        with self.engine.connect() as conn:
            return self._fetch(conn, post_id, statuses)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> Post:
        """Insert a post and return it re-read with its author.

        The insert and the joined re-read share one transaction, so a
        concurrent delete cannot slip in between them.
        """
        stamp = now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                posts.insert().values(
                    title=post.title,
                    content=post.content,
                    status=post.status,
                    author_id=post.author_id,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            return self._fetch(conn, result.inserted_primary_key[0])

    def update_post(self, post_id: int, **fields) -> Optional[Post]:
        """Update title/content/status. Returns the updated post, or None if not found.

        Fields passed as None are left unchanged. Unknown keys raise ValueError.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown post fields: {unknown!r}")
        values = {k: v for k, v in fields.items() if v is not None}
        values["updated_at"] = now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(posts.update().where(posts.c.id == post_id).values(**values))
            if result.rowcount == 0:
                return None
            return self._fetch(conn, post_id)

    def delete_post(self, post_id: int) -> bool:
        """Delete a post. Returns True if deleted, False if not found."""
        with self.engine.begin() as conn:
            result = conn.execute(posts.delete().where(posts.c.id == post_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _fetch(conn: Connection, post_id: int, statuses: Optional[Iterable[str]] = None) -> Optional[Post]:
        query = _with_author().where(posts.c.id == post_id)
        if statuses is not None:
            query = query.where(posts.c.status.in_(list(statuses)))
        row = conn.execute(query).fetchone()
        return _row_to_post(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    author = PostAuthor(id=row.author_id, username=row.author_username) if row.author_username else None
    return Post(
        id=row.id,
        title=row.title,
        content=row.content,
        status=row.status,
        author_id=row.author_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        author=author,
    )
