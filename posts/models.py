"""
posts/models.py -- Domain dataclasses for blog posts.

These are pure data containers with zero logic. Who may see or change which
post lives in posts/visibility.py; persistence lives in posts/store.py.
"""

from dataclasses import dataclass
from typing import Optional

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED)


@dataclass(frozen=True)
class PostAuthor:
    """The public face of a post's author -- never the full User record."""

    id: int
    username: str


@dataclass
class Post:
    """A blog post.

    author is filled in by the store's users join. It is None when the
    author account has since been deleted; author_id is kept regardless.

    id is None before the record is written to the database.
    """

    title: str
    content: str
    author_id: int
    status: str = STATUS_DRAFT  # "draft" | "published"
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
    author: Optional[PostAuthor] = None
