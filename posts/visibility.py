"""
posts/visibility.py -- Who may read and write which posts.

The whole policy is the two tables below. Route handlers ask this module for
the set of statuses a caller may read and pass that set to PostStore, which
filters in SQL. Drafts are therefore never loaded for a public read, even
partially.

  scope \\ audience   anonymous      user           admin
  public             {published}    {published}    {published}
  admin              --             --             {draft, published}

  write (create/update/delete): admin only.

"--" means the combination is not allowed at all; readable_statuses() raises
PermissionError for it. The admin scope is only reachable behind
require_admin(), so hitting that branch means a route is wired wrong.

Status transitions are not restricted: an admin may move any post between
draft and published in either direction, whoever wrote it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from auth.models import ROLE_ADMIN, User
from posts.models import STATUS_DRAFT, STATUS_PUBLISHED


class Audience(str, Enum):
    anonymous = "anonymous"
    user = "user"
    admin = "admin"


class Scope(str, Enum):
    public = "public"  # GET /posts, GET /posts/{id}
    admin = "admin"  # GET /posts/admin/all


_PUBLISHED_ONLY = frozenset({STATUS_PUBLISHED})
_ALL_STATUSES = frozenset({STATUS_DRAFT, STATUS_PUBLISHED})

_READ_TABLE: dict[tuple[Scope, Audience], frozenset[str]] = {
    (Scope.public, Audience.anonymous): _PUBLISHED_ONLY,
    (Scope.public, Audience.user): _PUBLISHED_ONLY,
    (Scope.public, Audience.admin): _PUBLISHED_ONLY,
    (Scope.admin, Audience.admin): _ALL_STATUSES,
}

_WRITERS = frozenset({Audience.admin})


def audience_for(user: Optional[User]) -> Audience:
    """Classify the caller. No user means anonymous."""
    if user is None:
        return Audience.anonymous
    if user.role == ROLE_ADMIN:
        return Audience.admin
    return Audience.user


def readable_statuses(audience: Audience, scope: Scope) -> frozenset[str]:
    """Return the post statuses `audience` may read through `scope`.

    Raises PermissionError for combinations absent from the table.
    """
    try:
        return _READ_TABLE[(scope, audience)]
    except KeyError:
        raise PermissionError(f"{audience.value} may not read posts in {scope.value} scope") from None


def can_write(audience: Audience) -> bool:
    """Create, update and delete are admin-only."""
    return audience in _WRITERS
