"""
API request and response models for the blog REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
posts/models.py, which own the internal domain representation. Route handlers
map between the two.

Every response body carries a boolean `success`. Successful payloads are
wrapped in `data`; errors use ErrorResponse.

UserOut deliberately has no password field: there is no code path from a
User dataclass to JSON that could leak the digest.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from auth.models import User
from auth.store import PASSWORD_MAX, PASSWORD_MIN, USERNAME_MAX, USERNAME_MIN
from posts.models import Post

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    admin = "admin"
    user = "user"


class PostStatusEnum(str, Enum):
    draft = "draft"
    published = "published"


# ---------------------------------------------------------------------------
# Request models
#
# Only identifiers and titles are trimmed. Passwords are hashed byte-for-byte
# as sent and post content is stored as given.
# ---------------------------------------------------------------------------

_Username = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=USERNAME_MIN, max_length=USERNAME_MAX)
]
_Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]


def normalize_email(value: str) -> str:
    """Return the canonical form EmailStr stores (trimmed, domain lowercased).

    Used on the login path so the lookup key matches what registration
    persisted. A value that is not an email address is returned unchanged;
    it cannot match any stored account.
    """
    try:
        return validate_email(value)[1]
    except PydanticCustomError:
        return value


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    username: _Username
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    role: RoleEnum = RoleEnum.user


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    No format checks on email here: a malformed email simply fails to
    authenticate, with the same 401 as any other bad credential.
    """

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)

    @field_validator("email")
    @classmethod
    def canonical_email(cls, value: str) -> str:
        return normalize_email(value)


class PostCreate(BaseModel):
    """Request body for POST /api/posts."""

    title: _Title
    content: str = Field(min_length=1)
    status: PostStatusEnum = PostStatusEnum.draft


class PostUpdate(BaseModel):
    """Request body for PUT /api/posts/{id}. Omitted fields are left unchanged."""

    title: Optional[_Title] = None
    content: Optional[str] = Field(default=None, min_length=1)
    status: Optional[PostStatusEnum] = None


# ---------------------------------------------------------------------------
# Response models -- users
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: str
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut
    token: str


class AuthResponse(BaseModel):
    """Response for POST /api/auth/register and POST /api/auth/login."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: AuthData


class MeData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut


class MeResponse(BaseModel):
    """Response for GET /api/auth/me."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: MeData


# ---------------------------------------------------------------------------
# Response models -- posts
# ---------------------------------------------------------------------------


class AuthorOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str


class PostOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    status: str
    author_id: int
    created_at: str
    updated_at: str
    author: Optional[AuthorOut] = None

    @classmethod
    def from_post(cls, post: Post) -> "PostOut":
        """Factory Method -- the domain-to-transport mapping lives beside the model."""
        author = AuthorOut(id=post.author.id, username=post.author.username) if post.author else None
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            status=post.status,
            author_id=post.author_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=author,
        )


class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    page: int
    limit: int
    total_pages: int


class PostListData(BaseModel):
    model_config = ConfigDict(frozen=True)

    posts: list[PostOut]
    pagination: Pagination


class PostListResponse(BaseModel):
    """Response for GET /api/posts and GET /api/posts/admin/all."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: PostListData


class PostData(BaseModel):
    model_config = ConfigDict(frozen=True)

    post: PostOut


class PostResponse(BaseModel):
    """Response for single-post reads and writes."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: Optional[str] = None
    data: PostData


# ---------------------------------------------------------------------------
# Generic envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    errors: Optional[list[str]] = None


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    success: bool
    status: str
    timestamp: str
    uptime: float
    environment: str
    database: str
