"""
auth/store.py -- SQLAlchemy Core persistence layer for user identities.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Password hashing is an explicit step inside create_user() and update_user():
a raw password passed to either is hashed with auth.tokens.hash_password()
before the INSERT/UPDATE is built. The raw value never reaches the database.

Uniqueness of username and email is enforced by UNIQUE constraints, not by a
check-then-insert in Python. A concurrent duplicate registration therefore
still fails with sqlalchemy.exc.IntegrityError even if both requests passed
an application-level pre-check.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import re

from sqlalchemy import Column, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine

from auth.models import ROLE_USER, ROLES, User
from auth.tokens import hash_password
from core.db import metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default=ROLE_USER),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

USERNAME_MIN, USERNAME_MAX = 3, 50
EMAIL_MAX = 100
PASSWORD_MIN, PASSWORD_MAX = 6, 255

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MUTABLE_FIELDS = {"username", "email", "password", "role"}


class UserValidationError(ValueError):
    """One or more user fields are out of range or malformed.

    errors holds one human-readable message per failing field so the API can
    return them all at once instead of making the client fix them one by one.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def validate_user_fields(fields: dict) -> None:
    """Check every supplied field; raise UserValidationError listing all failures.

    Only keys present in `fields` are checked, so the same function serves
    full inserts and partial updates.
    """
    errors: list[str] = []
    if "username" in fields:
        username = fields["username"] or ""
        if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
            errors.append(f"username must be between {USERNAME_MIN} and {USERNAME_MAX} characters")
    if "email" in fields:
        email = fields["email"] or ""
        if len(email) > EMAIL_MAX or not _EMAIL_RE.match(email):
            errors.append("email must be a valid email address")
    if "password" in fields:
        password = fields["password"] or ""
        if not PASSWORD_MIN <= len(password) <= PASSWORD_MAX:
            errors.append(f"password must be between {PASSWORD_MIN} and {PASSWORD_MAX} characters")
    if "role" in fields and fields["role"] not in ROLES:
        errors.append(f"role must be one of: {', '.join(ROLES)}")
    if errors:
        raise UserValidationError(errors)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(create_db_engine("sqlite:///blog.db"))
        user = store.create_user("admin", "admin@example.org", "s3cret!", role="admin")
        store.get_by_email("admin@example.org")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, username: str, email: str, password: str, role: str = ROLE_USER) -> User:
        """Validate, hash the password, insert, and return the stored user.

        Raises:
            UserValidationError: a field is out of range or malformed.
            sqlalchemy.exc.IntegrityError: username or email already taken.
        """
        validate_user_fields({"username": username, "email": email, "password": password, "role": role})
        stamp = now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                users.insert().values(
                    username=username,
                    email=email,
                    hashed_password=hash_password(password),
                    role=role,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            user_id = result.inserted_primary_key[0]
            row = conn.execute(select(users).where(users.c.id == user_id)).fetchone()
        return _row_to_user(row)

    def update_user(self, user_id: int, **fields) -> User | None:
        """Update mutable fields on an existing user.

        Accepted fields: username, email, password, role. A password is
        re-hashed before it is written. Unknown keys raise ValueError rather
        than being silently ignored.

        Returns the updated User, or None if user_id was not found.
        Raises IntegrityError if the new username/email collides.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        validate_user_fields(fields)

        values = {k: v for k, v in fields.items() if k != "password"}
        if "password" in fields:
            values["hashed_password"] = hash_password(fields["password"])
        values["updated_at"] = now_iso()

        with self.engine.begin() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**values))
            if result.rowcount == 0:
                return None
            row = conn.execute(select(users).where(users.c.id == user_id)).fetchone()
        return _row_to_user(row)

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Posts authored by the user are left in place; they keep author_id and
        render with no author.
        """
        with self.engine.begin() as conn:
            result = conn.execute(users.delete().where(users.c.id == user_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        role=row.role,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
