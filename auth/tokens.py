"""
auth/tokens.py -- JWT session tokens and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, email, role, issued-at and expiry. Nothing is stored server
       side: verification is a pure function of the token, the key and the
       current time. There is no revocation list -- a leaked token stays valid
       until it expires. Keep TOKEN_EXPIRE_SECONDS as short as the UX allows.

       decode_access_token() raises TokenExpiredError or TokenInvalidError so
       the auth gate can report "expired" and "invalid" distinctly.

  Passwords: bcrypt with a per-call random salt and a tunable cost factor
       (BCRYPT_ROUNDS). The _DUMMY_HASH constant enables timing equalization
       in authenticate_user() so response time does not reveal whether an
       email is registered.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses short or
       missing keys outside DEBUG mode.

Layer rule: no imports from api/ or posts/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("blog.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes; bcrypt>=5 raises instead of
# truncating, so the cut is made explicitly and identically on both sides.
_BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    """Base class for session token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenInvalidError(TokenError):
    """Token is absent, malformed, tampered with, or missing claims."""


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt digest of the given plaintext password.

    A new salt is generated on every call, so hashing the same password twice
    yields two different digests. The salt and cost factor are embedded in
    the digest itself.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt digest.

    Never raises: a missing or malformed digest is simply a mismatch.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("blog_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user: User, expire_seconds: int = 0, issued_at: datetime | None = None) -> str:
    """Encode a signed JWT for the given user.

    Args:
        user:           Persisted user (id must be set).
        expire_seconds: Token lifetime. If 0 (default), uses
                        Settings.token_expire_seconds.
        issued_at:      Issuance time; defaults to now (UTC).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    issued = issued_at or datetime.now(timezone.utc)
    expire = issued + timedelta(seconds=duration)
    payload = {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "iat": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str | None, now: datetime | None = None) -> TokenClaims:
    """Verify a JWT and return its claims.

    Raises:
        TokenInvalidError: empty/malformed token, bad signature, missing claims.
        TokenExpiredError: signature is fine but now >= exp.

    The signature is checked before expiry, so a forged token is reported as
    invalid even when its exp claim is in the past.
    """
    if not token:
        raise TokenInvalidError("No token supplied.")
    try:
        # Expiry is compared below against `now` so verification stays a pure
        # function of (token, time).
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM], options={"verify_exp": False})
    except JWTError as exc:
        raise TokenInvalidError(str(exc)) from exc

    try:
        user_id = int(payload["user_id"])
        email = str(payload["email"])
        role = str(payload["role"])
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalidError("Token is missing required claims.") from exc

    current = now or datetime.now(timezone.utc)
    if current >= expires_at:
        raise TokenExpiredError(f"Token expired at {expires_at.isoformat()}.")

    return TokenClaims(
        user_id=user_id,
        email=email,
        role=role,
        issued_at=issued_at,
        expires_at=expires_at,
    )


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure. Callers must not tell
    the two failure cases apart in their responses.
    """
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
