"""
auth/dependencies.py -- FastAPI Depends() helpers forming the auth gate.

Two stages, composed per route:
  1. get_current_user() -- Authenticate. Reads "Authorization: Bearer <jwt>",
     verifies it, loads the user, and attaches it to request.state.user.
  2. require_admin()    -- AuthorizeAdmin. Depends on get_current_user(), so
     it can never run without an authenticated identity.

Failure mapping:
  no header / no "Bearer " prefix  -> 401 "Access denied. No token provided."
  TokenExpiredError                -> 401 "Token expired."
  TokenInvalidError                -> 401 "Invalid token."
  user deleted since token issued  -> 401 "Invalid token. User not found."
  authenticated but not admin      -> 403 "Access denied. Admin privileges required."

Layer rule: no imports from api/ or posts/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request

from auth.models import ROLE_ADMIN, User
from auth.store import UserStore
from auth.tokens import TokenExpiredError, TokenInvalidError, decode_access_token

logger = logging.getLogger("blog.auth")

_BEARER_PREFIX = "Bearer "


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail=message, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(request: Request) -> User:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        raise _unauthorized("Access denied. No token provided.")
    token = auth_header[len(_BEARER_PREFIX) :].strip()

    try:
        claims = decode_access_token(token)
    except TokenExpiredError:
        logger.info("Rejected expired token on %s", request.url.path)
        raise _unauthorized("Token expired.") from None
    except TokenInvalidError as exc:
        logger.info("Rejected invalid token on %s: %s", request.url.path, exc)
        raise _unauthorized("Invalid token.") from None

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.user_id)
    if user is None:
        raise _unauthorized("Invalid token. User not found.")

    request.state.user = user
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Require the admin role. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin.

    The role is read from the freshly loaded user row, not from the token
    claims, so a demotion takes effect immediately.
    """
    if current_user.role != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    return current_user
