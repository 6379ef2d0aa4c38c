"""
api/routes/auth.py -- Registration, login and identity endpoints.

Routes:
  POST /api/auth/register  -- create account; returns user + token (201)
  POST /api/auth/login     -- email/password login; returns user + token
  GET  /api/auth/me        -- current user (requires bearer token)

Security:
  POST /register and POST /login are rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Login returns the same 401 for unknown email and wrong password so the
  endpoint cannot be used to enumerate accounts.
  Cache-Control: no-store on every response that carries a token.

Registration accepts an optional role, including "admin". Operators who do
not want open admin sign-up set SELF_REGISTRATION_ENABLED=false after
creating the first admin.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    AuthData,
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MeData,
    MeResponse,
    RegisterRequest,
    UserOut,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token
from core.config import get_settings

logger = logging.getLogger("blog.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /api/auth/register: public (unless SELF_REGISTRATION_ENABLED=false)
# - POST /api/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/auth/me:       requires auth (get_current_user)
router = APIRouter()


def _token_response(status_code: int, message: str, user: User) -> JSONResponse:
    body = AuthResponse(
        message=message,
        data=AuthData(user=UserOut.from_user(user), token=create_access_token(user)),
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and sign it in.

    The email pre-check gives a friendly message for the common case. The
    UNIQUE constraints are what actually guarantee uniqueness: a concurrent
    duplicate (or a duplicate username) surfaces as IntegrityError -> 409.
    """
    if not _settings.self_registration_enabled:
        raise HTTPException(status_code=403, detail="Self-registration is disabled.")

    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_email(body.email) is not None:
        raise HTTPException(status_code=409, detail="User with this email already exists")

    try:
        user = user_store.create_user(
            username=body.username,
            email=body.email,
            password=body.password,
            role=body.role.value,
        )
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="A user with that username or email already exists") from exc

    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return _token_response(201, "User registered successfully", user)


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the user and a fresh token."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(message="Invalid email or password").model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    logger.info("Login succeeded for user id=%s", user.id)
    return _token_response(200, "Login successful", user)


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return the currently authenticated user."""
    return MeResponse(data=MeData(user=UserOut.from_user(current_user)))
