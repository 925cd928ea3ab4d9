"""
api/routes/v1/auth.py -- Authentication and session REST endpoints.

Routes:
  POST  /api/v1/auth/register            -- create an account (role "user")
  POST  /api/v1/auth/login               -- issue access + refresh tokens; overwrite session
  POST  /api/v1/auth/refresh-token       -- new access token from the session's refresh token
  POST  /api/v1/auth/logout              -- delete the caller's session (requires auth)
  GET   /api/v1/auth/me                  -- current principal's profile (requires auth)
  PUT   /api/v1/auth/me                  -- update own name, image or password (requires auth)
  PATCH /api/v1/auth/users/{id}/role     -- change a principal's role (admin only)

Handlers are plain `def` because the stores do blocking I/O; FastAPI runs
them in its thread pool. Failures are raised as AuthError subclasses and
rendered by the exception handler in api/main.py.

Security:
  Cache-Control: no-store on responses that carry tokens.
  The refresh token travels in the request body, never in a query string.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PrincipalResponse,
    ProfileUpdate,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    RolePatch,
)
from auth.dependencies import get_auth_context, require_role
from auth.models import AuthContext, Principal, Role
from auth.service import AuthService

# Auth policy:
# - POST  /auth/register:          public
# - POST  /auth/login:             public
# - POST  /auth/refresh-token:     public -- the refresh token is the credential
# - POST  /auth/logout:            requires auth (get_auth_context)
# - GET   /auth/me:                requires auth (get_auth_context)
# - PUT   /auth/me:                requires auth (get_auth_context); email and role are fixed
# - PATCH /auth/users/{id}/role:   requires admin (require_role(Role.admin))
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _no_store(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account. A separate login is required to get tokens."""
    principal = _service(request).register(
        email=body.email,
        password=body.password,
        name=body.name,
        image=body.image,
    )
    return RegisterResponse(user=_principal_to_response(principal))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Logging in replaces any previous session for the same principal, so a
    refresh token handed out by an earlier login stops working.
    """
    result = _service(request).login(body.email, body.password)
    return _no_store(
        LoginResponse(
            user=_principal_to_response(result.principal),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ).model_dump()
    )


@router.post("/auth/refresh-token", response_model=RefreshResponse)
def refresh_token(request: Request, body: Optional[RefreshRequest] = None) -> JSONResponse:
    """Exchange a live refresh token for a new access token. The refresh token is not rotated."""
    access_token = _service(request).refresh(body.refresh_token if body else None)
    return _no_store(RefreshResponse(access_token=access_token).model_dump())


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, context: AuthContext = Depends(get_auth_context)) -> MessageResponse:
    """End the caller's session. Access tokens already issued expire naturally."""
    _service(request).logout(context.principal_id)
    return MessageResponse(message="User logged out successfully")


@router.get("/auth/me", response_model=PrincipalResponse)
def me(request: Request, context: AuthContext = Depends(get_auth_context)) -> PrincipalResponse:
    """Return the profile of the authenticated principal."""
    return _principal_to_response(_service(request).get_principal(context.principal_id))


@router.put("/auth/me", response_model=PrincipalResponse)
def update_me(
    request: Request,
    body: ProfileUpdate,
    context: AuthContext = Depends(get_auth_context),
) -> PrincipalResponse:
    """Update the caller's own profile. A role field in the body is ignored."""
    principal = _service(request).update_profile(
        context.principal_id,
        name=body.name,
        image=body.image,
        password=body.password,
    )
    return _principal_to_response(principal)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.patch("/auth/users/{principal_id}/role", response_model=PrincipalResponse)
def change_role(
    request: Request,
    principal_id: int,
    body: RolePatch,
    context: AuthContext = Depends(require_role(Role.admin)),
) -> PrincipalResponse:
    """Set a principal's role. Admin only; takes effect on the target's next request."""
    return _principal_to_response(_service(request).change_role(principal_id, body.role))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _principal_to_response(principal: Principal) -> PrincipalResponse:
    return PrincipalResponse(
        id=principal.id,
        name=principal.name,
        email=principal.email,
        image=principal.image,
        role=principal.role,
        created_at=principal.created_at or "",
    )
