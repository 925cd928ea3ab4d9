"""
auth/dependencies.py -- FastAPI Depends() helpers for authorization.

The gate runs in two stages:
  1. get_auth_context() -- extracts the Authorization: Bearer <token> header,
     verifies it as an access token, loads the principal's CURRENT role from
     the store and attaches AuthContext to request.state.auth.
  2. require_role(expected) -- compares the attached role and raises
     Forbidden on mismatch. Raising (not returning a response) guarantees the
     route handler never runs for a denied request.

Failures are AuthError subclasses; the exception handler in api/main.py turns
them into the error envelope. TokenExpired and TokenInvalid stay distinct so
clients know whether to refresh or re-login.

resolve_context() holds the logic without any FastAPI types, so it can be
unit tested with plain objects.

Layer rule: may import fastapi (part of the DI system); no imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.errors import Forbidden, TokenInvalid, TokenMissing
from auth.models import AuthContext, Role, TokenKind
from auth.store import PrincipalStore
from auth.tokens import TokenService


def bearer_token(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def resolve_context(token: str | None, tokens: TokenService, principals: PrincipalStore) -> AuthContext:
    """Verify an access token and load the principal's role.

    Raises TokenMissing (as 401), TokenExpired, or TokenInvalid. A valid
    token for a principal that no longer exists is TokenInvalid.
    """
    if not token:
        raise TokenMissing("Authentication required. Provide a Bearer access token.", status_code=401)
    principal_id = tokens.verify(TokenKind.access, token)
    principal = principals.get_by_id(principal_id)
    if principal is None:
        raise TokenInvalid()
    return AuthContext(principal_id=principal.id, role=principal.role)


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    context = resolve_context(
        bearer_token(request.headers.get("Authorization")),
        request.app.state.token_service,
        request.app.state.principal_store,
    )
    request.state.auth = context
    return context


def require_role(expected: Role) -> Callable[..., AuthContext]:
    """Build a dependency that allows only principals whose role is `expected`.

    Use as a FastAPI dependency:
        @router.patch("/admin-only")
        async def route(ctx: AuthContext = Depends(require_role(Role.admin))): ...
    """

    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if context.role != expected.value:
            raise Forbidden()
        return context

    return dependency
