"""Tests for auth/dependencies.py -- the authorization gate.

Covers:
- bearer_token() header parsing
- resolve_context(): missing / expired / invalid tokens stay distinct,
  role is read fresh from the store, deleted principal -> invalid
- require_role(): mismatch -> 403 and the wrapped handler never runs

The require_role tests mount the dependency on a throwaway FastAPI app so
the check is exercised through real dependency injection.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from api.main import auth_error_handler
from auth.dependencies import bearer_token, require_role, resolve_context
from auth.errors import AuthError, TokenExpired, TokenInvalid, TokenMissing
from auth.models import AuthContext, Principal, Role, TokenKind
from auth.passwords import hash_password
from auth.store import PrincipalStore
from auth.tokens import TokenService


def _add(store: PrincipalStore, email: str, role: Role = Role.user) -> int:
    return store.create_principal(
        Principal(name=email.split("@")[0], email=email, hashed_password=hash_password("secret1"), role=role.value)
    )


class TestBearerToken:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("  Bearer   abc  ", "abc"),
            ("Bearer", None),
            ("Bearer ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parsing(self, header, expected) -> None:
        assert bearer_token(header) == expected


class TestResolveContext:
    def test_valid_token_attaches_identity_and_role(self, tokens: TokenService, principal_store) -> None:
        pid = _add(principal_store, "a@x.com", Role.admin)
        ctx = resolve_context(tokens.issue(TokenKind.access, pid), tokens, principal_store)
        assert ctx == AuthContext(principal_id=pid, role="admin")

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_is_401(self, tokens: TokenService, principal_store, token) -> None:
        with pytest.raises(TokenMissing) as excinfo:
            resolve_context(token, tokens, principal_store)
        assert excinfo.value.status_code == 401

    def test_expired_token_is_expired_not_invalid(self, tokens: TokenService, principal_store, clock) -> None:
        pid = _add(principal_store, "a@x.com")
        token = tokens.issue(TokenKind.access, pid)
        clock.advance(15 * 60 + 1)
        with pytest.raises(TokenExpired) as excinfo:
            resolve_context(token, tokens, principal_store)
        assert excinfo.value.status_code == 401
        assert "expired" in excinfo.value.message.lower()

    def test_refresh_token_not_accepted(self, tokens: TokenService, principal_store) -> None:
        pid = _add(principal_store, "a@x.com")
        with pytest.raises(TokenInvalid):
            resolve_context(tokens.issue(TokenKind.refresh, pid), tokens, principal_store)

    def test_unknown_principal_is_invalid(self, tokens: TokenService, principal_store) -> None:
        with pytest.raises(TokenInvalid):
            resolve_context(tokens.issue(TokenKind.access, 12345), tokens, principal_store)

    def test_role_read_fresh_from_store(self, tokens: TokenService, principal_store) -> None:
        """The role is not baked into the token: a change applies to the same token immediately."""
        pid = _add(principal_store, "a@x.com")
        token = tokens.issue(TokenKind.access, pid)
        assert resolve_context(token, tokens, principal_store).role == "user"
        principal_store.update_principal(pid, role="admin")
        assert resolve_context(token, tokens, principal_store).role == "admin"


@pytest.fixture
def gated_app(tokens: TokenService):
    """Yield (client, calls, store) for a minimal app with one admin-only route."""
    store = PrincipalStore(f"sqlite:///file:test_gate_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    calls: list[AuthContext] = []

    mini = FastAPI()
    mini.state.token_service = tokens
    mini.state.principal_store = store
    mini.add_exception_handler(AuthError, auth_error_handler)

    @mini.get("/admin-only")
    def admin_only(ctx: AuthContext = Depends(require_role(Role.admin))) -> dict:
        calls.append(ctx)
        return {"ok": True}

    with TestClient(mini) as client:
        yield client, calls, store
    store.close()


class TestRequireRole:
    def test_matching_role_runs_handler(self, gated_app, tokens: TokenService) -> None:
        client, calls, store = gated_app
        pid = _add(store, "admin@x.com", Role.admin)
        resp = client.get("/admin-only", headers={"Authorization": f"Bearer {tokens.issue(TokenKind.access, pid)}"})
        assert resp.status_code == 200
        assert calls == [AuthContext(principal_id=pid, role="admin")]

    def test_mismatch_is_403_and_handler_not_run(self, gated_app, tokens: TokenService) -> None:
        client, calls, store = gated_app
        pid = _add(store, "user@x.com", Role.user)
        resp = client.get("/admin-only", headers={"Authorization": f"Bearer {tokens.issue(TokenKind.access, pid)}"})
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == 403
        assert body["error"] == "forbidden"
        assert calls == []

    def test_unauthenticated_never_reaches_role_check(self, gated_app) -> None:
        client, calls, _store = gated_app
        resp = client.get("/admin-only")
        assert resp.status_code == 401
        assert resp.json()["error"] == "token_missing"
        assert calls == []
