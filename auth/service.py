"""
auth/service.py -- Registration, login, refresh and logout.

Session state per principal:

    NoSession --login--> Active --login--> Active (previous refresh token dropped)
                         Active --logout / expired refresh--> NoSession

Ordering is fixed inside each operation: credentials are verified before any
token is issued, and tokens are issued before the session row is written.
Store failures are not caught here; they reach the generic 500 handler.

Refresh tokens are not rotated. refresh() returns a new access token and
leaves the session untouched; once the refresh token expires the session is
deleted and the client must log in again.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    CredentialMismatch,
    CredentialNotFound,
    DuplicateCredential,
    PrincipalNotFound,
    SessionNotFound,
    TokenExpired,
    TokenMissing,
)
from auth.models import LoginResult, Principal, Role, TokenKind
from auth.passwords import hash_password, verify_password
from auth.sessions import SessionRegistry
from auth.store import PrincipalStore
from auth.tokens import TokenService

logger = logging.getLogger("catalog.auth")


class AuthService:
    """Orchestrates the principal store, token service and session registry."""

    def __init__(self, principals: PrincipalStore, sessions: SessionRegistry, tokens: TokenService) -> None:
        self.principals = principals
        self.sessions = sessions
        self.tokens = tokens

    def register(
        self,
        email: str,
        password: str,
        name: str,
        image: str | None = None,
        role: Role = Role.user,
    ) -> Principal:
        """Create a principal with a hashed password. No session is created.

        role defaults to user; only the admin CLI passes anything else.
        """
        principal = Principal(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role.value,
        )
        if image:
            principal.image = image
        try:
            principal_id = self.principals.create_principal(principal)
        except IntegrityError as exc:
            logger.info("Registration rejected: email already in use")
            raise DuplicateCredential() from exc

        logger.info("Registered principal %d (role=%s)", principal_id, role.value)
        return self._load(principal_id)

    def login(self, email: str, password: str) -> LoginResult:
        """Verify credentials, issue an access/refresh pair, overwrite the session."""
        principal = self.principals.get_by_email(email)
        if principal is None:
            raise CredentialNotFound()
        if not verify_password(password, principal.hashed_password):
            logger.warning("Failed login for principal %d: password mismatch", principal.id)
            raise CredentialMismatch()

        access_token = self.tokens.issue(TokenKind.access, principal.id)
        refresh_token = self.tokens.issue(TokenKind.refresh, principal.id)
        self.sessions.upsert(principal.id, refresh_token)

        logger.info("Principal %d logged in", principal.id)
        return LoginResult(principal=principal, access_token=access_token, refresh_token=refresh_token)

    def refresh(self, refresh_token: str | None) -> str:
        """Return a new access token for a live session.

        Raises TokenMissing, SessionNotFound, TokenExpired (after deleting the
        session) or TokenInvalid.
        """
        if not refresh_token:
            raise TokenMissing()

        session = self.sessions.find_by_token(refresh_token)
        if session is None:
            raise SessionNotFound("Session not found. Please provide valid refresh token.")

        try:
            principal_id = self.tokens.verify(TokenKind.refresh, refresh_token)
        except TokenExpired:
            self.sessions.delete_by_token(refresh_token)
            logger.info("Refresh token expired for principal %d; session deleted", session.principal_id)
            raise

        return self.tokens.issue(TokenKind.access, principal_id)

    def logout(self, principal_id: int) -> None:
        """Delete the principal's session. Issued access tokens stay valid until they expire."""
        if not self.sessions.delete_by_principal(principal_id):
            raise SessionNotFound("Session not found. Please provide valid user_id by logging in.")
        logger.info("Principal %d logged out", principal_id)

    def get_principal(self, principal_id: int) -> Principal:
        return self._load(principal_id)

    def change_role(self, principal_id: int, role: Role) -> Principal:
        if not self.principals.update_principal(principal_id, role=role.value):
            raise PrincipalNotFound()
        logger.info("Principal %d role set to %s", principal_id, role.value)
        return self._load(principal_id)

    def update_profile(
        self,
        principal_id: int,
        name: str | None = None,
        image: str | None = None,
        password: str | None = None,
    ) -> Principal:
        """Change the principal's own name, image or password.

        Email and role are not editable here. A new password is re-hashed;
        the current session is left alone.
        """
        fields: dict[str, str] = {}
        if name is not None:
            fields["name"] = name
        if image is not None:
            fields["image"] = image
        if password is not None:
            fields["hashed_password"] = hash_password(password)
        if not fields:
            return self._load(principal_id)
        if not self.principals.update_principal(principal_id, **fields):
            raise PrincipalNotFound()
        logger.info("Principal %d updated profile (%s)", principal_id, ", ".join(sorted(fields)))
        return self._load(principal_id)

    def _load(self, principal_id: int) -> Principal:
        principal = self.principals.get_by_id(principal_id)
        if principal is None:
            raise PrincipalNotFound()
        return principal
