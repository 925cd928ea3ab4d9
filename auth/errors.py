"""
auth/errors.py -- Typed failures of the authentication and session flow.

Each subclass carries a stable machine code and an HTTP status class. The
service and gate layers raise them directly; api/main.py has a single
exception handler that turns any AuthError into the error envelope. Nothing
inspects exception messages to decide what happened.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for auth failures mapped to HTTP responses."""

    status_code: int = 400
    error_code: str = "auth_error"
    message: str = "Authentication request could not be processed."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class DuplicateCredential(AuthError):
    status_code = 409
    error_code = "duplicate_credential"
    message = "Email is already in use. Please enter a different email."


class CredentialNotFound(AuthError):
    status_code = 401
    error_code = "credential_not_found"
    message = "Email is not registered. Please register first."


class CredentialMismatch(AuthError):
    status_code = 401
    error_code = "credential_mismatch"
    message = "Password is incorrect."


class TokenMissing(AuthError):
    """No token supplied.

    400 when the refresh flow is called without a body field; the gate
    re-raises it as 401 because a protected route needs authentication.
    """

    status_code = 400
    error_code = "token_missing"
    message = "refresh_token not found. Please provide refresh_token."


class TokenInvalid(AuthError):
    status_code = 401
    error_code = "token_invalid"
    message = "Invalid token."


class TokenExpired(AuthError):
    status_code = 401
    error_code = "token_expired"
    message = "Token has expired. Please login again."


class SessionNotFound(AuthError):
    status_code = 404
    error_code = "session_not_found"
    message = "Session not found. Please login again."


class PrincipalNotFound(AuthError):
    status_code = 404
    error_code = "principal_not_found"
    message = "User not found."


class Forbidden(AuthError):
    status_code = 403
    error_code = "forbidden"
    message = "Forbidden: You do not have permission to access this resource."
