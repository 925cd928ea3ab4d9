"""
auth/tokens.py -- Signed, time-boxed access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Each token class has its own secret and TTL,
       taken from an explicit TokenConfig -- never from the environment. A
       refresh token cannot pass access verification (different secret, and
       the "type" claim is checked as well).

  Payload: {"principal_id": <int>, "type": "access"|"refresh", "exp": <unix>}.
       No role claim. The authorization gate reads the role from the store on
       every request so a role change takes effect immediately.

  Expiry: jose's own exp check is disabled and the expiry is compared against
       the service clock instead. The signature is still verified first, so a
       forged token is reported as TokenInvalid even when its exp is in the
       past. Injecting the clock keeps expiry tests free of sleeps.

  verify() raises rather than returning None: callers must tell TokenExpired
       (refresh flow tears down the session) from TokenInvalid (never does).

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import TokenKind
from core.config import TokenConfig

logger = logging.getLogger("catalog.auth")

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Mints and verifies access and refresh tokens.

    Usage:
        tokens = TokenService(get_settings().token_config())
        access = tokens.issue(TokenKind.access, principal.id)
        principal_id = tokens.verify(TokenKind.access, access)
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._config = config
        self._clock = clock

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.access:
            return self._config.access_secret
        return self._config.refresh_secret

    def _ttl(self, kind: TokenKind) -> timedelta:
        if kind is TokenKind.access:
            return timedelta(seconds=self._config.access_ttl_seconds)
        return timedelta(seconds=self._config.refresh_ttl_seconds)

    def issue(self, kind: TokenKind, principal_id: int) -> str:
        """Sign a token of the given kind for principal_id."""
        expire = self._clock() + self._ttl(kind)
        payload = {
            "principal_id": principal_id,
            "type": kind.value,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, self._secret(kind), algorithm=_ALGORITHM)

    def verify(self, kind: TokenKind, token: str) -> int:
        """Return the principal_id embedded in a valid token.

        Raises:
            TokenInvalid: bad signature, malformed token, wrong kind, or
                          missing / ill-typed claims.
            TokenExpired: signature is valid but exp has passed.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", kind.value, exc)
            raise TokenInvalid() from exc

        principal_id = payload.get("principal_id")
        exp = payload.get("exp")
        if payload.get("type") != kind.value:
            raise TokenInvalid()
        if not isinstance(principal_id, int) or isinstance(principal_id, bool):
            raise TokenInvalid()
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenInvalid()

        if self._clock().timestamp() >= exp:
            if kind is TokenKind.access:
                raise TokenExpired("Access token has expired. Please log in again.")
            raise TokenExpired("Refresh token is expired. Please login again.")
        return principal_id
