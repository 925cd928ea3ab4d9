"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the auth
service do the work; routes map these onto the Pydantic response models in
api/models.py.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_IMAGE = "https://cdn.pixabay.com/photo/2015/10/05/22/37/blank-profile-picture-973460_1280.png"


class Role(str, Enum):
    user = "user"
    admin = "admin"


class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"


@dataclass
class Principal:
    """An account that can log in.

    email is stored trimmed and lowercased; lookups normalize the same way.
    hashed_password is a bcrypt hash and never leaves the auth layer -- the
    API response models have no field for it.
    """

    name: str
    email: str
    hashed_password: str
    role: str = Role.user.value
    image: str = DEFAULT_IMAGE
    id: int | None = None
    created_at: str | None = None


@dataclass
class Session:
    """The single server-side record binding a principal to its refresh token."""

    principal_id: int
    refresh_token: str
    updated_at: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to a request by the authorization gate."""

    principal_id: int
    role: str


@dataclass(frozen=True)
class LoginResult:
    principal: Principal
    access_token: str
    refresh_token: str
