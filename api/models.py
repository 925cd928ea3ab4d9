"""
API request and response models for the catalog auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

No response model has a password field, so a hashed secret can never be
serialized by accident.

Whitespace: name, email and image are stripped; passwords are taken
byte-for-byte, so the API and the admin CLI hash exactly the same string.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator

from auth.models import Role
from auth.passwords import PASSWORD_MAX_BYTES, password_fits

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$"

PASSWORD_MIN_LENGTH = 6
# Character cap only; the real limit is PASSWORD_MAX_BYTES, checked by check_password_bytes().
PASSWORD_MAX_LENGTH = 72

_Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
_Email = Annotated[str, StringConstraints(strip_whitespace=True, max_length=255, pattern=EMAIL_PATTERN)]
_Image = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2048)]
_NewPassword = Annotated[str, Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)]


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and not password_fits(value):
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded.")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Role is not accepted here -- every self-registered account is a "user".
    Admins are created with `python main.py create-admin` or promoted via
    PATCH /api/v1/auth/users/{id}/role.
    """

    name: _Name
    email: _Email
    password: _NewPassword
    image: Optional[_Image] = None

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/me.

    Email and role are not updatable here; unknown fields (including "role")
    are ignored. At least one field must be present.
    """

    name: Optional[_Name] = None
    image: Optional[_Image] = None
    password: Optional[_NewPassword] = None

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)

    @model_validator(mode="after")
    def check_not_empty(self) -> "ProfileUpdate":
        if self.name is None and self.image is None and self.password is None:
            raise ValueError("No fields to update.")
        return self


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh-token.

    refresh_token is optional at the schema level so a missing value reaches
    the service and comes back as token_missing (400), not a generic
    validation error.
    """

    refresh_token: Optional[str] = None


class RolePatch(BaseModel):
    """Request body for PATCH /api/v1/auth/users/{id}/role."""

    role: Role


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PrincipalResponse(BaseModel):
    """Public profile of a principal."""

    id: int
    name: str
    email: str
    image: str
    role: str
    created_at: str = ""


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "User created successfully"
    user: PrincipalResponse


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "User logged in successfully"
    user: PrincipalResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshResponse(BaseModel):
    success: bool = True
    message: str = "Access token refreshed successfully"
    access_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    code: int
    error: str
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
