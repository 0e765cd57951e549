"""
API request and response models for the VSS platform REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
No response model has a field for a password or password hash.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from auth.passwords import MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


def _strip_str(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


TrimmedStr = Annotated[str, BeforeValidator(_strip_str)]


class UserCreate(BaseModel):
    """Request body for POST /api/users.

    Username and email are trimmed; the password reaches bcrypt exactly as sent.
    """

    username: TrimmedStr = Field(min_length=1, max_length=255)
    email: TrimmedStr = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        """bcrypt hashes at most 72 bytes; multi-byte characters count per byte."""
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
        return v


class LoginRequest(BaseModel):
    """Request body for POST /api/login.

    Length caps only -- a password bcrypt could never have hashed simply
    fails verification (401), same as any other wrong password.
    """

    username: TrimmedStr = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    version: str
    uptime: float


class StatusResponse(BaseModel):
    message: str
    user: dict[str, Any]
    features: dict[str, dict[str, Any]]
    timestamp: str


class UserCreatedResponse(BaseModel):
    id: int
    username: str
    email: str
    message: str = "User created successfully"


class LoginUser(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


# ---------------------------------------------------------------------------
# Error envelope
#
# Every failure response uses {"error": {...}} so API clients can parse errors
# uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
