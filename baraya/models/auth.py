"""
Auth models: token claims, decoded identity and the session record.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """Roles carried in the bearer token."""
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    USER = "USER"


class TokenPayload(BaseModel):
    """
    Claims embedded in the bearer token.

    Only `sub`, `role`, `fullName`, `iat` and `exp` are part of the current
    contract; older tokens carried the subject and name under other keys,
    which are kept as extras for extraction fallbacks.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sub: Optional[str] = None
    role: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    iat: Optional[int] = None
    exp: Optional[int] = None

    @field_validator("sub", mode="before")
    @classmethod
    def _stringify_sub(cls, value):
        if value is None:
            return None
        return str(value)

    @field_validator("iat", "exp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        # Some issuers emit float seconds
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def issued_at(self) -> Optional[datetime]:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc) if self.iat is not None else None

    @property
    def expires_at(self) -> Optional[datetime]:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc) if self.exp is not None else None


class Identity(BaseModel):
    """User identity projected from token claims."""
    user_id: str = Field(..., description="Subject of the token")
    full_name: str = Field(default="User")
    role: UserRole = Field(default=UserRole.USER)


class Session(BaseModel):
    """
    The single in-memory session.

    Invariant: user and token are both set or both empty.
    """
    user: Optional[Identity] = None
    token: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_hydrated: bool = False
    is_loading: bool = False

    @model_validator(mode="after")
    def _check_atomic(self):
        if (self.user is None) != (self.token is None):
            raise ValueError("Session must carry both user and token, or neither")
        return self

    @property
    def user_id(self) -> Optional[str]:
        return self.user.user_id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


class SessionState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    HYDRATING = "HYDRATING"
    AUTHENTICATED = "AUTHENTICATED"
    UNAUTHENTICATED = "UNAUTHENTICATED"


class LoginCredentials(BaseModel):
    email: str
    password: str


class LoginResult(BaseModel):
    success: bool
    message: Optional[str] = None
