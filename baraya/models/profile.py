"""
User profile model (GET /users/{id}).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


class UserProfile(BaseModel):
    """Profile record cached by the profile service."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    nik: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    alamat: Optional[str] = None
    role: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="urlFoto")
    verified: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)
