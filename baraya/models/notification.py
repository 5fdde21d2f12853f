"""
Notification feed models (/notifikasi).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Optional


class NotificationChannel(str, Enum):
    """Local notification channels."""
    EMERGENCY = "emergency"
    DEFAULT = "default"


class SoundKind(str, Enum):
    SUCCESS = "success_notification.mp3"
    EMERGENCY = "emergency_alert.mp3"


class Notification(BaseModel):
    """Feed item."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    user_id: Optional[str] = Field(None, alias="userId")
    title: str = Field("", alias="judul")
    message: str = Field("", alias="pesan")
    is_read: bool = Field(False, alias="isRead")
    event_id: Optional[int] = Field(None, alias="eventId")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user_id(cls, value):
        return None if value is None else str(value)


class NotificationCreate(BaseModel):
    """Body of POST /notifikasi."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    title: str = Field(..., alias="judul")
    message: str = Field(..., alias="pesan")
    is_read: bool = Field(False, alias="isRead")
    event_id: Optional[int] = Field(None, alias="eventId")

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user_id(cls, value):
        return None if value is None else str(value)
