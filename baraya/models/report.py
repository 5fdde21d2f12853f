"""
Pydantic models for emergency reports.
These models handle validation of server payloads and submission input.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional
from enum import Enum


class EmergencyStatus(str, Enum):
    """
    Report lifecycle as reported by the server.

    pending → accepted → in_progress → completed
    cancelled is reachable from pending or accepted.
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EmergencyReport(BaseModel):
    """Emergency report as returned by /notifikasi-darurat."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(..., description="Server-assigned id")
    user_id: Optional[str] = Field(None, alias="userId")
    dinas_id: Optional[int] = Field(None, alias="dinasId", description="Responding agency")
    dinas_nama: Optional[str] = Field(None, alias="dinasNama")
    full_name: Optional[str] = Field(None, alias="fullName")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    latitude: float
    longitude: float
    message: str = Field("", alias="pesan")
    status: EmergencyStatus = EmergencyStatus.PENDING
    photo_url: Optional[str] = Field(None, alias="urlFoto")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user_id(cls, value):
        if value is None:
            return None
        return str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        # Server has been seen sending "IN_PROGRESS" as well as "in_progress"
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in (EmergencyStatus.COMPLETED, EmergencyStatus.CANCELLED)


class PhotoAsset(BaseModel):
    """A picked/captured image waiting for upload."""
    uri: str = Field(..., description="Local file path or file:// uri")
    mime_type: str = Field(default="image/jpeg")
    file_name: Optional[str] = None


class ReportCreate(BaseModel):
    """Input for submitting a new emergency report."""
    model_config = ConfigDict(populate_by_name=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    message: str = Field(..., min_length=1, alias="pesan")
    user_id: Optional[str] = Field(None, alias="userId")
    dinas_id: Optional[int] = Field(None, alias="dinasId")
    photo: Optional[PhotoAsset] = Field(None, alias="foto")

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user_id(cls, value):
        if value is None:
            return None
        return str(value)


class TrackingStep(BaseModel):
    """One row of the tracking checklist derived from a report status."""
    status: EmergencyStatus
    label: str
    description: str
    icon: str
    is_completed: bool = False
    is_active: bool = False
    timestamp: Optional[datetime] = None
