from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .models import AssetType, DistributionState, EpisodeStatus, PodcastType, Visibility


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class LoginRequest(BaseModel):
    email: str
    password: str


class MagicLinkRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("invalid email")
        return value


class MagicLinkVerify(BaseModel):
    token: str = Field(min_length=1)


class UserRead(BaseModel):
    id: str
    email: str
    plan: str

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserRead


class PodcastBase(BaseModel):
    author_name: str | None = None
    contact_email: str | None = None
    cover_image_asset_id: str | None = None

    @field_validator("author_name", "contact_email", "cover_image_asset_id", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return _blank_to_none(value)

    @field_validator("contact_email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        if value is not None and "@" not in value:
            raise ValueError("invalid email")
        return value


class PodcastCreate(PodcastBase):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    language: str = Field(default="ja", min_length=2, max_length=10)
    category: str = Field(min_length=1, max_length=100)
    explicit: bool = False
    podcast_type: PodcastType = PodcastType.episodic
    visibility: Visibility = Visibility.private
    theme_color: str = Field(default="#6366f1", pattern=r"^#[0-9A-Fa-f]{6}$")
    theme_mode: Literal["light", "dark"] = "light"


class PodcastUpdate(PodcastBase):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    language: str | None = Field(default=None, min_length=2, max_length=10)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    explicit: bool | None = None
    podcast_type: PodcastType | None = None
    visibility: Visibility | None = None
    theme_color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    theme_mode: Literal["light", "dark"] | None = None

    # Defaults are not validated, so only an explicit null reaches this.
    @field_validator("explicit", "podcast_type", "visibility", "theme_color", "theme_mode", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class EpisodeCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: EpisodeStatus = EpisodeStatus.draft
    published_at: datetime | None = None


class EpisodeUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: EpisodeStatus | None = None
    published_at: datetime | None = None


class AttachAudio(BaseModel):
    audio_asset_id: str = Field(min_length=1)
    duration_seconds: int | None = Field(default=None, gt=0)


class AssetUploadRequest(BaseModel):
    type: AssetType
    file_name: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    byte_size: int = Field(gt=0)


class AssetComplete(BaseModel):
    checksum: str | None = None


class AssetRead(BaseModel):
    id: str
    type: str
    public_url: str
    content_type: str
    byte_size: int
    checksum: str | None = None
    completed_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class DistributionStatusUpdate(BaseModel):
    status: DistributionState
    note: str | None = None
    last_checked_at: datetime | None = None


class DirectoryCheckRequest(BaseModel):
    targets: list[Literal["apple", "spotify", "amazon"]] | None = None


class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255)
    subject: Literal["general", "bug", "feature", "billing", "other"]
    message: str = Field(min_length=1, max_length=5000)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("invalid email")
        return value
