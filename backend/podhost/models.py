from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base
from .services.timeutil import utcnow


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


def new_id() -> str:
    return str(uuid.uuid4())


class Plan(str, Enum):
    free = "free"
    starter = "starter"
    pro = "pro"


class Visibility(str, Enum):
    public = "public"
    private = "private"


class PodcastType(str, Enum):
    episodic = "episodic"
    serial = "serial"


class EpisodeStatus(str, Enum):
    draft = "draft"
    scheduled = "scheduled"
    published = "published"


class AssetType(str, Enum):
    audio = "audio"
    image = "image"


class DistributionState(str, Enum):
    not_submitted = "not_submitted"
    submitted = "submitted"
    live = "live"
    needs_attention = "needs_attention"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    plan: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=Plan.free.value, server_default=Plan.free.value)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(sa.String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )


class MagicLink(Base):
    __tablename__ = "magic_links"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(sa.String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    owner_id: Mapped[str | None] = mapped_column(sa.ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    storage_provider: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="local", server_default="local")
    storage_key: Mapped[str] = mapped_column(sa.String(512), nullable=False, unique=True)
    public_url: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    content_type: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    byte_size: Mapped[int] = mapped_column(sa.BigInteger(), nullable=False)
    checksum: Mapped[str | None] = mapped_column(sa.String(128), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )


class Podcast(Base):
    __tablename__ = "podcasts"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    language: Mapped[str] = mapped_column(sa.String(10), nullable=False, default="ja", server_default="ja")
    category: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    author_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    explicit: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, default=False, server_default=sa.false())
    podcast_type: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=PodcastType.episodic.value, server_default=PodcastType.episodic.value
    )
    visibility: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=Visibility.private.value, server_default=Visibility.private.value
    )
    cover_image_asset_id: Mapped[str | None] = mapped_column(
        sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True
    )
    theme_color: Mapped[str] = mapped_column(sa.String(7), nullable=False, default="#6366f1", server_default="#6366f1")
    theme_mode: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="light", server_default="light")
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=sa.func.now(), nullable=False
    )

    episodes: Mapped[list["Episode"]] = relationship(
        back_populates="podcast", cascade="all, delete-orphan", passive_deletes=True
    )
    feed_token: Mapped["FeedToken | None"] = relationship(
        back_populates="podcast", cascade="all, delete-orphan", passive_deletes=True, uselist=False
    )
    cover_image: Mapped["Asset | None"] = relationship(foreign_keys=[cover_image_asset_id])


class FeedToken(Base):
    """Single private-feed credential per podcast, overwritten on rotation."""

    __tablename__ = "feed_tokens"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    podcast_id: Mapped[str] = mapped_column(
        sa.ForeignKey("podcasts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    token: Mapped[str] = mapped_column(sa.String(128), unique=True, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )

    podcast: Mapped[Podcast] = relationship(back_populates="feed_token")


class Episode(Base):
    __tablename__ = "episodes"
    __table_args__ = (sa.Index("ix_episodes_status_published_at", "status", "published_at"),)

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    podcast_id: Mapped[str] = mapped_column(
        sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    status: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=EpisodeStatus.draft.value, server_default=EpisodeStatus.draft.value
    )
    published_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    audio_asset_id: Mapped[str | None] = mapped_column(
        sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True
    )
    duration_seconds: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=sa.func.now(), nullable=False
    )

    podcast: Mapped[Podcast] = relationship(back_populates="episodes")
    audio: Mapped["Asset | None"] = relationship(foreign_keys=[audio_asset_id])


class DistributionTarget(Base):
    __tablename__ = "distribution_targets"

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    submit_url: Mapped[str] = mapped_column(sa.String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )


class DistributionStatus(Base):
    __tablename__ = "distribution_statuses"
    __table_args__ = (
        sa.UniqueConstraint("podcast_id", "target_id", name="uq_distribution_statuses_podcast_target"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    podcast_id: Mapped[str] = mapped_column(
        sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target_id: Mapped[str] = mapped_column(sa.ForeignKey("distribution_targets.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        default=DistributionState.not_submitted.value,
        server_default=DistributionState.not_submitted.value,
    )
    note: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=sa.func.now(), nullable=False
    )

    target: Mapped[DistributionTarget] = relationship()


class PlayLog(Base):
    """One immutable row per playback redirect."""

    __tablename__ = "play_logs"
    __table_args__ = (sa.Index("ix_play_logs_podcast_played_at", "podcast_id", "played_at"),)

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    episode_id: Mapped[str] = mapped_column(
        sa.ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    podcast_id: Mapped[str] = mapped_column(sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False)
    ip_hash: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    country: Mapped[str | None] = mapped_column(sa.String(8), nullable=True)
    played_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=utcnow, nullable=False)


class MonthlyPlayStat(Base):
    """Running play counter per podcast and calendar month (UTC)."""

    __tablename__ = "monthly_play_stats"
    __table_args__ = (
        sa.UniqueConstraint("podcast_id", "year_month", name="uq_monthly_play_stats_podcast_month"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    podcast_id: Mapped[str] = mapped_column(sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False)
    year_month: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    play_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(), nullable=False
    )
