"""create podcast hosting core schema

Revision ID: 0001_create_core_schema
Revises:
Create Date: 2026-01-10 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_core_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = False) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if with_updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("plan", sa.String(length=16), nullable=False, server_default="free"),
        *_timestamps(),
    )

    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_admin_sessions_user_id", "admin_sessions", ["user_id"])

    op.create_table(
        "magic_links",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_magic_links_email", "magic_links", ["email"])

    op.create_table(
        "assets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("storage_provider", sa.String(length=32), nullable=False, server_default="local"),
        sa.Column("storage_key", sa.String(length=512), nullable=False, unique=True),
        sa.Column("public_url", sa.String(length=1024), nullable=False),
        sa.Column("content_type", sa.String(length=128), nullable=False),
        sa.Column("byte_size", sa.BigInteger(), nullable=False),
        sa.Column("checksum", sa.String(length=128), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_assets_owner_id", "assets", ["owner_id"])

    op.create_table(
        "podcasts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False, server_default="ja"),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("author_name", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("explicit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("podcast_type", sa.String(length=16), nullable=False, server_default="episodic"),
        sa.Column("visibility", sa.String(length=16), nullable=False, server_default="private"),
        sa.Column(
            "cover_image_asset_id", sa.String(length=36), sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("theme_color", sa.String(length=7), nullable=False, server_default="#6366f1"),
        sa.Column("theme_mode", sa.String(length=8), nullable=False, server_default="light"),
        *_timestamps(with_updated=True),
    )
    op.create_index("ix_podcasts_owner_id", "podcasts", ["owner_id"])

    op.create_table(
        "feed_tokens",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "podcast_id", sa.String(length=36), sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False, unique=True
        ),
        sa.Column("token", sa.String(length=128), nullable=False, unique=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "episodes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("podcast_id", sa.String(length=36), sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("audio_asset_id", sa.String(length=36), sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        *_timestamps(with_updated=True),
    )
    op.create_index("ix_episodes_podcast_id", "episodes", ["podcast_id"])
    op.create_index("ix_episodes_status_published_at", "episodes", ["status", "published_at"])

    op.create_table(
        "distribution_targets",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("submit_url", sa.String(length=512), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "distribution_statuses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("podcast_id", sa.String(length=36), sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_id", sa.String(length=32), sa.ForeignKey("distribution_targets.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="not_submitted"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_updated=True),
        sa.UniqueConstraint("podcast_id", "target_id", name="uq_distribution_statuses_podcast_target"),
    )
    op.create_index("ix_distribution_statuses_podcast_id", "distribution_statuses", ["podcast_id"])

    op.create_table(
        "play_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("episode_id", sa.String(length=36), sa.ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("podcast_id", sa.String(length=36), sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ip_hash", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("country", sa.String(length=8), nullable=True),
        sa.Column("played_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_play_logs_episode_id", "play_logs", ["episode_id"])
    op.create_index("ix_play_logs_podcast_played_at", "play_logs", ["podcast_id", "played_at"])

    op.create_table(
        "monthly_play_stats",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("podcast_id", sa.String(length=36), sa.ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year_month", sa.String(length=7), nullable=False),
        sa.Column("play_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("podcast_id", "year_month", name="uq_monthly_play_stats_podcast_month"),
    )


def downgrade() -> None:
    op.drop_table("monthly_play_stats")
    op.drop_index("ix_play_logs_podcast_played_at", table_name="play_logs")
    op.drop_index("ix_play_logs_episode_id", table_name="play_logs")
    op.drop_table("play_logs")
    op.drop_index("ix_distribution_statuses_podcast_id", table_name="distribution_statuses")
    op.drop_table("distribution_statuses")
    op.drop_table("distribution_targets")
    op.drop_index("ix_episodes_status_published_at", table_name="episodes")
    op.drop_index("ix_episodes_podcast_id", table_name="episodes")
    op.drop_table("episodes")
    op.drop_table("feed_tokens")
    op.drop_index("ix_podcasts_owner_id", table_name="podcasts")
    op.drop_table("podcasts")
    op.drop_index("ix_assets_owner_id", table_name="assets")
    op.drop_table("assets")
    op.drop_index("ix_magic_links_email", table_name="magic_links")
    op.drop_table("magic_links")
    op.drop_index("ix_admin_sessions_user_id", table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_table("admin_users")
