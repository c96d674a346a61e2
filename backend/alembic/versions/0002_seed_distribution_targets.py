"""seed distribution targets

Revision ID: 0002_seed_distribution_targets
Revises: 0001_create_core_schema
Create Date: 2026-01-10 10:05:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_seed_distribution_targets"
down_revision = "0001_create_core_schema"
branch_labels = None
depends_on = None

TARGETS = [
    {"id": "apple", "name": "Apple Podcasts", "submit_url": "https://podcastsconnect.apple.com/"},
    {"id": "spotify", "name": "Spotify", "submit_url": "https://podcasters.spotify.com/"},
    {"id": "amazon", "name": "Amazon Music", "submit_url": "https://podcasters.amazon.com/"},
]


def upgrade() -> None:
    targets = sa.table(
        "distribution_targets",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("submit_url", sa.String),
    )
    op.bulk_insert(targets, TARGETS)


def downgrade() -> None:
    op.execute("DELETE FROM distribution_targets WHERE id IN ('apple', 'spotify', 'amazon')")
