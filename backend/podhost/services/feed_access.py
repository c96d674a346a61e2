"""
Private feed access.

Each podcast owns exactly one FeedToken row. Rotation overwrites the token
string in place, so every previously distributed private URL stops working
immediately.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.models import FeedToken, Podcast, Visibility
from podhost.services.timeutil import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None


ALLOW = AccessDecision(True)


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def private_rss_url(base_url: str, podcast_id: str, token: str) -> str:
    return f"{base_url}/rss/{podcast_id}.xml?token={token}"


def public_rss_url(base_url: str, podcast_id: str) -> str:
    return f"{base_url}/rss/{podcast_id}.xml"


async def authorize(session: AsyncSession, podcast: Podcast, provided_token: str | None) -> AccessDecision:
    if podcast.visibility == Visibility.public.value:
        return ALLOW
    if not provided_token:
        return AccessDecision(False, "token_missing")

    res = await session.execute(
        select(FeedToken.id).where(
            FeedToken.podcast_id == podcast.id,
            FeedToken.token == provided_token,
            FeedToken.revoked_at.is_(None),
        )
    )
    if res.scalar_one_or_none() is None:
        return AccessDecision(False, "token_invalid")
    return ALLOW


async def rotate_feed_token(session: AsyncSession, podcast_id: str) -> tuple[str, datetime]:
    """Replace the podcast's token and clear any revocation. Caller commits."""
    res = await session.execute(select(FeedToken).where(FeedToken.podcast_id == podcast_id))
    feed_token = res.scalar_one_or_none()
    token = generate_token()
    rotated_at = utcnow()
    if feed_token is None:
        # Podcasts created outside the API may lack a row; give them one.
        session.add(FeedToken(podcast_id=podcast_id, token=token))
    else:
        feed_token.token = token
        feed_token.revoked_at = None
    await session.flush()
    logger.info("Rotated feed token for podcast %s", podcast_id)
    return token, rotated_at
