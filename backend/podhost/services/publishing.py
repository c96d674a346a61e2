"""
Episode publish state.

An episode may only be ``published`` or ``scheduled`` with both an audio
asset and a publish date; ``scheduled`` additionally needs that date to be
in the future at the moment the state is set. Due scheduled episodes are
promoted to ``published`` by the periodic job in ``services/scheduler.py``.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.errors import AppError
from podhost.models import Episode, EpisodeStatus
from podhost.services.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)

GATED_STATUSES = {EpisodeStatus.published.value, EpisodeStatus.scheduled.value}


def validate_publish_state(
    status: str,
    published_at: datetime | None,
    audio_asset_id: str | None,
    now: datetime | None = None,
) -> list[dict]:
    """Return every violated condition as ``{field, reason}``; empty when valid."""
    if status not in GATED_STATUSES:
        return []
    errors = []
    if published_at is None:
        errors.append({"field": "published_at", "reason": "required"})
    if not audio_asset_id:
        errors.append({"field": "audio_asset_id", "reason": "required"})
    if status == EpisodeStatus.scheduled.value and published_at is not None:
        if ensure_utc(published_at) <= ensure_utc(now or utcnow()):
            errors.append({"field": "published_at", "reason": "must_be_future"})
    return errors


def ensure_publishable(
    status: str,
    published_at: datetime | None,
    audio_asset_id: str | None,
    now: datetime | None = None,
) -> None:
    errors = validate_publish_state(status, published_at, audio_asset_id, now)
    if not errors:
        return
    if status == EpisodeStatus.scheduled.value:
        message = "Cannot schedule episode without required fields"
    else:
        message = "Cannot publish episode without required fields"
    raise AppError(422, "publish_conditions_not_met", message, errors)


async def promote_due_episodes(session: AsyncSession, now: datetime | None = None) -> list[str]:
    """Flip due ``scheduled`` episodes to ``published``; returns their ids."""
    now = now or utcnow()
    res = await session.execute(
        select(Episode).where(
            Episode.status == EpisodeStatus.scheduled.value,
            Episode.published_at <= now,
        )
    )
    episodes = res.scalars().all()
    for episode in episodes:
        episode.status = EpisodeStatus.published.value
        episode.updated_at = now
    await session.commit()

    promoted = [episode.id for episode in episodes]
    if promoted:
        logger.info("Promoted %d scheduled episodes: %s", len(promoted), ", ".join(promoted))
    return promoted
