from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import not_found
from podhost.models import Asset, Episode, EpisodeStatus
from podhost.services.play_recorder import extract_client_ip, extract_country, record_play
from podhost.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["play"])


@router.get("/play/{episode_id}")
async def play_episode(episode_id: str, request: Request, session: AsyncSession = Depends(get_session)):
    """Log the play and redirect (302) to the current audio URL."""
    res = await session.execute(
        select(Episode, Asset).join(Asset, Asset.id == Episode.audio_asset_id).where(Episode.id == episode_id)
    )
    row = res.first()
    if row is None or row[0].status != EpisodeStatus.published.value:
        raise not_found("Episode not found")
    episode, audio = row
    audio_url = audio.public_url
    podcast_id = episode.podcast_id

    settings = get_settings()
    try:
        await record_play(
            session,
            episode_id=episode.id,
            podcast_id=podcast_id,
            client_ip=extract_client_ip(request.headers, settings.client_ip_headers)
            or (request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent"),
            country=extract_country(request.headers, settings.country_header),
        )
    except Exception:
        # Playback must not depend on tracking.
        logger.exception("Failed to record play for episode %s", episode_id)
        await session.rollback()

    return RedirectResponse(audio_url, status_code=302)
