"""Read-only JSON for the public podcast website. Private podcasts are invisible here."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import not_found
from podhost.models import Asset, Episode, EpisodeStatus, Podcast, Visibility

router = APIRouter(prefix="/api/public", tags=["public"])
SessionDep = Depends(get_session)


async def _public_podcast(session: AsyncSession, podcast_id: str) -> Podcast:
    podcast = await session.get(Podcast, podcast_id)
    if podcast is None or podcast.visibility != Visibility.public.value:
        raise not_found("Podcast not found")
    return podcast


def _public_episode(episode: Episode, audio: Asset | None) -> dict:
    return {
        "id": episode.id,
        "title": episode.title,
        "description": episode.description,
        "published_at": episode.published_at,
        "duration_seconds": episode.duration_seconds,
        "audio": {"public_url": audio.public_url, "content_type": audio.content_type} if audio else None,
    }


@router.get("/podcasts/{podcast_id}")
async def get_public_podcast(podcast_id: str, session: AsyncSession = SessionDep):
    podcast = await _public_podcast(session, podcast_id)
    cover = await session.get(Asset, podcast.cover_image_asset_id) if podcast.cover_image_asset_id else None
    return {
        "id": podcast.id,
        "title": podcast.title,
        "description": podcast.description,
        "language": podcast.language,
        "category": podcast.category,
        "author_name": podcast.author_name,
        "theme_color": podcast.theme_color,
        "theme_mode": podcast.theme_mode,
        "cover_image": {"public_url": cover.public_url} if cover else None,
    }


@router.get("/podcasts/{podcast_id}/episodes")
async def list_public_episodes(podcast_id: str, session: AsyncSession = SessionDep):
    podcast = await _public_podcast(session, podcast_id)
    res = await session.execute(
        select(Episode, Asset)
        .outerjoin(Asset, Asset.id == Episode.audio_asset_id)
        .where(Episode.podcast_id == podcast.id, Episode.status == EpisodeStatus.published.value)
        .order_by(Episode.published_at.desc())
    )
    return {"items": [_public_episode(e, a) for e, a in res.all()]}


@router.get("/podcasts/{podcast_id}/episodes/{episode_id}")
async def get_public_episode(podcast_id: str, episode_id: str, session: AsyncSession = SessionDep):
    podcast = await _public_podcast(session, podcast_id)
    res = await session.execute(
        select(Episode, Asset)
        .outerjoin(Asset, Asset.id == Episode.audio_asset_id)
        .where(
            Episode.id == episode_id,
            Episode.podcast_id == podcast.id,
            Episode.status == EpisodeStatus.published.value,
        )
    )
    row = res.first()
    if row is None:
        raise not_found("Episode not found")
    return _public_episode(*row)
