from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError, not_found
from podhost.models import AdminUser, Asset, AssetType, Episode, EpisodeStatus
from podhost.routes_auth import require_user
from podhost.routes_podcasts import get_owned_podcast
from podhost.schemas import AttachAudio, EpisodeCreate, EpisodeUpdate
from podhost.services.plan_limits import check_episode_duration, check_episode_limit, enforce
from podhost.services.publishing import GATED_STATUSES, ensure_publishable
from podhost.services.timeutil import utcnow

router = APIRouter(prefix="/api/podcasts/{podcast_id}/episodes", tags=["episodes"])
SessionDep = Depends(get_session)
UserDep = Depends(require_user)


def _audio_summary(asset: Asset | None) -> dict | None:
    if asset is None:
        return None
    return {
        "asset_id": asset.id,
        "public_url": asset.public_url,
        "content_type": asset.content_type,
        "byte_size": asset.byte_size,
    }


def episode_detail(episode: Episode, audio: Asset | None) -> dict:
    return {
        "id": episode.id,
        "podcast_id": episode.podcast_id,
        "title": episode.title,
        "description": episode.description,
        "status": episode.status,
        "published_at": episode.published_at,
        "audio_asset_id": episode.audio_asset_id,
        "audio": _audio_summary(audio),
        "duration_seconds": episode.duration_seconds,
        "created_at": episode.created_at,
        "updated_at": episode.updated_at,
    }


async def _get_episode(session: AsyncSession, podcast_id: str, episode_id: str) -> Episode:
    episode = await session.get(Episode, episode_id)
    if episode is None or episode.podcast_id != podcast_id:
        raise not_found("Episode not found")
    return episode


async def _audio_for(session: AsyncSession, episode: Episode) -> Asset | None:
    if not episode.audio_asset_id:
        return None
    return await session.get(Asset, episode.audio_asset_id)


@router.get("")
async def list_episodes(
    podcast_id: str,
    status_filter: EpisodeStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = SessionDep,
    user: AdminUser = UserDep,
):
    await get_owned_podcast(session, podcast_id, user)
    stmt = (
        select(Episode, Asset)
        .outerjoin(Asset, Asset.id == Episode.audio_asset_id)
        .where(Episode.podcast_id == podcast_id)
    )
    if status_filter is not None:
        stmt = stmt.where(Episode.status == status_filter.value)
    stmt = stmt.order_by(Episode.published_at.desc().nulls_last(), Episode.created_at.desc()).limit(limit)
    res = await session.execute(stmt)
    return {"items": [episode_detail(e, a) for e, a in res.all()], "next_cursor": None}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_episode(
    podcast_id: str, data: EpisodeCreate, session: AsyncSession = SessionDep, user: AdminUser = UserDep
):
    await get_owned_podcast(session, podcast_id, user)
    current = (
        await session.execute(select(func.count(Episode.id)).where(Episode.podcast_id == podcast_id))
    ).scalar_one()
    enforce(check_episode_limit(current, user.plan), "episodes")

    # A new episode never has audio yet, so it can only start as a draft.
    ensure_publishable(data.status.value, data.published_at, None)

    episode = Episode(
        podcast_id=podcast_id,
        title=data.title,
        description=data.description,
        status=data.status.value,
        published_at=data.published_at,
    )
    session.add(episode)
    await session.commit()
    return episode_detail(episode, None)


@router.get("/{episode_id}")
async def get_episode(podcast_id: str, episode_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    await get_owned_podcast(session, podcast_id, user)
    episode = await _get_episode(session, podcast_id, episode_id)
    return episode_detail(episode, await _audio_for(session, episode))


@router.patch("/{episode_id}")
async def update_episode(
    podcast_id: str,
    episode_id: str,
    data: EpisodeUpdate,
    session: AsyncSession = SessionDep,
    user: AdminUser = UserDep,
):
    await get_owned_podcast(session, podcast_id, user)
    episode = await _get_episode(session, podcast_id, episode_id)
    changes = data.model_dump(exclude_unset=True)

    new_status = changes["status"].value if changes.get("status") else episode.status
    new_published_at = changes["published_at"] if "published_at" in changes else episode.published_at
    if new_status in GATED_STATUSES and ("status" in changes or "published_at" in changes):
        ensure_publishable(new_status, new_published_at, episode.audio_asset_id)

    if changes.get("title") is not None:
        episode.title = changes["title"]
    if "description" in changes:
        episode.description = changes["description"]
    if changes.get("status") is not None:
        episode.status = new_status
    if "published_at" in changes:
        episode.published_at = new_published_at
    episode.updated_at = utcnow()
    await session.commit()
    return episode_detail(episode, await _audio_for(session, episode))


@router.delete("/{episode_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_episode(
    podcast_id: str, episode_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep
):
    await get_owned_podcast(session, podcast_id, user)
    episode = await _get_episode(session, podcast_id, episode_id)
    await session.execute(delete(Episode).where(Episode.id == episode.id))
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{episode_id}/audio")
async def attach_audio(
    podcast_id: str,
    episode_id: str,
    data: AttachAudio,
    session: AsyncSession = SessionDep,
    user: AdminUser = UserDep,
):
    await get_owned_podcast(session, podcast_id, user)
    episode = await _get_episode(session, podcast_id, episode_id)
    if data.duration_seconds:
        enforce(check_episode_duration(data.duration_seconds, user.plan), "duration_seconds")

    asset = await session.get(Asset, data.audio_asset_id)
    if asset is None or (asset.owner_id is not None and asset.owner_id != user.id):
        raise not_found("Asset not found")
    if asset.type != AssetType.audio.value:
        raise AppError(400, "invalid_asset_type", "Asset must be of type audio")

    episode.audio_asset_id = asset.id
    episode.duration_seconds = data.duration_seconds
    episode.updated_at = utcnow()
    await session.commit()
    return {
        "episode_id": episode.id,
        "audio_asset_id": asset.id,
        "duration_seconds": episode.duration_seconds,
    }
