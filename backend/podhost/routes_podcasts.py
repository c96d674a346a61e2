from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError, not_found
from podhost.models import AdminUser, Asset, AssetType, DistributionStatus, DistributionTarget, Episode, FeedToken, Podcast
from podhost.routes_auth import require_user
from podhost.schemas import PodcastCreate, PodcastUpdate
from podhost.services.feed_access import generate_token, private_rss_url, public_rss_url, rotate_feed_token
from podhost.services.plan_limits import check_podcast_limit, enforce
from podhost.services.timeutil import utcnow
from podhost.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/podcasts", tags=["podcasts"])
SessionDep = Depends(get_session)
UserDep = Depends(require_user)


async def get_owned_podcast(session: AsyncSession, podcast_id: str, user: AdminUser) -> Podcast:
    """Podcast owned by ``user``; foreign and missing podcasts are both 404."""
    podcast = await session.get(Podcast, podcast_id)
    if podcast is None or podcast.owner_id != user.id:
        raise not_found("Podcast not found")
    return podcast


async def _cover_url(session: AsyncSession, podcast: Podcast) -> str | None:
    if not podcast.cover_image_asset_id:
        return None
    asset = await session.get(Asset, podcast.cover_image_asset_id)
    return asset.public_url if asset else None


async def _check_cover_asset(session: AsyncSession, asset_id: str | None) -> None:
    if asset_id is None:
        return
    asset = await session.get(Asset, asset_id)
    if asset is None:
        raise not_found("Cover image asset not found")
    if asset.type != AssetType.image.value:
        raise AppError(400, "invalid_asset_type", "Cover image must be an image asset")


async def podcast_detail(session: AsyncSession, podcast: Podcast) -> dict:
    base_url = get_settings().base_url
    res = await session.execute(select(FeedToken.token).where(FeedToken.podcast_id == podcast.id))
    token = res.scalar_one_or_none()
    return {
        "id": podcast.id,
        "title": podcast.title,
        "description": podcast.description,
        "language": podcast.language,
        "category": podcast.category,
        "author_name": podcast.author_name,
        "contact_email": podcast.contact_email,
        "explicit": podcast.explicit,
        "podcast_type": podcast.podcast_type,
        "visibility": podcast.visibility,
        "cover_image_asset_id": podcast.cover_image_asset_id,
        "cover_image_url": await _cover_url(session, podcast),
        "theme_color": podcast.theme_color,
        "theme_mode": podcast.theme_mode,
        "public_rss_url": public_rss_url(base_url, podcast.id),
        "private_rss_url": private_rss_url(base_url, podcast.id, token) if token else None,
        "public_website_url": f"{base_url}/p/{podcast.id}",
        "created_at": podcast.created_at,
        "updated_at": podcast.updated_at,
    }


@router.get("")
async def list_podcasts(session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    res = await session.execute(
        select(Podcast, Asset.public_url)
        .outerjoin(Asset, Asset.id == Podcast.cover_image_asset_id)
        .where(Podcast.owner_id == user.id)
        .order_by(Podcast.created_at.desc())
    )
    rows = res.all()

    counts: dict[str, dict[str, int]] = {}
    if rows:
        count_res = await session.execute(
            select(Episode.podcast_id, Episode.status, func.count(Episode.id))
            .where(Episode.podcast_id.in_([p.id for p, _ in rows]))
            .group_by(Episode.podcast_id, Episode.status)
        )
        for podcast_id, episode_status, count in count_res.all():
            counts.setdefault(podcast_id, {})[episode_status] = int(count)

    items = []
    for podcast, cover_url in rows:
        per_status = counts.get(podcast.id, {})
        items.append(
            {
                "id": podcast.id,
                "title": podcast.title,
                "visibility": podcast.visibility,
                "cover_image_url": cover_url,
                "episode_counts": {
                    "draft": per_status.get("draft", 0),
                    "scheduled": per_status.get("scheduled", 0),
                    "published": per_status.get("published", 0),
                },
                "updated_at": podcast.updated_at,
            }
        )
    return {"items": items, "next_cursor": None}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_podcast(data: PodcastCreate, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    owned = (await session.execute(select(func.count(Podcast.id)).where(Podcast.owner_id == user.id))).scalar_one()
    enforce(check_podcast_limit(owned, user.plan), "podcasts")
    await _check_cover_asset(session, data.cover_image_asset_id)

    podcast = Podcast(
        owner_id=user.id,
        title=data.title,
        description=data.description,
        language=data.language,
        category=data.category,
        author_name=data.author_name,
        contact_email=data.contact_email,
        explicit=data.explicit,
        podcast_type=data.podcast_type.value,
        visibility=data.visibility.value,
        cover_image_asset_id=data.cover_image_asset_id,
        theme_color=data.theme_color,
        theme_mode=data.theme_mode,
    )
    session.add(podcast)
    await session.flush()

    session.add(FeedToken(podcast_id=podcast.id, token=generate_token()))
    target_ids = (await session.execute(select(DistributionTarget.id))).scalars().all()
    for target_id in target_ids:
        session.add(DistributionStatus(podcast_id=podcast.id, target_id=target_id))
    await session.commit()

    logger.info("Created podcast %s for user %s", podcast.id, user.id)
    return await podcast_detail(session, podcast)


@router.get("/{podcast_id}")
async def get_podcast(podcast_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    podcast = await get_owned_podcast(session, podcast_id, user)
    return await podcast_detail(session, podcast)


@router.patch("/{podcast_id}")
async def update_podcast(
    podcast_id: str, data: PodcastUpdate, session: AsyncSession = SessionDep, user: AdminUser = UserDep
):
    podcast = await get_owned_podcast(session, podcast_id, user)
    changes = data.model_dump(exclude_unset=True)
    if "cover_image_asset_id" in changes:
        await _check_cover_asset(session, changes["cover_image_asset_id"])

    for field, value in changes.items():
        if field in ("title", "description", "language", "category") and value is None:
            continue
        setattr(podcast, field, getattr(value, "value", value))
    podcast.updated_at = utcnow()
    await session.commit()
    return await podcast_detail(session, podcast)


@router.delete("/{podcast_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_podcast(podcast_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    podcast = await get_owned_podcast(session, podcast_id, user)
    await session.execute(delete(Podcast).where(Podcast.id == podcast.id))
    await session.commit()
    logger.info("Deleted podcast %s", podcast_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{podcast_id}/feed-token/rotate")
async def rotate_token(podcast_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    podcast = await get_owned_podcast(session, podcast_id, user)
    token, rotated_at = await rotate_feed_token(session, podcast.id)
    await session.commit()
    return {
        "private_rss_url": private_rss_url(get_settings().base_url, podcast.id, token),
        "rotated_at": rotated_at,
    }
