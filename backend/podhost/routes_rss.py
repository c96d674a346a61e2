from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import not_found
from podhost.models import Asset, Episode, EpisodeStatus, Podcast
from podhost.services.feed_access import authorize
from podhost.services.rss import (
    FeedEntry,
    compute_etag,
    compute_feed_dates,
    format_rfc2822,
    is_not_modified,
    render_feed,
    select_feed_entries,
)
from podhost.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rss"])

RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"


@router.get("/rss/{podcast_id}.xml")
async def get_feed(
    podcast_id: str,
    token: str | None = Query(None),
    if_none_match: str | None = Header(None),
    if_modified_since: str | None = Header(None),
    session: AsyncSession = Depends(get_session),
):
    settings = get_settings()
    podcast = await session.get(Podcast, podcast_id)
    if podcast is None:
        raise not_found("Podcast not found")

    decision = await authorize(session, podcast, token)
    if not decision.allowed:
        # Denial renders exactly like a missing podcast.
        logger.info("Feed access denied for %s: %s", podcast_id, decision.reason)
        raise not_found("Podcast not found")

    res = await session.execute(
        select(Episode, Asset)
        .outerjoin(Asset, Asset.id == Episode.audio_asset_id)
        .where(Episode.podcast_id == podcast.id, Episode.status == EpisodeStatus.published.value)
    )
    entries = [FeedEntry(episode, audio) for episode, audio in res.all()]

    dates = compute_feed_dates(podcast, select_feed_entries(entries))
    etag = compute_etag(dates.last_build_date)
    headers = {
        "ETag": etag,
        "Last-Modified": format_rfc2822(dates.last_build_date),
        "Cache-Control": f"public, max-age={settings.feed_max_age_seconds}",
    }
    if is_not_modified(etag, dates.last_build_date, if_none_match, if_modified_since):
        return Response(status_code=304, headers=headers)

    cover_image_url = None
    if podcast.cover_image_asset_id:
        cover = await session.get(Asset, podcast.cover_image_asset_id)
        cover_image_url = cover.public_url if cover else None

    feed = render_feed(
        podcast,
        entries,
        cover_image_url=cover_image_url,
        channel_link=f"{settings.base_url}/p/{podcast.id}",
        base_url=settings.base_url,
    )
    return Response(content=feed.xml, media_type=RSS_MEDIA_TYPE, headers=headers)
