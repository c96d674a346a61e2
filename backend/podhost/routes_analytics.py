from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError
from podhost.models import AdminUser
from podhost.routes_auth import require_user
from podhost.routes_podcasts import get_owned_podcast
from podhost.services import analytics
from podhost.services.plan_limits import can_access_analytics

SessionDep = Depends(get_session)

PeriodQuery = Literal["7d", "30d", "90d", "all"]


async def require_analytics_plan(user: AdminUser = Depends(require_user)) -> AdminUser:
    if not can_access_analytics(user.plan):
        raise AppError(403, "plan_required", "Analytics requires Starter plan or higher")
    return user


router = APIRouter(prefix="/api/podcasts/{podcast_id}/analytics", tags=["analytics"])
AnalyticsUser = Depends(require_analytics_plan)


@router.get("/overview")
async def get_overview(
    podcast_id: str,
    months: int = Query(6, ge=1, le=12),
    session: AsyncSession = SessionDep,
    user: AdminUser = AnalyticsUser,
):
    await get_owned_podcast(session, podcast_id, user)
    return await analytics.overview(session, podcast_id, months)


@router.get("/episodes")
async def get_episode_stats(
    podcast_id: str,
    period: PeriodQuery = Query("30d"),
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = SessionDep,
    user: AdminUser = AnalyticsUser,
):
    await get_owned_podcast(session, podcast_id, user)
    return await analytics.episode_breakdown(session, podcast_id, period, limit)


@router.get("/countries")
async def get_country_stats(
    podcast_id: str,
    period: PeriodQuery = Query("30d"),
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = SessionDep,
    user: AdminUser = AnalyticsUser,
):
    await get_owned_podcast(session, podcast_id, user)
    return await analytics.country_breakdown(session, podcast_id, period, limit)


@router.get("/daily")
async def get_daily_stats(
    podcast_id: str,
    days: int = Query(30, ge=7, le=90),
    session: AsyncSession = SessionDep,
    user: AdminUser = AnalyticsUser,
):
    await get_owned_podcast(session, podcast_id, user)
    return await analytics.daily(session, podcast_id, days)


@router.get("/platforms")
async def get_platform_stats(
    podcast_id: str,
    period: PeriodQuery = Query("30d"),
    limit: int = Query(10, ge=1, le=20),
    session: AsyncSession = SessionDep,
    user: AdminUser = AnalyticsUser,
):
    await get_owned_podcast(session, podcast_id, user)
    return await analytics.platform_breakdown(session, podcast_id, period, limit)
