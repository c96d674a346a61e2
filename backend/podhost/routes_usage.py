from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.models import AdminUser, MonthlyPlayStat, Podcast
from podhost.routes_auth import require_user
from podhost.services.plan_limits import can_access_analytics, check_monthly_play_limit, get_plan_limits
from podhost.services.timeutil import utcnow, year_month

router = APIRouter(prefix="/api/me", tags=["usage"])


@router.get("/usage")
async def get_usage(session: AsyncSession = Depends(get_session), user: AdminUser = Depends(require_user)):
    """Current consumption against the caller's plan. Play caps are informational only."""
    limits = get_plan_limits(user.plan)
    month = year_month(utcnow())

    podcast_count = (
        await session.execute(select(func.count(Podcast.id)).where(Podcast.owner_id == user.id))
    ).scalar_one()
    monthly_plays = (
        await session.execute(
            select(func.coalesce(func.sum(MonthlyPlayStat.play_count), 0))
            .join(Podcast, Podcast.id == MonthlyPlayStat.podcast_id)
            .where(Podcast.owner_id == user.id, MonthlyPlayStat.year_month == month)
        )
    ).scalar_one()

    play_check = check_monthly_play_limit(int(monthly_plays), user.plan)
    return {
        "plan": user.plan,
        "year_month": month,
        "podcasts": {"current": podcast_count, "limit": limits.max_podcasts},
        "monthly_plays": {
            "current": int(monthly_plays),
            "limit": limits.max_monthly_plays,
            "exceeded": not play_check.allowed,
        },
        "max_episodes_per_podcast": limits.max_episodes_per_podcast,
        "max_episode_duration_seconds": limits.max_episode_duration_seconds,
        "analytics": can_access_analytics(user.plan),
    }
