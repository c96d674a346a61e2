"""
Analytics Aggregator

Builds the dashboard facets for one podcast:
- overview: trailing months from the MonthlyPlayStat rollup, zero-filled
- episodes / countries / platforms: PlayLog grouped over a period
- daily: PlayLog grouped by UTC calendar date, zero-filled

Percentages are always taken against the whole period total, one decimal
place, half rounding up, and 0 when there were no plays.
"""
from __future__ import annotations

import calendar
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.models import Episode, MonthlyPlayStat, PlayLog
from podhost.services.platform import detect_platform, platform_display_name
from podhost.services.timeutil import shift_month, utcnow, year_month

logger = logging.getLogger(__name__)

Period = Literal["7d", "30d", "90d", "all"]

PERIOD_DAYS: dict[str, int | None] = {"7d": 7, "30d": 30, "90d": 90, "all": None}
UNKNOWN_COUNTRY = "UNKNOWN"
OTHER_BUCKET = "OTHER"
UNKNOWN_EPISODE_TITLE = "Unknown Episode"


@dataclass
class Bucket:
    key: str
    play_count: int
    percentage: float


def percentage(count: int, total: int) -> float:
    """``round(count / total * 1000) / 10`` with halves rounding up."""
    if total <= 0:
        return 0
    return math.floor(count / total * 1000 + 0.5) / 10


def bucket_long_tail(counts: Iterable[tuple[str, int]], limit: int) -> tuple[list[Bucket], int]:
    """Top ``limit`` entries plus one OTHER bucket for the rest.

    ``counts`` must be ordered by count descending. Returns the buckets and
    the grand total. The OTHER bucket is only present if the tail is non-empty.
    """
    rows = list(counts)
    total = sum(count for _, count in rows)
    buckets = [Bucket(key, count, percentage(count, total)) for key, count in rows[:limit]]
    other_total = sum(count for _, count in rows[limit:])
    if other_total > 0:
        buckets.append(Bucket(OTHER_BUCKET, other_total, percentage(other_total, total)))
    return buckets, total


def fill_daily_series(counts: dict[str, int], start: date, end: date) -> list[dict]:
    series = []
    day = start
    while day <= end:
        key = day.isoformat()
        series.append({"date": key, "play_count": counts.get(key, 0)})
        day += timedelta(days=1)
    return series


def trailing_months(today: date, months: int) -> list[str]:
    """Year-month keys for the last ``months`` months, oldest first, ending at ``today``'s month."""
    keys = []
    for delta in range(months - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -delta)
        keys.append(f"{year:04d}-{month:02d}")
    return keys


def fill_monthly_series(counts: dict[str, int], month_keys: list[str]) -> list[dict]:
    return [{"year_month": key, "play_count": counts.get(key, 0)} for key in month_keys]


def period_start(period: str, now: datetime) -> datetime | None:
    days = PERIOD_DAYS[period]
    if days is None:
        return None
    start_day = now.date() - timedelta(days=days)
    return datetime.combine(start_day, time.min, tzinfo=timezone.utc)


def _play_filters(podcast_id: str, since: datetime | None) -> list:
    filters = [PlayLog.podcast_id == podcast_id]
    if since is not None:
        filters.append(PlayLog.played_at >= since)
    return filters


async def overview(session: AsyncSession, podcast_id: str, months: int, now: datetime | None = None) -> dict:
    now = now or utcnow()
    today = now.date()
    month_keys = trailing_months(today, months)
    current_month = year_month(today)

    res = await session.execute(
        select(MonthlyPlayStat.year_month, MonthlyPlayStat.play_count).where(
            MonthlyPlayStat.podcast_id == podcast_id,
            MonthlyPlayStat.year_month >= month_keys[0],
            MonthlyPlayStat.year_month <= current_month,
        )
    )
    counts = {ym: int(count) for ym, count in res.all()}
    monthly = fill_monthly_series(counts, month_keys)
    last_day = calendar.monthrange(today.year, today.month)[1]

    return {
        "podcast_id": podcast_id,
        "period": {"start": f"{month_keys[0]}-01", "end": f"{current_month}-{last_day:02d}"},
        "monthly_plays": monthly,
        "total_plays": sum(m["play_count"] for m in monthly),
        "current_month_plays": counts.get(current_month, 0),
    }


async def episode_breakdown(
    session: AsyncSession, podcast_id: str, period: str, limit: int, now: datetime | None = None
) -> dict:
    filters = _play_filters(podcast_id, period_start(period, now or utcnow()))
    play_count = func.count(PlayLog.id)

    total = (await session.execute(select(func.count(PlayLog.id)).where(*filters))).scalar_one()
    res = await session.execute(
        select(PlayLog.episode_id, play_count)
        .where(*filters)
        .group_by(PlayLog.episode_id)
        .order_by(play_count.desc(), PlayLog.episode_id)
        .limit(limit)
    )
    rows = res.all()

    titles: dict[str, str] = {}
    if rows:
        title_res = await session.execute(
            select(Episode.id, Episode.title).where(Episode.id.in_([episode_id for episode_id, _ in rows]))
        )
        titles = dict(title_res.all())

    return {
        "podcast_id": podcast_id,
        "period": period,
        "episodes": [
            {
                "episode_id": episode_id,
                "title": titles.get(episode_id, UNKNOWN_EPISODE_TITLE),
                "play_count": int(count),
                "percentage": percentage(int(count), total),
            }
            for episode_id, count in rows
        ],
        "total_plays": total,
    }


async def country_breakdown(
    session: AsyncSession, podcast_id: str, period: str, limit: int, now: datetime | None = None
) -> dict:
    filters = _play_filters(podcast_id, period_start(period, now or utcnow()))
    res = await session.execute(
        select(PlayLog.country, func.count(PlayLog.id)).where(*filters).group_by(PlayLog.country)
    )
    merged: dict[str, int] = defaultdict(int)
    for country, count in res.all():
        merged[country or UNKNOWN_COUNTRY] += int(count)
    ordered = sorted(merged.items(), key=lambda item: (-item[1], item[0]))
    buckets, total = bucket_long_tail(ordered, limit)

    return {
        "podcast_id": podcast_id,
        "period": period,
        "countries": [
            {"country": b.key, "play_count": b.play_count, "percentage": b.percentage} for b in buckets
        ],
        "total_plays": total,
    }


async def platform_breakdown(
    session: AsyncSession, podcast_id: str, period: str, limit: int, now: datetime | None = None
) -> dict:
    filters = _play_filters(podcast_id, period_start(period, now or utcnow()))
    res = await session.execute(
        select(PlayLog.user_agent, func.count(PlayLog.id)).where(*filters).group_by(PlayLog.user_agent)
    )
    merged: dict[str, int] = defaultdict(int)
    for user_agent, count in res.all():
        merged[detect_platform(user_agent).value] += int(count)
    ordered = sorted(merged.items(), key=lambda item: (-item[1], item[0]))
    buckets, total = bucket_long_tail(ordered, limit)

    return {
        "podcast_id": podcast_id,
        "period": period,
        "platforms": [
            {
                "platform": b.key,
                "display_name": platform_display_name(b.key),
                "play_count": b.play_count,
                "percentage": b.percentage,
            }
            for b in buckets
        ],
        "total_plays": total,
    }


def utc_play_date(dialect_name: str):
    """Calendar date of ``played_at`` in UTC.

    PostgreSQL casts ``timestamptz`` to a date in the session's TimeZone,
    so the value is shifted to UTC first. SQLite stores UTC text already.
    """
    if dialect_name == "postgresql":
        return func.date(func.timezone("UTC", PlayLog.played_at))
    return func.date(PlayLog.played_at)


async def daily(session: AsyncSession, podcast_id: str, days: int, now: datetime | None = None) -> dict:
    now = now or utcnow()
    end = now.date()
    start = end - timedelta(days=days - 1)
    since = datetime.combine(start, time.min, tzinfo=timezone.utc)

    play_date = utc_play_date(session.get_bind().dialect.name)
    res = await session.execute(
        select(play_date, func.count(PlayLog.id))
        .where(PlayLog.podcast_id == podcast_id, PlayLog.played_at >= since)
        .group_by(play_date)
    )
    # PostgreSQL returns date objects, SQLite returns ISO strings.
    counts = {
        (d.isoformat() if isinstance(d, date) else str(d)): int(count) for d, count in res.all() if d is not None
    }

    return {
        "podcast_id": podcast_id,
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "daily_plays": fill_daily_series(counts, start, end),
    }
