"""
Play tracking: one PlayLog row per redirect plus an atomic bump of the
podcast's MonthlyPlayStat counter.
"""
from __future__ import annotations

import hashlib
import hmac
from datetime import datetime

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.models import MonthlyPlayStat, PlayLog
from podhost.services.timeutil import utcnow, year_month
from podhost.settings import get_settings

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def hash_ip(ip: str | None, secret: str) -> str | None:
    """Keyed one-way hash of the client address (hex HMAC-SHA256)."""
    if not ip:
        return None
    return hmac.new(secret.encode(), ip.encode(), hashlib.sha256).hexdigest()


def truncate_user_agent(user_agent: str | None, max_length: int) -> str | None:
    if user_agent is None:
        return None
    return user_agent[:max_length]


def extract_client_ip(headers, header_names: list[str]) -> str | None:
    """First usable address from the configured headers, in order.

    Forwarded-for style headers may carry a list; the left-most entry is
    the original client.
    """
    for name in header_names:
        value = headers.get(name)
        if not value:
            continue
        first = value.split(",")[0].strip()
        if first:
            return first
    return None


def extract_country(headers, header_name: str) -> str | None:
    value = (headers.get(header_name) or "").strip().upper()
    return value or None


def _monthly_upsert(dialect_name: str, podcast_id: str, month: str, now: datetime):
    insert = _UPSERT_DIALECTS.get(dialect_name)
    if insert is None:
        raise RuntimeError(f"Atomic upsert not supported on dialect {dialect_name!r}")
    stmt = insert(MonthlyPlayStat).values(
        podcast_id=podcast_id,
        year_month=month,
        play_count=1,
        updated_at=now,
    )
    return stmt.on_conflict_do_update(
        index_elements=[MonthlyPlayStat.podcast_id, MonthlyPlayStat.year_month],
        set_={
            "play_count": MonthlyPlayStat.play_count + 1,
            "updated_at": stmt.excluded.updated_at,
        },
    )


async def record_play(
    session: AsyncSession,
    *,
    episode_id: str,
    podcast_id: str,
    client_ip: str | None,
    user_agent: str | None,
    country: str | None,
    now: datetime | None = None,
) -> None:
    """Append a PlayLog row and bump the month counter, then commit."""
    settings = get_settings()
    now = now or utcnow()

    session.add(
        PlayLog(
            episode_id=episode_id,
            podcast_id=podcast_id,
            ip_hash=hash_ip(client_ip, settings.ip_hash_secret),
            user_agent=truncate_user_agent(user_agent, settings.user_agent_max_length),
            country=country,
            played_at=now,
        )
    )
    await session.flush()

    dialect_name = session.get_bind().dialect.name
    stmt = _monthly_upsert(dialect_name, podcast_id, year_month(now), now)
    await session.execute(stmt)
    await session.commit()
