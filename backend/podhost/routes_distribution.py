from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import not_found
from podhost.models import AdminUser, DistributionStatus, DistributionTarget, Episode, EpisodeStatus
from podhost.routes_auth import require_user
from podhost.routes_podcasts import get_owned_podcast
from podhost.schemas import DirectoryCheckRequest, DistributionStatusUpdate
from podhost.services.directory_check import check_directories
from podhost.services.timeutil import utcnow

router = APIRouter(prefix="/api/podcasts/{podcast_id}", tags=["distribution"])
SessionDep = Depends(get_session)
UserDep = Depends(require_user)


def _status_item(status_row: DistributionStatus, target: DistributionTarget) -> dict:
    return {
        "target_id": target.id,
        "target_name": target.name,
        "status": status_row.status,
        "note": status_row.note,
        "submit_url": target.submit_url,
        "last_checked_at": status_row.last_checked_at,
        "updated_at": status_row.updated_at,
    }


@router.get("/distribution-statuses")
async def list_distribution_statuses(podcast_id: str, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    await get_owned_podcast(session, podcast_id, user)

    targets = (await session.execute(select(DistributionTarget).order_by(DistributionTarget.id))).scalars().all()
    existing = {
        row.target_id: row
        for row in (
            await session.execute(select(DistributionStatus).where(DistributionStatus.podcast_id == podcast_id))
        ).scalars()
    }

    missing = [t for t in targets if t.id not in existing]
    for target in missing:
        row = DistributionStatus(podcast_id=podcast_id, target_id=target.id)
        session.add(row)
        existing[target.id] = row
    if missing:
        await session.commit()

    return {"items": [_status_item(existing[t.id], t) for t in targets]}


@router.patch("/distribution-statuses/{target_id}")
async def update_distribution_status(
    podcast_id: str,
    target_id: str,
    data: DistributionStatusUpdate,
    session: AsyncSession = SessionDep,
    user: AdminUser = UserDep,
):
    await get_owned_podcast(session, podcast_id, user)
    res = await session.execute(
        select(DistributionStatus, DistributionTarget)
        .join(DistributionTarget, DistributionTarget.id == DistributionStatus.target_id)
        .where(DistributionStatus.podcast_id == podcast_id, DistributionStatus.target_id == target_id)
    )
    row = res.first()
    if row is None:
        raise not_found("Distribution status not found")
    status_row, target = row

    changes = data.model_dump(exclude_unset=True)
    status_row.status = data.status.value
    if "note" in changes:
        status_row.note = data.note
    if "last_checked_at" in changes:
        status_row.last_checked_at = data.last_checked_at
    status_row.updated_at = utcnow()
    await session.commit()
    return _status_item(status_row, target)


@router.post("/rss/validate")
async def validate_for_directories(
    podcast_id: str,
    data: DirectoryCheckRequest | None = Body(None),
    session: AsyncSession = SessionDep,
    user: AdminUser = UserDep,
):
    podcast = await get_owned_podcast(session, podcast_id, user)
    published = (
        await session.execute(
            select(func.count(Episode.id)).where(
                Episode.podcast_id == podcast.id, Episode.status == EpisodeStatus.published.value
            )
        )
    ).scalar_one()
    return check_directories(podcast, published, data.targets if data else None)
