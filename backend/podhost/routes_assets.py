"""
Two-phase asset upload:

1. ``POST /api/assets/upload-url`` inserts the pending metadata row
2. ``PUT /api/assets/{id}/upload`` writes the bytes to the object store
3. ``POST /api/assets/{id}/complete`` checks the bytes landed and finalizes
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError, not_found
from podhost.models import AdminUser, Asset, AssetType, new_id
from podhost.routes_auth import require_user
from podhost.schemas import AssetComplete, AssetRead, AssetUploadRequest
from podhost.services.storage import build_storage_key, get_storage
from podhost.services.timeutil import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assets", tags=["assets"])
SessionDep = Depends(get_session)
UserDep = Depends(require_user)

ALLOWED_CONTENT_TYPES = {
    AssetType.audio.value: ("audio/mpeg", "audio/mp4", "audio/wav"),
    AssetType.image.value: ("image/jpeg", "image/png", "image/webp"),
}
UPLOAD_EXPIRES_IN = 900


async def _get_owned_asset(session: AsyncSession, asset_id: str, user: AdminUser) -> Asset:
    asset = await session.get(Asset, asset_id)
    if asset is None or asset.owner_id != user.id:
        raise not_found("Asset not found")
    return asset


@router.post("/upload-url", status_code=status.HTTP_201_CREATED)
async def create_upload(data: AssetUploadRequest, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    allowed = ALLOWED_CONTENT_TYPES[data.type.value]
    if data.content_type not in allowed:
        reason = f"must be one of: {', '.join(allowed)}"
        raise AppError(
            400,
            "invalid_content_type",
            f"Content type {reason}",
            [{"field": "content_type", "reason": reason}],
        )

    asset_id = new_id()
    storage_key = build_storage_key(data.type.value, asset_id, data.file_name)
    asset = Asset(
        id=asset_id,
        owner_id=user.id,
        type=data.type.value,
        storage_key=storage_key,
        public_url=get_storage().public_url(storage_key),
        content_type=data.content_type,
        byte_size=data.byte_size,
    )
    session.add(asset)
    await session.commit()

    return {
        "asset_id": asset_id,
        "upload": {
            "method": "PUT",
            "url": f"/api/assets/{asset_id}/upload",
            "headers": {"Content-Type": data.content_type},
            "expires_in": UPLOAD_EXPIRES_IN,
        },
    }


@router.put("/{asset_id}/upload")
async def upload_bytes(asset_id: str, request: Request, session: AsyncSession = SessionDep, user: AdminUser = UserDep):
    asset = await _get_owned_asset(session, asset_id, user)
    body = await request.body()
    if not body:
        raise AppError(400, "validation_error", "Empty upload", [{"field": "body", "reason": "required"}])
    await get_storage().put(asset.storage_key, body)
    return {"message": "Upload successful", "byte_size": len(body)}


@router.post("/{asset_id}/complete", response_model=AssetRead)
async def complete_upload(
    asset_id: str, data: AssetComplete, session: AsyncSession = SessionDep, user: AdminUser = UserDep
):
    asset = await _get_owned_asset(session, asset_id, user)
    stored_size = get_storage().size(asset.storage_key)
    if stored_size is None:
        raise AppError(400, "upload_not_found", "Upload not found in storage")

    asset.byte_size = stored_size
    if data.checksum:
        asset.checksum = data.checksum
    asset.completed_at = utcnow()
    await session.commit()
    logger.info("Asset %s completed (%d bytes)", asset.id, stored_size)
    return asset
