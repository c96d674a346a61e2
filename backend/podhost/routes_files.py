from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError, not_found
from podhost.models import Asset
from podhost.services.storage import InvalidStorageKey, get_storage

router = APIRouter(prefix="/audio", tags=["files"])


@router.get("/{storage_key:path}")
async def get_asset_file(storage_key: str, session: AsyncSession = Depends(get_session)):
    storage = get_storage()
    try:
        found = storage.exists(storage_key)
    except InvalidStorageKey:
        raise AppError(400, "validation_error", "Invalid storage key")
    if not found:
        raise not_found("File not found")

    res = await session.execute(select(Asset.content_type).where(Asset.storage_key == storage_key))
    content_type = res.scalar_one_or_none()
    if content_type is None:
        raise not_found("File not found")
    return FileResponse(storage.path_for(storage_key), media_type=content_type)
