from __future__ import annotations

import logging

from fastapi import APIRouter

from podhost.errors import AppError
from podhost.integrations.resend_api import contact_email, send_email
from podhost.schemas import ContactRequest
from podhost.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


@router.post("")
async def submit_contact(data: ContactRequest):
    settings = get_settings()
    if not settings.resend_api_key:
        logger.info("Contact form from %s (%s) not emailed, Resend is not configured", data.email, data.subject)
        return {"success": True}

    subject, body = contact_email(data.name, data.email, data.subject, data.message)
    if not await send_email(settings.resend_from, subject, body):
        raise AppError(500, "send_failed", "Failed to send message")
    return {"success": True}
