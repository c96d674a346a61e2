"""
Resend email API client used for magic links and contact-form messages.
"""
from __future__ import annotations

import html
import logging

import httpx

from podhost.settings import get_settings

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


async def send_email(to: str, subject: str, html_body: str, timeout_s: int = 10) -> bool:
    """POST one message to Resend. Returns False instead of raising on failure."""
    settings = get_settings()
    if not settings.resend_api_key:
        logger.warning("Resend disabled: RESEND_API_KEY missing, not sending '%s' to %s", subject, to)
        return False

    payload = {
        "from": settings.resend_from,
        "to": to,
        "subject": subject,
        "html": html_body,
    }
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}

    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            response = await client.post(RESEND_EMAILS_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error("Failed to reach Resend: %s", e)
        return False

    if response.status_code >= 400:
        logger.error("Resend API error: %s - %s", response.status_code, response.text)
        return False
    logger.info("Email '%s' sent to %s", subject, to)
    return True


def magic_link_email(link: str, ttl_minutes: int) -> tuple[str, str]:
    """Subject and HTML body for a login link."""
    safe_link = html.escape(link, quote=True)
    body = (
        "<h2>Your login link</h2>"
        f"<p>Click the link below to log in to podhost. It is valid for <strong>{ttl_minutes} minutes</strong>.</p>"
        f'<p><a href="{safe_link}">Log in to podhost</a></p>'
        f"<p>If the link doesn't work, copy this URL into your browser:<br>{safe_link}</p>"
        "<p>If you didn't request this email, you can safely ignore it.</p>"
    )
    return "Log in to podhost", body


CONTACT_SUBJECT_LABELS = {
    "general": "General question",
    "bug": "Bug report",
    "feature": "Feature request",
    "billing": "Billing",
    "other": "Other",
}


def contact_email(name: str, email: str, subject: str, message: str) -> tuple[str, str]:
    """Subject and HTML body for a contact-form submission sent to the operator."""
    label = CONTACT_SUBJECT_LABELS[subject]
    body = (
        "<h2>New contact form message</h2>"
        f"<p><strong>Name:</strong> {html.escape(name)}</p>"
        f"<p><strong>Email:</strong> {html.escape(email)}</p>"
        f"<p><strong>Subject:</strong> {label}</p>"
        "<p><strong>Message:</strong></p>"
        f'<pre style="white-space: pre-wrap; font-family: inherit;">{html.escape(message)}</pre>'
    )
    return f"[podhost] {label}: {name}", body
