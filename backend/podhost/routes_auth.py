"""
Admin authentication routes.

Bearer sessions are stored hashed in ``admin_sessions``; login works either
with email + password or with a single-use magic link sent by email.
"""
from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.db import get_session
from podhost.errors import AppError
from podhost.integrations.resend_api import magic_link_email, send_email
from podhost.models import AdminUser, Plan
from podhost.schemas import LoginRequest, MagicLinkRequest, MagicLinkVerify, SessionResponse, UserRead
from podhost.services import auth as auth_service
from podhost.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)
SessionDep = Depends(get_session)


async def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = SessionDep,
) -> AdminUser:
    """Dependency that resolves the bearer token to an admin user or fails with 401."""
    if not credentials:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "unauthorized", "Not authenticated")
    resolved = await auth_service.resolve_session(session, credentials.credentials)
    if resolved is None:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "unauthorized", "Invalid or expired token")
    user, _ = resolved
    return user


async def _start_session(session: AsyncSession, user: AdminUser) -> SessionResponse:
    token, expires_at = await auth_service.issue_session(session, user, get_settings().session_ttl_hours)
    await session.commit()
    return SessionResponse(token=token, expires_at=expires_at, user=UserRead.model_validate(user))


@router.post("/login", response_model=SessionResponse)
async def login(data: LoginRequest, session: AsyncSession = SessionDep):
    res = await session.execute(select(AdminUser).where(AdminUser.email == data.email.strip().lower()))
    user = res.scalar_one_or_none()
    if user is None or not auth_service.verify_password(data.password, user.password_hash):
        raise AppError(status.HTTP_401_UNAUTHORIZED, "invalid_credentials", "Invalid email or password")
    return await _start_session(session, user)


@router.post("/logout")
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = SessionDep,
):
    if credentials:
        await auth_service.revoke_session(session, credentials.credentials)
    return {"status": "logged out"}


@router.get("/me", response_model=UserRead)
async def me(user: AdminUser = Depends(require_user)):
    return user


@router.post("/magic-link", status_code=status.HTTP_202_ACCEPTED)
async def request_magic_link(data: MagicLinkRequest, session: AsyncSession = SessionDep):
    """Email a login link. The response is identical whether or not the address is known."""
    settings = get_settings()
    token = await auth_service.create_magic_link(session, data.email, settings.magic_link_ttl_minutes)
    link = f"{settings.base_url}/auth/verify?token={quote(token)}"
    subject, body = magic_link_email(link, settings.magic_link_ttl_minutes)
    sent = await send_email(data.email, subject, body)
    if not sent:
        logger.warning("Magic link email to %s was not delivered", data.email)
    return {"message": "If the address can receive email, a login link is on its way"}


@router.post("/magic-link/verify", response_model=SessionResponse)
async def verify_magic_link(data: MagicLinkVerify, session: AsyncSession = SessionDep):
    email = await auth_service.consume_magic_link(session, data.token)
    if email is None:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "unauthorized", "Invalid or expired link")

    res = await session.execute(select(AdminUser).where(AdminUser.email == email))
    user = res.scalar_one_or_none()
    if user is None:
        user = AdminUser(email=email, plan=Plan.free.value)
        session.add(user)
        await session.flush()
        logger.info("Created admin user %s via magic link", user.id)
    return await _start_session(session, user)
