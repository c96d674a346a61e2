"""
Admin authentication primitives.

Passwords are stored as ``pbkdf2:<iterations>:<salt hex>:<hash hex>``.
Session and magic-link tokens are random strings handed to the client once;
only their SHA-256 digest is persisted.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from podhost.models import AdminSession, AdminUser, MagicLink
from podhost.services.timeutil import ensure_utc, utcnow

PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16
KEY_BYTES = 32


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = secrets.token_bytes(SALT_BYTES)
    derived = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, iterations, dklen=KEY_BYTES)
    return f"pbkdf2:{iterations}:{salt.hex()}:{derived.hex()}"


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    parts = stored.split(":")
    if len(parts) != 4 or parts[0] != "pbkdf2":
        return False
    try:
        iterations = int(parts[1])
        salt = bytes.fromhex(parts[2])
    except ValueError:
        return False
    derived = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, iterations, dklen=KEY_BYTES)
    return hmac.compare_digest(derived.hex(), parts[3])


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


async def issue_session(session: AsyncSession, user: AdminUser, ttl_hours: int) -> tuple[str, datetime]:
    """Create a session row and return the raw bearer token. Caller commits."""
    token = generate_token()
    expires_at = utcnow() + timedelta(hours=ttl_hours)
    session.add(AdminSession(user_id=user.id, token_hash=hash_token(token), expires_at=expires_at))
    await session.flush()
    return token, expires_at


async def resolve_session(session: AsyncSession, token: str) -> tuple[AdminUser, AdminSession] | None:
    res = await session.execute(
        select(AdminUser, AdminSession)
        .join(AdminSession, AdminSession.user_id == AdminUser.id)
        .where(AdminSession.token_hash == hash_token(token))
    )
    row = res.first()
    if row is None:
        return None
    user, admin_session = row
    if ensure_utc(admin_session.expires_at) <= utcnow():
        return None
    return user, admin_session


async def revoke_session(session: AsyncSession, token: str) -> None:
    await session.execute(delete(AdminSession).where(AdminSession.token_hash == hash_token(token)))
    await session.commit()


async def create_magic_link(session: AsyncSession, email: str, ttl_minutes: int) -> str:
    token = generate_token()
    session.add(
        MagicLink(
            email=email,
            token_hash=hash_token(token),
            expires_at=utcnow() + timedelta(minutes=ttl_minutes),
        )
    )
    await session.commit()
    return token


async def consume_magic_link(session: AsyncSession, token: str) -> str | None:
    """Mark a valid, unused link as used and return its email. Caller commits."""
    res = await session.execute(select(MagicLink).where(MagicLink.token_hash == hash_token(token)))
    link = res.scalar_one_or_none()
    now = utcnow()
    if link is None or link.used_at is not None or ensure_utc(link.expires_at) <= now:
        return None
    link.used_at = now
    await session.flush()
    return link.email
