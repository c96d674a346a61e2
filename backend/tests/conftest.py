"""Shared fixtures: in-memory SQLite schema, ASGI client, users and content factories."""

import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("BASE_URL", "https://pod.example.com")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://pod.example.com/audio")
os.environ.setdefault("IP_HASH_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from podhost.db import Base, get_session  # noqa: E402
from podhost.main import app  # noqa: E402
from podhost.models import (  # noqa: E402
    AdminUser,
    Asset,
    DistributionTarget,
    Episode,
    FeedToken,
    Podcast,
)
from podhost.services.auth import hash_password, issue_session  # noqa: E402
from podhost.settings import get_settings  # noqa: E402

PASSWORD = "correct horse battery"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(
            [
                DistributionTarget(id="apple", name="Apple Podcasts", submit_url="https://podcastsconnect.apple.com/"),
                DistributionTarget(id="spotify", name="Spotify", submit_url="https://podcasters.spotify.com/"),
                DistributionTarget(id="amazon", name="Amazon Music", submit_url="https://podcasters.amazon.com/"),
            ]
        )
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def storage_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "storage_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def make_user(session_factory):
    """Factory returning ``(user, auth_headers)`` for a freshly created admin."""

    async def _make(email: str = "owner@example.com", plan: str = "starter"):
        async with session_factory() as session:
            user = AdminUser(email=email, plan=plan, password_hash=hash_password(PASSWORD))
            session.add(user)
            await session.flush()
            token, _ = await issue_session(session, user, 24)
            await session.commit()
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest_asyncio.fixture
async def owner(make_user):
    return await make_user("owner@example.com", "starter")


@pytest_asyncio.fixture
async def free_owner(make_user):
    return await make_user("free@example.com", "free")


@pytest.fixture
def make_podcast(session_factory):
    async def _make(owner_user: AdminUser, *, visibility: str = "public", token: str | None = None, **fields):
        fields.setdefault("title", "Night Shift Radio")
        fields.setdefault("description", "Conversations after dark")
        fields.setdefault("category", "Technology")
        async with session_factory() as session:
            podcast = Podcast(owner_id=owner_user.id, visibility=visibility, **fields)
            session.add(podcast)
            await session.flush()
            session.add(FeedToken(podcast_id=podcast.id, token=token or f"token-{podcast.id}"))
            await session.commit()
        return podcast

    return _make


@pytest.fixture
def make_episode(session_factory):
    async def _make(
        podcast: Podcast,
        *,
        status: str = "published",
        with_audio: bool = True,
        published_at: datetime | None = None,
        **fields,
    ):
        fields.setdefault("title", "Episode")
        async with session_factory() as session:
            audio_id = None
            if with_audio:
                audio = Asset(
                    owner_id=podcast.owner_id,
                    type="audio",
                    storage_key=f"audio/{uuid.uuid4()}.mp3",
                    public_url="https://cdn.example.com/audio/file.mp3",
                    content_type="audio/mpeg",
                    byte_size=123456,
                )
                session.add(audio)
                await session.flush()
                audio_id = audio.id
            episode = Episode(
                podcast_id=podcast.id,
                status=status,
                published_at=published_at or datetime.now(timezone.utc) - timedelta(days=1),
                audio_asset_id=audio_id,
                **fields,
            )
            session.add(episode)
            await session.commit()
        return episode

    return _make
