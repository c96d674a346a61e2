"""
Scheduler Service

Runs the periodic scheduled-episode publisher.

Single-leader election via Postgres advisory locks:
- Only the instance that acquires the lock executes the tick
- Other instances silently skip
- Controlled by SCHEDULER_ENABLED env (default: true)
"""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from podhost.services.publishing import promote_due_episodes
from podhost.settings import get_settings

logger = logging.getLogger("scheduler")

# Advisory lock key (arbitrary int64, unique per job type)
LOCK_PUBLISH_SCHEDULED = 910_001


class SchedulerService:
    """Periodic jobs guarded by pg_try_advisory_lock on PostgreSQL."""

    _instance: "SchedulerService | None" = None

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._session_factory: async_sessionmaker | None = None
        self._running = False

    @classmethod
    def get_instance(cls) -> "SchedulerService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def configure(self, database_url: str):
        engine = create_async_engine(database_url, echo=False)
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    def configure_session_factory(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def _get_session(self) -> AsyncSession:
        if not self._session_factory:
            self.configure(get_settings().async_database_url)
        return self._session_factory()

    @staticmethod
    def _uses_advisory_locks(session: AsyncSession) -> bool:
        return session.get_bind().dialect.name == "postgresql"

    async def _try_advisory_lock(self, session: AsyncSession, lock_key: int) -> bool:
        """Non-blocking session-level lock; released when the connection closes."""
        if not self._uses_advisory_locks(session):
            return True
        result = await session.execute(text(f"SELECT pg_try_advisory_lock({lock_key})"))
        return bool(result.scalar())

    async def _release_advisory_lock(self, session: AsyncSession, lock_key: int):
        if not self._uses_advisory_locks(session):
            return
        await session.execute(text(f"SELECT pg_advisory_unlock({lock_key})"))

    def start(self):
        """Start the scheduler (respects SCHEDULER_ENABLED env)."""
        settings = get_settings()
        if not settings.scheduler_enabled:
            logger.info("Scheduler disabled by SCHEDULER_ENABLED=false, skipping start")
            return
        if self._running:
            return

        self.scheduler.add_job(
            self.run_publish_scheduled,
            IntervalTrigger(minutes=settings.publish_interval_minutes),
            id="publish_scheduled",
            name="Publish due scheduled episodes",
            replace_existing=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info("Scheduler started (single-leader mode via advisory locks)")

    def stop(self):
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    async def run_publish_scheduled(self) -> list[str] | None:
        """Promote due scheduled episodes. Returns None when another instance holds the lock."""
        async with await self._get_session() as session:
            acquired = await self._try_advisory_lock(session, LOCK_PUBLISH_SCHEDULED)
            if not acquired:
                logger.debug("[publish_scheduled] Advisory lock not acquired, skipping tick")
                return None

            try:
                promoted = await promote_due_episodes(session)
                logger.info("[publish_scheduled] Completed: %d episodes promoted", len(promoted))
                return promoted
            except Exception:
                logger.exception("[publish_scheduled] Tick failed")
                await session.rollback()
                return []
            finally:
                await self._release_advisory_lock(session, LOCK_PUBLISH_SCHEDULED)


scheduler_service = SchedulerService.get_instance()
