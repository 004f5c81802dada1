"""
Background scheduler service for periodic jobs.

Sweeps pending sessions the visitor abandoned and cancels them.
Uses APScheduler for in-process scheduling without external dependencies.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import Settings, get_settings
from app.core.exceptions import BusyError, InvalidTransitionError, NotFoundError
from app.core.logger import logger
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.utils.datetime_utils import now_utc

if TYPE_CHECKING:
    from app.services.chat_service import ChatService

SWEEP_BATCH_SIZE = 100


class BackgroundScheduler:
    """
    Background scheduler for periodic jobs.

    Features:
    - Abandoned session sweep (every ABANDON_SWEEP_INTERVAL_MINUTES)
    """

    def __init__(
        self,
        session_repo: IChatSessionRepository,
        chat_service: "ChatService",
        settings: Optional[Settings] = None,
    ):
        self._session_repo = session_repo
        self._chat_service = chat_service
        self._settings = settings or get_settings()
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def start(self):
        """Start the scheduler."""
        if not self._settings.ABANDON_SWEEPER_ENABLED:
            logger.info("Background scheduler disabled by configuration")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.sweep_abandoned,
            IntervalTrigger(minutes=self._settings.ABANDON_SWEEP_INTERVAL_MINUTES),
            id="abandoned_session_sweep",
            name="Abandoned Session Sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(
            "Background scheduler started:\n"
            f"  - Abandoned session sweep: every {self._settings.ABANDON_SWEEP_INTERVAL_MINUTES} minutes "
            f"(idle > {self._settings.ABANDON_AFTER_MINUTES} minutes)"
        )

    async def stop(self):
        """Stop the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("Background scheduler stopped")

    async def sweep_abandoned(self, now: Optional[datetime] = None) -> int:
        """
        Cancel pending sessions idle longer than ABANDON_AFTER_MINUTES.

        Sessions an agent has already answered, or that changed state since
        they were listed, are skipped. Returns the number cancelled.
        """
        now = now or now_utc()
        cutoff = now - timedelta(minutes=self._settings.ABANDON_AFTER_MINUTES)
        candidates = await self._session_repo.list_idle_pending(before=cutoff, limit=SWEEP_BATCH_SIZE)

        cancelled = 0
        for session in candidates:
            try:
                await self._chat_service.cancel(session.id)
                cancelled += 1
            except InvalidTransitionError:
                continue
            except (BusyError, NotFoundError) as e:
                logger.warning(f"Skipped sweeping session {session.id}: {e.message}")

        if cancelled:
            logger.info(f"Abandoned session sweep cancelled {cancelled} of {len(candidates)} sessions")
        return cancelled


# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


async def get_background_scheduler() -> BackgroundScheduler:
    """Get the global background scheduler instance."""
    global _scheduler
    if _scheduler is None:
        from app.api.deps import get_chat_service_instance, get_chat_session_repository

        _scheduler = BackgroundScheduler(
            session_repo=get_chat_session_repository(),
            chat_service=get_chat_service_instance(),
        )
    return _scheduler


async def start_background_scheduler():
    """Start the global background scheduler."""
    scheduler = await get_background_scheduler()
    await scheduler.start()


async def stop_background_scheduler():
    """Stop the global background scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
