"""
Background scheduler service for periodic jobs.

Runs the overdue check on a fixed minute step so missed placements get a
reschedule proposal without waiting for a request.
Uses APScheduler for in-process scheduling without external dependencies.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from scheduling_engine.core.config import get_settings
from scheduling_engine.core.logger import logger
from scheduling_engine.interfaces.placement_repository import IPlacementRepository
from scheduling_engine.services.reschedule_service import (
    OVERDUE_CANDIDATE_STATUSES,
    RescheduleService,
)
from scheduling_engine.utils.clock import now_utc


class BackgroundScheduler:
    """
    Background scheduler for periodic jobs.

    Features:
    - Overdue placement detection and proposal creation (every N minutes)
    - One catch-up run at startup
    """

    def __init__(
        self,
        placement_repo: IPlacementRepository,
        reschedule_service: RescheduleService,
    ):
        self._placement_repo = placement_repo
        self._reschedule_service = reschedule_service
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._last_run: Optional[datetime] = None
        self._startup_task: Optional[asyncio.Task] = None

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    async def start(self):
        """Start the scheduler and run one overdue check."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.ENVIRONMENT == "test":
            logger.info("Background scheduler disabled in test environment")
            return

        interval = max(1, min(settings.OVERDUE_CHECK_INTERVAL_MINUTES, 59))
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_overdue_checks,
            CronTrigger(minute=f"*/{interval}"),
            id="overdue_reschedule_checks",
            name="Overdue Reschedule Checks",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Background scheduler started:\n  - Overdue reschedule checks: every {interval} minutes")

        # Catch up on anything that went overdue while we were down (non-blocking)
        self._startup_task = asyncio.create_task(self._run_startup_check())

    async def stop(self):
        """Stop the scheduler."""
        if self._startup_task and not self._startup_task.done():
            self._startup_task.cancel()
        self._startup_task = None
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background scheduler stopped")

    async def _run_startup_check(self):
        """Background wrapper for the startup run with error handling."""
        try:
            await self._run_overdue_checks()
        except Exception as e:
            logger.error(f"Startup overdue check failed: {e}")

    async def _run_overdue_checks(self) -> int:
        """Create proposals for every user's overdue placements. Returns the count created."""
        user_ids = await self._placement_repo.list_user_ids(OVERDUE_CANDIDATE_STATUSES)
        created = 0
        for user_id in user_ids:
            try:
                if not await self._reschedule_service.is_auto_reschedule_enabled(user_id):
                    logger.debug(f"Skipping overdue check for user {user_id}: auto-reschedule disabled")
                    continue
                proposals = await self._reschedule_service.process_overdue(user_id)
                created += len(proposals)
            except Exception as e:
                logger.error(f"Overdue check failed for user {user_id}: {e}")
        self._last_run = now_utc()
        if created:
            logger.info(f"Overdue checks created {created} proposals across {len(user_ids)} users")
        return created


# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


async def get_background_scheduler() -> BackgroundScheduler:
    """Get the global background scheduler instance."""
    global _scheduler
    if _scheduler is None:
        from scheduling_engine.api.deps import (
            get_placement_repository,
            get_reschedule_service,
        )

        _scheduler = BackgroundScheduler(
            placement_repo=get_placement_repository(),
            reschedule_service=get_reschedule_service(),
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
