"""Scheduler for delayed, cancelable actions (presence debounce and the like)."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=UTC)


class DelayedActions:
    """One cancelable delayed action per key, backed by APScheduler date jobs.

    Scheduling a key that already has a pending action replaces it, so the
    quiet window restarts. Cancelling a key that has nothing pending is a no-op.
    """

    def __init__(self, backend: AsyncIOScheduler, *, prefix: str) -> None:
        self._backend = backend
        self._prefix = prefix

    def _job_id(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def schedule(self, key: str, delay_seconds: float, func: Callable[..., Any], *args: Any) -> None:
        """(Re)arm the action for ``key`` to run once after ``delay_seconds``."""
        run_date = datetime.now(UTC) + timedelta(seconds=delay_seconds)
        self._backend.add_job(
            func,
            trigger=DateTrigger(run_date=run_date),
            args=list(args),
            id=self._job_id(key),
            name=f"delayed {self._prefix}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug("Scheduled delayed action", extra={"key": key, "delay_seconds": delay_seconds})

    def cancel(self, key: str) -> bool:
        """Cancel the pending action for ``key``; return True if one was pending."""
        try:
            self._backend.remove_job(self._job_id(key))
        except JobLookupError:
            return False
        logger.debug("Cancelled delayed action", extra={"key": key})
        return True

    def is_pending(self, key: str) -> bool:
        """Whether an action is armed for ``key``."""
        return self._backend.get_job(self._job_id(key)) is not None


def start_scheduler() -> None:
    """Start the scheduler.

    This should be called during FastAPI app startup.
    """
    if scheduler.running:
        return
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler without waiting for pending delayed actions."""
    if not scheduler.running:
        return
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")
