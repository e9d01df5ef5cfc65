"""
Membership Expiry Service
Periodically moves ACTIVE memberships past their end date to EXPIRED
"""
import asyncio
from datetime import date
from typing import Any, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gymbook.core.config import MEMBERSHIP_EXPIRY_INTERVAL_SECONDS
from gymbook.core.logging_config import get_logger
from gymbook.core.timeutils import club_today
from gymbook.crud.membershipsCrud import expire_old_memberships

logger = get_logger("services.membership_expiry")


class MembershipExpiryService:
    """Runs the expiry sweep on a fixed interval in a background asyncio task"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: int = MEMBERSHIP_EXPIRY_INTERVAL_SECONDS
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def run_once(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Run a single sweep in its own session.

        Returns:
            Statistics about the run
        """
        cutoff = today or club_today()
        async with self.session_factory() as db:
            expired = await expire_old_memberships(db, today=cutoff)
        return {"cutoff": cutoff.isoformat(), "expired": expired}

    async def _loop(self):
        while True:
            try:
                stats = await self.run_once()
                logger.debug(f"Membership expiry sweep finished: {stats}")
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Membership expiry sweep failed; retrying next interval")
            await asyncio.sleep(self.interval_seconds)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start the background loop; a non-positive interval leaves it disabled"""
        if self.interval_seconds <= 0:
            logger.info("Membership expiry sweep disabled")
            return False
        if self.running:
            return True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Membership expiry sweep started (every {self.interval_seconds}s)")
        return True

    async def stop(self):
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Membership expiry sweep stopped")
