"""
Turn deadline enforcement for networked rooms.
"""

import asyncio
import logging
from typing import List, Optional

from .authority import ActionResult, GameAuthority
from .errors import NOT_YOUR_TURN

logger = logging.getLogger(__name__)


class TimeoutSupervisor:
    """
    Watches every room's turn deadline and passes a random card for a player
    who let it expire. The forced pass goes through the authority like any
    other action, so if the player's own pass commits first the forced one is
    rejected as stale and simply dropped. A turn that no longer needs a forced
    pass by commit time (game over, hand empty) is skipped the same way.
    """

    def __init__(self, authority: GameAuthority, poll_interval: float = 1.0):
        self.authority = authority
        self.poll_interval = poll_interval
        self._task: Optional[asyncio.Task] = None

    def tick(self, now: Optional[float] = None) -> List[ActionResult]:
        """Apply forced passes for every expired turn; returns the committed ones."""
        applied = []
        for expired in self.authority.expired_turns(now):
            result = self.authority.handle_timeout(
                expired.code,
                expected_seat=expired.seat,
                expected_deadline=expired.deadline,
                now=now,
            )
            if result.success and result.data.get('forced_card'):
                logger.info(f"Forced pass for seat {expired.seat} in room {expired.code}")
                applied.append(result)
            elif result.success:
                logger.debug(f"Timeout in room {expired.code} had nothing left to do")
            elif result.error_code == NOT_YOUR_TURN:
                logger.debug(f"Timeout in room {expired.code} lost the race to a player move")
            else:
                logger.warning(
                    f"Timeout in room {expired.code} failed: {result.error_code} {result.error_message}"
                )
        return applied

    async def run(self):
        """Poll until cancelled."""
        try:
            while True:
                self.tick()
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            logger.info("Timeout supervisor stopped")
            raise

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
