"""
Call Timeout Manager - one cancellable deferred action per call

Each timer is an asyncio task that sleeps and then runs its callback.
Everything happens on the event loop, so a disarm and a fire for the same
call can never interleave: whichever turn runs first wins.

Once a timer wakes up it drops itself from the table before running the
callback. From then on it is no longer pending, and a disarm for that call
is a no-op instead of cancelling the in-flight callback halfway through.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

OnFire = Callable[[], Awaitable[None]]


class CallTimeoutManager:
    """call_id -> pending timer task"""

    def __init__(self):
        self._timers: Dict[str, asyncio.Task] = {}

    def arm(self, call_id: str, delay_seconds: float, on_fire: OnFire) -> None:
        """
        Run ``on_fire`` once after ``delay_seconds`` unless disarmed first.

        Arming an id that already has a pending timer replaces it.
        """
        if self.disarm(call_id):
            logger.warning(f"[Timeouts] Re-armed timer for {call_id}")

        task = asyncio.create_task(
            self._run(call_id, delay_seconds, on_fire),
            name=f"call-timeout:{call_id}",
        )
        self._timers[call_id] = task
        logger.debug(f"[Timeouts] Armed {call_id} ({delay_seconds}s)")

    def disarm(self, call_id: str) -> bool:
        """
        Cancel the pending timer for ``call_id``.

        Returns:
            True if a pending timer was cancelled, False if there was none
        """
        task = self._timers.pop(call_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug(f"[Timeouts] Disarmed {call_id}")
        return True

    def is_armed(self, call_id: str) -> bool:
        return call_id in self._timers

    def shutdown(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        call_ids = list(self._timers)
        for call_id in call_ids:
            self.disarm(call_id)
        return len(call_ids)

    def __len__(self) -> int:
        return len(self._timers)

    async def _run(self, call_id: str, delay_seconds: float, on_fire: OnFire) -> None:
        await asyncio.sleep(delay_seconds)

        # A replaced timer that was cancelled late must not fire
        if self._timers.get(call_id) is not asyncio.current_task():
            return
        del self._timers[call_id]

        logger.info(f"[Timeouts] Timer fired for {call_id}")
        try:
            await on_fire()
        except Exception as e:
            logger.error(f"[Timeouts] Timeout handler for {call_id} failed: {e}")
