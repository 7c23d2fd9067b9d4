"""Two-slot readiness barrier used to gate classification"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


class ReadinessJoin:
    """
    Barrier that releases once every named slot has been signalled.

    Each slot is signalled exactly once, in any order, either with a value
    (ready) or with an exception (failed). The first failure completes the
    join with that exception; later signals are ignored. ``wait()`` returns
    the slot values once all slots are ready.
    """

    def __init__(self, slots: Iterable[str] = ("model", "image")):
        self.slots = tuple(slots)
        if len(set(self.slots)) != len(self.slots) or not self.slots:
            raise ValueError(f"Slots must be unique and non-empty: {self.slots}")
        self._values: Dict[str, Any] = {}
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def pending_slots(self) -> tuple:
        return tuple(s for s in self.slots if s not in self._values)

    def is_ready(self, slot: str) -> bool:
        return slot in self._values

    def signal(self, slot: str, value: Any = None) -> bool:
        """
        Mark a slot ready.

        Returns:
            True if this signal released the join
        """
        self._check_slot(slot)
        if self._future.done() or slot in self._values:
            logger.debug(f"Ignoring late signal for slot {slot!r}")
            return False

        self._values[slot] = value
        if not self.pending_slots:
            self._future.set_result(dict(self._values))
            return True
        return False

    def fail(self, slot: str, error: BaseException) -> bool:
        """
        Mark a slot failed, failing the whole join.

        Returns:
            True if this failure completed the join
        """
        self._check_slot(slot)
        if self._future.done():
            logger.debug(f"Ignoring failure for slot {slot!r} after join completed")
            return False

        self._future.set_exception(error)
        return True

    async def wait(self) -> Dict[str, Any]:
        """Wait for all slots; raises the first failure"""
        return await self._future

    def _check_slot(self, slot: str):
        if slot not in self.slots:
            raise KeyError(f"Unknown slot {slot!r}; expected one of {self.slots}")

    def cancel(self, error: Optional[BaseException] = None):
        """Abandon the join so no waiter is left hanging"""
        if not self._future.done():
            if error is None:
                self._future.cancel()
            else:
                self._future.set_exception(error)
