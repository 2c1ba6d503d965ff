"""
Single-flight transport roles.

Each session owns one TransportSlot per role (credential fetch, upload,
delete). A slot holds at most one in-flight asyncio task; issuing a new
call cancels the previous one (last call wins, no queuing).
"""

import asyncio
import logging
from typing import Awaitable, Optional

logger = logging.getLogger(__name__)


class TransportSlot:
    """Owned, replaceable handle for one in-flight request"""

    def __init__(self, role: str):
        self.role = role
        self._task: Optional[asyncio.Task] = None
        self.issued = 0

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def issue(self, call: Awaitable) -> asyncio.Task:
        """Tear down any previous call on this role and start `call`."""
        self.release()
        self._task = asyncio.ensure_future(call)
        self.issued += 1
        logger.debug(f"{self.role}: issued call #{self.issued}")
        return self._task

    def is_current(self, task: asyncio.Task) -> bool:
        return task is self._task

    def release(self) -> None:
        """Cancel and drop the in-flight call. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            logger.debug(f"{self.role}: cancelling in-flight call")
            task.cancel()
