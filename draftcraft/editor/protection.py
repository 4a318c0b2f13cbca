"""Timed guard for just-made structure choices."""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ProtectionWindow:
    """While active, external syncs must not overwrite the guarded field.

    The window owns its timer handle; ``start`` restarts it and ``close``
    tears it down with the owning editor.
    """

    def __init__(self, duration: float = 3.0):
        self.duration = duration
        self._handle: Optional[asyncio.TimerHandle] = None
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Open (or re-open) the window on the running event loop."""
        self.cancel()
        self._active = True
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.duration, self._expire)
        logger.debug(f"Structure protection active for {self.duration}s")

    def _expire(self) -> None:
        self._handle = None
        self._active = False
        logger.debug("Structure protection expired")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._active = False

    close = cancel
