"""Owned handles for cancellable generation requests."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from ..exceptions import GenerationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InflightRequest:
    """Runs one request at a time as a task that ``cancel()`` can abort.

    Cancelling through the handle surfaces as ``GenerationCancelled`` in the
    awaiting pipeline, which treats it as a normal outcome. Cancellation of
    the awaiting task itself still propagates as ``CancelledError``.
    """

    def __init__(self, name: str = "request"):
        self.name = name
        self._task: Optional[asyncio.Future] = None
        self._cancel_requested = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, request: Awaitable[T]) -> T:
        self._cancel_requested = False
        self._task = asyncio.ensure_future(request)
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._cancel_requested:
                logger.info(f"{self.name} cancelled")
                raise GenerationCancelled(f"{self.name} cancelled") from None
            raise
        finally:
            self._task = None

    def cancel(self) -> bool:
        """Abort the in-flight request; returns False if nothing was running."""
        if not self.active:
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True
