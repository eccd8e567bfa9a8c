"""Per-question answer deadline for interview sessions."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class AnswerDeadline:
    """Cancellable task that fires ``on_expire`` once ``seconds`` elapse."""

    def __init__(self, seconds: float, on_expire: Callable[[], Awaitable[None]]) -> None:
        self._seconds = seconds
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        await asyncio.sleep(self._seconds)
        try:
            await self._on_expire()
        except Exception:  # noqa: BLE001
            logger.exception("Answer deadline handler failed")


__all__ = ["AnswerDeadline"]
