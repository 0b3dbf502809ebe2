"""
Audio Alert Dispatch.

Thin guard around the host audio collaborator. Triggers are
fire-and-forget: the returned coroutine is scheduled on the running loop,
or handed to the bound loop when called from another thread, and failures
are logged, never raised into the reducers.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping
from typing import Any

from ...core.logging import get_logger
from .protocols import AudioPlayer
from .types import NotifierContext

logger = get_logger(__name__)


class AlertDispatcher:
    """Fire-and-forget trigger/stop calls against an optional audio player."""

    def __init__(self, audio: AudioPlayer | None = None) -> None:
        self.audio = audio
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Task] = set()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Loop that receives triggers issued from outside it."""
        self._loop = loop

    def trigger(self, item_id: str, overrides: Mapping[str, Any], context: NotifierContext) -> None:
        """Start an alert for an id without waiting for playback."""
        if self.audio is None:
            return
        try:
            result = self.audio.trigger(item_id, dict(overrides), context.value)
        except Exception as e:
            logger.warning("Audio trigger failed for %s: %s", item_id, e)
            return
        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._schedule(result)
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._schedule, result)
        else:
            logger.debug("No event loop for audio trigger %s, playback dropped", item_id)
            close = getattr(result, "close", None)
            if close is not None:
                close()

    def _schedule(self, awaitable: Any) -> None:
        task = asyncio.get_running_loop().create_task(_await(awaitable))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Audio trigger failed: %s", error)

    def stop_loop(self, item_id: str) -> None:
        if self.audio is None or not item_id:
            return
        try:
            self.audio.stop_loop(item_id)
        except Exception as e:
            logger.warning("Audio stop_loop failed for %s: %s", item_id, e)

    def list_sounds(self) -> list[str]:
        if self.audio is None:
            return []
        try:
            return list(self.audio.list_sounds())
        except Exception as e:
            logger.debug("Audio list_sounds failed: %s", e)
            return []

    @property
    def pending(self) -> int:
        return len(self._pending)


async def _await(awaitable: Any) -> Any:
    return await awaitable
