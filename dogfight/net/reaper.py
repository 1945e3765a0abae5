"""Idle-session eviction."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class IdleReaper:
    def __init__(self, hub, *, timeout_sec: float, interval_sec: float):
        self.hub = hub
        self.timeout_sec = float(timeout_sec)
        self.interval_sec = float(interval_sec)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("idle sweep failed")

    async def sweep(self, now: float | None = None) -> list[str]:
        """Evict every session silent for longer than the timeout; returns evicted ids."""
        now = time.monotonic() if now is None else now
        stale = self.hub.idle_sessions(now, self.timeout_sec)
        if not stale:
            return []

        for s in stale:
            logger.info("client %s timed out after %.1fs of silence", s.session_id, now - s.last_activity)
        # A session that closed itself since the snapshot is simply not evicted twice.
        results = await asyncio.gather(*(self.hub.disconnect(s.session_id, reason="idle timeout") for s in stale))
        return [s.session_id for s, evicted in zip(stale, results) if evicted]
