# auth/sweeper.py
"""
Periodic cleanup of expired sessions and reset tickets.

Reads already ignore expired rows; the sweep only bounds table growth.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from auth.resets import ResetTicketStore
from auth.sessions import SessionStore

_logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Runs ``sweep_once`` every ``interval_seconds`` on the event loop.

    An interval of 0 disables the background task.
    """

    def __init__(
        self,
        sessions: SessionStore,
        resets: ResetTicketStore,
        interval_seconds: float = 3600.0,
    ):
        self.sessions = sessions
        self.resets = resets
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> tuple[int, int]:
        """Delete expired rows. Returns (sessions_removed, tickets_removed)."""
        return self.sessions.purge_expired(), self.resets.purge_expired()

    def start(self) -> None:
        if self.interval_seconds <= 0:
            _logger.info("Session sweeper disabled")
            return
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        _logger.info(f"Session sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _logger.info("Session sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await run_in_threadpool(self.sweep_once)
            except Exception:
                _logger.exception("Session sweep failed")
