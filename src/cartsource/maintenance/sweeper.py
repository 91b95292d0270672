"""
Periodic removal of idle experience sessions.

The library never starts timers on its own. A host that wants idle sessions
garbage-collected either calls ``sweep_once()`` from its own scheduler, or
owns a SessionSweeper and calls ``start()``/``stop()`` around its lifetime.

Example:
    >>> sweeper = SessionSweeper(store, max_idle=timedelta(hours=24), interval=timedelta(hours=1))
    >>> sweeper.start()
    >>> ...
    >>> await sweeper.stop()
"""

import asyncio
import contextlib
import logging
from datetime import timedelta

from cartsource.config import DEFAULT_SESSION_MAX_IDLE, DEFAULT_SWEEP_INTERVAL
from cartsource.stores.interface import SessionStore
from cartsource.types import Clock, utc_now

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Triggers ``SessionStore.sweep_expired_sessions`` on demand or on an interval.

    At most one sweep runs at a time; a trigger that arrives while a sweep is
    in progress is skipped. Sweeps never raise to the caller: failures are
    logged and the loop keeps going.

    Attributes:
        sweeps_run: Number of completed sweeps
        sessions_removed: Total sessions removed across all sweeps
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        max_idle: timedelta = DEFAULT_SESSION_MAX_IDLE,
        interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        if max_idle <= timedelta(0):
            raise ValueError(f"max_idle must be positive, got {max_idle}")
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        self._store = store
        self._max_idle = max_idle
        self._interval = interval
        self._clock = clock or utc_now
        self._sweep_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.sweeps_run = 0
        self.sessions_removed = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> list[str]:
        """
        Run a single sweep now.

        Returns:
            Ids of removed sessions; empty if the sweep was skipped or failed
        """
        if self._sweep_lock.locked():
            logger.debug("Sweep already in progress; skipping trigger")
            return []

        async with self._sweep_lock:
            try:
                removed = await self._store.sweep_expired_sessions(self._max_idle, self._clock())
            except Exception as e:
                logger.warning("Session sweep failed: %s", e, exc_info=e)
                return []

        self.sweeps_run += 1
        self.sessions_removed += len(removed)
        return removed

    def start(self) -> asyncio.Task[None]:
        """
        Start sweeping every ``interval`` on the running event loop.

        Returns:
            The background task

        Raises:
            RuntimeError: If the sweeper is already running
        """
        if self.is_running:
            raise RuntimeError("SessionSweeper is already running")
        self._task = asyncio.create_task(self._run(), name="cartsource-session-sweeper")
        logger.info(
            "Session sweeper started",
            extra={
                "interval_seconds": self._interval.total_seconds(),
                "max_idle_seconds": self._max_idle.total_seconds(),
            },
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Session sweeper stopped", extra={"sweeps_run": self.sweeps_run})

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval.total_seconds())
            await self.sweep_once()

    def __repr__(self) -> str:
        return f"SessionSweeper(running={self.is_running}, sweeps_run={self.sweeps_run})"
