"""Periodic retention sweep for in-process security state.

Security events and tracked sessions live in process memory. Per-user state
is pruned lazily when the same user is seen again; RetentionSweeper bounds
the rest by periodically clearing events older than the retention period
and sessions idle past ``stale_after_hours`` for every user.

Usage:
    ```python
    sweeper = RetentionSweeper(monitor, tracker, interval_seconds=3600)
    await sweeper.start()
    ...
    await sweeper.stop()
    ```
"""

import asyncio
from typing import Optional

import structlog

from src.anomaly_detection.monitor import SecurityMonitor
from src.session_tracker.service import SessionTracker

logger = structlog.get_logger(__name__)


class RetentionSweeper:
    """Background task running ``sweep_once`` every ``interval_seconds``."""

    def __init__(
        self,
        monitor: SecurityMonitor,
        tracker: SessionTracker,
        interval_seconds: float = 3600.0,
    ) -> None:
        """Initialize sweeper.

        Raises:
            ValueError: If interval_seconds is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.monitor = monitor
        self.tracker = tracker
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> tuple[int, int]:
        """Run one sweep.

        Returns:
            Tuple of (events removed, sessions removed).
        """
        events_removed = await self.monitor.clear_old_events()
        sessions_removed = await self.tracker.prune_stale()
        logger.info(
            "retention_sweep_completed",
            events_removed=events_removed,
            sessions_removed=sessions_removed,
        )
        return events_removed, sessions_removed

    async def start(self) -> None:
        """Start the periodic task (idempotent)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="retention-sweeper")
        logger.info("retention_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the periodic task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("retention_sweeper_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(
                    "retention_sweep_failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
