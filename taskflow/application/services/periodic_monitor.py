"""Base class for background monitors that run a sweep on an interval.

Subclasses implement run_once(); the base owns the asyncio task.

Example:
    >>> monitor = ReopenSlaMonitor(service, interval_seconds=3600)
    >>> await monitor.start()
    >>> # ... application runs ...
    >>> await monitor.stop()
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from taskflow.application.ports.time_authority import TimeAuthorityProtocol
from taskflow.infrastructure.observability.correlation import (
    generate_correlation_id,
    set_correlation_id,
)


class PeriodicMonitor(ABC):
    """Runs run_once() every interval until stopped.

    Attributes:
        running: Whether the monitor loop is active.
        interval_seconds: Seconds between the start of two sweeps.
    """

    name: str = "periodic_monitor"

    def __init__(
        self,
        time_authority: TimeAuthorityProtocol,
        interval_seconds: float,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._time = time_authority
        self._interval = interval_seconds
        self._running: bool = False
        self._task: Optional[asyncio.Task[None]] = None
        self._log = structlog.get_logger().bind(service=self.name)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def interval_seconds(self) -> float:
        return self._interval

    async def start(self) -> None:
        """Start the monitoring loop.

        Note:
            Calling start multiple times is safe (idempotent).
        """
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        self._log.info(f"{self.name}_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the monitoring loop and wait for it to finish.

        Note:
            Calling stop when not running is safe.
        """
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._log.info(f"{self.name}_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                set_correlation_id(generate_correlation_id())
                started = self._time.monotonic()
                result = await self.run_once()
                elapsed = self._time.monotonic() - started
                self._log.debug(
                    "sweep_cycle_complete",
                    result=result,
                    elapsed_seconds=elapsed,
                )
                await asyncio.sleep(max(0.0, self._interval - elapsed))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log.error("sweep_cycle_failed", error=str(e))
                await asyncio.sleep(self._interval)

    @abstractmethod
    async def run_once(self) -> int:
        """Run a single sweep and return the number of tasks affected."""
