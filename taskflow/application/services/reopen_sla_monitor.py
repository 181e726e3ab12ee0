"""Reopen SLA monitor background service.

Periodically times out reopened tasks whose response window has passed.
Start it with the application and stop it on shutdown; run_once() runs a
single sweep (used by tests with a fake clock).
"""

from __future__ import annotations

from taskflow.application.ports.time_authority import TimeAuthorityProtocol
from taskflow.application.services.periodic_monitor import PeriodicMonitor
from taskflow.application.services.reopen_sla_service import ReopenSlaService

DEFAULT_REOPEN_CHECK_INTERVAL_SECONDS: int = 60 * 60
"""Hourly by default."""


class ReopenSlaMonitor(PeriodicMonitor):
    """Background reopen SLA monitor.

    Example:
        >>> monitor = ReopenSlaMonitor(service, time_authority)
        >>> await monitor.run_once()
        1
    """

    name = "reopen_sla_monitor"

    def __init__(
        self,
        service: ReopenSlaService,
        time_authority: TimeAuthorityProtocol,
        interval_seconds: float = DEFAULT_REOPEN_CHECK_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(time_authority, interval_seconds)
        self._service = service

    async def run_once(self) -> int:
        return await self._service.process_expired_reopens()
