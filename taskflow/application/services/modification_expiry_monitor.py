"""Modification request expiry monitor background service.

Periodically expires pending modification requests whose response window
has passed, so stale requests close even when nobody touches the task.
"""

from __future__ import annotations

from taskflow.application.ports.time_authority import TimeAuthorityProtocol
from taskflow.application.services.modification_request_service import (
    ModificationRequestService,
)
from taskflow.application.services.periodic_monitor import PeriodicMonitor

DEFAULT_EXPIRY_CHECK_INTERVAL_SECONDS: int = 60 * 60


class ModificationExpiryMonitor(PeriodicMonitor):
    """Background sweep over expired modification requests."""

    name = "modification_expiry_monitor"

    def __init__(
        self,
        service: ModificationRequestService,
        time_authority: TimeAuthorityProtocol,
        interval_seconds: float = DEFAULT_EXPIRY_CHECK_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(time_authority, interval_seconds)
        self._service = service

    async def run_once(self) -> int:
        return await self._service.expire_overdue_requests()
