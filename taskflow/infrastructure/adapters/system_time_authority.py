"""System clock implementation of TimeAuthorityProtocol."""

import time
from datetime import datetime, timezone

from taskflow.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    """Production clock: UTC wall time and the process monotonic clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
