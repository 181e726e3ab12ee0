"""Task lifecycle timing and retry configuration.

Defines the reopen response window, the modification request response
window, the monitor sweep intervals and the save retry limit, with
environment variable overrides for production tuning.

Environment Variables:
- REOPEN_SLA_DAYS: Reopen response window in days (default: 3, min: 1, max: 30)
- REOPEN_SLA_CHECK_MINUTES: Reopen monitor interval (default: 60, min: 1, max: 1440)
- MOD_REQUEST_SLA_HOURS: Default modification request window (default: 24, min: 1, max: 720)
- MOD_REQUEST_SLA_CHECK_MINUTES: Expiry sweep interval (default: 60, min: 1, max: 1440)
- TASK_SAVE_MAX_ATTEMPTS: Attempts per write on version conflicts (default: 3, min: 1, max: 10)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _clamp(value: int, floor: int, ceiling: int) -> int:
    return max(floor, min(value, ceiling))


# =============================================================================
# Reopen SLA
# =============================================================================

DEFAULT_REOPEN_SLA_DAYS = 3
MIN_REOPEN_SLA_DAYS = 1
MAX_REOPEN_SLA_DAYS = 30

# Reopen monitor runs hourly by default
DEFAULT_REOPEN_CHECK_MINUTES = 60
MIN_CHECK_MINUTES = 1
MAX_CHECK_MINUTES = 24 * 60

# =============================================================================
# Modification requests
# =============================================================================

DEFAULT_MOD_REQUEST_SLA_HOURS = 24
MIN_MOD_REQUEST_SLA_HOURS = 1
MAX_MOD_REQUEST_SLA_HOURS = 30 * 24

DEFAULT_MOD_REQUEST_CHECK_MINUTES = 60

# =============================================================================
# Persistence
# =============================================================================

DEFAULT_MAX_SAVE_ATTEMPTS = 3
MIN_SAVE_ATTEMPTS = 1
MAX_SAVE_ATTEMPTS = 10


@dataclass(frozen=True)
class LifecycleConfig:
    """Configuration for SLA windows, monitor intervals and save retries.

    Attributes:
        reopen_sla_days: Days an assignee has to answer a reopen.
        reopen_check_minutes: Interval of the reopen SLA monitor.
        modification_request_sla_hours: Response window of a modification
            request when the requester gives none.
        modification_check_minutes: Interval of the request expiry sweep.
        max_save_attempts: Attempts per write before a version conflict
            propagates to the caller.
    """

    reopen_sla_days: int = DEFAULT_REOPEN_SLA_DAYS
    reopen_check_minutes: int = DEFAULT_REOPEN_CHECK_MINUTES
    modification_request_sla_hours: int = DEFAULT_MOD_REQUEST_SLA_HOURS
    modification_check_minutes: int = DEFAULT_MOD_REQUEST_CHECK_MINUTES
    max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not MIN_REOPEN_SLA_DAYS <= self.reopen_sla_days <= MAX_REOPEN_SLA_DAYS:
            raise ValueError(
                f"reopen_sla_days must be between {MIN_REOPEN_SLA_DAYS} "
                f"and {MAX_REOPEN_SLA_DAYS}, got {self.reopen_sla_days}"
            )
        for name in ("reopen_check_minutes", "modification_check_minutes"):
            value = getattr(self, name)
            if not MIN_CHECK_MINUTES <= value <= MAX_CHECK_MINUTES:
                raise ValueError(
                    f"{name} must be between {MIN_CHECK_MINUTES} "
                    f"and {MAX_CHECK_MINUTES}, got {value}"
                )
        if (
            not MIN_MOD_REQUEST_SLA_HOURS
            <= self.modification_request_sla_hours
            <= MAX_MOD_REQUEST_SLA_HOURS
        ):
            raise ValueError(
                f"modification_request_sla_hours must be between "
                f"{MIN_MOD_REQUEST_SLA_HOURS} and {MAX_MOD_REQUEST_SLA_HOURS}, "
                f"got {self.modification_request_sla_hours}"
            )
        if not MIN_SAVE_ATTEMPTS <= self.max_save_attempts <= MAX_SAVE_ATTEMPTS:
            raise ValueError(
                f"max_save_attempts must be between {MIN_SAVE_ATTEMPTS} "
                f"and {MAX_SAVE_ATTEMPTS}, got {self.max_save_attempts}"
            )

    @property
    def reopen_sla_window(self) -> timedelta:
        return timedelta(days=self.reopen_sla_days)

    @property
    def monitor_interval(self) -> timedelta:
        """Interval between reopen SLA sweeps."""
        return timedelta(minutes=self.reopen_check_minutes)

    @property
    def modification_request_default_sla(self) -> timedelta:
        return timedelta(hours=self.modification_request_sla_hours)

    @property
    def modification_sweep_interval(self) -> timedelta:
        """Interval between modification request expiry sweeps."""
        return timedelta(minutes=self.modification_check_minutes)

    @classmethod
    def from_environment(cls) -> LifecycleConfig:
        """Create config from environment variables with defaults.

        Out-of-range values are clamped; unparseable values fall back to
        the defaults.

        Returns:
            LifecycleConfig with values from environment or defaults.
        """
        reopen_days = _clamp(
            _get_int_env("REOPEN_SLA_DAYS", DEFAULT_REOPEN_SLA_DAYS),
            MIN_REOPEN_SLA_DAYS,
            MAX_REOPEN_SLA_DAYS,
        )
        reopen_check = _clamp(
            _get_int_env("REOPEN_SLA_CHECK_MINUTES", DEFAULT_REOPEN_CHECK_MINUTES),
            MIN_CHECK_MINUTES,
            MAX_CHECK_MINUTES,
        )
        request_hours = _clamp(
            _get_int_env("MOD_REQUEST_SLA_HOURS", DEFAULT_MOD_REQUEST_SLA_HOURS),
            MIN_MOD_REQUEST_SLA_HOURS,
            MAX_MOD_REQUEST_SLA_HOURS,
        )
        request_check = _clamp(
            _get_int_env(
                "MOD_REQUEST_SLA_CHECK_MINUTES", DEFAULT_MOD_REQUEST_CHECK_MINUTES
            ),
            MIN_CHECK_MINUTES,
            MAX_CHECK_MINUTES,
        )
        save_attempts = _clamp(
            _get_int_env("TASK_SAVE_MAX_ATTEMPTS", DEFAULT_MAX_SAVE_ATTEMPTS),
            MIN_SAVE_ATTEMPTS,
            MAX_SAVE_ATTEMPTS,
        )

        return cls(
            reopen_sla_days=reopen_days,
            reopen_check_minutes=reopen_check,
            modification_request_sla_hours=request_hours,
            modification_check_minutes=request_check,
            max_save_attempts=save_attempts,
        )


# Default configuration instance
DEFAULT_LIFECYCLE_CONFIG = LifecycleConfig()
