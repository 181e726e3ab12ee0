"""Resolution read model.

A resolution is the display-facing outcome of a task, derived from its
status and full activity timeline. It is never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResolutionCode(str, Enum):
    """Outcome codes produced by the resolution classifier."""

    DECLINED_ASSIGNMENT = "DECLINED_ASSIGNMENT"
    REOPEN_DECLINED_VERIFIED = "REOPEN_DECLINED_VERIFIED"
    REOPEN_DECLINED_FAILED = "REOPEN_DECLINED_FAILED"
    REOPEN_DECLINED_PENDING = "REOPEN_DECLINED_PENDING"
    REOPEN_FAILED_AFTER_REWORK = "REOPEN_FAILED_AFTER_REWORK"
    REOPEN_FAILED_WITHOUT_REWORK = "REOPEN_FAILED_WITHOUT_REWORK"
    FAILED_EXECUTION = "FAILED_EXECUTION"
    REOPEN_VERIFIED_WITH_RESUBMISSION = "REOPEN_VERIFIED_WITH_RESUBMISSION"
    REOPEN_VERIFIED_WITHOUT_RESUBMISSION = "REOPEN_VERIFIED_WITHOUT_RESUBMISSION"
    SUCCESSFUL = "SUCCESSFUL"
    ACTIVE = "ACTIVE"
    REOPEN_PENDING = "REOPEN_PENDING"
    UNKNOWN = "UNKNOWN"


class ResolutionSeverity(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ResolutionPhase(str, Enum):
    """Lifecycle phase the outcome belongs to."""

    ASSIGNMENT = "assignment"
    FIRST_SUBMISSION = "first_submission"
    REOPEN = "reopen"
    ACTIVE = "active"
    UNKNOWN = "unknown"


@dataclass(frozen=True, eq=True)
class Resolution:
    """Derived outcome of a task.

    Attributes:
        code: Outcome code.
        label: Human-readable label.
        severity: Display severity.
        phase: Lifecycle phase the outcome belongs to.
        is_final: False while the outcome can still change.
    """

    code: ResolutionCode
    label: str
    severity: ResolutionSeverity
    phase: ResolutionPhase
    is_final: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code.value,
            "label": self.label,
            "severity": self.severity.value,
            "phase": self.phase.value,
            "is_final": self.is_final,
        }
