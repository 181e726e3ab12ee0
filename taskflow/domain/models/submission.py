"""Work submission value objects.

An employee submits work as a link, a set of already-uploaded files, a
note, or any combination. Each submission replaces the previous one and
bumps the submission version, which never decreases.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    """Review status of the current work submission."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True, eq=True)
class SubmittedFile:
    """Metadata of an uploaded file attached to a submission.

    Upload handling happens outside the engine; only the reference is kept.
    """

    name: str
    url: str
    size: int = 0
    mime_type: str | None = None


@dataclass(frozen=True, eq=True)
class WorkSubmission:
    """The employee's current work submission.

    Attributes:
        version: Submission counter, 1 for the first submission.
        submitted_at: When this version was submitted (UTC).
        link: Optional link to the delivered work.
        files: Uploaded file references.
        note: Optional employee note.
        submission_status: Review state of this version.
    """

    version: int
    submitted_at: datetime
    link: str | None = field(default=None)
    files: tuple[SubmittedFile, ...] = field(default=())
    note: str | None = field(default=None)
    submission_status: SubmissionStatus = field(default=SubmissionStatus.SUBMITTED)

    def __post_init__(self) -> None:
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")
        if self.submitted_at.tzinfo is None:
            raise ValueError("submitted_at must be timezone-aware (UTC)")

    def has_content(self) -> bool:
        """Check whether the submission carries a link, files or a note."""
        has_link = bool(self.link and self.link.strip())
        has_note = bool(self.note and self.note.strip())
        return has_link or bool(self.files) or has_note

    def with_status(self, status: SubmissionStatus) -> WorkSubmission:
        return replace(self, submission_status=status)
