"""Actor model: who is performing an operation.

Identities are opaque to the engine. Authentication happens upstream;
the engine only needs the user id and the role the caller acts in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    """Role recorded on activity entries and used for permission checks."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    SYSTEM = "system"


@dataclass(frozen=True, eq=True)
class Actor:
    """The caller of a workflow operation.

    Attributes:
        user_id: Opaque identity of the caller.
        role: Role the caller acts in.
    """

    user_id: str
    role: ActorRole

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id must be non-empty")

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_employee(self) -> bool:
        return self.role == ActorRole.EMPLOYEE

    @classmethod
    def admin(cls, user_id: str) -> Actor:
        return cls(user_id=user_id, role=ActorRole.ADMIN)

    @classmethod
    def employee(cls, user_id: str) -> Actor:
        return cls(user_id=user_id, role=ActorRole.EMPLOYEE)


SYSTEM_ACTOR_ID: str = "system"
"""Identity used for entries written by background monitors."""

SYSTEM_ACTOR = Actor(user_id=SYSTEM_ACTOR_ID, role=ActorRole.SYSTEM)
"""Actor used by the SLA monitor and the modification expiry sweep."""
