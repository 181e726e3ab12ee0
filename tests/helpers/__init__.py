"""Test helpers for taskflow tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    factories: Builders for tasks in a given lifecycle state

Usage:
    from tests.helpers import FakeTimeAuthority
    from tests.helpers.factories import ADMIN, EMPLOYEE, assigned_task
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority

__all__ = ["FakeTimeAuthority"]
