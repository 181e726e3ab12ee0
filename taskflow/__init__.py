"""
Taskflow - Employee Task Lifecycle Engine

Tracks assigned work from assignment through verification with
admin/employee dual-actor transitions, two-phase modification and
extension approval, SLA-bounded reopen windows, and an append-only
activity log from which task resolutions are derived.

Core Rules:
- Every transition appends exactly one activity entry
- Closed tasks (verified, failed, deleted, withdrawn) carry closed_at
- Resolutions are recomputed from the full timeline on every read
- Saves are version-checked; concurrent writers retry on conflict
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
