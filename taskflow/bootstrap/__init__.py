"""Composition root for wiring dependencies.

This package centralizes infrastructure-aware wiring so callers can
depend on the services without assembling ports themselves.
"""

from taskflow.bootstrap.engine import (
    TaskflowEngine,
    build_default_engine,
    build_engine,
    get_engine,
    set_engine,
)
from taskflow.infrastructure.observability import configure_structlog

__all__ = [
    "TaskflowEngine",
    "build_default_engine",
    "build_engine",
    "configure_structlog",
    "get_engine",
    "set_engine",
]
