"""Configuration for the task lifecycle engine.

Available Configurations:
- LifecycleConfig: SLA windows, monitor intervals and save retries
"""

from taskflow.config.lifecycle_config import (
    DEFAULT_LIFECYCLE_CONFIG,
    LifecycleConfig,
)

__all__ = [
    "LifecycleConfig",
    "DEFAULT_LIFECYCLE_CONFIG",
]
