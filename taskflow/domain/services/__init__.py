"""Domain services for the task lifecycle engine.

Pure, I/O-free services:
- task_guards: derived properties and guards of (task, now)
- resolution_classifier: outcome derivation from the activity timeline
- TaskStateMachine: status transitions
- ModificationWorkflow: two-phase modification requests
- ExtensionWorkflow: due-date extension requests
"""

from taskflow.domain.services.extension_workflow import ExtensionWorkflow
from taskflow.domain.services.modification_workflow import ModificationWorkflow
from taskflow.domain.services.resolution_classifier import resolve, resolve_task
from taskflow.domain.services.task_state_machine import TaskStateMachine

__all__ = [
    "ExtensionWorkflow",
    "ModificationWorkflow",
    "TaskStateMachine",
    "resolve",
    "resolve_task",
]
