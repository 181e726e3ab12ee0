"""Base service logging mixin.

Gives every application service a structlog logger bound with its class
name and component, plus _log_operation() for per-operation context.

Usage:
    from taskflow.application.services.base import LoggingMixin

    class MyService(LoggingMixin):
        def __init__(self, repository: TaskRepositoryProtocol) -> None:
            self._repository = repository
            self._init_logger()

        async def do_something(self, task_id: UUID) -> None:
            log = self._log_operation("do_something", task_id=str(task_id))
            log.info("operation_started")
"""

import structlog

from taskflow.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin providing structured logging for services.

    The logger is bound with:
    - service: The class name of the service
    - component: The component type (default: "lifecycle")

    Each operation gets:
    - operation: The name of the operation being performed
    - correlation_id: From context for tracing
    - Any additional context passed to _log_operation()

    Attributes:
        _log: The structlog BoundLogger for this service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "lifecycle") -> None:
        """Initialize the logger with service name binding.

        Should be called in __init__ after setting up dependencies.

        Args:
            component: The component type for log categorization.
        """
        self._log = structlog.get_logger().bind(
            service=self.__class__.__name__,
            component=component,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Create operation-scoped logger with correlation ID.

        Args:
            operation: Name of the operation being performed.
            **context: Additional context to bind to the logger.

        Returns:
            BoundLogger with operation and correlation context.

        Example:
            log = self._log_operation("verify", task_id=str(task_id))
            log.info("task_verified", status=task.status.value)
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
