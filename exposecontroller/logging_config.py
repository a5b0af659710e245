"""Logging configuration for exposecontroller using structlog."""

import logging
import os
import sys
from typing import Any

import structlog

COMPONENT = "expose-controller"


def setup_logging(verbose: bool = False, component: str = COMPONENT) -> None:
    """Setup structured logging configuration.

    Args:
        verbose: If True, enables DEBUG logging regardless of LOG_LEVEL env var
        component: Component identity attached to every log line
    """
    if verbose:
        log_level = "DEBUG"
    else:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _get_renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bind_component(component)

    logger = structlog.get_logger(__name__)
    logger.info("Logging configured", log_level=log_level, verbose=verbose)


def bind_component(component: str = COMPONENT) -> None:
    """Attach the component identity to all subsequent log events."""
    structlog.contextvars.bind_contextvars(component=component)


def _get_renderer() -> Any:
    """Get the appropriate log renderer based on environment."""
    log_format = os.getenv("LOG_FORMAT", "console").lower()

    if log_format == "json":
        return structlog.processors.JSONRenderer()
    else:
        return structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_function_entry(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    """Log function entry with parameters."""
    logger.debug("Function entry", function=func_name, **kwargs)


def log_function_exit(logger: structlog.stdlib.BoundLogger, func_name: str, **kwargs: Any) -> None:
    """Log function exit with return values."""
    logger.debug("Function exit", function=func_name, **kwargs)


def log_k8s_operation(logger: structlog.stdlib.BoundLogger, operation: str, key: str, **kwargs: Any) -> None:
    """Log Kubernetes operation details.

    Args:
        logger: The logger instance
        operation: Type of K8s operation
        key: ``namespace/name`` of the object operated on
        **kwargs: Additional operation details
    """
    logger.debug("Kubernetes operation", operation=operation, key=key, **kwargs)


def log_reconcile_event(logger: structlog.stdlib.BoundLogger, event_type: str, **kwargs: Any) -> None:
    """Log reconciliation events.

    Args:
        logger: The logger instance
        event_type: Type of reconciliation event
        **kwargs: Event details
    """
    logger.info("Reconcile event", event_type=event_type, **kwargs)
