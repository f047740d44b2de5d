"""
Logging system using structlog.
Provides structured logging with different output formats and levels.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # create_app may run several times in one process; one handler per file
        root_logger = logging.getLogger()
        attached = any(
            isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path
            for handler in root_logger.handlers
        )
        if not attached:
            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(getattr(logging, log_level.upper()))
            file_handler.setFormatter(logging.Formatter('%(message)s'))

            root_logger.addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class RequestLogger:
    """
    Access logger for HTTP requests with per-request context.

    Context is bound through structlog's contextvars so that every event
    logged while the request is being handled carries the same request id.
    """

    def __init__(self, name: str = "api.access"):
        self.logger = get_logger(name)

    def bind_request(self, request_id: str, method: str, path: str) -> float:
        """Bind request context and return the start time."""
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=method,
            path=path,
        )
        return time.perf_counter()

    def log_response(self, status_code: int, started_at: float) -> None:
        """Log request completion."""
        duration_ms = round((time.perf_counter() - started_at) * 1000, 2)
        level = "warning" if status_code >= 500 else "info"
        getattr(self.logger, level)(
            "Request completed",
            status_code=status_code,
            duration_ms=duration_ms,
        )

    def clear(self) -> None:
        """Drop the request context."""
        structlog.contextvars.clear_contextvars()
