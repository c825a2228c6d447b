"""
Structured logging for the monitoring service.

structlog renders application events: JSON lines in production, console
output elsewhere. Records from third-party stdlib loggers (uvicorn, httpx)
go through a stdlib handler configured to match. Each HTTP request binds a
request id that is attached to every event logged while it is handled.
"""

import logging
import logging.config
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from structlog.types import FilteringBoundLogger

request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class PerformanceLogger:
    """Debug-level timing events for background ticks and API calls."""

    def __init__(self, logger: FilteringBoundLogger):
        self.logger = logger

    def log_execution_time(self,
                           operation: str,
                           duration_ms: float,
                           success: bool = True,
                           **kwargs: Any) -> None:
        self.logger.debug("Operation performance",
                          event_type="performance",
                          operation=operation,
                          duration_ms=round(duration_ms, 3),
                          success=success,
                          **kwargs)

    def log_api_call(self,
                     endpoint: str,
                     method: str,
                     status_code: int,
                     duration_ms: float,
                     **kwargs: Any) -> None:
        self.logger.debug("API call performance",
                          event_type="api_performance",
                          endpoint=endpoint,
                          method=method,
                          status_code=status_code,
                          duration_ms=round(duration_ms, 3),
                          **kwargs)


def add_request_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the id of the request being handled, if any."""
    request_id = request_id_context.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _stdlib_config(log_level: str, production: bool, log_file: Optional[Path]) -> Dict[str, Any]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "json" if production else "plain",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": str(log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
            "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        },
        "handlers": handlers,
        "root": {"level": log_level, "handlers": list(handlers)},
    }


def setup_logging(log_level: str = "INFO",
                  environment: str = "development",
                  log_file: Optional[Path] = None) -> None:
    """
    Configure structlog and stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: development, staging, production or testing
        log_file: Optional path of a rotating JSON log file
    """
    log_level = log_level.upper()
    production = environment == "production"

    processors = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if production:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=environment == "development"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.config.dictConfig(_stdlib_config(log_level, production, log_file))


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    """Structured logger, named after the calling module by default."""
    if name is None:
        import inspect
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "pulse_monitor")

    return structlog.get_logger(name)


def get_performance_logger(name: Optional[str] = None) -> PerformanceLogger:
    return PerformanceLogger(get_logger(name))


def set_request_context(request_id: Optional[str] = None) -> None:
    """Bind (or clear, with None) the request id for the current context."""
    request_id_context.set(request_id)


def generate_request_id() -> str:
    return str(uuid4())


__all__ = [
    "setup_logging",
    "get_logger",
    "get_performance_logger",
    "set_request_context",
    "generate_request_id",
    "add_request_id",
    "PerformanceLogger",
]
