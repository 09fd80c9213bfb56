"""Structured logging for Bizcore.

All modules log through structlog with snake_case event names::

    logger = get_logger(__name__)
    logger.info("invitation_issued", invitation_id=str(invitation.id))

``setup_logging()`` renders JSON in production and coloured console output
elsewhere. Every entry carries the current request context (request and
correlation ids, the acting user, the resolved workspace and company) and
secret-bearing fields are masked before rendering.
"""
# ruff: noqa: ARG001  # Processor signatures required by structlog API

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

from bizcore.config.settings import get_settings
from bizcore.core.context import get_current_context_or_none

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Keys whose values never reach a log sink in clear text
SECRET_KEYS = frozenset({"token", "session_token", "password", "api_key", "authorization"})

# Third-party loggers routed through structlog, with their floor level
THIRD_PARTY_LEVELS: dict[str, int] = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "uvicorn.error": logging.INFO,
    "sqlalchemy": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
}


def add_request_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Merge the active RequestContext into the entry without overriding explicit keys."""
    ctx = get_current_context_or_none()
    if ctx is None:
        return event_dict

    fields = {
        "request_id": ctx.request_id,
        "correlation_id": ctx.correlation_id,
        "user_id": ctx.actor_id,
        "workspace_id": ctx.workspace_id,
        "company_id": ctx.company_id,
    }
    for key, value in fields.items():
        if value is not None:
            event_dict.setdefault(key, str(value))
    return event_dict


def add_environment_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict["environment"] = get_settings().ENVIRONMENT
    return event_dict


def mask_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace secret values with a short prefix (invitation tokens stay traceable)."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and len(value) > 6 and key.endswith("token"):
            event_dict[key] = f"{value[:6]}..."
        elif value is not None:
            event_dict[key] = "***"
    return event_dict


def drop_color_message_key(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop the color_message key uvicorn adds."""
    event_dict.pop("color_message", None)
    return event_dict


def _shared_processors(add_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_request_context,
        add_environment_info,
        mask_secrets,
        drop_color_message_key,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    return processors


def _route_stdlib_logging(
    shared: list[Processor], renderer: Processor, level: int
) -> None:
    """Send stdlib loggers (uvicorn, sqlalchemy, httpx) through the structlog chain."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name, floor in THIRD_PARTY_LEVELS.items():
        third_party = logging.getLogger(name)
        third_party.handlers = [handler]
        third_party.propagate = False
        third_party.setLevel(max(floor, level))


def setup_logging(
    log_level: LogLevel | None = None,
    json_format: bool | None = None,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and stdlib logging.

    Args:
        log_level: Override for ``settings.log_level``
        json_format: Force JSON (True) or console (False) output; defaults to
            JSON only in production
        add_timestamp: Prefix entries with an ISO-8601 UTC timestamp
    """
    settings = get_settings()
    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    use_json = settings.ENVIRONMENT == "production" if json_format is None else json_format

    shared = _shared_processors(add_timestamp)
    if use_json:
        shared.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(shared, renderer, level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """Bind keys to every entry logged inside the block.

    Example:
        with LogContext(operation="consolidation", workspace_id=str(ws_id)):
            logger.info("consolidation_started")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.context)


def _level_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


def log_request_end(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **kwargs: Any,
) -> None:
    """Log a finished HTTP request; 4xx as warning, 5xx as error."""
    getattr(logger, _level_for_status(status_code))(
        "request_completed",
        http_method=method,
        http_path=path,
        http_status=status_code,
        duration_ms=round(duration_ms, 2),
        **kwargs,
    )


def log_exception(
    logger: structlog.stdlib.BoundLogger,
    exc: Exception,
    **kwargs: Any,
) -> None:
    logger.exception(
        "exception_occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        **kwargs,
    )


def log_external_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    operation: str,
    duration_ms: float,
    success: bool,
    **kwargs: Any,
) -> None:
    """Log a call to an outside service such as the email API."""
    log = logger.info if success else logger.warning
    log(
        "external_call",
        service=service,
        operation=operation,
        duration_ms=round(duration_ms, 2),
        success=success,
        **kwargs,
    )
