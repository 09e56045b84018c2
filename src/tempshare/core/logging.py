"""Structured logging for tempshare.

Everything goes through structlog. Records emitted with the standard
library (uvicorn, SQLAlchemy, httpx) are rendered by the same processor
chain, so a deployment sees one stream: JSON lines in production, a
colored console elsewhere. The request ID bound by the request-context
middleware is merged into every line.
"""
# ruff: noqa: ARG002  # Processor signatures required by structlog API

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tempshare import __version__
from tempshare.config.settings import Settings, get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Loggers that get the structlog handler instead of their own
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy")

# Chatty third-party loggers capped regardless of the application level
_QUIET_LOGGERS = {
    "sqlalchemy": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


class ServiceInfo:
    """Processor stamping each entry with the deployment environment and version."""

    def __init__(self, environment: str, version: str = __version__) -> None:
        self.environment = environment
        self.version = version

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("environment", self.environment)
        event_dict.setdefault("version", self.version)
        return event_dict


def drop_color_message_key(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Remove uvicorn's ANSI-colored duplicate of the message."""
    event_dict.pop("color_message", None)
    return event_dict


def setup_logging(
    settings: Settings | None = None,
    log_level: LogLevel | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure structlog and route standard library logging through it.

    Args:
        settings: Settings to read defaults from (default: global settings)
        log_level: Override of ``settings.log_level``
        json_format: Force JSON on or off (default: JSON only in production)
    """
    settings = settings or get_settings()
    level = logging.getLevelNamesMapping().get((log_level or settings.log_level).upper(), logging.INFO)
    use_json = settings.ENVIRONMENT == "production" if json_format is None else json_format

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        ServiceInfo(settings.ENVIRONMENT),
        drop_color_message_key,
        structlog.processors.StackInfoRenderer(),
    ]
    if use_json:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False

    for name, cap in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(cap, level))


def log_external_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    operation: str,
    duration_ms: float,
    success: bool,
    **kwargs: Any,
) -> None:
    """Log one call to an external service, at warning level when it failed."""
    log = logger.info if success else logger.warning
    log(
        "external_call",
        service=service,
        operation=operation,
        duration_ms=round(duration_ms, 2),
        success=success,
        **kwargs,
    )
