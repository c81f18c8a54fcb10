"""Structured logging: structlog for request events, stdlib loggers routed through the same renderer."""

import logging
import sys

import structlog

from pactnexus.config import Settings

# Processors shared by structlog loggers and foreign (stdlib) log records
_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]

_handler: logging.Handler | None = None


def setup_logging(settings: Settings) -> None:
    """Configure JSON or console output for every logger in the process.

    Progression services log with ``logging.getLogger(__name__)``; their records
    pick up the bound request id through ``foreign_pre_chain``.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    global _handler  # noqa: PLW0603
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(formatter)
    root.addHandler(_handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Access logs are emitted by RequestContextMiddleware
    logging.getLogger("uvicorn.access").propagate = False
