from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_CONFIGURED = False
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(level: int = logging.INFO) -> None:
    """Send structlog and stdlib records to stdout as JSON lines.

    Only the first call installs handlers; later calls just change the level.
    """

    global _CONFIGURED
    if _CONFIGURED:
        _set_level(level)
        return

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    )

    logging.getLogger().handlers = [handler]

    # uvicorn installs its own handlers; route them through ours instead.
    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False

    _set_level(level)
    _CONFIGURED = True


def _set_level(level: int) -> None:
    logging.getLogger().setLevel(level)
    for name in _UVICORN_LOGGERS:
        logging.getLogger(name).setLevel(level)
