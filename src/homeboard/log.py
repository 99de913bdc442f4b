"""Structured logging setup.

Routes structlog and stdlib ``logging`` records through one
``ProcessorFormatter`` so third-party loggers (uvicorn, httpx, apscheduler)
share the same output.

Two output formats:
- ``text``: colored, human-readable console output (development default)
- ``json``: JSON lines (production)
"""

from __future__ import annotations

import logging
import sys

import structlog

_NOISE_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "apscheduler.executors.default",
)


def _shared_processors(time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        structlog.stdlib.ExtraAdder(),
    ]


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure structlog and the root logger for the process.

    Args:
        level: Root log level (e.g. "DEBUG", "INFO").
        fmt: ``"text"`` for console output, ``"json"`` for JSON lines.
    """
    if fmt == "json":
        shared = _shared_processors(time_fmt="iso")
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        shared = _shared_processors(time_fmt="%H:%M:%S")
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
