"""structlog + stdlib logging setup shared by the API and the CLI."""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

# Third-party loggers that are far too chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncpg", "sqlalchemy.engine", "LiteLLM", "uvicorn.access")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog and stdlib records through one formatter.

    *level* / *log_format* default to ``GHRECAP_LOG_LEVEL`` (INFO) and
    ``GHRECAP_LOG_FORMAT`` (``console`` or ``json``).
    """
    level = (level or os.environ.get("GHRECAP_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("GHRECAP_LOG_FORMAT", "console")).lower()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers: dict[str, dict[str, str]] = {"ghrecap": {"level": level}}
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": loggers,
        }
    )
