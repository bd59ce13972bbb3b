"""
ormkit logging - structured logging for drivers and query builders.

Manifesto:
    A driver is a thin layer between a caller and a store; when something
    goes wrong the first question is "what query did we send?".  This
    module gives every driver the same structlog setup and a single debug
    side channel for constructed queries.

    - **Structured:** key/value events, JSON for aggregation
    - **Console in dev:** colored output when attached to a TTY
    - **Observational only:** query logging never changes what runs

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="ormkit")
            │
            ▼
        structlog processor chain:
          1. filter_by_level, TimeStamper(iso, utc)
          2. merge_contextvars
          3. add_log_level / add_logger_name
          4. add_service ("service" key)
          5. JSONRenderer (or ConsoleRenderer)

        logger = get_logger(__name__)
        logger.info("driver.connected", driver="postgres")

        log_query("postgres", 'SELECT "name" FROM "t" WHERE "id" = $1', [1])
        → {"event": "query.debug", "driver": "postgres", "query": ..., "params": [1]}

Tags:
    logging, structlog, observability, ormkit
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service = "ormkit"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service)
    return event_dict


def _processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = [structlog.stdlib.filter_by_level]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service,
    ]
    if json_format:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "ormkit",
    add_timestamp: bool = True,
) -> None:
    """Route ormkit's structlog events through stdlib logging.

    Args:
        level: Minimum level name (``DEBUG`` shows ``query.debug`` events)
        json_format: JSON lines when True, colored console when False,
            JSON unless stderr is a TTY when None
        service: Value of the ``service`` key on every event
        add_timestamp: Prefix events with a UTC ISO timestamp
    """
    global _service
    _service = service
    numeric_level = getattr(logging, level.upper())
    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=_processors(json_format, add_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level, force=True)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


_query_logger = get_logger("ormkit.query")


def log_query(driver: str, query: Any, params: Sequence[Any] | None = None) -> None:
    """Emit a constructed query on the debug side channel.

    Drivers call this only when their ``debug`` option is set, right
    before the query is sent to the store.
    """
    if params:
        _query_logger.info("query.debug", driver=driver, query=str(query), params=list(params))
    else:
        _query_logger.info("query.debug", driver=driver, query=str(query))


__all__ = [
    "configure_logging",
    "get_logger",
    "log_query",
]
