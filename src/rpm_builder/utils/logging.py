"""Log setup for applications embedding the RPM builder.

The library itself only emits events; :func:`configure_logging` is for the
application's entry point.  Events carry ``build_id`` and ``namespace``
while a build is being worked on (see :func:`build_context`), including
the ones logged by the gateway and the retry helper underneath.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Per-request chatter of the HTTP client stack.
HTTP_LOGGERS = ("httpx", "httpcore")


def _level(name: str) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: str = "INFO",
    json: bool = True,
    *,
    http_level: str = "WARNING",
) -> None:
    """Route structlog and stdlib records through one renderer on stdout.

    Args:
        level: Level for ``rpm_builder`` events, e.g. ``"DEBUG"``.  Unknown
            names fall back to ``INFO``.
        json: One JSON object per line when true; coloured console output
            otherwise.
        http_level: Level for the ``httpx``/``httpcore`` loggers, which log
            every request at ``INFO``.
    """
    log_level = _level(level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(_level(http_level))


@contextmanager
def build_context(build_id: str, namespace: str) -> Iterator[None]:
    """Bind *build_id* and *namespace* to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(build_id=build_id, namespace=namespace):
        yield
