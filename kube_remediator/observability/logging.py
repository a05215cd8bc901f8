"""Structured logging configuration using structlog.

Production output is one JSON object per line on stderr; ``console`` format
renders the same events for a terminal when running against a kubeconfig.
"""

from __future__ import annotations

import logging
import sys

import structlog

_SERVICE = "kube-remediator"


def _add_service(_logger: object, _method: str, event_dict: dict[str, object]) -> dict[str, object]:
    event_dict.setdefault("service", _SERVICE)
    return event_dict


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog for *fmt* ("json" or "console") output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer = structlog.dev.ConsoleRenderer() if fmt == "console" else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _add_service,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **context: object) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name and any extra context (e.g. remediator)."""
    return structlog.get_logger(component=component, **context)  # type: ignore[return-value]
