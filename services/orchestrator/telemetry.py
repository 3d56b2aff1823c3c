"""Tracing spans and keptn-shaped structured logging.

Log lines are JSON objects in the shape the keptn log collector reads
(``keptnContext``, ``keptnService``, ``logLevel``, ``message``). The keptn
context and run id of the current test run are bound as context variables by
the engine, so every record emitted while a run executes carries them, stdlib
``logging`` records included.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, TextIO

import structlog
from opentelemetry import trace

SERVICE_NAME = "jmeter-service"


def _get_tracer():
    return trace.get_tracer("jmeter_service.orchestrator")


@contextmanager
def traced_span(name: str, attributes: dict[str, Any] | None = None) -> Iterator[None]:
    with _get_tracer().start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        yield


def add_keptn_fields(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Rename structlog's keys to the keptn log fields."""
    event_dict["keptnContext"] = event_dict.pop("keptn_context", "")
    event_dict["keptnService"] = SERVICE_NAME
    event_dict["logLevel"] = str(event_dict.pop("level", method_name)).upper()
    event_dict["message"] = event_dict.pop("event", "")
    run_id = event_dict.pop("run_id", None)
    if run_id:
        event_dict["runId"] = run_id
    return event_dict


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_keptn_fields,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Module-level loggers must follow a later reconfiguration.
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
