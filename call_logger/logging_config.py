"""
Structured logging with correlation IDs.

structlog renders JSON in production and colored console output in
development. Every entry carries the ``trace_id`` of the HTTP request
that produced it and, inside ``call_context``, the ``call_id`` of the
Vapi call being handled. Credential-looking keys are masked before
rendering.

Usage:
    from call_logger.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("webhook_received", event_type="end-of-call-report")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

import structlog

from call_logger.config import get_settings

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
call_id_var: ContextVar[str] = ContextVar("call_id", default="")

# Never rendered, whatever the log level
SECRET_KEYS = frozenset({
    "authorization",
    "password",
    "private_key",
    "google_credentials",
    "session_id",
})
REDACTED = "***"


def _inject_context_vars(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    trace_id = trace_id_var.get()
    if trace_id:
        event_dict.setdefault("trace_id", trace_id)

    call_id = call_id_var.get()
    if call_id:
        event_dict.setdefault("call_id", call_id)

    return event_dict


def _redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def generate_trace_id() -> str:
    """Short random id for request correlation."""
    return uuid.uuid4().hex[:12]


@contextmanager
def call_context(call_id: str) -> Iterator[None]:
    """Tag every entry logged inside the block with ``call_id``."""
    token = call_id_var.set(call_id)
    try:
        yield
    finally:
        call_id_var.reset(token)


def setup_logging() -> None:
    """
    Configure structlog and stdlib logging.

    - **Production**: JSON lines on stdout.
    - **Development**: colored, human-readable console output.

    uvicorn, httpx and google-auth log through the stdlib root logger,
    so their records are rendered by the same pipeline.
    """
    settings = get_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if settings.is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    for noisy in ("httpx", "httpcore", "urllib3", "google.auth", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
