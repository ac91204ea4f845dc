"""
Structured Logging with Trace IDs
=================================

Provides JSON-structured logging with request tracing so a single chat
request can be followed through classification, provider attempts and
fallback hops.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from serginho.config.settings import LoggingConfig

# Context variable to store trace_id for current request
_trace_id_var: ContextVar[str | None] = ContextVar('trace_id', default=None)

_SECRET_PATTERNS = re.compile(
    r"(gsk_[A-Za-z0-9]+|sk-[A-Za-z0-9]+|Bearer\s+[A-Za-z0-9._~+/=-]+)",
    re.IGNORECASE,
)


def _redact_secrets(text: str) -> str:
    return _SECRET_PATTERNS.sub("[REDACTED]", text)


def current_trace_id() -> str | None:
    return _trace_id_var.get()


class StructuredLogger:
    """
    Structured logger that outputs JSON logs with trace IDs

    Example output:
    {
        "timestamp": "2025-12-17T10:30:45.123Z",
        "level": "INFO",
        "trace_id": "abc123",
        "component": "Orchestrator",
        "message": "Routing decision",
        "intent": "technical",
        "provider": "llama-70b"
    }
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        """
        Initialize structured logger

        Args:
            component: Component name (e.g., 'Orchestrator', 'WebInterface')
            logger: Optional existing logger (creates new if not provided)
        """
        self.component = component
        self.logger = logger or logging.getLogger(component)

    def _log(self, level: str, message: str, **kwargs) -> None:
        trace_id = _trace_id_var.get()

        log_entry = {
            'timestamp': datetime.now(tz=UTC).isoformat(),
            'level': level,
            'component': self.component,
            'message': _redact_secrets(message),
        }

        if trace_id:
            log_entry['trace_id'] = trace_id

        for k, v in kwargs.items():
            log_entry[k] = _redact_secrets(str(v)) if isinstance(v, str) else v

        json_log = _redact_secrets(json.dumps(log_entry, default=str))

        log_method = getattr(self.logger, level.lower())
        log_method(json_log)

    def debug(self, message: str, **kwargs) -> None:
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log('ERROR', message, **kwargs)


class TraceContext:
    """
    Context manager for setting trace_id for a request

    Usage:
        with TraceContext() as trace_id:
            # All logs within this context will include this trace_id
            logger.info("Processing request")
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or self._generate_trace_id()
        self.token = None

    def __enter__(self) -> str:
        self.token = _trace_id_var.set(self.trace_id)
        return self.trace_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _trace_id_var.reset(self.token)

    @staticmethod
    def _generate_trace_id() -> str:
        return str(uuid.uuid4())[:8]


class _PlainFormatter(logging.Formatter):
    """Text formatter that still redacts secrets from rendered records."""

    def format(self, record: logging.LogRecord) -> str:
        return _redact_secrets(super().format(record))


def configure_logging(config: "LoggingConfig") -> None:
    """Install a single stderr handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_serginho", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler._serginho = True  # type: ignore[attr-defined]
    if config.format == "json":
        # StructuredLogger already emits JSON; keep records bare.
        handler.setFormatter(_PlainFormatter("%(message)s"))
    else:
        handler.setFormatter(_PlainFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(config.level)


def get_logger(component: str) -> StructuredLogger:
    """Get a structured logger for a component"""
    return StructuredLogger(component)
