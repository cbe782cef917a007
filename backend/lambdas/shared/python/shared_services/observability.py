"""Structured logging with a per-invocation trace id.

Handlers call ``setup_correlation_context`` with their event; the migration
script calls ``configure_logging`` once at startup. Both install the same
JSON formatter so log lines look alike wherever the code runs.
"""

import json
import logging
import os
import uuid
from typing import Any

# Extra fields copied from logger.info('msg', extra={...}) into the JSON line
EXTRA_FIELDS = ('user_id', 'operation', 'table', 'chord_name', 'duration_ms', 'status_code')


class CorrelationContext:
    """Process-wide correlation context for request tracing."""

    _trace_id: str | None = None
    _source: str | None = None

    @classmethod
    def get_trace_id(cls) -> str:
        """Get current trace ID, generating one if not set."""
        if cls._trace_id is None:
            cls._trace_id = str(uuid.uuid4())
        return cls._trace_id

    @classmethod
    def set_trace_id(cls, trace_id: str) -> None:
        cls._trace_id = trace_id

    @classmethod
    def get_source(cls) -> str:
        return cls._source or 'unknown'

    @classmethod
    def set_source(cls, name: str) -> None:
        cls._source = name


class StructuredLogFilter(logging.Filter):
    """Injects correlation context into all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = CorrelationContext.get_trace_id()  # type: ignore[attr-defined]
        record.source = CorrelationContext.get_source()  # type: ignore[attr-defined]
        return True


class StructuredJsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'trace_id': getattr(record, 'trace_id', None),
            'source': getattr(record, 'source', None),
        }

        if record.exc_info and record.exc_info[0]:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
            }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


def _install(root_logger: logging.Logger) -> None:
    if not any(isinstance(f, StructuredLogFilter) for f in root_logger.filters):
        root_logger.addFilter(StructuredLogFilter())

    formatter = StructuredJsonFormatter()
    for handler in root_logger.handlers:
        # Filters on the root logger are skipped for records from child loggers
        if not any(isinstance(f, StructuredLogFilter) for f in handler.filters):
            handler.addFilter(StructuredLogFilter())
        handler.setFormatter(formatter)


def setup_correlation_context(event: dict[str, Any], context: Any) -> str:
    """
    Initialize correlation context for a Lambda invocation.

    Extracts X-Trace-Id from request headers or generates a new one.

    Args:
        event: Lambda event (API Gateway format or a direct invocation payload)
        context: Lambda context

    Returns:
        The trace ID being used for this invocation
    """
    headers = event.get('headers') or {}
    trace_id = (
        headers.get('x-trace-id')
        or headers.get('X-Trace-Id')
        or headers.get('x-request-id')
        or event.get('trace_id')
        or str(uuid.uuid4())
    )

    CorrelationContext.set_trace_id(trace_id)
    CorrelationContext.set_source(getattr(context, 'function_name', None) or 'unknown')

    _install(logging.getLogger())
    return trace_id


def configure_logging(level: str | None = None, source: str = 'cli') -> str:
    """
    Configure root logging for a command-line run.

    Args:
        level: Log level name; defaults to LOG_LEVEL or INFO
        source: Name recorded in every log line

    Returns:
        The trace ID for this run
    """
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel((level or os.environ.get('LOG_LEVEL', 'INFO')).upper())

    CorrelationContext.set_trace_id(str(uuid.uuid4()))
    CorrelationContext.set_source(source)

    _install(root_logger)
    return CorrelationContext.get_trace_id()
