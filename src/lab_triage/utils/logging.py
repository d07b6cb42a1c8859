# ============================================================================
# src/lab_triage/utils/logging.py
# ============================================================================
"""
Logging setup and helpers for report triage.

- setup_logging(): console (and optional file) handlers, plain or JSON,
  defaulting to LoggingSettings
- Every record carries a document_id ("-" outside a report) so batch
  runs can be followed line by line
- log_performance(): stage timing decorator
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

NO_DOCUMENT = "-"

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(document_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


# Fields of the LogContext active in the current thread or task
_context_fields: ContextVar[Mapping[str, Any]] = ContextVar('lab_triage_log_fields', default=MappingProxyType({}))


class DocumentIdFilter(logging.Filter):
    """Stamp LogContext fields on the record; document_id is always set."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context_fields.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not hasattr(record, 'document_id'):
            record.document_id = NO_DOCUMENT
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'document_id': getattr(record, 'document_id', NO_DOCUMENT),
            'message': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_json: Optional[bool] = None,
) -> None:
    """
    Configure root logging.

    Args:
        level: Logging level name; defaults to LOG_LEVEL
        log_file: Extra file destination; defaults to LOG_FILE
        format_json: JSON lines instead of text; defaults to LOG_JSON
    """
    from ..config import logging_settings

    level = level or logging_settings.LOG_LEVEL
    log_file = log_file or logging_settings.LOG_FILE
    if format_json is None:
        format_json = logging_settings.LOG_JSON

    formatter = JsonFormatter() if format_json else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    document_filter = DocumentIdFilter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(document_filter)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)


class LogContext:
    """
    Attach fields (e.g. document_id) to records logged inside the block.

    Fields live in a ContextVar, so documents processed in different
    threads or asyncio tasks never see each other's fields. They reach
    records through DocumentIdFilter on the handlers.
    """

    def __init__(self, logger: logging.Logger, **fields):
        self.logger = logger
        self.fields = fields
        self._token = None

    def __enter__(self):
        self._token = _context_fields.set(MappingProxyType({**_context_fields.get(), **self.fields}))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _context_fields.reset(self._token)
        self._token = None


def log_performance(logger: logging.Logger, operation: str):
    """
    Log how long the wrapped call took.

    Failures are logged with their duration and re-raised.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            logger.info(f"{operation} completed in {time.perf_counter() - started:.3f}s")
            return result

        return wrapper
    return decorator
