"""Structured logging utilities with correlation IDs, timing, and masking of participant data."""

import asyncio
import hashlib
import logging
import re
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from ulid import ULID

from src.utils.logging_config import LoggingConfig, get_logger


_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_EMAIL_RE = re.compile(r'([A-Z0-9._%+-])[A-Z0-9._%+-]*(@[A-Z0-9.-]+\.[A-Z]{2,})', re.IGNORECASE)
_TOKEN_RE = re.compile(r'(?i)(api[_-]?key|token|secret|password|authorization)[\s:=]+([A-Za-z0-9._-]{16,})')


def generate_correlation_id() -> str:
    """Generate a sortable correlation ID for request tracing."""
    return f"req_{str(ULID()).lower()}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID in context."""
    _correlation_id_var.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """Context manager for correlation ID propagation."""
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    old_id = get_correlation_id()
    set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        set_correlation_id(old_id)


def mask_sensitive_data(text: str) -> str:
    """Mask e-mail addresses and credentials in free text."""
    if not text or not LoggingConfig.LOG_MASK_SENSITIVE:
        return text

    text = _EMAIL_RE.sub(r'\1***\2', text)
    text = _TOKEN_RE.sub(r'\1=[REDACTED]', text)
    return text


def mask_email(email: Optional[str]) -> Optional[str]:
    """Keep the first character and the domain of an e-mail address."""
    if not email or not LoggingConfig.LOG_MASK_SENSITIVE:
        return email
    return _EMAIL_RE.sub(r'\1***\2', email)


def mask_user_id(user_id: Any) -> Any:
    """Hash long user identifiers; short numeric ids are left readable."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or user_id is None:
        return user_id

    value = str(user_id)
    if len(value) > 12:
        hashed = hashlib.sha256(value.encode()).hexdigest()[:8]
        return f"{value[:4]}...{hashed}"
    return user_id


class StructuredLogger:
    """
    Logger wrapper that turns keyword arguments into structured fields.

    Storage error messages can echo participant rows, so ``error`` fields are
    passed through ``mask_sensitive_data`` and ``*email`` fields through
    ``mask_email`` before they reach a handler.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _get_extra(self, **kwargs: Any) -> Dict[str, Any]:
        extra = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id

        for key, value in kwargs.items():
            if isinstance(value, str):
                if key.endswith("email"):
                    value = mask_email(value)
                elif key == "error":
                    value = mask_sensitive_data(value)
            extra[key] = value
        return extra

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, extra=self._get_extra(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, extra=self._get_extra(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.warning(message, extra=self._get_extra(**kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.error(message, extra=self._get_extra(**kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        self.logger.exception(message, extra=self._get_extra(**kwargs))


def get_structured_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """Log how long the wrapped block took, warning above the slow threshold."""
    if logger is None:
        logger = get_structured_logger(__name__)

    start_time = time.perf_counter()
    logger.debug(f"Starting {operation_name}", operation=operation_name, **context)

    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Completed {operation_name}",
            operation=operation_name,
            processing_time_ms=round(elapsed_ms, 2),
            **context
        )

        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            logger.warning(
                f"Slow operation detected: {operation_name}",
                operation=operation_name,
                processing_time_ms=round(elapsed_ms, 2),
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS,
                **context
            )


def timed(operation_name: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator for timing sync or async function calls."""
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        log = logger or get_structured_logger(func.__module__)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with log_timing(op_name, logger=log):
                return func(*args, **kwargs)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with log_timing(op_name, logger=log):
                return await func(*args, **kwargs)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def setup_logging() -> logging.Logger:
    """Configure logging once per process and return this module's logger."""
    LoggingConfig.setup_logging()
    return get_logger(__name__)
