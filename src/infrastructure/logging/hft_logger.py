"""
Structured Logger Implementation

Thin structured logger over the standard library logging module.
Every call accepts keyword context which is rendered as key=value pairs by
the configured formatter, so call sites read:

    logger.info("Subscribed", exchange="hyperliquid", symbol="BTC")

Metrics are emitted at DEBUG level on a dedicated `<name>.metrics` channel.
"""

import logging
import time
from typing import Any, Dict, Optional

CONTEXT_ATTR = "hft_context"


class HFTLogger:
    """
    Structured logger with persistent context and metric helpers.

    Key features:
    - Keyword context on every call
    - Persistent context via set_context()
    - Metric, latency and counter helpers
    - Python logging compatibility (handlers, levels, propagation)
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.context: Dict[str, Any] = dict(context or {})
        self._py_logger = logging.getLogger(name)
        self._metrics_logger = logging.getLogger(f"{name}.metrics")

    @property
    def propagate(self) -> bool:
        return self._py_logger.propagate

    @propagate.setter
    def propagate(self, value: bool) -> None:
        self._py_logger.propagate = value

    def _log(self, level: int, msg: str, exc_info: bool = False, **context) -> None:
        if not self._py_logger.isEnabledFor(level):
            return
        full_context = {**self.context, **context}
        self._py_logger.log(level, msg, exc_info=exc_info,
                            extra={CONTEXT_ATTR: full_context}, stacklevel=3)

    def debug(self, msg: str, **context) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **context)

    def info(self, msg: str, **context) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **context)

    def warning(self, msg: str, **context) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **context)

    def error(self, msg: str, **context) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, **context)

    def exception(self, msg: str, **context) -> None:
        """Log error message with the active exception traceback."""
        self._log(logging.ERROR, msg, exc_info=True, **context)

    def critical(self, msg: str, **context) -> None:
        """Log critical message."""
        self._log(logging.CRITICAL, msg, **context)

    def metric(self, name: str, value: float, **tags) -> None:
        """Log metric value."""
        if not self._metrics_logger.isEnabledFor(logging.DEBUG):
            return
        full_tags = {**self.context, **tags, "metric": name, "value": value}
        self._metrics_logger.debug("metric", extra={CONTEXT_ATTR: full_tags})

    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        """Log latency metric."""
        self.metric(f"{operation}_latency_ms", duration_ms, **tags)

    def counter(self, name: str, value: int = 1, **tags) -> None:
        """Log counter metric."""
        self.metric(f"{name}_count", float(value), **tags)

    def set_context(self, **context) -> None:
        """Set persistent context for all logs."""
        self.context.update(context)


class LoggingTimer:
    """Context manager for timing operations with automatic logging."""

    def __init__(self, logger: HFTLogger, operation: str, **tags):
        self.logger = logger
        self.operation = operation
        self.tags = tags
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.end_time = time.perf_counter()
            duration_ms = (self.end_time - self.start_time) * 1000
            self.logger.latency(self.operation, duration_ms, **self.tags)

        # Failures are counted here and reported by the caller
        if exc_type is not None:
            self.logger.counter(f"{self.operation}_failures", error_type=exc_type.__name__, **self.tags)
