"""Structured logging with run and phase correlation for the ZRAM controller."""

import logging
import sys
import threading
import traceback
from typing import Dict, Any, Optional, Tuple
from contextvars import ContextVar
from datetime import datetime, timezone

# One id per process run; phase is initial_setup, rescale, benchmark, ...
run_context: ContextVar[Optional[str]] = ContextVar('run_id', default=None)
phase_context: ContextVar[Optional[str]] = ContextVar('phase', default=None)

_RESERVED_EXTRA = ('context', 'performance', 'traceback')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _traceback_text(exc_info) -> Optional[str]:
    if isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
    elif not isinstance(exc_info, tuple):
        exc_info = sys.exc_info()
    if exc_info[0] is None:
        return None
    return ''.join(traceback.format_exception(*exc_info))


class StructuredLogger(logging.Logger):
    """Logger that attaches ``context``, ``performance`` and ``traceback`` to every record.

    Formatters read these three attributes; callers pass additional context
    through ``extra={'context': {...}}`` and it is merged over the run/phase
    fields.
    """

    def _base_context(self) -> Dict[str, Any]:
        context = {
            'run_id': run_context.get(),
            'phase': phase_context.get(),
            'logger_name': self.name,
            'timestamp': _now(),
        }
        return {key: value for key, value in context.items() if value is not None}

    def _split_extra(self, extra) -> Tuple[Dict[str, Any], Dict[str, Any], Any, Optional[str]]:
        """Separate the structured keys from plain ``extra`` attributes."""
        if not isinstance(extra, dict):
            return {}, {}, None, None
        plain = {k: v for k, v in extra.items() if k not in _RESERVED_EXTRA}
        return plain, dict(extra.get('context') or {}), extra.get('performance'), extra.get('traceback')

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, **kwargs):
        plain, extra_context, performance, traceback_str = self._split_extra(extra)

        context = self._base_context()
        context.update(extra_context)

        if traceback_str is None and exc_info:
            traceback_str = _traceback_text(exc_info)

        plain.update(context=context, performance=performance, traceback=traceback_str)
        super()._log(level, msg, args, exc_info=False, extra=plain,
                     stack_info=stack_info, **kwargs)

    def log_performance(self, operation: str, duration: float, **metrics):
        """Log how long an operation took.

        ``bytes_processed`` in ``metrics`` adds an ``mb_per_second`` rate.

        Example:
            logger.log_performance('apply_decision', 0.42, devices=2)
        """
        performance = {
            'operation': operation,
            'duration_seconds': round(duration, 3),
            'timestamp': _now(),
        }
        performance.update(metrics)

        processed = metrics.get('bytes_processed')
        if processed is not None and duration > 0:
            performance['mb_per_second'] = round(processed / (1024 * 1024) / duration, 2)

        self.info(f"Performance: {operation} completed in {duration:.3f}s",
                  extra={'performance': performance})

    def log_error_with_context(self, error: Exception, operation: Optional[str] = None, **context):
        """Log ``error`` at ERROR with its type, its ``kind`` and a traceback."""
        error_context = dict(context)
        error_context['error_type'] = type(error).__name__
        error_context['error_kind'] = getattr(error, 'kind', None)
        if operation:
            error_context['operation'] = operation

        self.error(f"{type(error).__name__}: {error}", exc_info=error,
                   extra={'context': error_context})


_logger_cache: Dict[str, StructuredLogger] = {}
_cache_lock = threading.Lock()


def get_logger(name: str) -> StructuredLogger:
    """Return the StructuredLogger for ``name``, creating it on first use."""
    with _cache_lock:
        logger = _logger_cache.get(name)
        if logger is not None:
            return logger

        # getLogger only honours the logger class for names it has not seen yet
        previous = logging.getLoggerClass()
        logging.setLoggerClass(StructuredLogger)
        try:
            logger = logging.getLogger(name)
        finally:
            logging.setLoggerClass(previous)

        _logger_cache[name] = logger
        return logger
