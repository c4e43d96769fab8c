"""Structured logging infrastructure for the ZRAM controller."""

from .structured_logger import StructuredLogger, get_logger, run_context, phase_context
from .setup import setup_logging, setup_simple_logging

__all__ = [
    'StructuredLogger',
    'get_logger',
    'run_context',
    'phase_context',
    'setup_logging',
    'setup_simple_logging'
]
