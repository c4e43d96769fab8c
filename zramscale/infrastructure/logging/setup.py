"""Root logger configuration for zramscale commands."""

import logging
import sys
import uuid
from typing import Optional, Any

from .structured_logger import get_logger, run_context
from .handlers import ConsoleHandler, FileHandler


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    return root


def setup_logging(config: Any,
                  log_file: Optional[str] = None,
                  console: bool = True,
                  log_level: str = 'INFO',
                  run_id: Optional[str] = None) -> str:
    """Console at ``log_level`` plus a rotating JSON file at DEBUG.

    Args:
        config: Anything with a dot-notation ``get`` (normally ``Config``)
        log_file: Overrides ``logging.file``; a falsy value from both disables the file
        console: Attach the console handler
        log_level: Console threshold
        run_id: Correlation id, generated when omitted

    Returns:
        The run id attached to every record of this process
    """
    console_level = _level(log_level)
    root = _reset_root(min(console_level, logging.DEBUG))

    if console:
        handler = ConsoleHandler(use_colors=sys.stderr.isatty())
        handler.setLevel(console_level)
        root.addHandler(handler)

    log_file = log_file or config.get('logging.file')
    file_error = None
    if log_file:
        try:
            root.addHandler(FileHandler(
                str(log_file),
                max_bytes=config.get('logging.max_file_size', 10 * 1024 * 1024),
                backup_count=config.get('logging.backup_count', 3),
            ))
        except OSError as e:
            file_error = e

    if not root.handlers:
        root.addHandler(logging.NullHandler())

    run_id = run_id or uuid.uuid4().hex
    run_context.set(run_id)

    logger = get_logger(__name__)
    if file_error is not None:
        logger.warning(f"Cannot open log file {log_file} ({file_error}), logging to console only")
    else:
        logger.debug(f"Logging to console={console} file={log_file or None}")
    return run_id


def setup_simple_logging(log_level: str = 'INFO'):
    """Console-only logging for short interactive commands."""
    level = _level(log_level)
    root = _reset_root(level)
    handler = ConsoleHandler(show_context=False)
    handler.setLevel(level)
    root.addHandler(handler)
