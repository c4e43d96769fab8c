"""Console handler for interactive runs and service journals."""

import logging
import os
import sys
from typing import Optional

from ..formatters import HumanFormatter


def stream_supports_color(stream) -> bool:
    """True for a TTY that has not opted out via NO_COLOR or TERM=dumb."""
    isatty = getattr(stream, 'isatty', None)
    if isatty is None or not isatty():
        return False
    return not os.environ.get('NO_COLOR') and os.environ.get('TERM', '') != 'dumb'


class ConsoleHandler(logging.StreamHandler):
    """Human-formatted records on stderr, INFO and above unless told otherwise."""

    def __init__(self, stream=None, use_colors: Optional[bool] = None, show_context: bool = True):
        stream = stream or sys.stderr
        super().__init__(stream)
        if use_colors is None:
            use_colors = stream_supports_color(stream)
        self.setFormatter(HumanFormatter(use_colors=use_colors, show_context=show_context))
        self.setLevel(logging.INFO)
