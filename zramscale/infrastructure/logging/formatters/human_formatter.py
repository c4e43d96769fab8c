"""Console formatter: one readable line per record, plus performance and traceback lines."""

import logging
from datetime import datetime
from typing import Dict, List


class HumanFormatter(logging.Formatter):
    """Render records as ``time LEVEL [logger] [run | phase] message``."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[0m',
        'WARNING': '\033[93m',
        'ERROR': '\033[91m',
        'CRITICAL': '\033[95m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # (key, template) rendered in this order on the performance line
    PERFORMANCE_FIELDS = (
        ('duration_seconds', '{:.3f}s'),
        ('mb_per_second', '{:.1f} MB/s'),
        ('devices', '{} device(s)'),
    )

    def __init__(self, use_colors: bool = True, show_context: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.show_context = show_context

    def _paint(self, text: str, code: str) -> str:
        if not self.use_colors or not code:
            return text
        return f"{code}{text}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.LEVEL_COLORS.get(record.levelname, '')
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        fields = [
            self._paint(timestamp, self.DIM),
            self._paint(f"{record.levelname:8}", level_color),
            self._paint(f"[{self._shorten_logger_name(record.name)}]", self.DIM),
        ]
        if self.show_context:
            context = self._format_context(getattr(record, 'context', None) or {})
            if context:
                fields.append(self._paint(context, self.BOLD))
        fields.append(record.getMessage())

        lines = [' '.join(fields)]

        performance = self._format_performance(getattr(record, 'performance', None) or {})
        if performance:
            lines.append(self._paint(f"  Performance: {performance}", self.DIM))

        tb = getattr(record, 'traceback', None)
        if tb:
            if self.use_colors:
                lines.extend(self._paint(f"  {line}", level_color) for line in tb.rstrip().split('\n'))
            else:
                lines.append(tb)

        return '\n'.join(lines)

    def _format_context(self, context: Dict) -> str:
        parts: List[str] = []
        if context.get('run_id'):
            parts.append(f"run:{str(context['run_id'])[:8]}")
        if context.get('phase'):
            parts.append(f"phase:{context['phase']}")
        return f"[{' | '.join(parts)}]" if parts else ''

    def _shorten_logger_name(self, name: str, max_length: int = 20) -> str:
        if len(name) <= max_length:
            return name
        last = name.rsplit('.', 1)[-1]
        if last != name and len(last) <= max_length - 3:
            return f"...{last}"
        return f"{name[:max_length - 3]}..."

    def _format_performance(self, perf: Dict) -> str:
        return ' | '.join(
            template.format(perf[key]) for key, template in self.PERFORMANCE_FIELDS if key in perf
        )
