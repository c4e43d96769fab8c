"""JSON-lines formatter for the log file."""

import json
import logging
import traceback
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """One JSON object per record; structured attributes are copied when present."""

    STRUCTURED_FIELDS = ('context', 'performance', 'traceback')

    def format(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
            'pid': record.process,
        }
        for name in self.STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value:
                data[name] = value

        if 'traceback' not in data and record.exc_info:
            data['traceback'] = ''.join(traceback.format_exception(*record.exc_info))

        return json.dumps(data, separators=(',', ':'), default=str)
