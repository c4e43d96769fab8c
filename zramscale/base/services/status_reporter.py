"""Status event sink: structured log records plus optional listeners."""

import logging
from typing import Callable, List, Optional

from zramscale.abstractions.types.zram_types import MIB, StatusEvent
from zramscale.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _mib(value: Optional[int]) -> str:
    return "?" if value is None else f"{value // MIB}MiB"


class StatusReporter:
    """Emit one structured record per status event and fan it out to listeners."""

    def __init__(self):
        self._listeners: List[Callable[[StatusEvent], None]] = []
        self.last_event: Optional[StatusEvent] = None

    def register_listener(self, listener: Callable[[StatusEvent], None]) -> None:
        self._listeners.append(listener)

    def emit(self, event: StatusEvent) -> None:
        reason = event.decision_reason.value if event.decision_reason else "none"
        message = (
            f"{event.phase}: reason={reason} ratio={event.target_ratio}% "
            f"target={_mib(event.target_bytes)} applied={_mib(event.applied_bytes)} "
            f"mutated={event.mutated}"
        )
        if event.errors:
            message += f" errors={len(event.errors)}"

        if event.error_kind and not event.applied_bytes:
            level = logging.ERROR
        elif event.errors:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(level, message, extra={'context': {'status': event.to_dict()}})
        self.last_event = event

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Status listener {getattr(listener, '__name__', listener)} failed: {e}")
