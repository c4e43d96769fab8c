# zramscale/core/signal_handler.py
"""Cooperative shutdown signalling for the rescaling loop."""

import signal
import logging
import time
from typing import Any, Callable, Dict, List, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class SignalEvent:
    """Signal event for deferred processing outside signal context."""
    signal_num: signal.Signals
    timestamp: float


class SignalHandler:
    """
    Graceful shutdown on SIGTERM/SIGINT for a single-threaded loop.

    The signal handler itself only records the event and raises a flag.
    Logging happens later, on the main thread, the next
    time the loop waits. A stop request is therefore observed between ticks
    and never interrupts a device reconfiguration.
    """

    def __init__(self,
                 poll_interval: float = 0.5,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize signal handler.

        Args:
            poll_interval: Longest single sleep while waiting
            clock: Monotonic clock
            sleep: Sleep function
        """
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

        # Plain attribute writes only inside signal context
        self._shutdown_requested = False
        self._pending: List[SignalEvent] = []

        self._original_handlers: Dict[int, Any] = {}

    def install(self, signals: Sequence[signal.Signals] = (signal.SIGTERM, signal.SIGINT)) -> None:
        """Register process signal handlers."""
        for sig in signals:
            self._original_handlers[sig] = signal.signal(sig, self._handle_shutdown_signal)
        logger.debug("Shutdown signal handlers registered")

    def cleanup(self) -> None:
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            try:
                signal.signal(sig, handler)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to restore signal handler for {sig}: {e}")
        self._original_handlers.clear()

    def __enter__(self) -> 'SignalHandler':
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def trigger_shutdown(self) -> None:
        """Manually request shutdown."""
        logger.info("Manual shutdown triggered")
        self._shutdown_requested = True

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def wait_for_shutdown(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True as soon as shutdown is requested."""
        deadline = self._clock() + timeout
        while True:
            if self._shutdown_requested:
                self._process_pending()
                return True
            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            self._sleep(min(self._poll_interval, remaining))

    def _handle_shutdown_signal(self, sig, frame=None) -> None:
        """Record the signal - minimal work in signal context."""
        self._pending.append(SignalEvent(signal_num=sig, timestamp=time.time()))
        self._shutdown_requested = True

    def _process_pending(self) -> None:
        while self._pending:
            event = self._pending.pop(0)
            name = getattr(event.signal_num, 'name', event.signal_num)
            logger.info(f"Received {name}, stopping after the current step")
