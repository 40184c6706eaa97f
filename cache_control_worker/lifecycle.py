# =============================================================================
# Cache Control Worker - Lifecycle
# =============================================================================
"""
Run context and shutdown signal handling.

The run context is a one-shot cancellation flag shared by the receive loop
and whatever requests shutdown (a signal handler, a test, a timer).
"""

import signal
import threading
from enum import Enum
from typing import Any, Callable, Optional, Sequence

SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT")
    if hasattr(signal, name)
)


class WorkerState(str, Enum):
    """Worker lifecycle states."""

    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class RunContext:
    """
    Monotonic cancellation signal.

    Once cancelled it stays cancelled. Only the first ``cancel()`` call
    reports True, so callers can tell whether they triggered shutdown.
    ``cancel()`` may be re-entered from a signal handler on the same thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.RLock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return ``cancelled``."""
        return self._event.wait(timeout)


def install_signal_handlers(
    context: RunContext,
    logger: Any,
    signals: Sequence[int] = SHUTDOWN_SIGNALS,
) -> Callable[[int, Any], None]:
    """
    Cancel ``context`` on the first termination signal.

    Later signals are logged and otherwise ignored. Must be called from the
    main thread.

    Returns:
        The installed handler
    """

    def _handle_signal(signum: int, frame: Any) -> None:
        name = signal.Signals(signum).name
        if context.cancel():
            logger.info("shutdown_signal_received", signal=name)
        else:
            logger.info("shutdown_already_requested", signal=name)

    for sig in signals:
        signal.signal(sig, _handle_signal)

    return _handle_signal
