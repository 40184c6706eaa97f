"""Tests for the run context and signal handling."""

import signal
import threading
from unittest.mock import MagicMock

from cache_control_worker import lifecycle
from cache_control_worker.lifecycle import SHUTDOWN_SIGNALS, RunContext, install_signal_handlers


class TestRunContext:

    def test_cancel_is_monotonic(self):
        context = RunContext()

        assert not context.cancelled
        assert context.cancel() is True
        assert context.cancel() is False
        assert context.cancelled

    def test_wait_returns_when_cancelled_from_another_thread(self):
        context = RunContext()
        threading.Timer(0.05, context.cancel).start()

        assert context.wait(timeout=5) is True

    def test_wait_times_out_while_running(self):
        assert RunContext().wait(timeout=0.01) is False


class TestSignalHandlers:

    def test_termination_signals_are_registered(self, monkeypatch):
        registered = {}
        monkeypatch.setattr(lifecycle.signal, "signal", lambda sig, handler: registered.setdefault(sig, handler))

        handler = install_signal_handlers(RunContext(), MagicMock())

        assert set(registered) == set(SHUTDOWN_SIGNALS)
        assert signal.SIGTERM in registered
        assert signal.SIGINT in registered
        assert all(h is handler for h in registered.values())

    def test_first_signal_cancels_and_repeats_are_ignored(self):
        context = RunContext()
        logger = MagicMock()
        handler = install_signal_handlers(context, logger, signals=())

        handler(signal.SIGTERM, None)
        handler(signal.SIGINT, None)

        assert context.cancelled
        events = [call.args[0] for call in logger.info.call_args_list]
        assert events == ["shutdown_signal_received", "shutdown_already_requested"]
        assert logger.info.call_args_list[0].kwargs == {"signal": "SIGTERM"}

    def test_cancel_can_be_reentered_on_the_same_thread(self):
        """A signal arriving while cancel() holds its lock must not deadlock."""
        context = RunContext()
        result = []

        def reenter():
            with context._lock:
                result.append(context.cancel())

        worker = threading.Thread(target=reenter, daemon=True)
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert result == [True]
        assert context.cancel() is False
