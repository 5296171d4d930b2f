"""Signal delivery to the console loop.

Signals are blocked in the main thread before any worker thread starts, so
every thread inherits the mask and only the listener thread receives them
through ``sigwait``. Nothing runs inside an asynchronous signal handler.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

RESIZE_SIGNALS = frozenset({signal.SIGWINCH})
TERMINATE_SIGNALS = frozenset({signal.SIGTERM, signal.SIGINT, signal.SIGHUP})
HANDLED_SIGNALS = RESIZE_SIGNALS | TERMINATE_SIGNALS


class SignalListener:
    """Wait for handled signals on a daemon thread and dispatch them."""

    def __init__(
        self,
        on_resize: Callable[[], None],
        on_terminate: Callable[[], None],
    ) -> None:
        self._on_resize = on_resize
        self._on_terminate = on_terminate
        self._previous_mask: set[signal.Signals] | None = None

    def block(self) -> None:
        """Block handled signals in the calling thread; call before starting threads."""
        self._previous_mask = signal.pthread_sigmask(signal.SIG_BLOCK, HANDLED_SIGNALS)

    def restore(self) -> None:
        if self._previous_mask is None:
            return
        signal.pthread_sigmask(signal.SIG_SETMASK, self._previous_mask)
        self._previous_mask = None

    def dispatch(self, signum: int) -> bool:
        """Handle one signal; return False once a terminating signal arrived."""
        if signum in RESIZE_SIGNALS:
            self._on_resize()
            return True
        logger.info("received %s, shutting down", signal.Signals(signum).name)
        self._on_terminate()
        return False

    def _run(self) -> None:
        while self.dispatch(signal.sigwait(HANDLED_SIGNALS)):
            pass

    def start(self) -> threading.Thread:
        worker = threading.Thread(target=self._run, name="clustermenu-signals", daemon=True)
        worker.start()
        return worker
