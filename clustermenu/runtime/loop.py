"""Main event loop for the console.

Every iteration renders one frame and then waits on the loop queue for at
most one tick. Keys come from the keyboard thread, termination requests from
the signal listener; a timeout is simply the next periodic refresh.
This loop is wiring only; feature logic lives in callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue

from ..render.panes import LOGOUT_KEY
from .layout import Layout, handle_layout_key
from .terminal import TerminalController

logger = logging.getLogger(__name__)

KEY_EVENT = "key"
TERMINATE_EVENT = "terminate"


@dataclass(frozen=True)
class LoopEvent:
    kind: str
    key: str = ""


TERMINATE = LoopEvent(TERMINATE_EVENT)


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    tick_seconds: float = 1.0


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected operations used by ``run_main_loop``."""

    terminal_size: Callable[[], tuple[int, int]]
    render_frame: Callable[[Layout], None]
    handle_action_key: Callable[[str], bool]
    drain_event_errors: Callable[[], int]
    release_backend: Callable[[], None]


def handle_key(layout: Layout, key: str, callbacks: RuntimeLoopCallbacks) -> bool:
    """Dispatch one key; return True when the loop should exit."""
    if key == LOGOUT_KEY:
        return True
    if handle_layout_key(layout, key):
        return False
    callbacks.handle_action_key(key)
    return False


def run_main_loop(
    layout: Layout,
    terminal: TerminalController,
    events: Queue[LoopEvent],
    timing: RuntimeLoopTiming,
    callbacks: RuntimeLoopCallbacks,
) -> None:
    """Run the console loop until the logout key or a terminating signal.

    The backend is released on every exit path, including exceptions raised
    while rendering.
    """
    ops = callbacks
    with terminal.raw_mode():
        try:
            while True:
                rows, columns = ops.terminal_size()
                layout.resize(rows, columns)
                ops.drain_event_errors()
                ops.render_frame(layout)

                try:
                    event = events.get(timeout=timing.tick_seconds)
                except Empty:
                    continue

                if event.kind == TERMINATE_EVENT:
                    logger.info("terminating on request")
                    break
                if event.kind == KEY_EVENT and handle_key(layout, event.key, ops):
                    logger.info("logout key pressed")
                    break
        finally:
            ops.release_backend()
