"""Runtime composition layer for clustermenu.

Builds the session and the screen, starts the worker threads, and runs the
loop. Signals are blocked before the first thread starts and the previous
mask is restored after the last one is told to stop.
"""

from __future__ import annotations

import logging
import os
import sys
from queue import Queue

from ..config import Settings
from ..drbd.events import EVENT_QUEUE_SIZE, Event, EventConsumer, Events2Poller
from ..drbd.store import ResourceCollection
from ..executor import CommandExecutor
from ..render.frame import FrameRenderer
from ..render.screen import Screen
from ..session import build_session
from .input import KeyboardReader
from .layout import initial_layout
from .loop import KEY_EVENT, TERMINATE, LoopEvent, RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from .signals import SignalListener
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def augment_path(bin_dir: str, environ: dict[str, str] | None = None) -> str:
    """Append ``bin_dir`` to ``PATH`` unless it is already listed."""
    env = os.environ if environ is None else environ
    current = env.get("PATH", "")
    entries = [entry for entry in current.split(os.pathsep) if entry]
    if bin_dir not in entries:
        entries.append(bin_dir)
    env["PATH"] = os.pathsep.join(entries)
    return env["PATH"]


def run_console(settings: Settings) -> None:
    """Run the interactive console until logout or a terminating signal."""
    augment_path(settings.privileged_bin_dir)
    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()

    executor = CommandExecutor()
    screen = Screen(stdout_fd, max_slots=settings.max_color_slots)
    store = ResourceCollection()
    session = build_session(executor, store, screen)
    renderer = FrameRenderer(session, screen)
    terminal = TerminalController(stdin_fd, stdout_fd)

    loop_events: Queue[LoopEvent] = Queue()
    drbd_events: Queue[Event | None] = Queue(maxsize=EVENT_QUEUE_SIZE)
    poller = Events2Poller(
        executor,
        drbd_events,
        session.event_errors,
        interval=settings.poll_interval_seconds,
    )
    consumer = EventConsumer(store, drbd_events)
    listener = SignalListener(
        on_resize=screen.rebuild,
        on_terminate=lambda: loop_events.put(TERMINATE),
    )
    keyboard = KeyboardReader(stdin_fd, lambda key: loop_events.put(LoopEvent(KEY_EVENT, key)))

    rows, columns = screen.size()
    layout = initial_layout(rows, columns, session.split_cluster, settings.split_columns)
    callbacks = RuntimeLoopCallbacks(
        terminal_size=screen.size,
        render_frame=renderer.render,
        handle_action_key=session.confirmation.handle_key,
        drain_event_errors=session.drain_event_errors,
        release_backend=renderer.release,
    )

    listener.block()
    try:
        listener.start()
        keyboard.start()
        if session.drbd_enabled:
            consumer.start()
            poller.start()
        logger.info("console started on %s", session.hostname)
        run_main_loop(
            layout,
            terminal,
            loop_events,
            RuntimeLoopTiming(tick_seconds=settings.tick_seconds),
            callbacks,
        )
    finally:
        poller.stop()
        consumer.stop()
        listener.restore()
        logger.info("console stopped")
