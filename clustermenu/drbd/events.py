"""Polled ``drbdsetup events2`` source feeding the resource-state store.

A poller thread dumps the current DRBD state once per interval and turns every
line into an update event, followed by one prune and one display event for
the poll. A consumer thread applies them to the store. Transport and parse
failures travel on a separate bounded error queue that the console drains.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from queue import Full, Queue
from typing import TYPE_CHECKING

from ..executor import CommandExecutor

if TYPE_CHECKING:
    from .store import ResourceCollection

logger = logging.getLogger(__name__)

UPDATE_EVENT = "update"
DISPLAY_EVENT = "display"
PRUNE_EVENT = "prune"

EVENTS2_COMMAND: tuple[str, ...] = ("drbdsetup", "events2", "--now", "--statistics", "all")
EVENT_QUEUE_SIZE = 64
ERROR_QUEUE_SIZE = 16

EVENT_ACTIONS = frozenset({"exists", "create", "change", "destroy"})
IGNORED_ACTIONS = frozenset({"call", "response"})
EVENT_TARGETS = frozenset({"resource", "connection", "device", "peer-device"})
_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T")


class EventSourceError(RuntimeError):
    """A poll of the DRBD event stream failed or produced unreadable output."""


@dataclass(frozen=True)
class Event:
    """One item on the event queue.

    Update events carry the events2 ``action`` and object ``target`` plus the
    ``key:value`` fields of the line. Display and prune events carry only the
    poll timestamp.
    """

    kind: str
    timestamp: float
    action: str = ""
    target: str = ""
    fields: dict[str, str] = field(default_factory=dict)


def parse_events2_line(line: str, timestamp: float) -> Event | None:
    """Parse one ``drbdsetup events2`` line.

    Returns ``None`` for blank lines, the ``exists -`` end-of-dump marker,
    helper call/response lines, and objects this console does not track.
    Raises ``ValueError`` for lines that do not follow the events2 grammar.
    """
    tokens = line.split()
    if tokens and _TIMESTAMP_RE.match(tokens[0]):
        tokens = tokens[1:]
    if not tokens:
        return None

    action = tokens[0]
    if action in IGNORED_ACTIONS:
        return None
    if action not in EVENT_ACTIONS:
        raise ValueError(f"unknown events2 action {action!r} in {line!r}")
    if len(tokens) < 2:
        raise ValueError(f"events2 line without object: {line!r}")

    target = tokens[1]
    if target == "-" or target not in EVENT_TARGETS:
        return None

    fields: dict[str, str] = {}
    for token in tokens[2:]:
        key, sep, value = token.partition(":")
        if sep:
            fields[key] = value
    if not fields.get("name"):
        raise ValueError(f"events2 {target} line without resource name: {line!r}")
    return Event(kind=UPDATE_EVENT, timestamp=timestamp, action=action, target=target, fields=fields)


class Events2Poller:
    """Background poller that snapshots DRBD state every ``interval`` seconds."""

    def __init__(
        self,
        executor: CommandExecutor,
        events: Queue[Event],
        errors: Queue[EventSourceError],
        interval: float = 1.0,
        command: Sequence[str] = EVENTS2_COMMAND,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._executor = executor
        self._events = events
        self._errors = errors
        self._interval = interval
        self._command = tuple(command)
        self._clock = clock
        self._stop = threading.Event()

    def _report(self, error: EventSourceError) -> None:
        try:
            self._errors.put_nowait(error)
        except Full:
            logger.warning("event error queue full, dropping: %s", error)

    def poll_once(self) -> int:
        """Run one poll and enqueue its events; return the number of update events."""
        result = self._executor.capture(*self._command)
        timestamp = self._clock()
        if not result.ok:
            self._report(EventSourceError(result.summary()))
            return 0

        count = 0
        for line in result.output.splitlines():
            try:
                event = parse_events2_line(line, timestamp)
            except ValueError as exc:
                self._report(EventSourceError(str(exc)))
                continue
            if event is None:
                continue
            self._events.put(event)
            count += 1
        self._events.put(Event(kind=PRUNE_EVENT, timestamp=timestamp))
        self._events.put(Event(kind=DISPLAY_EVENT, timestamp=timestamp))
        return count

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self._interval)

    def start(self) -> threading.Thread:
        worker = threading.Thread(target=self._run, name="clustermenu-events2-poll", daemon=True)
        worker.start()
        return worker

    def stop(self) -> None:
        self._stop.set()


class EventConsumer:
    """Apply queued events to the store: updates and prunes mutate, displays refresh."""

    def __init__(self, store: ResourceCollection, events: Queue[Event | None]) -> None:
        self._store = store
        self._events = events

    def apply(self, event: Event) -> None:
        if event.kind == DISPLAY_EVENT:
            self._store.refresh()
        elif event.kind == PRUNE_EVENT:
            self._store.prune(event)
        else:
            self._store.update(event)

    def _run(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                return
            self.apply(event)

    def start(self) -> threading.Thread:
        worker = threading.Thread(target=self._run, name="clustermenu-events2-apply", daemon=True)
        worker.start()
        return worker

    def stop(self) -> None:
        try:
            self._events.put_nowait(None)
        except Full:
            pass
