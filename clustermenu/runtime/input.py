"""Low-level keyboard decoding and the reader thread that forwards keys.

Reads raw bytes from stdin and translates them into normalized key tokens:
printable characters as themselves, cursor keys as ``UP``/``DOWN``/``LEFT``/
``RIGHT`` (both CSI and SS3 forms), and a lone escape as ``ESC``.
"""

from __future__ import annotations

import os
import select
import threading
from collections.abc import Callable

ESC_SEQUENCE_TIMEOUT_MS = 25
_ARROWS = {b"A": "UP", b"B": "DOWN", b"C": "RIGHT", b"D": "LEFT"}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def read_key(fd: int, pending: list[bytes], timeout_ms: int | None = None) -> str:
    """Read one key token; ``""`` means timeout or end of input.

    A byte read ahead after a lone escape is pushed onto ``pending`` and
    returned by the next call with the same list.
    """
    if pending:
        ch = pending.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    if ch in {b"\r", b"\n"}:
        return "ENTER"
    if ch != b"\x1b":
        return ch.decode("utf-8", errors="replace")

    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq not in {b"[", b"O"}:
        pending.append(seq)
        return "ESC"
    final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if final is None:
        return "ESC"
    arrow = _ARROWS.get(final)
    if arrow is not None:
        return arrow
    # Swallow the rest of an unsupported CSI sequence up to its final byte.
    while not (b"@" <= final <= b"~") or final in {b"[", b"O"}:
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            break
    return "ESC"


class KeyboardReader:
    """Daemon thread that blocks on stdin and hands every key to ``sink``."""

    def __init__(self, fd: int, sink: Callable[[str], None]) -> None:
        self._fd = fd
        self._sink = sink
        self._pending: list[bytes] = []

    def _run(self) -> None:
        while True:
            try:
                key = read_key(self._fd, self._pending)
            except OSError:
                return
            if key == "":
                return
            self._sink(key)

    def start(self) -> threading.Thread:
        worker = threading.Thread(target=self._run, name="clustermenu-keyboard", daemon=True)
        worker.start()
        return worker
