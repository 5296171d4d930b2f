"""ANSI escape handling for colorized tool output.

Translates SGR color sequences emitted by ``systemctl`` into display-attribute
slots of the rendering backend, and measures text while skipping escapes.
The slot table is process-wide state that only ever grows.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Protocol

logger = logging.getLogger(__name__)

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
ESCAPE_LEAD = "\x1b["
TAB_STOP = 8

# SGR may omit parameters; other control sequences need at least one.
_CSI_TOKEN_RE = re.compile(r"(?:([0-9;?]*)m|[0-9;?]+[@-~])")

COLOR_BLACK = 0
COLOR_RED = 1
COLOR_GREEN = 2
COLOR_YELLOW = 3
COLOR_BLUE = 4
COLOR_MAGENTA = 5
COLOR_CYAN = 6
COLOR_WHITE = 7

# Slot 0 is the light-on-black background attribute; it is never allocated.
BASE_SLOT = 0
FOREGROUND_CODES = range(31, 38)


class SlotBackend(Protocol):
    max_slots: int

    def init_slot(self, slot: int, foreground: int, background: int) -> None: ...


class AttributeSink(Protocol):
    def color_on(self, slot: int) -> None: ...

    def print(self, text: str) -> None: ...


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``.

    Tabs expand to the next 8-column stop, combining marks consume no columns,
    and East Asian wide/fullwidth characters consume two.
    """
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def sgr_code(params: str) -> int:
    """Return the last numeric parameter of an SGR parameter string.

    ``"0;1;31"`` yields ``31``; empty or non-numeric parameters yield ``0``
    (the reset code), matching how terminals treat a bare ``ESC [ m``.
    """
    last = params.rsplit(";", 1)[-1]
    try:
        return int(last)
    except ValueError:
        return 0


class ColorAttributeTable:
    """Monotonic mapping from SGR color codes to backend attribute slots.

    A code is bound to a slot on first sight and keeps it for the lifetime of
    the table. Codes 31-37 get that color on black; every other code gets the
    default light-on-black look. When the backend runs out of slots the
    condition is logged once and the base slot is used instead.
    """

    def __init__(self, backend: SlotBackend) -> None:
        self._backend = backend
        self._slots: dict[int, int] = {}
        self._next_slot = BASE_SLOT + 1
        self._exhaustion_reported = False
        backend.init_slot(BASE_SLOT, COLOR_WHITE, COLOR_BLACK)

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, code: object) -> bool:
        return code in self._slots

    def slots(self) -> dict[int, int]:
        """Return a copy of the code-to-slot bindings in allocation order."""
        return dict(self._slots)

    def resolve(self, code: int) -> int:
        slot = self._slots.get(code)
        if slot is not None:
            return slot
        if self._next_slot >= self._backend.max_slots:
            if not self._exhaustion_reported:
                logger.warning(
                    "color attribute slots exhausted (%d available); code %d uses the default attribute",
                    self._backend.max_slots,
                    code,
                )
                self._exhaustion_reported = True
            return BASE_SLOT

        slot = self._next_slot
        self._next_slot += 1
        if code in FOREGROUND_CODES:
            self._backend.init_slot(slot, code - 30, COLOR_BLACK)
        else:
            self._backend.init_slot(slot, COLOR_WHITE, COLOR_BLACK)
        self._slots[code] = slot
        return slot


def color_print(sink: AttributeSink, text: str, table: ColorAttributeTable) -> None:
    """Print ``text`` into ``sink`` with its SGR colors mapped to slots.

    Text ahead of the first escape is printed with the base slot. Each
    following ``ESC [`` token selects the slot of its final numeric parameter
    before its literal text is printed. Non-SGR control sequences are dropped
    and keep the current attribute.
    """
    head, *tokens = text.split(ESCAPE_LEAD)
    sink.color_on(BASE_SLOT)
    if head:
        sink.print(head)
    for token in tokens:
        match = _CSI_TOKEN_RE.match(token)
        if match is None:
            sink.print(token)
            continue
        if match.group(1) is not None:
            sink.color_on(table.resolve(sgr_code(match.group(1))))
        literal = token[match.end():]
        if literal:
            sink.print(literal)
