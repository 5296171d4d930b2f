"""Off-screen pads and a double-buffered ANSI screen.

Panes print into :class:`Pad` buffers that are larger than the terminal.
Each frame copies a scrolled window of every pad into the screen's virtual
buffer, and :meth:`Screen.commit` writes only the rows that differ from what
the terminal already shows.
"""

from __future__ import annotations

import os
import shutil
import threading
from collections.abc import Callable

from ..ansi import BASE_SLOT, COLOR_BLACK, COLOR_WHITE, char_display_width

PAD_ROWS = 800
PAD_COLUMNS = 200
DEFAULT_MAX_SLOTS = 256

Cell = tuple[str, int]
BLANK: Cell = (" ", BASE_SLOT)
# Right half of a double-width character; rendered as nothing.
WIDE_TAIL = ""


class Pad:
    """Fixed-capacity character buffer with a cursor and a current attribute slot.

    Text past the last column wraps to the next row; rows past the capacity
    are discarded.
    """

    def __init__(self, rows: int = PAD_ROWS, columns: int = PAD_COLUMNS) -> None:
        self.rows = rows
        self.columns = columns
        self._lines: list[list[Cell]] = []
        self._y = 0
        self._x = 0
        self._slot = BASE_SLOT

    def erase(self) -> None:
        self._lines = []
        self._y = 0
        self._x = 0
        self._slot = BASE_SLOT

    def color_on(self, slot: int) -> None:
        self._slot = slot

    @property
    def cursor(self) -> tuple[int, int]:
        return self._y, self._x

    def _put(self, ch: str, width: int) -> None:
        if self._x + width > self.columns:
            self._y += 1
            self._x = 0
        if self._y >= self.rows:
            return
        while len(self._lines) <= self._y:
            self._lines.append([])
        line = self._lines[self._y]
        while len(line) < self._x + width:
            line.append(BLANK)
        line[self._x] = (ch, self._slot)
        for offset in range(1, width):
            line[self._x + offset] = (WIDE_TAIL, self._slot)
        self._x += width

    def print(self, text: str) -> None:
        for ch in text:
            if ch == "\n":
                self._y += 1
                self._x = 0
                continue
            if ch == "\r":
                self._x = 0
                continue
            width = char_display_width(ch, self._x)
            if width == 0:
                continue
            if ch == "\t":
                for _ in range(width):
                    self._put(" ", 1)
                continue
            self._put(ch, width)

    def row(self, index: int) -> list[Cell]:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return []

    def text_lines(self) -> list[str]:
        """Plain text of every written row, trailing blanks removed."""
        return ["".join(ch for ch, _slot in line).rstrip() for line in self._lines]


def _default_size() -> tuple[int, int]:
    term = shutil.get_terminal_size((80, 24))
    return term.lines, term.columns


class Screen:
    """Virtual screen plus the last committed copy of the physical terminal.

    All methods are safe to call from the signal listener thread while the
    main loop renders; they serialize on one lock.
    """

    def __init__(
        self,
        stdout_fd: int,
        max_slots: int = DEFAULT_MAX_SLOTS,
        size_fn: Callable[[], tuple[int, int]] = _default_size,
    ) -> None:
        self.stdout_fd = stdout_fd
        self.max_slots = max_slots
        self._size_fn = size_fn
        self._lock = threading.Lock()
        self._slot_sgr: dict[int, str] = {}
        self._virtual: list[list[Cell]] = []
        self._physical: list[list[Cell]] | None = None
        self._closed = False

    def size(self) -> tuple[int, int]:
        """Return ``(rows, columns)`` of the terminal right now."""
        return self._size_fn()

    def init_slot(self, slot: int, foreground: int, background: int) -> None:
        with self._lock:
            self._slot_sgr[slot] = f"\033[0;{30 + foreground};{40 + background}m"

    def _sgr(self, slot: int) -> str:
        sgr = self._slot_sgr.get(slot)
        if sgr is None:
            sgr = self._slot_sgr.get(BASE_SLOT, f"\033[0;{30 + COLOR_WHITE};{40 + COLOR_BLACK}m")
        return sgr

    def clear(self) -> None:
        """Start a new frame: blank virtual buffer sized to the terminal."""
        rows, columns = self.size()
        with self._lock:
            self._virtual = [[BLANK] * columns for _ in range(max(0, rows))]

    def compose(
        self,
        pad: Pad,
        pad_row: int,
        pad_col: int,
        top: int,
        left: int,
        bottom: int,
        right: int,
    ) -> None:
        """Copy the pad window starting at ``(pad_row, pad_col)`` into the
        inclusive screen rectangle ``top..bottom`` x ``left..right``.

        Parts of the rectangle outside the screen are clipped; an empty or
        inverted rectangle copies nothing.
        """
        with self._lock:
            if not self._virtual:
                return
            bottom = min(bottom, len(self._virtual) - 1)
            right = min(right, len(self._virtual[0]) - 1)
            top = max(0, top)
            left = max(0, left)
            if bottom < top or right < left:
                return
            for offset, y in enumerate(range(top, bottom + 1)):
                source = pad.row(pad_row + offset)
                target = self._virtual[y]
                for x in range(left, right + 1):
                    index = pad_col + x - left
                    target[x] = source[index] if 0 <= index < len(source) else BLANK

    def _render_row(self, cells: list[Cell]) -> str:
        out: list[str] = []
        current: int | None = None
        for ch, slot in cells:
            if slot != current:
                out.append(self._sgr(slot))
                current = slot
            out.append(ch)
        return "".join(out)

    def _flush_locked(self) -> None:
        if self._closed:
            return
        rows, columns = self.size()
        visible = [row[:columns] for row in self._virtual[: max(0, rows)]]
        out: list[str] = []
        if self._physical is None:
            out.append("\033[0m\033[2J")
        for y, cells in enumerate(visible):
            if self._physical is not None and y < len(self._physical) and self._physical[y] == cells:
                continue
            out.append(f"\033[{y + 1};1H")
            out.append(self._render_row(cells))
        self._physical = visible
        if out:
            out.append("\033[0m")
            os.write(self.stdout_fd, "".join(out).encode("utf-8", errors="replace"))

    def commit(self) -> None:
        """Write the rows that changed since the previous commit."""
        with self._lock:
            self._flush_locked()

    def rebuild(self) -> None:
        """Forget the physical screen and redraw the whole virtual buffer.

        Called after a terminal resize, when the terminal contents can no
        longer be trusted.
        """
        with self._lock:
            self._physical = None
            self._flush_locked()

    def close(self) -> None:
        """Release buffers; later commits and rebuilds write nothing."""
        with self._lock:
            self._closed = True
            self._virtual = []
            self._physical = None
            self._slot_sgr.clear()
