"""Pane geometry for the two-by-two console layout.

The upper pair (System, Replication) and the lower pair (Menu, Jobs) are
separated by a blank row whose position is ``rows - row_offset``; the left
and right panes are separated by a blank column after ``split_columns``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..render.panes import JOBS_PANE, MENU_PANE, REPLICATION_PANE, SYSTEM_PANE
from ..render.screen import PAD_ROWS

DEFAULT_SPLIT_COLUMNS = 40
SPLIT_CLUSTER_ROW_OFFSET = 11
ROW_OFFSET = 9


@dataclass(frozen=True)
class PaneRect:
    """Pad origin plus the inclusive screen rectangle it is shown in."""

    pad_row: int
    pad_col: int
    top: int
    left: int
    bottom: int
    right: int


@dataclass
class Layout:
    rows: int
    columns: int
    row_offset: int
    split_columns: int = DEFAULT_SPLIT_COLUMNS
    scroll: int = 0

    @property
    def split_rows(self) -> int:
        return self.rows - self.row_offset

    def resize(self, rows: int, columns: int) -> None:
        self.rows = max(1, rows)
        self.columns = max(1, columns)

    def pane_rects(self) -> dict[str, PaneRect]:
        split_rows = self.split_rows
        split_cols = self.split_columns
        return {
            SYSTEM_PANE: PaneRect(self.scroll, 0, 0, 0, split_rows - 1, split_cols - 1),
            REPLICATION_PANE: PaneRect(self.scroll, 0, 0, split_cols + 1, split_rows - 1, self.columns - 1),
            MENU_PANE: PaneRect(0, 0, split_rows + 1, 0, self.rows - 1, split_cols - 1),
            JOBS_PANE: PaneRect(self.scroll, 0, split_rows + 1, split_cols + 1, self.rows - 1, self.columns - 1),
        }

    def scroll_up(self) -> None:
        if self.scroll > 0:
            self.scroll -= 1

    def scroll_down(self) -> None:
        if self.scroll < PAD_ROWS - 1:
            self.scroll += 1

    def lower_split(self) -> None:
        """Give the upper panes one more row."""
        if self.row_offset > 0:
            self.row_offset -= 1

    def raise_split(self) -> None:
        """Give the lower panes one more row."""
        if self.row_offset < self.rows - 1:
            self.row_offset += 1


def initial_layout(
    rows: int,
    columns: int,
    split_cluster: bool,
    split_columns: int = DEFAULT_SPLIT_COLUMNS,
) -> Layout:
    """Start with room for the longer split-cluster menu when it is shown."""
    row_offset = SPLIT_CLUSTER_ROW_OFFSET if split_cluster else ROW_OFFSET
    return Layout(rows=rows, columns=columns, row_offset=row_offset, split_columns=split_columns)


def handle_layout_key(layout: Layout, key: str) -> bool:
    """Apply scroll and split keys; return whether ``key`` was one of them."""
    if key == "UP":
        layout.scroll_up()
    elif key == "DOWN":
        layout.scroll_down()
    elif key == "LEFT":
        layout.lower_split()
    elif key == "RIGHT":
        layout.raise_split()
    else:
        return False
    return True
