"""Compose one console frame from the session and commit it to the screen."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from ..systemd.queries import cluster_dependency_lines, has_running_jobs, list_jobs
from .panes import (
    JOBS_PANE,
    MENU_PANE,
    PANE_NAMES,
    REPLICATION_PANE,
    SYSTEM_PANE,
    MenuView,
    print_confirmation,
    print_drbd_status,
    print_generic_status,
    print_jobs,
    print_menu,
    print_system,
)
from .screen import Pad, Screen

if TYPE_CHECKING:
    from ..runtime.layout import Layout
    from ..session import ConsoleSession


def _local_now() -> datetime:
    return datetime.now().astimezone()


class FrameRenderer:
    """Owns the four pane pads; the only writer of the screen during a frame."""

    def __init__(
        self,
        session: ConsoleSession,
        screen: Screen,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._session = session
        self._screen = screen
        self._clock = clock
        self._pads: dict[str, Pad] = {name: Pad() for name in PANE_NAMES}

    def pad(self, name: str) -> Pad:
        return self._pads[name]

    def compose_panes(self) -> None:
        """Query fresh system state and rewrite every pad."""
        session = self._session
        active = session.refresh_active_targets()
        jobs_listing = list_jobs(session.executor)
        snapshot = session.snapshot()
        now = self._clock()

        for pad in self._pads.values():
            pad.erase()

        print_system(self._pads[SYSTEM_PANE], cluster_dependency_lines(session.executor), session.colors)
        print_jobs(self._pads[JOBS_PANE], jobs_listing, session.colors)

        pending = session.confirmation.pending
        if pending is not None:
            print_confirmation(self._pads[MENU_PANE], pending, now)
        else:
            view = MenuView(
                hostname=session.hostname,
                now=now,
                jobs_running=has_running_jobs(jobs_listing),
                active_targets=active,
                split_cluster=session.split_cluster,
                allowed_to_enable=lambda target: session.allowed_to_enable(target, snapshot),
                last_result=session.executor.last_result,
            )
            print_menu(self._pads[MENU_PANE], view)

        if session.drbd_enabled:
            print_drbd_status(
                self._pads[REPLICATION_PANE],
                snapshot,
                session.target_resources,
                session.last_event_error,
            )
        else:
            print_generic_status(self._pads[REPLICATION_PANE], active)

    def render(self, layout: Layout) -> None:
        self.compose_panes()
        self._screen.clear()
        for name, rect in layout.pane_rects().items():
            self._screen.compose(
                self._pads[name],
                rect.pad_row,
                rect.pad_col,
                rect.top,
                rect.left,
                rect.bottom,
                rect.right,
            )
        self._screen.commit()

    def release(self) -> None:
        for pad in self._pads.values():
            pad.erase()
        self._screen.close()
