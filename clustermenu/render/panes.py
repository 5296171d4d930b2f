"""Per-frame text of the four console panes.

Each ``print_*`` function writes one pane into an erased :class:`Pad`.
Tool output goes through :func:`~clustermenu.ansi.color_print` so its colors
survive; fixed labels are printed with the current attribute.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from ..ansi import ColorAttributeTable, color_print
from ..confirm import (
    CANCEL_KEY,
    CONFIRM_KEY,
    DISABLE_KEY,
    ENABLE_APP_KEY,
    ENABLE_CLUSTER_KEY,
    ENABLE_DB_KEY,
    REBOOT_KEY,
    SHUTDOWN_KEY,
    PendingConfirmation,
)
from ..drbd.snapshot import VolumeState, out_of_sync_percent
from ..executor import CommandResult
from ..systemd.queries import APP_TARGET, CLUSTER_TARGET, DB_TARGET, DISABLED_TARGET, job_summary
from .screen import Pad

SYSTEM_PANE = "system"
REPLICATION_PANE = "replication"
MENU_PANE = "menu"
JOBS_PANE = "jobs"
PANE_NAMES: tuple[str, ...] = (SYSTEM_PANE, REPLICATION_PANE, MENU_PANE, JOBS_PANE)

LOGOUT_KEY = "9"
RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"

VOLUME_HEADER = (
    f"{'Resource':>20} {'LocalRole':>10} {'LocalDisk':>14} {'Connection':>10} "
    f"{'RemoteRole':>10} {'RemoteDisk':>14} {'OutOfSync':>10}"
)
ROLE_HEADER = f"{'Resource':>20} {'LocalRole':>10}"


def format_timestamp(now: datetime) -> str:
    return now.strftime(RFC1123_FORMAT).rstrip()


def print_system(pad: Pad, dependency_lines: Sequence[str], colors: ColorAttributeTable) -> None:
    pad.print("=== Cluster Services === \n")
    color_print(pad, "\n".join(dependency_lines), colors)


def print_jobs(pad: Pad, jobs_listing: str, colors: ColorAttributeTable) -> None:
    """Running jobs when there are any, else the raw listing, then the waiting count."""
    pad.print("=== Jobs ===\n")
    running, waiting = job_summary(jobs_listing)
    if running:
        color_print(pad, "\n".join(running), colors)
    else:
        color_print(pad, jobs_listing, colors)
    if waiting:
        color_print(pad, f"\n+{waiting:2d} waiting", colors)


@dataclass(frozen=True)
class MenuView:
    """Inputs of the operator menu for one frame."""

    hostname: str
    now: datetime
    jobs_running: bool
    active_targets: tuple[str, ...]
    split_cluster: bool
    allowed_to_enable: Callable[[str], bool]
    last_result: CommandResult | None = None


def menu_options(view: MenuView) -> list[str]:
    """Return the selectable option lines; none while a job transition runs."""
    if view.jobs_running:
        return []
    options: list[str] = []
    if DISABLED_TARGET in view.active_targets:
        if view.allowed_to_enable(CLUSTER_TARGET):
            options.append(f"{ENABLE_CLUSTER_KEY})\tEnable this computer (APP+DB)")
        options.append(f"{SHUTDOWN_KEY})\tShutdown this computer")
        options.append(f"{REBOOT_KEY})\tReboot this computer")
        if view.split_cluster:
            if view.allowed_to_enable(APP_TARGET):
                options.append(f"{ENABLE_APP_KEY})\tEnable Applications")
            if view.allowed_to_enable(DB_TARGET):
                options.append(f"{ENABLE_DB_KEY})\tEnable Databases")
    else:
        options.append(f"{DISABLE_KEY})\tDisable this computer")
        options.append(f"{SHUTDOWN_KEY})\tShutdown this computer")
        options.append(f"{REBOOT_KEY})\tReboot this computer")
    return options


def print_menu(pad: Pad, view: MenuView) -> None:
    pad.print("=== Menu === \n")
    pad.print(f"{view.hostname}\n")
    pad.print(f"{format_timestamp(view.now)}\n")
    pad.print("Please select an operation:\n")
    for option in menu_options(view):
        pad.print(f"{option}\n")
    pad.print(f"{LOGOUT_KEY})\tLogout")
    if view.last_result is not None:
        pad.print(f"\n\nLast: {view.last_result.summary()}")


def print_confirmation(pad: Pad, pending: PendingConfirmation, now: datetime) -> None:
    pad.print("=== Menu === \n")
    pad.print(f"{format_timestamp(now)}\n")
    pad.print(f"{pending.message}\n")
    pad.print(f"{CONFIRM_KEY})\tYes\n")
    pad.print(f"{CANCEL_KEY})\tNo\n")


def _format_percent(state: VolumeState) -> str:
    percent = out_of_sync_percent(state)
    if percent is None:
        return f"{'n/a':>10}"
    return f"{percent:>9d}%"


def format_volume_row(state: VolumeState) -> str:
    return (
        f"{state.minor:>2}{state.resource_name:>18} {state.local_role:>10} {state.local_disk:>14} "
        f"{state.connection_status:>10} {state.remote_role:>10} {state.remote_disk:>14} "
        f"{_format_percent(state)}"
    )


def format_summary_row(state: VolumeState) -> str:
    return (
        f"{'all':>20} {state.local_role:>10} {state.local_disk:>14} "
        f"{state.connection_status:>10} {state.remote_role:>10} {state.remote_disk:>14} "
        f"{_format_percent(state)}"
    )


def group_rows(states: Sequence[VolumeState]) -> list[str]:
    """One ``all`` row when every volume shows the same state, else one row each."""
    if not states:
        return []
    first = states[0].display_key()
    if all(state.display_key() == first for state in states):
        return [format_summary_row(states[0])]
    return [format_volume_row(state) for state in states]


def print_drbd_status(
    pad: Pad,
    states: Sequence[VolumeState],
    target_resources: Mapping[str, Sequence[str]],
    event_error: str = "",
) -> None:
    """Replication state grouped into application and database resources."""
    app_resources = set(target_resources.get(APP_TARGET, ()))
    db_resources = set(target_resources.get(DB_TARGET, ()))
    app_states = [state for state in states if state.resource_name in app_resources]
    db_states = [
        state
        for state in states
        if state.resource_name in db_resources and state.resource_name not in app_resources
    ]

    pad.print("=== DRBD resources === \n")
    pad.print("=== APP resources === \n")
    pad.print(f"{VOLUME_HEADER}\n")
    pad.print("\n".join(group_rows(app_states)))
    pad.print("\n=== DB resources === \n")
    pad.print(f"{VOLUME_HEADER}\n")
    pad.print("\n".join(group_rows(db_states)))
    pad.print("\n")
    if event_error:
        pad.print(f"\n! {event_error}\n")


def print_generic_status(pad: Pad, active_targets: Sequence[str]) -> None:
    """Role placeholder for hosts without DRBD."""
    pad.print("=== Resources === \n")
    for target in active_targets:
        if target == APP_TARGET:
            _print_role_section(pad, "APP", "Primary")
        elif target == DB_TARGET:
            _print_role_section(pad, "DB", "Primary")
        elif target == DISABLED_TARGET:
            _print_role_section(pad, "APP", "Secondary")
            _print_role_section(pad, "DB", "Secondary")


def _print_role_section(pad: Pad, label: str, role: str) -> None:
    pad.print(f"\n=== {label} resources === \n")
    pad.print(f"{ROLE_HEADER}\n")
    pad.print(f"{'all':>20} {role:>10}")
