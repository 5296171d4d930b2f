"""Two-step confirmation for operator actions.

Destructive keys (disable, shutdown, reboot) only arm a pending confirmation;
``Y`` runs the stored command and ``N`` drops it. Enable keys run at once, but
only when no job transition is in flight and the safety policy agrees. While a
confirmation is pending every other action key is inert.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial

from .systemd.queries import (
    APP_TARGET,
    CLUSTER_ROLE_TARGETS,
    CLUSTER_TARGET,
    DB_TARGET,
    DISABLED_TARGET,
    POWEROFF_COMMAND,
    REBOOT_COMMAND,
    isolate_command,
)

ENABLE_CLUSTER_KEY = "2"
DISABLE_KEY = "3"
SHUTDOWN_KEY = "4"
REBOOT_KEY = "5"
ENABLE_APP_KEY = "6"
ENABLE_DB_KEY = "7"
CONFIRM_KEY = "Y"
CANCEL_KEY = "N"

DISABLE_MESSAGE = "Are you sure you want to disable this computer?"
SHUTDOWN_MESSAGE = "Are you sure you want to shut down this computer?"
REBOOT_MESSAGE = "Are you sure you want to reboot this computer?"
SHUTDOWN_REFUSED_MESSAGE = "ERROR: System needs to be Secondary\nto shutdown. Please disable first"
REBOOT_REFUSED_MESSAGE = "ERROR: System needs to be Secondary\nto reboot. Please disable first"


@dataclass(frozen=True)
class PendingConfirmation:
    """A question waiting for ``Y``/``N``; an empty command only acknowledges."""

    message: str
    command: tuple[str, ...] = ()

    @property
    def actionable(self) -> bool:
        return bool(self.command)


@dataclass(frozen=True)
class ConfirmationDeps:
    """Live inputs the state machine consults when a key arrives."""

    has_running_jobs: Callable[[], bool]
    active_targets: Callable[[], Sequence[str]]
    allowed_to_enable: Callable[[str], bool]
    split_cluster: bool
    execute: Callable[[Sequence[str]], object]


class ConfirmationMachine:
    """Idle / pending-confirmation state for one console session."""

    def __init__(self, deps: ConfirmationDeps) -> None:
        self._deps = deps
        self.pending: PendingConfirmation | None = None
        self._idle_actions: dict[str, Callable[[], None]] = {
            ENABLE_CLUSTER_KEY: partial(self._enable, CLUSTER_TARGET, needs_split=False),
            DISABLE_KEY: self._ask_disable,
            SHUTDOWN_KEY: partial(self._ask_power, POWEROFF_COMMAND, SHUTDOWN_MESSAGE, SHUTDOWN_REFUSED_MESSAGE),
            REBOOT_KEY: partial(self._ask_power, REBOOT_COMMAND, REBOOT_MESSAGE, REBOOT_REFUSED_MESSAGE),
            ENABLE_APP_KEY: partial(self._enable, APP_TARGET, needs_split=True),
            ENABLE_DB_KEY: partial(self._enable, DB_TARGET, needs_split=True),
        }

    @property
    def is_pending(self) -> bool:
        return self.pending is not None

    def handle_key(self, key: str) -> bool:
        """Apply ``key`` and return whether it belongs to this machine."""
        if self.pending is not None:
            return self._resolve(key)
        action = self._idle_actions.get(key)
        if action is None:
            return False
        action()
        return True

    def _resolve(self, key: str) -> bool:
        if key == CONFIRM_KEY:
            pending, self.pending = self.pending, None
            if pending is not None and pending.actionable:
                self._deps.execute(pending.command)
            return True
        if key == CANCEL_KEY:
            self.pending = None
            return True
        return False

    def _enable(self, target: str, *, needs_split: bool) -> None:
        if self._deps.has_running_jobs():
            return
        if needs_split and not self._deps.split_cluster:
            return
        if self._deps.allowed_to_enable(target):
            self._deps.execute(isolate_command(target))

    def _ask_disable(self) -> None:
        if not self._deps.has_running_jobs():
            self.pending = PendingConfirmation(DISABLE_MESSAGE, isolate_command(DISABLED_TARGET))

    def _ask_power(self, command: tuple[str, ...], message: str, refused_message: str) -> None:
        active = set(self._deps.active_targets())
        if active.issuperset(CLUSTER_ROLE_TARGETS):
            self.pending = PendingConfirmation(refused_message)
            return
        if not self._deps.has_running_jobs():
            self.pending = PendingConfirmation(message, command)
