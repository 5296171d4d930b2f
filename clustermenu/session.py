"""Console session: the context object shared by every component.

Holds what is decided once at startup (hostname, DRBD presence, split
cluster, target-to-resource map, color table) together with the little state
that changes per frame (active targets, last event-source error) and the
confirmation machine that owns the pending question.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from queue import Empty, Queue

from .ansi import ColorAttributeTable, SlotBackend
from .confirm import ConfirmationDeps, ConfirmationMachine
from .drbd.events import ERROR_QUEUE_SIZE, EventSourceError
from .drbd.snapshot import VolumeState, extract_volume_states
from .drbd.store import ResourceCollection
from .executor import CommandExecutor
from .policy import SafetyPolicy
from .systemd.queries import (
    DISABLED_TARGET,
    active_targets,
    build_target_resource_map,
    has_running_jobs,
    is_drbd_present,
    is_split_cluster,
    list_jobs,
)

logger = logging.getLogger(__name__)


@dataclass
class ConsoleSession:
    executor: CommandExecutor
    store: ResourceCollection
    colors: ColorAttributeTable
    hostname: str
    drbd_enabled: bool
    split_cluster: bool
    target_resources: Mapping[str, tuple[str, ...]]
    event_errors: Queue[EventSourceError] = field(default_factory=lambda: Queue(maxsize=ERROR_QUEUE_SIZE))
    active_targets: tuple[str, ...] = (DISABLED_TARGET,)
    last_event_error: str = ""
    policy: SafetyPolicy = field(init=False)
    confirmation: ConfirmationMachine = field(init=False)

    def __post_init__(self) -> None:
        self.policy = SafetyPolicy(self.drbd_enabled, self.target_resources)
        self.confirmation = ConfirmationMachine(
            ConfirmationDeps(
                has_running_jobs=self.jobs_running,
                active_targets=lambda: self.active_targets,
                allowed_to_enable=self.allowed_to_enable,
                split_cluster=self.split_cluster,
                execute=self.executor.spawn,
            )
        )

    def refresh_active_targets(self) -> tuple[str, ...]:
        self.active_targets = active_targets(self.executor)
        return self.active_targets

    def jobs_running(self) -> bool:
        return has_running_jobs(list_jobs(self.executor))

    def snapshot(self) -> list[VolumeState]:
        if not self.drbd_enabled:
            return []
        return extract_volume_states(self.store)

    def allowed_to_enable(self, target: str, snapshot: Iterable[VolumeState] | None = None) -> bool:
        return self.policy.allowed_to_enable(target, self.snapshot() if snapshot is None else snapshot)

    def drain_event_errors(self) -> int:
        """Log every queued event-source error and keep the newest for display."""
        drained = 0
        while True:
            try:
                error = self.event_errors.get_nowait()
            except Empty:
                return drained
            logger.warning("DRBD event source: %s", error)
            self.last_event_error = str(error)
            drained += 1


def build_session(
    executor: CommandExecutor,
    store: ResourceCollection,
    backend: SlotBackend,
    *,
    drbd_enabled: bool | None = None,
) -> ConsoleSession:
    """Run the one-time startup queries and assemble the session."""
    if drbd_enabled is None:
        drbd_enabled = is_drbd_present()
    split_cluster = is_split_cluster(executor)
    target_resources = build_target_resource_map(executor)
    logger.info(
        "session start: drbd=%s split_cluster=%s gated resources=%s",
        drbd_enabled,
        split_cluster,
        dict(target_resources),
    )
    return ConsoleSession(
        executor=executor,
        store=store,
        colors=ColorAttributeTable(backend),
        hostname=socket.gethostname(),
        drbd_enabled=drbd_enabled,
        split_cluster=split_cluster,
        target_resources=target_resources,
    )
